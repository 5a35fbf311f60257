"""Concrete status normalization strategies, one per provider.

1. VeoStatusStrategy: string status on the first generation of a task
2. RunwayStatusStrategy: upper-case task status with optional provider progress
3. PixVerseStatusStrategy: integer status codes
4. ViduStatusStrategy: task state plus a creations list

Every strategy treats vocabulary it does not recognise as "still running":
a new provider state should cost a few extra polls, never a false failure.
A moderation rejection raises ModerationRejectedError; the polling engine
turns it into a failed result like any other classified provider error.
"""

from typing import Optional

from vidgate.core.exceptions import InvalidResponseError, ModerationRejectedError
from vidgate.core.models.job import FailureReason, JobState, NormalizedResult
from vidgate.core.models.raw_status import (
    PixVerseRawStatus,
    RawProviderStatus,
    RunwayRawStatus,
    VeoRawStatus,
    ViduRawStatus,
)
from vidgate.core.settings import logger

# Highest progress a non-succeeded result may report
MAX_RUNNING_PROGRESS = 0.99

MODERATION_MESSAGE = "Content moderation failed - please adjust your prompt"
GENERIC_FAILURE_MESSAGE = "Video generation failed"


def clamp_running_progress(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return max(0.0, min(float(value), MAX_RUNNING_PROGRESS))


def _succeeded(
    media_url: str,
    thumbnail_url: Optional[str] = None,
    dimensions: Optional[tuple] = None,
) -> NormalizedResult:
    return NormalizedResult(
        state=JobState.succeeded,
        progress=1.0,
        media_url=media_url,
        thumbnail_url=thumbnail_url,
        dimensions=dimensions,
    )


def _dimensions(width: Optional[int], height: Optional[int]) -> Optional[tuple]:
    if width and height:
        return (width, height)
    return None


class VeoStatusStrategy:
    """Only the first generation is authoritative; an empty list means the
    task has not started producing anything yet."""

    def can_handle(self, raw: RawProviderStatus) -> bool:
        return isinstance(raw, VeoRawStatus)

    def normalize(self, raw: VeoRawStatus) -> NormalizedResult:
        if not raw.generations:
            return NormalizedResult.pending()

        generation = raw.generations[0]
        status = generation.status.lower()

        if status == "waiting":
            return NormalizedResult(state=JobState.pending, progress=0.1)
        if status == "processing":
            return NormalizedResult(state=JobState.running, progress=0.5)
        if status == "succeed":
            if not generation.url:
                raise InvalidResponseError(
                    "veo reported success without a media url", job_id=raw.task_id, provider="veo"
                )
            return _succeeded(generation.url)
        if status == "failed":
            return NormalizedResult.failure(
                JobState.failed,
                generation.fail_msg or GENERIC_FAILURE_MESSAGE,
                FailureReason.provider_error,
            )

        logger.debug(f"[normalize:veo] unknown status {generation.status!r}; treating as running")
        return NormalizedResult(state=JobState.running, progress=None)


class RunwayStatusStrategy:
    def can_handle(self, raw: RawProviderStatus) -> bool:
        return isinstance(raw, RunwayRawStatus)

    def normalize(self, raw: RunwayRawStatus) -> NormalizedResult:
        status = raw.status.upper()
        progress = clamp_running_progress(raw.progress)

        if status in ("PENDING", "THROTTLED"):
            return NormalizedResult(
                state=JobState.pending, progress=progress if progress is not None else 0.0
            )
        if status == "RUNNING":
            return NormalizedResult(
                state=JobState.running, progress=progress if progress is not None else 0.5
            )
        if status == "SUCCEEDED":
            if not raw.output:
                raise InvalidResponseError(
                    "runway reported success without output", job_id=raw.id, provider="runway"
                )
            return _succeeded(raw.output[0])
        if status == "FAILED":
            code = raw.failure_code or ""
            if code.upper().startswith("SAFETY"):
                raise ModerationRejectedError(
                    MODERATION_MESSAGE,
                    diagnostic=raw.failure or code,
                    job_id=raw.id,
                    provider="runway",
                )
            return NormalizedResult.failure(
                JobState.failed,
                raw.failure or GENERIC_FAILURE_MESSAGE,
                FailureReason.provider_error,
            )
        if status == "CANCELLED":
            return NormalizedResult.failure(
                JobState.cancelled, "Task was cancelled", FailureReason.cancelled
            )

        logger.debug(f"[normalize:runway] unknown status {raw.status!r}; treating as running")
        return NormalizedResult(state=JobState.running, progress=progress)


class PixVerseStatusStrategy:
    SUCCESS = 1
    GENERATING = 5
    MODERATION_FAILED = 7
    FAILED = 8

    def can_handle(self, raw: RawProviderStatus) -> bool:
        return isinstance(raw, PixVerseRawStatus)

    def normalize(self, raw: PixVerseRawStatus) -> NormalizedResult:
        video = raw.resp
        if video is None:
            return NormalizedResult.pending()

        if video.status == self.SUCCESS:
            if not video.url:
                raise InvalidResponseError(
                    "pixverse reported success without a media url",
                    job_id=str(video.id) if video.id is not None else None,
                    provider="pixverse",
                )
            return _succeeded(video.url, dimensions=_dimensions(video.output_width, video.output_height))
        if video.status == self.GENERATING:
            return NormalizedResult(state=JobState.running, progress=0.5)
        if video.status == self.MODERATION_FAILED:
            raise ModerationRejectedError(
                MODERATION_MESSAGE,
                diagnostic=f"status={video.status}",
                job_id=str(video.id) if video.id is not None else None,
                provider="pixverse",
            )
        if video.status == self.FAILED:
            return NormalizedResult.failure(
                JobState.failed, GENERIC_FAILURE_MESSAGE, FailureReason.provider_error
            )

        logger.debug(f"[normalize:pixverse] unknown status code {video.status}; treating as running")
        return NormalizedResult(state=JobState.running, progress=0.1)


class ViduStatusStrategy:
    def can_handle(self, raw: RawProviderStatus) -> bool:
        return isinstance(raw, ViduRawStatus)

    def normalize(self, raw: ViduRawStatus) -> NormalizedResult:
        state = raw.state.lower()

        if state in ("created", "queueing"):
            return NormalizedResult(state=JobState.pending, progress=0.1)
        if state == "processing":
            return NormalizedResult(state=JobState.running, progress=0.5)
        if state == "success":
            if not raw.creations:
                raise InvalidResponseError(
                    "vidu reported success without creations", job_id=raw.id, provider="vidu"
                )
            creation = raw.creations[0]
            if not creation.url:
                raise InvalidResponseError(
                    "vidu reported success without a media url", job_id=raw.id, provider="vidu"
                )
            resolution = creation.video.resolution if creation.video else None
            dimensions = _dimensions(resolution.width, resolution.height) if resolution else None
            return _succeeded(creation.url, thumbnail_url=creation.cover_url, dimensions=dimensions)
        if state == "failed":
            return NormalizedResult.failure(
                JobState.failed,
                raw.err_code or GENERIC_FAILURE_MESSAGE,
                FailureReason.provider_error,
            )

        logger.debug(f"[normalize:vidu] unknown state {raw.state!r}; treating as running")
        return NormalizedResult(state=JobState.running, progress=0.1)
