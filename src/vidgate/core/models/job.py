from pydantic import BaseModel, Field, model_validator
from typing import Optional, Tuple
from datetime import datetime, timezone
from enum import StrEnum


class ProviderName(StrEnum):
    veo = "veo"
    runway = "runway"
    pixverse = "pixverse"
    vidu = "vidu"


class JobState(StrEnum):
    pending = "pending"
    running = "running"
    succeeded = "succeeded"
    failed = "failed"
    cancelled = "cancelled"
    timed_out = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {JobState.succeeded, JobState.failed, JobState.cancelled, JobState.timed_out}
)


class FailureReason(StrEnum):
    """Provider-neutral classification of why a job did not succeed."""

    content_policy = "content_policy"
    provider_error = "provider_error"
    invalid_response = "invalid_response"
    auth_failure = "auth_failure"
    rate_limited = "rate_limited"
    invalid_parameter = "invalid_parameter"
    unsupported_operation = "unsupported_operation"
    timeout = "timeout"
    cancelled = "cancelled"
    internal_error = "internal_error"


class JobHandle(BaseModel):
    """Reference to a submitted job.

    Provider-assigned ids are only unique per provider (PixVerse hands out
    integers), so the registry keys records by ``"<provider>:<job_id>"``.
    """

    job_id: str
    provider: ProviderName

    model_config = {"frozen": True}

    @property
    def key(self) -> str:
        return f"{self.provider}:{self.job_id}"


class Job(BaseModel):
    """A single provider-side video generation request.

    Notes:
    - `id` is the provider-assigned identifier, already normalized to `str`.
    - `submitted_image_ref` is a sha256 digest of the submitted image; the
      bytes themselves are never kept.
    - Immutable after creation; the registry pairs it with the latest
      `NormalizedResult` in a `JobRecord`.
    """

    id: str
    provider: ProviderName
    submitted_prompt: Optional[str] = None
    submitted_image_ref: Optional[str] = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Submission timestamp (UTC); anchors the polling deadline",
    )

    model_config = {"frozen": True}

    @property
    def handle(self) -> JobHandle:
        return JobHandle(job_id=self.id, provider=self.provider)

    @property
    def key(self) -> str:
        return self.handle.key

    def elapsed_seconds(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(timezone.utc)
        return (now - self.created_at).total_seconds()


class NormalizedResult(BaseModel):
    state: JobState
    progress: Optional[float] = Field(None, ge=0.0, le=1.0)
    media_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    error_message: Optional[str] = None
    failure_reason: Optional[FailureReason] = None
    dimensions: Optional[Tuple[int, int]] = None
    observed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _progress_complete_only_on_success(self) -> "NormalizedResult":
        if self.state == JobState.succeeded and self.progress != 1.0:
            raise ValueError("succeeded results must report progress 1.0")
        if self.state != JobState.succeeded and self.progress == 1.0:
            raise ValueError(f"progress 1.0 is reserved for succeeded, got state={self.state}")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @classmethod
    def pending(cls) -> "NormalizedResult":
        return cls(state=JobState.pending, progress=None)

    @classmethod
    def failure(
        cls,
        state: JobState,
        message: str,
        reason: FailureReason,
        progress: Optional[float] = None,
    ) -> "NormalizedResult":
        return cls(
            state=state,
            progress=progress,
            error_message=message,
            failure_reason=reason,
        )


class JobRecord(BaseModel):
    """Registry entry: the immutable job plus its latest observation."""

    job: Job
    last_result: Optional[NormalizedResult] = None

    model_config = {"frozen": True}

    @property
    def key(self) -> str:
        return self.job.key

    def is_in_terminal_state(self) -> bool:
        return self.last_result is not None and self.last_result.is_terminal

    def with_result(self, result: NormalizedResult) -> "JobRecord":
        return self.model_copy(update={"last_result": result})
