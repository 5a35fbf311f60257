from typing import Optional

from vidgate.core.models.job import FailureReason


class VideoGenerationError(Exception):
    """Base exception for submit and polling failures.

    Attributes:
        message: Human-readable error description
        diagnostic: Technical diagnostic information for debugging
        job_id: Optional provider job identifier
        provider: Optional provider name
    """

    failure_reason: FailureReason = FailureReason.internal_error

    def __init__(
        self,
        message: str,
        diagnostic: Optional[str] = None,
        job_id: Optional[str] = None,
        provider: Optional[str] = None,
    ):
        self.message = message
        self.diagnostic = diagnostic
        self.job_id = job_id
        self.provider = provider
        super().__init__(message)


class InvalidParameterError(VideoGenerationError):
    """Request rejected before reaching the wire (aspect ratio, duration, prompt)."""

    failure_reason = FailureReason.invalid_parameter


class UnsupportedOperationError(VideoGenerationError):
    """Provider does not offer the requested operation (e.g. image input)."""

    failure_reason = FailureReason.unsupported_operation


class AuthFailureError(VideoGenerationError):
    failure_reason = FailureReason.auth_failure


class RateLimitedError(VideoGenerationError):
    """Provider answered 429. Surfaced to the caller, never retried here."""

    failure_reason = FailureReason.rate_limited


class TransientNetworkError(VideoGenerationError):
    """Timeout or connection loss; the polling loop retries on its next tick."""

    failure_reason = FailureReason.provider_error


class ProviderAPIError(VideoGenerationError):
    """Provider returned a decodable error payload or a non-2xx status.

    Attributes:
        code: Provider error code (int or string, as sent)
        upstream_status: HTTP status code from provider (if applicable)
    """

    failure_reason = FailureReason.provider_error

    def __init__(
        self,
        message: str,
        code: Optional[object] = None,
        upstream_status: Optional[int] = None,
        diagnostic: Optional[str] = None,
        job_id: Optional[str] = None,
        provider: Optional[str] = None,
    ):
        self.code = code
        self.upstream_status = upstream_status
        super().__init__(message=message, diagnostic=diagnostic, job_id=job_id, provider=provider)


class ModerationRejectedError(VideoGenerationError):
    failure_reason = FailureReason.content_policy


class JobTimeoutError(VideoGenerationError):
    """Raised when a job exceeds its wall-clock budget.

    Attributes:
        elapsed_seconds: Time elapsed since submission
        timeout_seconds: Configured budget
    """

    failure_reason = FailureReason.timeout

    def __init__(
        self,
        job_id: str,
        elapsed_seconds: float,
        timeout_seconds: float,
        diagnostic: Optional[str] = None,
    ):
        self.elapsed_seconds = elapsed_seconds
        self.timeout_seconds = timeout_seconds
        message = f"Job {job_id} timed out after {elapsed_seconds:.1f}s (limit: {timeout_seconds}s)"
        super().__init__(message=message, diagnostic=diagnostic, job_id=job_id)


class InvalidResponseError(VideoGenerationError):
    """Provider payload could not be decoded or contradicts itself."""

    failure_reason = FailureReason.invalid_response
