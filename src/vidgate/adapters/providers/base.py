"""Shared plumbing for the HTTP provider adapters.

`BaseProviderAdapter` owns the parts every provider does the same way:
capability checks, parameter validation before any request is made, status
code classification and decoding payloads into pydantic models. Subclasses
supply the auth headers, the request bodies and the provider's error shape.
"""

from typing import Any, ClassVar, Dict, FrozenSet, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from vidgate.core.exceptions import (
    AuthFailureError,
    InvalidParameterError,
    InvalidResponseError,
    ProviderAPIError,
    RateLimitedError,
    UnsupportedOperationError,
)
from vidgate.core.interfaces.http_client import HttpClientPort
from vidgate.core.interfaces.provider_adapter import ProviderAdapterPort
from vidgate.core.models.job import JobHandle, ProviderName
from vidgate.core.settings import logger

ModelT = TypeVar("ModelT", bound=BaseModel)


def normalize_job_id(value: Any) -> str:
    """Return a provider job id as a non-empty string.

    Providers hand out ids as strings, integers or (PixVerse, through JSON
    number decoding) floats with an integral value.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidResponseError(f"Provider returned an unusable job id: {value!r}")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidResponseError(f"Provider returned a non-integral job id: {value!r}")
        return str(int(value))
    if isinstance(value, str) and value.strip():
        return value.strip()
    raise InvalidResponseError(f"Provider returned an unusable job id: {value!r}")


def sniff_image_type(image_bytes: bytes) -> Tuple[str, str]:
    """Return (mime type, file extension) from the image's magic bytes."""
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png", "png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp", "webp"
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg", "jpg"
    raise InvalidParameterError("Unsupported image format (expected JPEG, PNG or WebP)")


class BaseProviderAdapter(ProviderAdapterPort):
    provider: ClassVar[ProviderName]
    ASPECT_RATIOS: ClassVar[FrozenSet[str]]
    DURATIONS: ClassVar[FrozenSet[int]]
    SUPPORTS_TEXT: ClassVar[bool] = True
    SUPPORTS_IMAGE: ClassVar[bool] = False

    def __init__(
        self,
        http_client: HttpClientPort,
        api_key: str,
        base_url: str,
        request_timeout: Optional[float] = None,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = request_timeout
        if not api_key:
            logger.warning(f"[{self.provider}] API key is missing; requests will be rejected")

    # ---------------- Capabilities -----------------
    def supports_image_input(self) -> bool:
        return self.SUPPORTS_IMAGE

    def supports_text_input(self) -> bool:
        return self.SUPPORTS_TEXT

    def supported_aspect_ratios(self) -> FrozenSet[str]:
        return self.ASPECT_RATIOS

    def supported_durations(self) -> FrozenSet[int]:
        return self.DURATIONS

    # ---------------- Submission -----------------
    async def submit_from_text(
        self,
        prompt: str,
        aspect_ratio: str,
        duration_seconds: int,
        extra_options: Optional[Dict[str, Any]] = None,
    ) -> JobHandle:
        if not self.supports_text_input():
            raise UnsupportedOperationError(
                f"{self.provider} does not support text-to-video generation",
                provider=self.provider,
            )
        options = dict(extra_options or {})
        if not prompt or not prompt.strip():
            raise InvalidParameterError("Prompt must not be empty", provider=self.provider)
        self._validate(aspect_ratio, duration_seconds, options)

        job_id = await self._create_text_job(prompt.strip(), aspect_ratio, duration_seconds, options)
        handle = JobHandle(job_id=job_id, provider=self.provider)
        logger.info(f"[job:submit] accepted text job key={handle.key}")
        return handle

    async def submit_from_image(
        self,
        image_bytes: bytes,
        prompt: Optional[str],
        aspect_ratio: str,
        duration_seconds: int,
        extra_options: Optional[Dict[str, Any]] = None,
    ) -> JobHandle:
        if not self.supports_image_input():
            raise UnsupportedOperationError(
                f"{self.provider} does not support image-to-video generation",
                provider=self.provider,
            )
        options = dict(extra_options or {})
        if not image_bytes:
            raise InvalidParameterError("Image must not be empty", provider=self.provider)
        self._validate(aspect_ratio, duration_seconds, options)
        prompt = prompt.strip() if prompt and prompt.strip() else None

        job_id = await self._create_image_job(image_bytes, prompt, aspect_ratio, duration_seconds, options)
        handle = JobHandle(job_id=job_id, provider=self.provider)
        logger.info(f"[job:submit] accepted image job key={handle.key}")
        return handle

    async def cancel_remote(self, handle: JobHandle) -> bool:
        raise UnsupportedOperationError(
            f"{self.provider} does not support cancelling tasks", provider=self.provider
        )

    def _validate(self, aspect_ratio: str, duration_seconds: int, options: Dict[str, Any]) -> None:
        if aspect_ratio not in self.ASPECT_RATIOS:
            raise InvalidParameterError(
                f"Unsupported aspect ratio {aspect_ratio!r} for {self.provider}; "
                f"expected one of {sorted(self.ASPECT_RATIOS)}",
                provider=self.provider,
            )
        if duration_seconds not in self.DURATIONS:
            raise InvalidParameterError(
                f"Unsupported duration {duration_seconds}s for {self.provider}; "
                f"expected one of {sorted(self.DURATIONS)}",
                provider=self.provider,
            )
        self._validate_options(duration_seconds, options)

    def _validate_options(self, duration_seconds: int, options: Dict[str, Any]) -> None:
        """Provider-specific option checks; runs before any request."""

    async def _create_text_job(
        self, prompt: str, aspect_ratio: str, duration_seconds: int, options: Dict[str, Any]
    ) -> str:
        raise UnsupportedOperationError(
            f"{self.provider} does not support text-to-video generation", provider=self.provider
        )

    async def _create_image_job(
        self,
        image_bytes: bytes,
        prompt: Optional[str],
        aspect_ratio: str,
        duration_seconds: int,
        options: Dict[str, Any],
    ) -> str:
        raise UnsupportedOperationError(
            f"{self.provider} does not support image-to-video generation", provider=self.provider
        )

    # ---------------- HTTP helpers -----------------
    def _auth_headers(self) -> Dict[str, str]:
        raise NotImplementedError

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json", **self._auth_headers()}

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    async def _get(self, path: str) -> Dict[str, Any]:
        return await self._http.get(self._url(path), headers=self._headers(), timeout=self._timeout)

    async def _post(self, path: str, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return await self._http.post(
            self._url(path), json=payload, headers=self._headers(), timeout=self._timeout
        )

    def _extract_error(self, body: Any) -> Tuple[Optional[object], Optional[str]]:
        """Return (code, message) from a provider error payload, if it has one."""
        if isinstance(body, dict):
            message = body.get("error") or body.get("message")
            if isinstance(message, str):
                return body.get("code"), message
        return None, None

    def _check_response(
        self,
        response: Dict[str, Any],
        operation: str,
        job_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Classify the HTTP status and return the JSON object body.

        Raises the matching VideoGenerationError subclass for non-2xx
        responses and for 2xx bodies that are not JSON objects.
        """
        status = response.get("status", 0)
        body = response.get("body")

        if 200 <= status < 300:
            if not isinstance(body, dict):
                raise InvalidResponseError(
                    f"{self.provider} {operation} returned a non-JSON body",
                    diagnostic=str(body)[:500],
                    job_id=job_id,
                    provider=self.provider,
                )
            return body

        code, message = self._extract_error(body)
        logger.warning(
            f"[{self.provider}] {operation} failed status={status} code={code} message={message}"
        )
        if status in (401, 403):
            raise AuthFailureError(
                message or f"{self.provider} rejected the credentials (HTTP {status})",
                job_id=job_id,
                provider=self.provider,
            )
        if status == 429:
            raise RateLimitedError(
                message or f"{self.provider} rate limit exceeded",
                job_id=job_id,
                provider=self.provider,
            )
        if status == 404 and job_id is not None:
            raise ProviderAPIError(
                f"{self.provider} task not found: {job_id}",
                code=code,
                upstream_status=status,
                job_id=job_id,
                provider=self.provider,
            )
        raise ProviderAPIError(
            message or f"{self.provider} request failed with status code: {status}",
            code=code,
            upstream_status=status,
            diagnostic=None if message else str(body)[:500],
            job_id=job_id,
            provider=self.provider,
        )

    def _decode(self, model: Type[ModelT], payload: Any, job_id: Optional[str] = None) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise InvalidResponseError(
                f"{self.provider} returned an unexpected payload",
                diagnostic=str(e),
                job_id=job_id,
                provider=self.provider,
            ) from e
