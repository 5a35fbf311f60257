"""Veo 3 fast, served through the Pollo platform API.

Image jobs take a URL, not bytes: the image is first uploaded to a file
service and the returned file name is turned into a public URL.
"""

import time
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from vidgate.adapters.providers.base import (
    BaseProviderAdapter,
    normalize_job_id,
    sniff_image_type,
)
from vidgate.core.exceptions import InvalidParameterError, InvalidResponseError
from vidgate.core.interfaces.http_client import HttpClientPort
from vidgate.core.interfaces.retry import RetryPort
from vidgate.core.models.job import JobHandle, ProviderName
from vidgate.core.models.raw_status import VeoRawStatus
from vidgate.core.settings import logger


class VeoAdapter(BaseProviderAdapter):
    provider = ProviderName.veo
    ASPECT_RATIOS = frozenset({"16:9", "1:1", "9:16", "4:3", "3:4"})
    DURATIONS = frozenset({8})
    SUPPORTS_TEXT = True
    SUPPORTS_IMAGE = True

    RESOLUTIONS = frozenset({"720p", "1080p"})
    TEXT_RESOLUTION = "720p"
    IMAGE_RESOLUTION = "1080p"

    def __init__(
        self,
        http_client: HttpClientPort,
        api_key: str,
        base_url: str,
        upload_url: str,
        file_url: str,
        retry: Optional[RetryPort] = None,
        webhook_url: Optional[str] = None,
        request_timeout: Optional[float] = None,
    ) -> None:
        super().__init__(http_client, api_key, base_url, request_timeout)
        self._upload_url = upload_url
        self._file_url = file_url
        self._retry = retry
        self._webhook_url = webhook_url

    def _auth_headers(self) -> Dict[str, str]:
        return {"x-api-key": self._api_key}

    def _validate_options(self, duration_seconds: int, options: Dict[str, Any]) -> None:
        resolution = options.get("resolution")
        if resolution is not None and resolution not in self.RESOLUTIONS:
            raise InvalidParameterError(
                f"Unsupported resolution {resolution!r} for veo; expected one of {sorted(self.RESOLUTIONS)}",
                provider=self.provider,
            )

    def _input(
        self,
        prompt: str,
        aspect_ratio: str,
        duration_seconds: int,
        options: Dict[str, Any],
        default_resolution: str,
    ) -> Dict[str, Any]:
        return {
            "prompt": prompt,
            "negativePrompt": options.get("negative_prompt"),
            "length": duration_seconds,
            "aspectRatio": aspect_ratio,
            "resolution": options.get("resolution", default_resolution),
            "seed": options.get("seed"),
            "generateAudio": bool(options.get("generate_audio", False)),
        }

    async def _create_text_job(
        self, prompt: str, aspect_ratio: str, duration_seconds: int, options: Dict[str, Any]
    ) -> str:
        payload_input = self._input(prompt, aspect_ratio, duration_seconds, options, self.TEXT_RESOLUTION)
        return await self._create_generation(payload_input)

    async def _create_image_job(
        self,
        image_bytes: bytes,
        prompt: Optional[str],
        aspect_ratio: str,
        duration_seconds: int,
        options: Dict[str, Any],
    ) -> str:
        if prompt is None:
            raise InvalidParameterError(
                "veo image-to-video requires a prompt", provider=self.provider
            )
        content_type, extension = sniff_image_type(image_bytes)
        image_url = await self._upload_image(image_bytes, content_type, extension)

        payload_input = self._input(prompt, aspect_ratio, duration_seconds, options, self.IMAGE_RESOLUTION)
        payload_input["image"] = image_url
        return await self._create_generation(payload_input)

    async def _create_generation(self, payload_input: Dict[str, Any]) -> str:
        payload = {"input": payload_input, "webhookUrl": self._webhook_url}
        response = await self._post("/generation/google/veo3-fast", payload)
        body = self._check_response(response, "submit")

        data = body.get("data")
        if not isinstance(data, dict) or "taskId" not in data:
            raise InvalidResponseError(
                "veo submit response has no data.taskId",
                diagnostic=str(body)[:500],
                provider=self.provider,
            )
        return normalize_job_id(data["taskId"])

    async def _upload_image(self, image_bytes: bytes, content_type: str, extension: str) -> str:
        """Upload the source image and return the URL the generation API can fetch."""
        file_name = f"image_{int(time.time() * 1000)}.{extension}"

        async def do_upload() -> Dict[str, Any]:
            return await self._http.post_multipart(
                self._upload_url,
                field_name="file",
                filename=file_name,
                content=image_bytes,
                content_type=content_type,
                headers=self._auth_headers(),
                timeout=self._timeout,
            )

        if self._retry is not None:
            response = await self._retry.execute(do_upload)
        else:
            response = await do_upload()

        body = self._check_response(response, "image upload")
        uploaded_name = body.get("fileName")
        if not isinstance(uploaded_name, str) or not uploaded_name:
            raise InvalidResponseError(
                "veo image upload response has no fileName",
                diagnostic=str(body)[:500],
                provider=self.provider,
            )
        logger.debug(f"[veo] uploaded image file_name={uploaded_name}")
        return f"{self._file_url}?{urlencode({'fileName': uploaded_name})}"

    async def fetch_status(self, handle: JobHandle) -> VeoRawStatus:
        response = await self._get(f"/generation/{handle.job_id}/status")
        body = self._check_response(response, "status", job_id=handle.job_id)

        data = body.get("data")
        if not isinstance(data, dict):
            raise InvalidResponseError(
                "veo status response has no data object",
                diagnostic=str(body)[:500],
                job_id=handle.job_id,
                provider=self.provider,
            )
        return self._decode(VeoRawStatus, data, job_id=handle.job_id)
