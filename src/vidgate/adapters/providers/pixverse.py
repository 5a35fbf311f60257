import uuid
from typing import Any, Dict, Optional, Tuple

from vidgate.adapters.providers.base import BaseProviderAdapter, normalize_job_id
from vidgate.core.exceptions import (
    InvalidParameterError,
    InvalidResponseError,
    ProviderAPIError,
)
from vidgate.core.models.job import JobHandle, ProviderName
from vidgate.core.models.raw_status import PixVerseRawStatus


class PixVerseAdapter(BaseProviderAdapter):
    """PixVerse text-to-video.

    Every response carries an ``ErrCode``/``ErrMsg`` envelope; a non-zero
    code is an error even on HTTP 200.
    """

    provider = ProviderName.pixverse
    ASPECT_RATIOS = frozenset({"16:9", "4:3", "1:1", "3:4", "9:16"})
    DURATIONS = frozenset({5, 8})
    SUPPORTS_TEXT = True
    SUPPORTS_IMAGE = False

    MODELS = frozenset({"v4.5", "v4", "v3.5"})
    DEFAULT_MODEL = "v4.5"
    QUALITIES = frozenset({"360p", "540p", "720p", "1080p"})
    MOTION_MODES = frozenset({"auto", "normal", "slow", "fast"})
    STYLES = frozenset({"anime", "3d_animation", "clay", "comic", "cyberpunk"})

    def _auth_headers(self) -> Dict[str, str]:
        return {"API-KEY": self._api_key, "Ai-trace-id": str(uuid.uuid4())}

    def _extract_error(self, body: Any) -> Tuple[Optional[object], Optional[str]]:
        if isinstance(body, dict) and "ErrCode" in body:
            return body.get("ErrCode"), body.get("ErrMsg") or None
        return None, None

    def _validate_options(self, duration_seconds: int, options: Dict[str, Any]) -> None:
        checks = (
            ("model", self.MODELS),
            ("quality", self.QUALITIES),
            ("motion_mode", self.MOTION_MODES),
            ("style", self.STYLES),
        )
        for key, allowed in checks:
            value = options.get(key)
            if value is not None and value not in allowed:
                raise InvalidParameterError(
                    f"Unsupported pixverse {key} {value!r}; expected one of {sorted(allowed)}",
                    provider=self.provider,
                )
        if options.get("style") is not None and options.get("model", self.DEFAULT_MODEL) != "v3.5":
            raise InvalidParameterError(
                "pixverse style is only available with model v3.5", provider=self.provider
            )

    def _raise_for_envelope(self, body: Dict[str, Any], operation: str, job_id: Optional[str] = None) -> None:
        err_code = body.get("ErrCode", 0)
        if err_code not in (0, None):
            raise ProviderAPIError(
                body.get("ErrMsg") or f"pixverse {operation} failed with ErrCode {err_code}",
                code=err_code,
                upstream_status=200,
                job_id=job_id,
                provider=self.provider,
            )

    async def _create_text_job(
        self, prompt: str, aspect_ratio: str, duration_seconds: int, options: Dict[str, Any]
    ) -> str:
        model = options.get("model", self.DEFAULT_MODEL)
        payload: Dict[str, Any] = {
            "prompt": prompt,
            "model": model,
            "aspect_ratio": aspect_ratio,
            "duration": duration_seconds,
            "quality": options.get("quality", "540p"),
            "motion_mode": options.get("motion_mode", "normal"),
            "water_mark": bool(options.get("watermark", False)),
        }
        if options.get("negative_prompt"):
            payload["negative_prompt"] = options["negative_prompt"]
        if options.get("seed") is not None:
            payload["seed"] = options["seed"]
        if options.get("camera_movement"):
            payload["camera_movement"] = options["camera_movement"]
        if options.get("style") is not None:
            payload["style"] = options["style"]
        if options.get("template_id") is not None:
            payload["template_id"] = options["template_id"]
        if options.get("generate_audio"):
            payload["sound_effect_switch"] = True
            if options.get("sound_effect_content"):
                payload["sound_effect_content"] = options["sound_effect_content"]

        response = await self._post("/openapi/v2/video/text/generate", payload)
        body = self._check_response(response, "submit")
        self._raise_for_envelope(body, "submit")

        resp = body.get("Resp")
        if not isinstance(resp, dict) or resp.get("video_id") is None:
            raise InvalidResponseError(
                "pixverse submit response has no Resp.video_id",
                diagnostic=str(body)[:500],
                provider=self.provider,
            )
        return normalize_job_id(resp["video_id"])

    async def fetch_status(self, handle: JobHandle) -> PixVerseRawStatus:
        response = await self._get(f"/openapi/v2/video/result/{handle.job_id}")
        body = self._check_response(response, "status", job_id=handle.job_id)
        self._raise_for_envelope(body, "status", job_id=handle.job_id)
        return self._decode(PixVerseRawStatus, body, job_id=handle.job_id)
