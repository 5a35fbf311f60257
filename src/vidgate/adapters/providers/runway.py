import base64
from typing import Any, Dict, Optional, Tuple

from vidgate.adapters.providers.base import (
    BaseProviderAdapter,
    normalize_job_id,
    sniff_image_type,
)
from vidgate.core.exceptions import InvalidParameterError, InvalidResponseError
from vidgate.core.models.job import JobHandle, ProviderName
from vidgate.core.models.raw_status import RunwayRawStatus

API_VERSION = "2024-11-06"


class RunwayAdapter(BaseProviderAdapter):
    """Runway image-to-video. The source image travels inline as a data URL."""

    provider = ProviderName.runway
    ASPECT_RATIOS = frozenset({
        "1280:720", "720:1280", "1104:832", "832:1104",
        "960:960", "1584:672", "1280:768", "768:1280",
    })
    DURATIONS = frozenset({5, 10})
    SUPPORTS_TEXT = False
    SUPPORTS_IMAGE = True

    MODELS = frozenset({"gen3a_turbo", "gen4_turbo"})
    DEFAULT_MODEL = "gen3a_turbo"
    PUBLIC_FIGURE_THRESHOLDS = frozenset({"auto", "low"})

    def _auth_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "X-Runway-Version": API_VERSION,
        }

    def _extract_error(self, body: Any) -> Tuple[Optional[object], Optional[str]]:
        if isinstance(body, dict) and isinstance(body.get("error"), str):
            return body.get("code"), body["error"]
        return None, None

    def _validate_options(self, duration_seconds: int, options: Dict[str, Any]) -> None:
        model = options.get("model", self.DEFAULT_MODEL)
        if model not in self.MODELS:
            raise InvalidParameterError(
                f"Unsupported runway model {model!r}; expected one of {sorted(self.MODELS)}",
                provider=self.provider,
            )
        threshold = options.get("public_figure_threshold", "auto")
        if threshold not in self.PUBLIC_FIGURE_THRESHOLDS:
            raise InvalidParameterError(
                f"Unsupported public_figure_threshold {threshold!r}; expected 'auto' or 'low'",
                provider=self.provider,
            )

    async def _create_image_job(
        self,
        image_bytes: bytes,
        prompt: Optional[str],
        aspect_ratio: str,
        duration_seconds: int,
        options: Dict[str, Any],
    ) -> str:
        content_type, _ = sniff_image_type(image_bytes)
        data_url = f"data:{content_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"

        payload: Dict[str, Any] = {
            "promptImage": data_url,
            "model": options.get("model", self.DEFAULT_MODEL),
            "ratio": aspect_ratio,
            "duration": duration_seconds,
            "contentModeration": {
                "publicFigureThreshold": options.get("public_figure_threshold", "auto"),
            },
        }
        if prompt is not None:
            payload["promptText"] = prompt
        if options.get("seed") is not None:
            payload["seed"] = options["seed"]

        response = await self._post("/v1/image_to_video", payload)
        body = self._check_response(response, "submit")
        if "id" not in body:
            raise InvalidResponseError(
                "runway submit response has no id",
                diagnostic=str(body)[:500],
                provider=self.provider,
            )
        return normalize_job_id(body["id"])

    async def fetch_status(self, handle: JobHandle) -> RunwayRawStatus:
        response = await self._get(f"/v1/tasks/{handle.job_id}")
        body = self._check_response(response, "status", job_id=handle.job_id)
        # progress arrives as a number or a numeric string
        progress = body.get("progress")
        if isinstance(progress, str):
            try:
                body = {**body, "progress": float(progress)}
            except ValueError:
                body = {**body, "progress": None}
        return self._decode(RunwayRawStatus, body, job_id=handle.job_id)
