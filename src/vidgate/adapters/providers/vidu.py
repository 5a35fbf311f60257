from typing import Any, Dict

from vidgate.adapters.providers.base import BaseProviderAdapter, normalize_job_id
from vidgate.core.exceptions import InvalidParameterError, InvalidResponseError
from vidgate.core.models.job import JobHandle, ProviderName
from vidgate.core.models.raw_status import ViduRawStatus
from vidgate.core.settings import logger

MAX_PROMPT_LENGTH = 1500

# model -> duration -> allowed resolutions; the first entry is the default
MODEL_RESOLUTIONS: Dict[str, Dict[int, tuple]] = {
    "vidu1.5": {4: ("360p", "720p", "1080p"), 8: ("720p",)},
    "viduq1": {5: ("1080p",)},
}


class ViduAdapter(BaseProviderAdapter):
    provider = ProviderName.vidu
    ASPECT_RATIOS = frozenset({"16:9", "9:16", "1:1"})
    DURATIONS = frozenset({4, 5, 8})
    SUPPORTS_TEXT = True
    SUPPORTS_IMAGE = False

    DEFAULT_MODEL = "vidu1.5"
    STYLES = frozenset({"general", "anime"})
    MOVEMENT_AMPLITUDES = frozenset({"auto", "small", "medium", "large"})

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Token {self._api_key}"}

    def _validate_options(self, duration_seconds: int, options: Dict[str, Any]) -> None:
        model = options.get("model", self.DEFAULT_MODEL)
        if model not in MODEL_RESOLUTIONS:
            raise InvalidParameterError(
                f"Unsupported vidu model {model!r}; expected one of {sorted(MODEL_RESOLUTIONS)}",
                provider=self.provider,
            )
        durations = MODEL_RESOLUTIONS[model]
        if duration_seconds not in durations:
            raise InvalidParameterError(
                f"vidu model {model} does not support {duration_seconds}s; "
                f"expected one of {sorted(durations)}",
                provider=self.provider,
            )
        resolution = options.get("resolution")
        if resolution is not None and resolution not in durations[duration_seconds]:
            raise InvalidParameterError(
                f"vidu model {model} at {duration_seconds}s does not support {resolution}",
                provider=self.provider,
            )
        for key, allowed in (("style", self.STYLES), ("movement_amplitude", self.MOVEMENT_AMPLITUDES)):
            value = options.get(key)
            if value is not None and value not in allowed:
                raise InvalidParameterError(
                    f"Unsupported vidu {key} {value!r}; expected one of {sorted(allowed)}",
                    provider=self.provider,
                )

    async def _create_text_job(
        self, prompt: str, aspect_ratio: str, duration_seconds: int, options: Dict[str, Any]
    ) -> str:
        model = options.get("model", self.DEFAULT_MODEL)
        if len(prompt) > MAX_PROMPT_LENGTH:
            logger.debug(f"[vidu] truncating prompt from {len(prompt)} to {MAX_PROMPT_LENGTH} chars")
        payload: Dict[str, Any] = {
            "model": model,
            "style": options.get("style", "general"),
            "prompt": prompt[:MAX_PROMPT_LENGTH],
            "duration": duration_seconds,
            "aspect_ratio": aspect_ratio,
            "resolution": options.get("resolution", MODEL_RESOLUTIONS[model][duration_seconds][0]),
            "movement_amplitude": options.get("movement_amplitude", "auto"),
            "bgm": bool(options.get("bgm", options.get("generate_audio", False))),
            "off_peak": bool(options.get("off_peak", False)),
        }
        if options.get("seed") is not None:
            payload["seed"] = options["seed"]
        if options.get("callback_url"):
            payload["callback_url"] = options["callback_url"]

        response = await self._post("/ent/v2/text2video", payload)
        body = self._check_response(response, "submit")
        if "task_id" not in body:
            raise InvalidResponseError(
                "vidu submit response has no task_id",
                diagnostic=str(body)[:500],
                provider=self.provider,
            )
        return normalize_job_id(body["task_id"])

    async def fetch_status(self, handle: JobHandle) -> ViduRawStatus:
        response = await self._get(f"/ent/v2/tasks/{handle.job_id}/creations")
        body = self._check_response(response, "status", job_id=handle.job_id)
        return self._decode(ViduRawStatus, body, job_id=handle.job_id)

    async def cancel_remote(self, handle: JobHandle) -> bool:
        response = await self._post(f"/ent/v2/task/{handle.job_id}/cancel", None)
        cancelled = response.get("status") == 200
        logger.info(f"[job:cancel] vidu remote cancel key={handle.key} accepted={cancelled}")
        return cancelled
