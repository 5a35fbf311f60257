import hashlib
from typing import Any, Dict, FrozenSet, Optional

from pydantic import BaseModel, Field

from vidgate.core.models.job import ProviderName


class GenerationRequest(BaseModel):
    """Provider-neutral request accepted by the dispatcher.

    `image` switches the dispatcher to the image-to-video path. Anything a
    single provider understands (model, seed, negative prompt, ...) goes into
    `extra_options`; adapters ignore keys they do not know.
    """

    prompt: Optional[str] = None
    image: Optional[bytes] = Field(default=None, repr=False)
    aspect_ratio: str
    duration_seconds: int
    generate_audio: bool = False
    extra_options: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_image_request(self) -> bool:
        return self.image is not None

    @property
    def image_ref(self) -> Optional[str]:
        """Digest identifying the submitted image; the bytes are not retained."""
        if self.image is None:
            return None
        return "sha256:" + hashlib.sha256(self.image).hexdigest()


class ProviderCapabilities(BaseModel):
    provider: ProviderName
    aspect_ratios: FrozenSet[str]
    durations: FrozenSet[int]
    supports_image_input: bool
    supports_text_input: bool = True

    model_config = {"frozen": True}
