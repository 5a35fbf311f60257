from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, Optional

from vidgate.core.models.generation_request import ProviderCapabilities
from vidgate.core.models.job import JobHandle, ProviderName
from vidgate.core.models.raw_status import RawProviderStatus


class ProviderAdapterPort(ABC):
    """Contract every video provider adapter fulfils.

    Adapters validate before touching the network, attach their credential to
    every request and translate provider payloads into the raw status union.
    They never read or write the job registry.
    """

    provider: ProviderName

    @abstractmethod
    async def submit_from_text(
        self,
        prompt: str,
        aspect_ratio: str,
        duration_seconds: int,
        extra_options: Optional[Dict[str, Any]] = None,
    ) -> JobHandle:
        pass

    @abstractmethod
    async def submit_from_image(
        self,
        image_bytes: bytes,
        prompt: Optional[str],
        aspect_ratio: str,
        duration_seconds: int,
        extra_options: Optional[Dict[str, Any]] = None,
    ) -> JobHandle:
        pass

    @abstractmethod
    async def fetch_status(self, handle: JobHandle) -> RawProviderStatus:
        pass

    @abstractmethod
    async def cancel_remote(self, handle: JobHandle) -> bool:
        """Ask the provider to stop the task; UnsupportedOperationError if it cannot."""
        pass

    @abstractmethod
    def supports_image_input(self) -> bool:
        pass

    @abstractmethod
    def supports_text_input(self) -> bool:
        pass

    @abstractmethod
    def supported_aspect_ratios(self) -> FrozenSet[str]:
        pass

    @abstractmethod
    def supported_durations(self) -> FrozenSet[int]:
        pass

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            provider=self.provider,
            aspect_ratios=self.supported_aspect_ratios(),
            durations=self.supported_durations(),
            supports_image_input=self.supports_image_input(),
            supports_text_input=self.supports_text_input(),
        )
