"""Protocol for per-provider status normalization strategies."""

from typing import Protocol

from vidgate.core.models.job import NormalizedResult
from vidgate.core.models.raw_status import RawProviderStatus


class StatusNormalizationStrategy(Protocol):
    """Maps one provider's raw status onto a `NormalizedResult`.

    Strategies are pure: no I/O, no clock except `observed_at`, no registry
    access. Progress merging across ticks is the polling engine's concern.
    """

    def can_handle(self, raw: RawProviderStatus) -> bool:
        ...

    def normalize(self, raw: RawProviderStatus) -> NormalizedResult:
        """Raises InvalidResponseError when the payload contradicts itself
        (e.g. success without a media URL)."""
        ...
