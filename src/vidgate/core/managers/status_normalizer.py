"""Selects the normalization strategy for a raw provider status."""

from typing import List, Optional

from vidgate.core.exceptions import InvalidResponseError
from vidgate.core.interfaces.status_normalization import StatusNormalizationStrategy
from vidgate.core.managers.status_normalization_strategies import (
    PixVerseStatusStrategy,
    RunwayStatusStrategy,
    VeoStatusStrategy,
    ViduStatusStrategy,
)
from vidgate.core.models.job import NormalizedResult
from vidgate.core.models.raw_status import RawProviderStatus
from vidgate.core.settings import logger


class StatusNormalizer:
    """Routes each raw status to the first strategy that can handle it.

    The raw union is tagged, so exactly one strategy matches in practice; a
    raw value no strategy claims is reported as an invalid response.
    """

    def __init__(self, strategies: Optional[List[StatusNormalizationStrategy]] = None):
        self._strategies: List[StatusNormalizationStrategy] = strategies or [
            VeoStatusStrategy(),
            RunwayStatusStrategy(),
            PixVerseStatusStrategy(),
            ViduStatusStrategy(),
        ]

    def normalize(self, raw: RawProviderStatus) -> NormalizedResult:
        for strategy in self._strategies:
            if strategy.can_handle(raw):
                result = strategy.normalize(raw)
                logger.debug(
                    f"[normalize:{raw.provider}] {type(strategy).__name__} -> "
                    f"state={result.state} progress={result.progress}"
                )
                return result

        logger.error(f"[normalize] no strategy for raw status type={type(raw).__name__}")
        raise InvalidResponseError(f"No status normalizer for {type(raw).__name__}")
