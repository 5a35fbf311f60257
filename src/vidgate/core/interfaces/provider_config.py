from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from vidgate.core.models.job import ProviderName
from vidgate.core.models.providers_config import ProviderOverride


class ProviderConfigPort(ABC):
    @abstractmethod
    def get_provider(self, provider: ProviderName) -> Optional[ProviderOverride]:
        pass

    @abstractmethod
    def list_providers(self) -> List[ProviderName]:
        pass

    @abstractmethod
    def polling_overrides(self) -> Dict[ProviderName, Dict[str, float]]:
        """Per-provider poll_interval/poll_timeout overrides, only for fields that were set."""
        pass
