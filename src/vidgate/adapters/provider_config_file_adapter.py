import threading
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import ValidationError

from vidgate.core.interfaces.provider_config import ProviderConfigPort
from vidgate.core.models.job import ProviderName
from vidgate.core.models.providers_config import ProviderOverride, ProvidersConfig
from vidgate.core.settings import logger


class ProviderConfigFileAdapter(ProviderConfigPort):
    """Reads provider overrides from a YAML file once, at construction.

    Configuration is never reloaded at runtime; a running poll loop keeps the
    interval and timeout it started with.
    """

    def __init__(self, config_path: str | Path):
        self._config_path = Path(config_path)
        self._lock = threading.Lock()
        self._config: ProvidersConfig = ProvidersConfig()

        self.load_providers()

    def load_providers(self) -> None:
        logger.info("Loading provider overrides from %s", self._config_path)

        try:
            with open(self._config_path, encoding="UTF-8") as file:
                content = yaml.safe_load(file)
        except FileNotFoundError:
            logger.error("Providers file not found: %s", self._config_path)
            return
        except yaml.YAMLError as e:
            logger.error("Failed to parse providers file: %s", e)
            raise

        if not content:
            logger.warning("Providers file is empty: %s", self._config_path)
            return

        try:
            validated = ProvidersConfig(**content)
        except ValidationError as e:
            logger.error("Validation error in providers file: %s", e)
            raise

        with self._lock:
            self._config = validated
        logger.info(
            "Provider overrides loaded for: %s",
            ", ".join(p.value for p in validated.providers) or "(none)",
        )

    def get_provider(self, provider: ProviderName) -> Optional[ProviderOverride]:
        with self._lock:
            return self._config.providers.get(provider)

    def list_providers(self) -> List[ProviderName]:
        with self._lock:
            return list(self._config.providers)

    def polling_overrides(self) -> Dict[ProviderName, Dict[str, float]]:
        with self._lock:
            return {
                name: fields
                for name, override in self._config.providers.items()
                if (fields := override.polling_fields())
            }
