from pathlib import Path
from typing import Optional

from pydantic import SecretStr
from pydantic_settings import BaseSettings
from rich import print

from vidgate.adapters.logging_adapter import LoggingAdapter
from vidgate.core.interfaces.logging import LoggingPort


# pydantic-settings manages environment variables and does the type casting
# in one place; every knob of the gateway is read here and nowhere else.
class VidgateSettings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }

    VIDGATE_LOG_LEVEL: str = "INFO"
    # Optional YAML overrides, loaded once at startup
    VIDGATE_PROVIDERS_FILE: Optional[Path] = None
    VIDGATE_DEFAULT_POLL_TIMEOUT: float = 300.0  # seconds
    VIDGATE_HTTP_TIMEOUT: float = 60.0  # seconds, per request

    # Veo 3 fast via Pollo
    VIDGATE_VEO_API_KEY: SecretStr = SecretStr("")
    VIDGATE_VEO_BASE_URL: str = "https://pollo.ai/api/platform"
    VIDGATE_VEO_POLL_INTERVAL: float = 2.0
    VIDGATE_VEO_POLL_TIMEOUT: Optional[float] = None
    VIDGATE_VEO_UPLOAD_URL: str = (
        "https://ai-assistant-backend-164860087792.europe-west1.run.app/api/file/upload-file"
    )
    VIDGATE_VEO_FILE_URL: str = (
        "https://ai-assistant-backend-164860087792.europe-west1.run.app/api/file/get-file"
    )
    VIDGATE_VEO_WEBHOOK_URL: Optional[str] = None

    # Runway
    VIDGATE_RUNWAY_API_KEY: SecretStr = SecretStr("")
    VIDGATE_RUNWAY_BASE_URL: str = "https://api.dev.runwayml.com"
    VIDGATE_RUNWAY_POLL_INTERVAL: float = 5.0
    VIDGATE_RUNWAY_POLL_TIMEOUT: Optional[float] = None

    # PixVerse
    VIDGATE_PIXVERSE_API_KEY: SecretStr = SecretStr("")
    VIDGATE_PIXVERSE_BASE_URL: str = "https://app-api.pixverse.ai"
    VIDGATE_PIXVERSE_POLL_INTERVAL: float = 3.0
    VIDGATE_PIXVERSE_POLL_TIMEOUT: Optional[float] = None

    # Vidu
    VIDGATE_VIDU_API_KEY: SecretStr = SecretStr("")
    VIDGATE_VIDU_BASE_URL: str = "https://api.vidu.com"
    VIDGATE_VIDU_POLL_INTERVAL: float = 3.0
    VIDGATE_VIDU_POLL_TIMEOUT: Optional[float] = None

    def print_settings(self, logger: LoggingPort):
        """Prints the settings for debugging purposes (secrets stay masked)"""
        logger.info("vidgate settings:")
        print(self)


app_settings = VidgateSettings()

logger = LoggingAdapter("vidgate", app_settings.VIDGATE_LOG_LEVEL)
