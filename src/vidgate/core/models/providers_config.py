from typing import Dict, Optional

from pydantic import BaseModel, Field, SecretStr, field_validator

from vidgate.core.models.job import ProviderName


class ProviderOverride(BaseModel):
    """Startup overrides for a single provider.

    Every field is optional; anything left out falls back to the
    environment-driven settings.
    """

    api_key: Optional[SecretStr] = Field(
        default=None,
        alias="api-key",
        description="Credential sent with every request to this provider",
    )
    base_url: Optional[str] = Field(
        default=None,
        alias="base-url",
        description="Root URL of the provider API, without a trailing slash",
    )
    poll_interval: Optional[float] = Field(
        default=None,
        gt=0,
        alias="poll-interval",
        description="Seconds between status requests",
    )
    timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds from submission until the job is reported timed_out",
    )

    model_config = {"populate_by_name": True, "extra": "forbid"}

    @field_validator("base_url", mode="before")
    def strip_trailing_slash(cls, value):
        """Endpoint paths are appended with a leading slash."""
        if isinstance(value, str):
            return value.rstrip("/")
        return value

    def polling_fields(self) -> Dict[str, float]:
        fields: Dict[str, float] = {}
        if self.poll_interval is not None:
            fields["poll_interval"] = self.poll_interval
        if self.timeout is not None:
            fields["poll_timeout"] = self.timeout
        return fields


class ProvidersConfig(BaseModel):
    """Root of providers.yaml"""

    providers: Dict[ProviderName, ProviderOverride] = Field(
        default_factory=dict,
        description="Overrides keyed by provider name (veo, runway, pixverse, vidu)",
    )
