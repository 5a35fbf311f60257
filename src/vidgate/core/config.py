"""Configuration models for core domain components.

Pydantic models that consolidate the polling settings so the engine can be
built from app settings in the composition root and from literals in tests.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field

from vidgate.core.models.job import ProviderName


class ProviderPollingPolicy(BaseModel):
    """How often and how long to poll one provider.

    Attributes:
        poll_interval: Seconds between status requests (float for test flexibility)
        poll_timeout: Wall-clock budget in seconds, measured from submission
    """

    poll_interval: float = Field(
        default=3.0,
        gt=0,
        description="Interval in seconds between remote status requests",
    )

    poll_timeout: float = Field(
        default=300.0,
        gt=0,
        description="Maximum seconds from submission until the job is reported timed_out",
    )

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }


class PollingEngineConfig(BaseModel):
    """Per-provider polling policies with a shared fallback."""

    default_policy: ProviderPollingPolicy = Field(default_factory=ProviderPollingPolicy)
    per_provider: Dict[ProviderName, ProviderPollingPolicy] = Field(default_factory=dict)

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    def policy_for(self, provider: ProviderName) -> ProviderPollingPolicy:
        return self.per_provider.get(provider, self.default_policy)

    def resolve(
        self,
        provider: ProviderName,
        poll_interval: Optional[float] = None,
        poll_timeout: Optional[float] = None,
    ) -> ProviderPollingPolicy:
        """Return the provider policy with any per-call overrides applied."""
        policy = self.policy_for(provider)
        update = {}
        if poll_interval is not None:
            update["poll_interval"] = poll_interval
        if poll_timeout is not None:
            update["poll_timeout"] = poll_timeout
        if not update:
            return policy
        return ProviderPollingPolicy(**{**policy.model_dump(), **update})

    def with_overrides(
        self, overrides: Dict[ProviderName, Dict[str, float]]
    ) -> "PollingEngineConfig":
        """Return a copy where the given fields replace the provider's policy fields."""
        per_provider = dict(self.per_provider)
        for provider, fields in overrides.items():
            base = self.policy_for(provider)
            per_provider[provider] = ProviderPollingPolicy(**{**base.model_dump(), **fields})
        return PollingEngineConfig(default_policy=self.default_policy, per_provider=per_provider)

    @classmethod
    def from_app_settings(cls, settings) -> "PollingEngineConfig":
        """Factory method to construct config from a VidgateSettings instance."""
        default_timeout = settings.VIDGATE_DEFAULT_POLL_TIMEOUT
        per_provider = {}
        for provider in ProviderName:
            prefix = f"VIDGATE_{provider.value.upper()}"
            timeout = getattr(settings, f"{prefix}_POLL_TIMEOUT") or default_timeout
            per_provider[provider] = ProviderPollingPolicy(
                poll_interval=getattr(settings, f"{prefix}_POLL_INTERVAL"),
                poll_timeout=timeout,
            )
        return cls(
            default_policy=ProviderPollingPolicy(poll_timeout=default_timeout),
            per_provider=per_provider,
        )
