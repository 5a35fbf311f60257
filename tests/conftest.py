"""Shared test adapters and fixtures.

`ScriptedAdapter` implements ProviderAdapterPort without any HTTP: each
`fetch_status` call returns (or raises) the next scripted item and the last
item repeats once the script runs out.
"""

import itertools
from typing import Any, Dict, List, Optional, Union

import pytest

from vidgate.adapters.job_registry_inmemory import InMemoryJobRegistry
from vidgate.core.config import PollingEngineConfig, ProviderPollingPolicy
from vidgate.core.exceptions import InvalidParameterError, UnsupportedOperationError
from vidgate.core.interfaces.provider_adapter import ProviderAdapterPort
from vidgate.core.managers.polling_engine import PollingEngine
from vidgate.core.managers.status_normalizer import StatusNormalizer
from vidgate.core.models.job import JobHandle, ProviderName
from vidgate.core.models.raw_status import (
    PixVerseRawStatus,
    PixVerseVideo,
    RawProviderStatus,
    ViduCreation,
    ViduRawStatus,
)

ScriptItem = Union[RawProviderStatus, Exception]


def pixverse_status(code: int, url: Optional[str] = None) -> PixVerseRawStatus:
    return PixVerseRawStatus(err_code=0, resp=PixVerseVideo(id=1, status=code, url=url))


def vidu_status(state: str, url: Optional[str] = None) -> ViduRawStatus:
    creations = [ViduCreation(id="c1", url=url, cover_url=f"{url}.jpg")] if url else []
    return ViduRawStatus(id="t1", state=state, creations=creations)


class ScriptedAdapter(ProviderAdapterPort):
    def __init__(
        self,
        provider: ProviderName = ProviderName.pixverse,
        script: Optional[List[ScriptItem]] = None,
        image_input: bool = False,
    ):
        self.provider = provider
        self.script = list(script or [])
        self.image_input = image_input
        self.fetch_calls = 0
        self.submit_calls = 0
        self.cancel_calls = 0
        self._ids = itertools.count(1)
        self._position: Dict[str, int] = {}
        self.scripts_by_job: Dict[str, List[ScriptItem]] = {}

    def _next_id(self) -> str:
        return f"job-{next(self._ids)}"

    async def submit_from_text(self, prompt, aspect_ratio, duration_seconds, extra_options=None) -> JobHandle:
        if aspect_ratio not in self.supported_aspect_ratios():
            raise InvalidParameterError(f"bad aspect ratio {aspect_ratio}")
        self.submit_calls += 1
        return JobHandle(job_id=self._next_id(), provider=self.provider)

    async def submit_from_image(self, image_bytes, prompt, aspect_ratio, duration_seconds, extra_options=None) -> JobHandle:
        if not self.image_input:
            raise UnsupportedOperationError("no image input")
        self.submit_calls += 1
        return JobHandle(job_id=self._next_id(), provider=self.provider)

    async def fetch_status(self, handle: JobHandle) -> RawProviderStatus:
        self.fetch_calls += 1
        script = self.scripts_by_job.get(handle.job_id, self.script)
        position = self._position.get(handle.job_id, 0)
        item = script[min(position, len(script) - 1)]
        self._position[handle.job_id] = position + 1
        if isinstance(item, Exception):
            raise item
        return item

    async def cancel_remote(self, handle: JobHandle) -> bool:
        self.cancel_calls += 1
        return True

    def supports_image_input(self) -> bool:
        return self.image_input

    def supports_text_input(self) -> bool:
        return True

    def supported_aspect_ratios(self):
        return frozenset({"16:9", "9:16"})

    def supported_durations(self):
        return frozenset({5, 8})


@pytest.fixture
def registry():
    return InMemoryJobRegistry()


@pytest.fixture
def fast_config():
    """Polling fast enough for unit tests."""
    policy = ProviderPollingPolicy(poll_interval=0.01, poll_timeout=5.0)
    return PollingEngineConfig(
        default_policy=policy,
        per_provider={provider: policy for provider in ProviderName},
    )


@pytest.fixture
def make_engine(registry, fast_config):
    """Factory building a PollingEngine around the given adapters."""
    def factory(*adapters: ProviderAdapterPort, observers: Optional[List[Any]] = None) -> PollingEngine:
        engine = PollingEngine(
            adapters={a.provider: a for a in adapters},
            registry=registry,
            normalizer=StatusNormalizer(),
            config=fast_config,
            observers=observers,
        )
        return engine

    return factory
