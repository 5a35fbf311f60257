"""VideoDispatcher: the single entry point callers use.

Routes a provider-neutral request to the matching adapter, registers the
accepted job and hands back a handle that can be checked once or polled to
completion. Capability queries let callers build valid requests without
knowing provider details.
"""

from __future__ import annotations

from typing import List, Mapping, Optional, Union

from vidgate.core.exceptions import InvalidParameterError, UnsupportedOperationError
from vidgate.core.interfaces.job_registry import JobRegistryPort
from vidgate.core.interfaces.provider_adapter import ProviderAdapterPort
from vidgate.core.managers.polling_engine import PollingEngine, PollingHandle, ResultCallback
from vidgate.core.models.generation_request import GenerationRequest, ProviderCapabilities
from vidgate.core.models.job import Job, JobHandle, JobRecord, NormalizedResult, ProviderName
from vidgate.core.settings import logger


class VideoDispatcher:
    def __init__(
        self,
        adapters: Mapping[ProviderName, ProviderAdapterPort],
        registry: JobRegistryPort,
        engine: PollingEngine,
    ) -> None:
        self._adapters = dict(adapters)
        self._registry = registry
        self._engine = engine

    # ---------------- Capabilities -----------------
    def providers(self) -> List[ProviderName]:
        return list(self._adapters)

    def _adapter(self, provider: Union[ProviderName, str]) -> ProviderAdapterPort:
        try:
            name = ProviderName(provider)
        except ValueError as exc:
            raise InvalidParameterError(f"Unknown provider: {provider!r}") from exc
        adapter = self._adapters.get(name)
        if adapter is None:
            raise UnsupportedOperationError(f"Provider {name} is not configured", provider=name)
        return adapter

    def capabilities(self, provider: Union[ProviderName, str]) -> ProviderCapabilities:
        return self._adapter(provider).capabilities()

    def supports_image_input(self, provider: Union[ProviderName, str]) -> bool:
        return self._adapter(provider).supports_image_input()

    def available_aspect_ratios(self, provider: Union[ProviderName, str]) -> List[str]:
        return sorted(self._adapter(provider).supported_aspect_ratios())

    def available_durations(self, provider: Union[ProviderName, str]) -> List[int]:
        return sorted(self._adapter(provider).supported_durations())

    # ---------------- Jobs -----------------
    async def submit(self, provider: Union[ProviderName, str], request: GenerationRequest) -> JobHandle:
        """Submit a request and start tracking the job.

        Validation and provider errors are raised here and leave the registry
        untouched. Polling is not started; use `poll` or `generate`.
        """
        adapter = self._adapter(provider)
        options = {**request.extra_options, "generate_audio": request.generate_audio}

        if request.is_image_request:
            handle = await adapter.submit_from_image(
                request.image,
                request.prompt,
                request.aspect_ratio,
                request.duration_seconds,
                options,
            )
        else:
            handle = await adapter.submit_from_text(
                request.prompt or "",
                request.aspect_ratio,
                request.duration_seconds,
                options,
            )

        job = Job(
            id=handle.job_id,
            provider=handle.provider,
            submitted_prompt=request.prompt,
            submitted_image_ref=request.image_ref,
        )
        self._registry.add(job)
        logger.info(f"[job:submit] tracking key={job.key}")
        await self._engine.notify_job_submitted(job)
        return handle

    async def check_once(self, handle: JobHandle) -> NormalizedResult:
        return await self._engine.check_once(handle)

    def poll(
        self,
        handle: JobHandle,
        on_progress: Optional[ResultCallback] = None,
        on_terminal: Optional[ResultCallback] = None,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> PollingHandle:
        return self._engine.start(
            handle,
            on_progress=on_progress,
            on_terminal=on_terminal,
            poll_interval=poll_interval,
            timeout=timeout,
        )

    async def generate(
        self,
        provider: Union[ProviderName, str],
        request: GenerationRequest,
        on_progress: Optional[ResultCallback] = None,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> NormalizedResult:
        """Submit, poll and wait for the terminal result."""
        handle = await self.submit(provider, request)
        polling = self.poll(handle, on_progress=on_progress, poll_interval=poll_interval, timeout=timeout)
        return await polling.wait()

    async def cancel(self, handle: JobHandle, remote: bool = False) -> bool:
        """Stop local polling and, if asked, cancel the provider-side task.

        Raises UnsupportedOperationError when `remote` is requested for a
        provider that cannot cancel.
        """
        stopped = self._engine.cancel(handle.key)
        if not remote:
            return stopped
        accepted = await self._adapter(handle.provider).cancel_remote(handle)
        return stopped or accepted

    def get(self, handle: JobHandle) -> Optional[JobRecord]:
        return self._registry.get(handle.key)

    def remove(self, handle: JobHandle) -> Optional[JobRecord]:
        """Stop tracking a job; a running loop ends as cancelled on its next tick."""
        self._engine.cancel(handle.key)
        return self._registry.remove(handle.key)
