"""Concrete observer implementations for job lifecycle events.

- LoggingObserver: one log line per lifecycle event
- EvictOnTerminalObserver: drops finished jobs from the registry
- CallbackObserver: adapts plain callables (sync or async) to the protocol
"""

import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from vidgate.core.interfaces.job_registry import JobRegistryPort
from vidgate.core.models.job import Job, NormalizedResult


logger = logging.getLogger(__name__)

JobCallback = Callable[..., Union[None, Awaitable[None]]]


class LoggingObserver:
    """Records every lifecycle event at INFO (terminal) or DEBUG (progress)."""

    async def on_job_submitted(self, job: Job) -> None:
        logger.info(f"[observer:log] submitted key={job.key} prompt={job.submitted_prompt!r}")

    async def on_progress(self, job: Job, result: NormalizedResult) -> None:
        logger.debug(
            f"[observer:log] progress key={job.key} state={result.state} progress={result.progress}"
        )

    async def on_job_completed(self, job: Job, result: NormalizedResult) -> None:
        if result.failure_reason is not None:
            logger.info(
                f"[observer:log] completed key={job.key} state={result.state} "
                f"reason={result.failure_reason} message={result.error_message!r}"
            )
        else:
            logger.info(f"[observer:log] completed key={job.key} state={result.state} url={result.media_url}")


class EvictOnTerminalObserver:
    """Removes a job from the registry once its terminal result was delivered.

    Register it last so the other observers still find the record.
    """

    def __init__(self, registry: JobRegistryPort):
        self._registry = registry

    async def on_job_submitted(self, job: Job) -> None:
        pass

    async def on_progress(self, job: Job, result: NormalizedResult) -> None:
        pass

    async def on_job_completed(self, job: Job, result: NormalizedResult) -> None:
        if self._registry.remove(job.key) is not None:
            logger.debug(f"[observer:evict] removed key={job.key} state={result.state}")


class CallbackObserver:
    """Wraps plain callables; any of them may be omitted."""

    def __init__(
        self,
        on_submitted: Optional[JobCallback] = None,
        on_progress: Optional[JobCallback] = None,
        on_completed: Optional[JobCallback] = None,
    ):
        self._on_submitted = on_submitted
        self._on_progress = on_progress
        self._on_completed = on_completed

    @staticmethod
    async def _call(callback: Optional[JobCallback], *args) -> None:
        if callback is None:
            return
        outcome = callback(*args)
        if inspect.isawaitable(outcome):
            await outcome

    async def on_job_submitted(self, job: Job) -> None:
        await self._call(self._on_submitted, job)

    async def on_progress(self, job: Job, result: NormalizedResult) -> None:
        await self._call(self._on_progress, job, result)

    async def on_job_completed(self, job: Job, result: NormalizedResult) -> None:
        await self._call(self._on_completed, job, result)
