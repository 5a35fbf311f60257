"""PollingEngine: drives submitted jobs to a terminal state.

One asyncio task per job. Each tick fetches the provider status through the
job's adapter, normalizes it, merges it into the registry and reports it to
the caller's callbacks and to the registered observers. Loops share nothing
but the registry, so cancelling or failing one job never affects another.

Cancellation is cooperative: `PollingHandle.cancel()` sets an event that the
loop checks before every tick and that cuts the interval sleep short. A
status request already in flight is allowed to finish.

Status requests for one job never overlap: the loop tick and `check_once`
take the same per-job lock around fetch + merge.
"""

from __future__ import annotations

import asyncio
import inspect
import weakref
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Set, Tuple, Union

from vidgate.core.config import PollingEngineConfig, ProviderPollingPolicy
from vidgate.core.exceptions import (
    JobTimeoutError,
    TransientNetworkError,
    VideoGenerationError,
)
from vidgate.core.interfaces.job_registry import JobRegistryPort
from vidgate.core.interfaces.observers import JobStateObserver
from vidgate.core.interfaces.provider_adapter import ProviderAdapterPort
from vidgate.core.logging_config import job_key_var
from vidgate.core.managers.status_normalization_strategies import MAX_RUNNING_PROGRESS
from vidgate.core.managers.status_normalizer import StatusNormalizer
from vidgate.core.models.job import (
    FailureReason,
    Job,
    JobHandle,
    JobRecord,
    JobState,
    NormalizedResult,
    ProviderName,
)
from vidgate.core.settings import logger

ResultCallback = Callable[[NormalizedResult], Union[None, Awaitable[None]]]


async def invoke_callback(callback: ResultCallback, result: NormalizedResult, job_key: str) -> None:
    """Run a sync or async caller callback; failures are logged, never raised."""
    try:
        outcome = callback(result)
        if inspect.isawaitable(outcome):
            await outcome
    except Exception as exc:
        logger.error(f"[job:poll] callback failed key={job_key} callback={callback!r} error={exc}")


class PollingHandle:
    """Caller-side view of one job's polling loop."""

    def __init__(self, job_key: str) -> None:
        self.job_key = job_key
        self.poll_count = 0
        self._cancel_event = asyncio.Event()
        self._finished = asyncio.Event()
        self._result: Optional[NormalizedResult] = None
        self._progress_callbacks: List[ResultCallback] = []
        self._terminal_callbacks: List[ResultCallback] = []

    def __repr__(self) -> str:
        return f"PollingHandle(job_key={self.job_key!r}, done={self.done()}, polls={self.poll_count})"

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._finished.is_set()

    @property
    def result(self) -> Optional[NormalizedResult]:
        """The terminal result, once the loop has finished."""
        return self._result

    async def wait(self) -> NormalizedResult:
        await self._finished.wait()
        assert self._result is not None
        return self._result

    def add_callbacks(
        self,
        on_progress: Optional[ResultCallback] = None,
        on_terminal: Optional[ResultCallback] = None,
    ) -> None:
        if on_progress is not None:
            self._progress_callbacks.append(on_progress)
        if on_terminal is not None:
            self._terminal_callbacks.append(on_terminal)

    async def _sleep(self, seconds: float) -> None:
        """Sleep for `seconds` or until cancelled, whichever comes first."""
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._cancel_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _emit_progress(self, result: NormalizedResult) -> None:
        for callback in list(self._progress_callbacks):
            await invoke_callback(callback, result, self.job_key)

    async def _finish(self, result: NormalizedResult) -> None:
        if self._finished.is_set():
            return
        self._result = result
        self._finished.set()
        for callback in list(self._terminal_callbacks):
            await invoke_callback(callback, result, self.job_key)


def merge_result(previous: Optional[NormalizedResult], incoming: NormalizedResult) -> NormalizedResult:
    """Fold a fresh observation into the last stored one.

    A terminal result is never replaced. Progress never decreases, unknown
    progress keeps the last known value, and only `succeeded` reaches 1.0.
    """
    if previous is not None and previous.is_terminal:
        return previous
    if incoming.state == JobState.succeeded:
        return incoming

    progress = incoming.progress
    previous_progress = previous.progress if previous is not None else None
    if progress is None:
        progress = previous_progress
    elif previous_progress is not None:
        progress = max(progress, previous_progress)
    if progress is not None:
        progress = min(progress, MAX_RUNNING_PROGRESS)

    if progress == incoming.progress:
        return incoming
    return incoming.model_copy(update={"progress": progress})


class PollingEngine:
    def __init__(
        self,
        adapters: Mapping[ProviderName, ProviderAdapterPort],
        registry: JobRegistryPort,
        normalizer: StatusNormalizer,
        config: Optional[PollingEngineConfig] = None,
        observers: Optional[List[JobStateObserver]] = None,
        shutdown_grace: float = 5.0,
    ) -> None:
        self._adapters = dict(adapters)
        self._registry = registry
        self._normalizer = normalizer
        self.config = config or PollingEngineConfig()
        self._observers = observers or []
        self._shutdown_grace = shutdown_grace
        self._handles: Dict[str, PollingHandle] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._fetch_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self._shutdown = False

    # ---------------- Observers -----------------
    def add_observer(self, observer: JobStateObserver) -> None:
        self._observers.append(observer)

    async def notify_job_submitted(self, job: Job) -> None:
        for observer in self._observers:
            try:
                await observer.on_job_submitted(job)
            except Exception as exc:
                logger.error(
                    f"[observer:error] on_job_submitted failed observer={type(observer).__name__} "
                    f"key={job.key} error={exc}"
                )

    async def _notify_progress(self, job: Job, result: NormalizedResult) -> None:
        for observer in self._observers:
            try:
                await observer.on_progress(job, result)
            except Exception as exc:
                logger.error(
                    f"[observer:error] on_progress failed observer={type(observer).__name__} "
                    f"key={job.key} error={exc}"
                )

    async def _notify_job_completed(self, job: Job, result: NormalizedResult) -> None:
        for observer in self._observers:
            try:
                await observer.on_job_completed(job, result)
            except Exception as exc:
                logger.error(
                    f"[observer:error] on_job_completed failed observer={type(observer).__name__} "
                    f"key={job.key} error={exc}"
                )

    # ---------------- Public API -----------------
    def start(
        self,
        handle: JobHandle,
        on_progress: Optional[ResultCallback] = None,
        on_terminal: Optional[ResultCallback] = None,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> PollingHandle:
        """Begin polling a tracked job and return its handle.

        Must be called from a running event loop. Starting a job that is
        already being polled attaches the callbacks to the existing loop
        instead of opening a second one.
        """
        if self._shutdown:
            raise RuntimeError("Polling engine is shut down")
        if self._registry.get(handle.key) is None:
            raise KeyError(f"Job is not tracked: {handle.key}")
        adapter = self._adapters.get(handle.provider)
        if adapter is None:
            raise ValueError(f"No adapter configured for provider {handle.provider}")

        existing = self._handles.get(handle.key)
        if existing is not None and not existing.done():
            logger.debug(f"[job:poll] attaching to running loop key={handle.key}")
            existing.add_callbacks(on_progress, on_terminal)
            return existing

        policy = self.config.resolve(handle.provider, poll_interval, timeout)
        polling = PollingHandle(handle.key)
        polling.add_callbacks(on_progress, on_terminal)
        self._handles[handle.key] = polling

        logger.debug(
            f"[job:poll] scheduling poll loop key={handle.key} "
            f"interval={policy.poll_interval}s timeout={policy.poll_timeout}s"
        )
        task = asyncio.create_task(self._poll_loop(polling, adapter, policy), name=f"poll:{handle.key}")
        self._tasks.add(task)
        task.add_done_callback(lambda t, p=polling: self._on_task_done(t, p))
        return polling

    def get_handle(self, key: str) -> Optional[PollingHandle]:
        return self._handles.get(key)

    def cancel(self, key: str) -> bool:
        """Request cooperative cancellation; False if no loop is active for the key."""
        polling = self._handles.get(key)
        if polling is None or polling.done():
            return False
        logger.info(f"[job:cancel] cancellation requested key={key}")
        polling.cancel()
        return True

    @property
    def active_count(self) -> int:
        return sum(1 for h in self._handles.values() if not h.done())

    async def check_once(self, handle: JobHandle) -> NormalizedResult:
        """One fetch + normalize with the same classification as a loop tick.

        The observation is merged into the registry when the job is tracked.
        A transient failure returns the last known result (or pending). For a
        tracked job this waits for any status request the poll loop has in
        flight instead of issuing a second one beside it.
        """
        adapter = self._adapters.get(handle.provider)
        if adapter is None:
            raise ValueError(f"No adapter configured for provider {handle.provider}")

        if self._registry.get(handle.key) is None:
            observed = await self._observe(handle, adapter)
            return observed if observed is not None else NormalizedResult.pending()

        async with self._fetch_lock(handle.key):
            record = self._registry.get(handle.key)
            if record is not None and record.is_in_terminal_state():
                return record.last_result

            observed = await self._observe(handle, adapter)
            if observed is None:
                if record is not None and record.last_result is not None:
                    return record.last_result
                return NormalizedResult.pending()

            if record is None:
                return observed
            stored, written = self._store(handle.key, observed)

        if stored is None:
            return observed
        if written and stored.is_terminal:
            await self._notify_job_completed(record.job, stored)
        elif written:
            await self._notify_progress(record.job, stored)
        return stored

    async def shutdown(self) -> None:
        """Cancel every loop cooperatively and wait for them to finish."""
        self._shutdown = True
        for polling in list(self._handles.values()):
            polling.cancel()
        tasks = list(self._tasks)
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=self._shutdown_grace)
        for task in pending:
            logger.warning(f"[job:poll] forcing cancellation of {task.get_name()}")
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ---------------- Polling -----------------
    def _on_task_done(self, task: asyncio.Task, polling: PollingHandle) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"[job:poll] loop crashed key={polling.job_key} error={task.exception()!r}")
        if self._handles.get(polling.job_key) is polling:
            self._handles.pop(polling.job_key, None)

    async def _poll_loop(
        self,
        polling: PollingHandle,
        adapter: ProviderAdapterPort,
        policy: ProviderPollingPolicy,
    ) -> None:
        """Poll until terminal, cancelled, timed out or untracked.

        Order per iteration: cancellation, registry presence, terminal state,
        deadline, then one status fetch.
        """
        key = polling.job_key
        token = job_key_var.set(key)
        try:
            while True:
                should_stop, final = self._should_stop_polling(polling, policy)
                if should_stop:
                    await self._complete(polling, final)
                    return

                record = self._registry.get(key)
                if record is None:
                    continue
                if await self._poll_and_update_status(polling, adapter, record):
                    return

                remaining = policy.poll_timeout - record.job.elapsed_seconds()
                await polling._sleep(min(policy.poll_interval, max(remaining, 0.0)))

        except asyncio.CancelledError:
            logger.warning(f"[job:poll] loop cancelled key={key}")
            await self._complete(polling, self._cancelled_result("Polling was shut down"))
            raise
        finally:
            job_key_var.reset(token)

    def _should_stop_polling(
        self, polling: PollingHandle, policy: ProviderPollingPolicy
    ) -> Tuple[bool, Optional[NormalizedResult]]:
        """Return (should_stop, terminal result to report)."""
        record = self._registry.get(polling.job_key)

        if polling.cancelled:
            return True, self._cancelled_result("Polling was cancelled")

        if record is None:
            logger.debug(f"[job:poll] job no longer tracked key={polling.job_key}")
            return True, self._cancelled_result("Job is no longer tracked")

        if record.is_in_terminal_state():
            return True, record.last_result

        elapsed = record.job.elapsed_seconds()
        if elapsed >= policy.poll_timeout:
            error = JobTimeoutError(record.job.id, elapsed, policy.poll_timeout)
            logger.warning(f"[job:poll] {error.message}")
            return True, NormalizedResult.failure(JobState.timed_out, error.message, error.failure_reason)

        return False, None

    @staticmethod
    def _cancelled_result(message: str) -> NormalizedResult:
        return NormalizedResult.failure(JobState.cancelled, message, FailureReason.cancelled)

    def _fetch_lock(self, key: str) -> asyncio.Lock:
        """The lock serializing status requests for one job; dropped once nobody holds it."""
        lock = self._fetch_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._fetch_locks[key] = lock
        return lock

    async def _observe(
        self, handle: JobHandle, adapter: ProviderAdapterPort
    ) -> Optional[NormalizedResult]:
        """Fetch and normalize once. None means a transient failure: no new information."""
        try:
            raw = await adapter.fetch_status(handle)
            return self._normalizer.normalize(raw)
        except TransientNetworkError as exc:
            logger.warning(f"[job:poll] transient error key={handle.key}, retrying next tick: {exc.message}")
            return None
        except VideoGenerationError as exc:
            logger.warning(
                f"[job:poll] {type(exc).__name__} key={handle.key} reason={exc.failure_reason}: {exc.message}"
            )
            return NormalizedResult.failure(JobState.failed, exc.message, exc.failure_reason)
        except Exception as exc:
            logger.error(f"[job:poll] unexpected error key={handle.key} error={exc!r}")
            return NormalizedResult.failure(
                JobState.failed, f"Unexpected error while polling: {exc}", FailureReason.internal_error
            )

    async def _poll_and_update_status(
        self, polling: PollingHandle, adapter: ProviderAdapterPort, record: JobRecord
    ) -> bool:
        """Run one tick. Returns True once the loop has reported a terminal result."""
        polling.poll_count += 1
        async with self._fetch_lock(polling.job_key):
            current = self._registry.get(polling.job_key)
            if current is None or current.is_in_terminal_state():
                # settled by a check_once that held the lock; the next loop check reports it
                return False
            observed = await self._observe(record.job.handle, adapter)
            if observed is None:
                return False
            stored, written = self._store(polling.job_key, observed)

        if stored is None:
            # Removed while the request was in flight; the next loop check reports it
            return False

        if stored.is_terminal:
            if written:
                logger.info(f"[job:poll] terminal state reached key={polling.job_key} state={stored.state}")
                await self._notify_job_completed(record.job, stored)
            await polling._finish(stored)
            return True

        await self._notify_progress(record.job, stored)
        await polling._emit_progress(stored)
        return False

    def _store(self, key: str, incoming: NormalizedResult) -> Tuple[Optional[NormalizedResult], bool]:
        """Merge `incoming` into the registry atomically.

        Returns (stored result, whether this call wrote it); the stored
        result is None when the job is not tracked.
        """
        outcome: List[Tuple[NormalizedResult, bool]] = []

        def mutate(current: JobRecord) -> JobRecord:
            if current.is_in_terminal_state():
                outcome.append((current.last_result, False))
                return current
            merged = merge_result(current.last_result, incoming)
            outcome.append((merged, True))
            return current.with_result(merged)

        if self._registry.update_in_place(key, mutate) is None:
            return None, False
        return outcome[0]

    async def _complete(self, polling: PollingHandle, result: NormalizedResult) -> None:
        """Finish a loop with an engine-decided result (cancel, timeout, eviction)."""
        record = self._registry.get(polling.job_key)
        if record is not None and not record.is_in_terminal_state():
            stored, written = self._store(polling.job_key, result)
            if stored is not None:
                result = stored
                if written:
                    logger.info(f"[job:poll] loop ended key={polling.job_key} state={stored.state}")
                    await self._notify_job_completed(record.job, stored)
        elif record is not None and record.last_result is not None:
            result = record.last_result
        await polling._finish(result)
