"""Unit tests for job state observers.

Tests the observer implementations directly and their wiring into the
polling engine: failing observers must never break polling.
"""

import asyncio
import logging

import pytest
from unittest.mock import AsyncMock, Mock

from conftest import ScriptedAdapter, pixverse_status
from vidgate.core.managers.observers import (
    CallbackObserver,
    EvictOnTerminalObserver,
    LoggingObserver,
)
from vidgate.core.models.job import FailureReason, Job, JobState, NormalizedResult, ProviderName


# --- Test Fixtures ---

@pytest.fixture
def test_job():
    """Create a tracked-looking job."""
    return Job(id="task-42", provider=ProviderName.vidu, submitted_prompt="a red kite")


@pytest.fixture
def running_result():
    return NormalizedResult(state=JobState.running, progress=0.5)


@pytest.fixture
def succeeded_result():
    return NormalizedResult(state=JobState.succeeded, progress=1.0, media_url="https://cdn.test/v.mp4")


@pytest.fixture
def failed_result():
    return NormalizedResult.failure(JobState.failed, "blocked", FailureReason.content_policy)


# --- LoggingObserver ---

class TestLoggingObserver:
    @pytest.mark.asyncio
    async def test_logs_submission_and_completion(self, test_job, succeeded_result, caplog):
        observer = LoggingObserver()
        with caplog.at_level(logging.DEBUG, logger="vidgate.core.managers.observers"):
            await observer.on_job_submitted(test_job)
            await observer.on_job_completed(test_job, succeeded_result)

        assert "submitted key=vidu:task-42" in caplog.text
        assert "url=https://cdn.test/v.mp4" in caplog.text

    @pytest.mark.asyncio
    async def test_logs_failure_reason(self, test_job, failed_result, caplog):
        observer = LoggingObserver()
        with caplog.at_level(logging.INFO, logger="vidgate.core.managers.observers"):
            await observer.on_job_completed(test_job, failed_result)

        assert "reason=content_policy" in caplog.text


# --- EvictOnTerminalObserver ---

class TestEvictOnTerminalObserver:
    @pytest.mark.asyncio
    async def test_removes_completed_job(self, registry, test_job, running_result, succeeded_result):
        registry.add(test_job)
        observer = EvictOnTerminalObserver(registry)

        await observer.on_progress(test_job, running_result)
        assert test_job.key in registry

        await observer.on_job_completed(test_job, succeeded_result)
        assert test_job.key not in registry

    @pytest.mark.asyncio
    async def test_missing_job_is_ignored(self, registry, test_job, succeeded_result):
        observer = EvictOnTerminalObserver(registry)
        await observer.on_job_completed(test_job, succeeded_result)
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_engine_evicts_after_terminal(self, registry, make_engine):
        adapter = ScriptedAdapter(script=[pixverse_status(1, url="https://cdn.test/p.mp4")])
        engine = make_engine(adapter, observers=[LoggingObserver(), EvictOnTerminalObserver(registry)])
        job = Job(id="p1", provider=ProviderName.pixverse)
        registry.add(job)

        result = await asyncio.wait_for(engine.start(job.handle).wait(), timeout=2)

        assert result.state == JobState.succeeded
        assert len(registry) == 0


# --- CallbackObserver ---

class TestCallbackObserver:
    @pytest.mark.asyncio
    async def test_sync_and_async_callbacks(self, test_job, running_result, succeeded_result):
        on_submitted = Mock()
        on_progress = AsyncMock()
        on_completed = AsyncMock()
        observer = CallbackObserver(on_submitted, on_progress, on_completed)

        await observer.on_job_submitted(test_job)
        await observer.on_progress(test_job, running_result)
        await observer.on_job_completed(test_job, succeeded_result)

        on_submitted.assert_called_once_with(test_job)
        on_progress.assert_awaited_once_with(test_job, running_result)
        on_completed.assert_awaited_once_with(test_job, succeeded_result)

    @pytest.mark.asyncio
    async def test_omitted_callbacks_are_skipped(self, test_job, running_result):
        observer = CallbackObserver(on_progress=None)
        await observer.on_job_submitted(test_job)
        await observer.on_progress(test_job, running_result)


# --- Engine integration ---

class TestObserverNotification:
    @pytest.mark.asyncio
    async def test_progress_and_completion_events(self, registry, make_engine):
        adapter = ScriptedAdapter(script=[
            pixverse_status(5),
            pixverse_status(5),
            pixverse_status(1, url="https://cdn.test/p.mp4"),
        ])
        on_progress = AsyncMock()
        on_completed = AsyncMock()
        engine = make_engine(adapter, observers=[CallbackObserver(on_progress=on_progress, on_completed=on_completed)])
        job = Job(id="p1", provider=ProviderName.pixverse)
        registry.add(job)

        await asyncio.wait_for(engine.start(job.handle).wait(), timeout=2)

        assert on_progress.await_count == 2
        on_completed.assert_awaited_once()
        completed_job, completed_result = on_completed.await_args.args
        assert completed_job == job
        assert completed_result.state == JobState.succeeded

    @pytest.mark.asyncio
    async def test_failing_observer_does_not_break_polling(self, registry, make_engine):
        adapter = ScriptedAdapter(script=[pixverse_status(5), pixverse_status(1, url="https://cdn.test/p.mp4")])
        broken = CallbackObserver(
            on_progress=Mock(side_effect=RuntimeError("observer down")),
            on_completed=Mock(side_effect=RuntimeError("observer down")),
        )
        healthy = AsyncMock()
        engine = make_engine(adapter, observers=[broken, CallbackObserver(on_completed=healthy)])
        job = Job(id="p1", provider=ProviderName.pixverse)
        registry.add(job)

        result = await asyncio.wait_for(engine.start(job.handle).wait(), timeout=2)

        assert result.state == JobState.succeeded
        healthy.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failing_caller_callback_does_not_break_polling(self, registry, make_engine):
        adapter = ScriptedAdapter(script=[pixverse_status(5), pixverse_status(1, url="https://cdn.test/p.mp4")])
        engine = make_engine(adapter)
        job = Job(id="p1", provider=ProviderName.pixverse)
        registry.add(job)

        polling = engine.start(job.handle, on_progress=Mock(side_effect=ValueError("bad callback")))
        result = await asyncio.wait_for(polling.wait(), timeout=2)

        assert result.state == JobState.succeeded
