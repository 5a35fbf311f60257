"""Observer protocol for job lifecycle events.

Observers keep side effects (logging, eviction, caller callbacks) out of the
polling loop. They may be called from many polling tasks at once, so
implementations should be stateless or guard their own state.
"""

from typing import Protocol

from vidgate.core.models.job import Job, NormalizedResult


class JobStateObserver(Protocol):
    async def on_job_submitted(self, job: Job) -> None:
        """Called once the provider accepted the job and it is tracked."""
        ...

    async def on_progress(self, job: Job, result: NormalizedResult) -> None:
        """Called for every non-terminal observation stored for the job.

        Args:
            job: The tracked job
            result: Merged result (progress never decreases between calls)
        """
        ...

    async def on_job_completed(self, job: Job, result: NormalizedResult) -> None:
        """Called exactly once, when the job reaches a terminal state."""
        ...
