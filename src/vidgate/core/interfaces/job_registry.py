"""JobRegistryPort: the only shared mutable state of the gateway.

Maps ``JobHandle.key`` to a `JobRecord`. Methods are synchronous: every
operation is a short critical section with no I/O, so adapters guard it with
a plain lock and stay usable from threads as well as from the event loop.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence

from vidgate.core.models.job import Job, JobRecord, JobState, ProviderName

RecordMutator = Callable[[JobRecord], JobRecord]


class JobRegistryPort(ABC):
	"""Port abstraction for tracked jobs and their latest result."""

	@abstractmethod
	def add(self, job: Job) -> JobRecord:
		"""Track a new job. Raises ValueError if its key is already present."""
		raise NotImplementedError

	@abstractmethod
	def get(self, key: str) -> Optional[JobRecord]:
		"""Return the record or None if not tracked."""
		raise NotImplementedError

	@abstractmethod
	def remove(self, key: str) -> Optional[JobRecord]:
		"""Stop tracking a job and return its last record, if any."""
		raise NotImplementedError

	@abstractmethod
	def update_in_place(self, key: str, mutator: RecordMutator) -> Optional[JobRecord]:
		"""Atomically replace a record with ``mutator(current)``.

		Returns the stored replacement, or None when the key is not tracked
		(the mutator is not called in that case).
		"""
		raise NotImplementedError

	@abstractmethod
	def list(
		self,
		provider: Optional[ProviderName] = None,
		state: Optional[JobState] = None,
	) -> Sequence[JobRecord]:
		"""List records filtered by provider / last observed state."""
		raise NotImplementedError

	@abstractmethod
	def __len__(self) -> int:
		raise NotImplementedError

	def __contains__(self, key: object) -> bool:
		return isinstance(key, str) and self.get(key) is not None
