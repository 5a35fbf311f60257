"""In-memory implementation of JobRegistryPort.

Records are frozen pydantic models, so handing them out needs no copying;
the lock only protects the mapping itself.
"""
from __future__ import annotations

import threading
from typing import Dict, Optional, Sequence

from vidgate.core.interfaces.job_registry import JobRegistryPort, RecordMutator
from vidgate.core.models.job import Job, JobRecord, JobState, ProviderName


class InMemoryJobRegistry(JobRegistryPort):
    def __init__(self) -> None:
        self._records: Dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def add(self, job: Job) -> JobRecord:
        record = JobRecord(job=job)
        with self._lock:
            if record.key in self._records:
                raise ValueError(f"Job already tracked: {record.key}")
            self._records[record.key] = record
        return record

    def get(self, key: str) -> Optional[JobRecord]:
        with self._lock:
            return self._records.get(key)

    def remove(self, key: str) -> Optional[JobRecord]:
        with self._lock:
            return self._records.pop(key, None)

    def update_in_place(self, key: str, mutator: RecordMutator) -> Optional[JobRecord]:
        with self._lock:
            current = self._records.get(key)
            if current is None:
                return None
            replacement = mutator(current)
            if replacement.key != key:
                raise ValueError(
                    f"Mutator changed the record key: {key} -> {replacement.key}"
                )
            self._records[key] = replacement
            return replacement

    def list(
        self,
        provider: Optional[ProviderName] = None,
        state: Optional[JobState] = None,
    ) -> Sequence[JobRecord]:
        with self._lock:
            records = list(self._records.values())
        if provider is not None:
            records = [r for r in records if r.job.provider == provider]
        if state is not None:
            records = [
                r for r in records
                if r.last_result is not None and r.last_result.state == state
            ]
        return records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
