"""Process-local registry of correction job states."""
from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional


class JobStatus(str, Enum):
    STARTED = "started"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


_TERMINAL = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class JobRecord:
    """Snapshot of a job as seen by the status endpoint."""

    job_id: str
    filename: str
    status: JobStatus = JobStatus.STARTED
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    total_corrections: Optional[int] = None
    total_tokens: Optional[int] = None
    error: Optional[str] = None


class JobRegistry:
    """Track jobs through ``started -> processing -> completed | failed``.

    Records are immutable snapshots; every transition replaces the stored
    record. Nothing is persisted, a restart forgets every job.
    """

    def __init__(self) -> None:
        self._jobs: Dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def create(self, job_id: str, filename: str) -> JobRecord:
        record = JobRecord(job_id=job_id, filename=filename)
        with self._lock:
            if job_id in self._jobs:
                raise ValueError(f"Job {job_id} already exists")
            self._jobs[job_id] = record
        return record

    def get(self, job_id: str) -> Optional[JobRecord]:
        with self._lock:
            return self._jobs.get(job_id)

    def mark_processing(self, job_id: str) -> JobRecord:
        return self._transition(job_id, JobStatus.PROCESSING)

    def mark_completed(
        self,
        job_id: str,
        *,
        total_corrections: int,
        total_tokens: int,
    ) -> JobRecord:
        return self._transition(
            job_id,
            JobStatus.COMPLETED,
            total_corrections=total_corrections,
            total_tokens=total_tokens,
        )

    def mark_failed(self, job_id: str, error: str) -> JobRecord:
        return self._transition(job_id, JobStatus.FAILED, error=error)

    def _transition(self, job_id: str, status: JobStatus, **changes: object) -> JobRecord:
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                raise KeyError(job_id)
            if current.status in _TERMINAL:
                raise ValueError(f"Job {job_id} is already {current.status.value}")
            updated = replace(current, status=status, updated_at=_utcnow(), **changes)
            self._jobs[job_id] = updated
        return updated

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)


_REGISTRY: Optional[JobRegistry] = None


def get_job_registry() -> JobRegistry:
    """Return the process-wide job registry."""

    global _REGISTRY

    if _REGISTRY is None:
        _REGISTRY = JobRegistry()
    return _REGISTRY


__all__ = ["JobRecord", "JobRegistry", "JobStatus", "get_job_registry"]
