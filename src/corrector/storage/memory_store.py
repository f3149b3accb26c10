"""Dictionary-backed result store for tests and throwaway runs."""
from __future__ import annotations

import copy
from typing import Any, Dict, Optional, Sequence

from corrector.models import Correction, DocumentMetadata

from .base import ResultStore, build_record


class InMemoryResultStore(ResultStore):
    name = "memory"

    def __init__(self) -> None:
        self.records: Dict[str, dict[str, Any]] = {}

    async def save_corrections(
        self,
        job_id: str,
        corrections: Sequence[Correction],
        metadata: DocumentMetadata,
    ) -> None:
        self.records[job_id] = build_record(corrections, metadata)

    async def load(self, job_id: str) -> Optional[dict[str, Any]]:
        record = self.records.get(job_id)
        return copy.deepcopy(record) if record is not None else None


__all__ = ["InMemoryResultStore"]
