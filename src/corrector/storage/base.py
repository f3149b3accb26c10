"""Contract for the stores that keep finished correction results."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from corrector.models import Correction, DocumentMetadata


def build_record(corrections: Sequence[Correction], metadata: DocumentMetadata) -> dict[str, Any]:
    """Return the stored document: metadata fields, corrections and upload time."""

    record = metadata.to_record()
    record["corrections"] = [correction.to_record() for correction in corrections]
    record["uploadedAt"] = metadata.uploaded_at.isoformat()
    return record


class ResultStore(ABC):
    """Upsert-by-job-id persistence of correction results."""

    name: str = "abstract"

    @abstractmethod
    async def save_corrections(
        self,
        job_id: str,
        corrections: Sequence[Correction],
        metadata: DocumentMetadata,
    ) -> None:
        """Create or replace the record for ``job_id``.

        Raises :class:`~corrector.errors.PersistenceError` on failure.
        """

    @abstractmethod
    async def load(self, job_id: str) -> Optional[dict[str, Any]]:
        """Return the stored record for ``job_id`` or ``None``."""


__all__ = ["ResultStore", "build_record"]
