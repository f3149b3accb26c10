"""One JSON document per job on the local filesystem."""
from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Final, Optional, Sequence

from corrector.errors import PersistenceError
from corrector.models import Correction, DocumentMetadata

from .base import ResultStore, build_record

LOGGER = logging.getLogger(__name__)

_JOB_ID_SAFE_CHARS_RE: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9._-]+")


def _sanitize_job_id(job_id: str) -> str:
    sanitized = _JOB_ID_SAFE_CHARS_RE.sub("_", Path(job_id).name).strip("._")
    if not sanitized:
        raise PersistenceError(f"Invalid job id for storage: {job_id!r}")
    return sanitized


class JSONFileResultStore(ResultStore):
    """Write ``<directory>/<job_id>.json``, replacing any previous record atomically."""

    name = "json"

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, job_id: str) -> Path:
        return self.directory / f"{_sanitize_job_id(job_id)}.json"

    async def save_corrections(
        self,
        job_id: str,
        corrections: Sequence[Correction],
        metadata: DocumentMetadata,
    ) -> None:
        record = build_record(corrections, metadata)
        path = self.path_for(job_id)
        try:
            await asyncio.to_thread(self._write, path, record)
        except (OSError, TypeError, ValueError) as error:
            raise PersistenceError(f"Failed to save corrections for job {job_id}", cause=error) from error
        LOGGER.info("Saved %s corrections for job %s to %s", len(corrections), job_id, path)

    async def load(self, job_id: str) -> Optional[dict[str, Any]]:
        path = self.path_for(job_id)
        if not path.exists():
            return None
        try:
            return json.loads(await asyncio.to_thread(path.read_text, encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as error:
            raise PersistenceError(f"Failed to load corrections for job {job_id}", cause=error) from error

    def _write(self, path: Path, record: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        with temp_path.open("w", encoding="utf-8") as handle:
            json.dump(record, handle, ensure_ascii=False, indent=2)
        os.replace(temp_path, path)


__all__ = ["JSONFileResultStore"]
