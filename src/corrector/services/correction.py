from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from corrector.config import CorrectorSettings, get_settings
from corrector.correction import (
    CorrectionStage,
    CorrectionStageConfig,
    VerificationStage,
    VerificationStageConfig,
)
from corrector.document import ChunkingConfig, DocxExtractor, ManuscriptChunker
from corrector.engine import CorrectionEngine, get_engine
from corrector.errors import PersistenceError
from corrector.jobs import JobRegistry, get_job_registry
from corrector.logging_config import AUDIT_LOGGER_NAME
from corrector.models import Correction, DocumentMetadata, TokenUsage
from corrector.storage import ResultStore, get_result_store
from corrector.telemetry import emit_exception, emit_job_event, emit_stage_event, traced_duration

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)


def generate_job_id() -> str:
    return str(uuid.uuid4())


@dataclass(slots=True)
class CorrectionOutcome:
    """Structured result returned from :meth:`CorrectionService.process_document`."""

    job_id: str
    corrections: List[Correction]
    metadata: DocumentMetadata
    usage: TokenUsage = field(default_factory=TokenUsage.zero)
    persisted: bool = False


class CorrectionService:
    """Run a manuscript through extraction, chunking, correction, verification and storage."""

    def __init__(
        self,
        *,
        engine: CorrectionEngine | None = None,
        store: ResultStore | None = None,
        registry: JobRegistry | None = None,
        settings: CorrectorSettings | None = None,
        extractor: DocxExtractor | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.engine = engine or get_engine()
        self.store = store or get_result_store()
        self.registry = registry or get_job_registry()
        self.extractor = extractor or DocxExtractor()
        self.chunker = ManuscriptChunker(
            ChunkingConfig(
                max_tokens=self.settings.chunk_max_tokens,
                chars_per_token=self.settings.chunk_chars_per_token,
                overlap_sentences=self.settings.chunk_overlap_sentences,
            )
        )
        self.correction_stage = CorrectionStage(self.engine, CorrectionStageConfig.from_settings(self.settings))
        self.verification_stage = VerificationStage(
            self.engine, VerificationStageConfig.from_settings(self.settings)
        )

    def register_job(self, filename: str, job_id: str | None = None) -> str:
        job_id = job_id or generate_job_id()
        self.registry.create(job_id, filename)
        emit_job_event("job.started", job_id=job_id, status="started", filename=filename)
        return job_id

    async def process_document(
        self,
        job_id: str,
        filename: str,
        data: bytes,
        *,
        file_size: int | None = None,
        uploaded_at: datetime | None = None,
    ) -> Optional[CorrectionOutcome]:
        """Correct ``data`` for ``job_id``.

        Never raises: any failure marks the job ``failed`` in the registry and
        returns ``None``. A persistence failure is logged but the job still
        completes.
        """

        metadata = DocumentMetadata(
            job_id=job_id,
            filename=filename,
            file_size=file_size if file_size is not None else len(data),
        )
        if uploaded_at is not None:
            metadata.uploaded_at = uploaded_at

        started = time.perf_counter()
        try:
            self.registry.mark_processing(job_id)
            outcome = await self._run(job_id, data, metadata)
        except Exception as error:
            duration = time.perf_counter() - started
            LOGGER.exception("Job %s failed after %.1fs", job_id, duration)
            emit_exception(module=__name__, error=error, job_id=job_id)
            emit_job_event(
                "job.failed",
                job_id=job_id,
                status="failed",
                filename=filename,
                duration_ms=duration * 1000.0,
                error=str(error),
            )
            AUDIT_LOGGER.info(
                {
                    "event": "job",
                    "job_id": job_id,
                    "file": filename,
                    "status": "failed",
                    "error": str(error),
                }
            )
            if self.registry.get(job_id) is not None:
                self.registry.mark_failed(job_id, str(error))
            return None

        self.registry.mark_completed(
            job_id,
            total_corrections=len(outcome.corrections),
            total_tokens=outcome.usage.total_tokens,
        )
        emit_job_event(
            "job.completed",
            job_id=job_id,
            status="completed",
            filename=filename,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            corrections=len(outcome.corrections),
            persisted=outcome.persisted,
        )
        AUDIT_LOGGER.info(
            {
                "event": "job",
                "job_id": job_id,
                "file": filename,
                "status": "completed",
                "corrections": len(outcome.corrections),
                "total_tokens": outcome.usage.total_tokens,
                "persisted": outcome.persisted,
            }
        )
        return outcome

    async def _run(self, job_id: str, data: bytes, metadata: DocumentMetadata) -> CorrectionOutcome:
        started = time.perf_counter()

        with traced_duration("job.extract", logger=LOGGER, job_id=job_id, size_bytes=len(data)):
            text = await asyncio.to_thread(self.extractor.extract, data)
        metadata.total_characters = len(text)
        LOGGER.info("[JOB %s] Extracted %s characters from %s", job_id, len(text), metadata.filename)

        chunks = self.chunker.split(text)
        metadata.total_chunks = len(chunks)
        LOGGER.info("[JOB %s] Split into %s chunks", job_id, len(chunks))
        emit_stage_event("job.chunked", job_id=job_id, chunks=len(chunks), characters=len(text))

        chunk_results = await self.correction_stage.run(chunks)
        corrections: List[Correction] = []
        usage = TokenUsage.zero()
        for result in chunk_results:
            corrections.extend(result.corrections)
            usage = usage + result.usage
        LOGGER.info("[JOB %s] %s corrections before verification", job_id, len(corrections))

        verification = await self.verification_stage.run(corrections)
        corrections = verification.corrections
        usage = usage + verification.usage

        metadata.apply_usage(usage)
        metadata.processing_time_seconds = round(time.perf_counter() - started, 3)
        LOGGER.info(
            "[JOB %s] Done in %.1fs - Tokens: %s (In: %s, Out: %s)",
            job_id,
            metadata.processing_time_seconds,
            usage.total_tokens,
            usage.prompt_tokens,
            usage.completion_tokens,
        )

        persisted = await self._persist(job_id, corrections, metadata)
        return CorrectionOutcome(
            job_id=job_id,
            corrections=corrections,
            metadata=metadata,
            usage=usage,
            persisted=persisted,
        )

    async def _persist(self, job_id: str, corrections: List[Correction], metadata: DocumentMetadata) -> bool:
        try:
            await self.store.save_corrections(job_id, corrections, metadata)
        except PersistenceError as error:
            LOGGER.error("[JOB %s] Failed to save corrections: %s", job_id, error)
            emit_exception(
                module=f"{__name__}.storage",
                error=error,
                job_id=job_id,
                suggestion=f"Check that the {self.store.name} result store is writable",
            )
            return False
        return True


_SERVICE: Optional[CorrectionService] = None


def get_correction_service() -> CorrectionService:
    """Return the process-wide correction service."""

    global _SERVICE

    if _SERVICE is None:
        _SERVICE = CorrectionService()
    return _SERVICE


__all__ = ["CorrectionOutcome", "CorrectionService", "generate_job_id", "get_correction_service"]
