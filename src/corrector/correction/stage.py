"""Per-chunk correction through the engine with feedback-driven retries."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from corrector.concurrency import run_with_concurrency
from corrector.config import CorrectorSettings
from corrector.engine.base import CorrectionEngine
from corrector.errors import CorrectionRejectedError
from corrector.models import Chunk, ChunkResult, Correction, TokenUsage
from corrector.prompts import build_correction_messages, long_correction_feedback
from corrector.retry import AttemptState, RetryPolicy, call_with_retry
from corrector.telemetry import emit_stage_event

from .schemas import parse_correction_payload

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CorrectionStageConfig:
    max_retries: int = 3
    retry_delay_seconds: float = 1.0
    timeout_seconds: Optional[float] = 60.0
    max_correction_words: int = 18
    concurrency: int = 20
    style_guide: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: CorrectorSettings) -> "CorrectionStageConfig":
        return cls(
            max_retries=settings.max_retries,
            retry_delay_seconds=settings.retry_delay_seconds,
            timeout_seconds=settings.timeout_seconds,
            max_correction_words=settings.max_correction_words,
            concurrency=settings.correction_concurrency,
            style_guide=settings.style_guide,
        )


def word_count(text: str) -> int:
    return len(text.split(" "))


def has_long_corrections(corrections: Iterable[Correction], max_words: int) -> bool:
    return any(word_count(correction.correction) > max_words for correction in corrections)


def clean_corrections(corrections: Iterable[Correction]) -> List[Correction]:
    """Drop no-op corrections and empty replacements."""

    return [
        correction
        for correction in corrections
        if correction.original != correction.correction and correction.correction.strip()
    ]


def rejection_feedback(error: Exception) -> Optional[str]:
    """Feedback strategy: only rejected responses amend the next attempt."""

    if isinstance(error, CorrectionRejectedError):
        return error.feedback
    return None


class CorrectionStage:
    """Ask the engine for corrections of each chunk and merge them into document space."""

    def __init__(self, engine: CorrectionEngine, config: CorrectionStageConfig | None = None) -> None:
        self.engine = engine
        self.config = config or CorrectionStageConfig()

    async def correct_chunk(self, text: str, chunk_number: int) -> ChunkResult:
        """Return the engine's corrections for ``text`` with chunk-local positions.

        Never raises: once retries are exhausted the chunk yields no
        corrections but still reports the usage of every completed attempt.
        """

        prefix = f"[CHUNK {chunk_number}]"
        LOGGER.info("%s Correcting a chunk of %s characters", prefix, len(text))
        started = time.perf_counter()
        spent = TokenUsage.zero()
        max_words = self.config.max_correction_words

        async def _attempt(state: AttemptState) -> List[Correction]:
            nonlocal spent
            messages = build_correction_messages(
                text,
                style_guide=self.config.style_guide,
                retry_feedback=state.feedback,
            )
            reply = await self.engine.complete(messages, json_mode=True)
            spent = spent + reply.usage
            corrections = [item.to_correction() for item in parse_correction_payload(reply).corrections]
            if has_long_corrections(corrections, max_words):
                raise CorrectionRejectedError(
                    f"Correction too long (>{max_words} words) detected",
                    feedback=long_correction_feedback(max_words),
                )
            return corrections

        def _on_retry(attempt: int, error: Exception) -> None:
            LOGGER.warning(
                "%s Attempt %s/%s failed (%s), retrying...",
                prefix,
                attempt,
                self.config.max_retries,
                error,
            )

        policy = RetryPolicy(
            max_retries=self.config.max_retries,
            delay_seconds=self.config.retry_delay_seconds,
            timeout_seconds=self.config.timeout_seconds,
            on_retry=_on_retry,
        )

        try:
            corrections = await call_with_retry(_attempt, policy, feedback=rejection_feedback)
        except Exception as error:
            duration = time.perf_counter() - started
            LOGGER.error(
                "%s Failed after %s attempts (%.1fs): %s",
                prefix,
                self.config.max_retries,
                duration,
                error,
            )
            emit_stage_event(
                "correction.chunk.failed",
                chunk=chunk_number,
                duration_ms=duration * 1000.0,
                usage=spent,
            )
            return ChunkResult(usage=spent)

        duration = time.perf_counter() - started
        LOGGER.info(
            "%s %s corrections found (%.1fs) - Tokens: %s (In: %s, Out: %s)",
            prefix,
            len(corrections),
            duration,
            spent.total_tokens,
            spent.prompt_tokens,
            spent.completion_tokens,
        )
        emit_stage_event(
            "correction.chunk.complete",
            chunk=chunk_number,
            duration_ms=duration * 1000.0,
            usage=spent,
            corrections=len(corrections),
        )
        return ChunkResult(corrections=corrections, usage=spent)

    async def process_chunk(self, chunk: Chunk) -> ChunkResult:
        """Correct ``chunk``, clean the result and translate positions to the document."""

        chunk_number = chunk.index + 1
        result = await self.correct_chunk(chunk.text, chunk_number)
        cleaned = clean_corrections(result.corrections)
        for correction in cleaned:
            correction.position += chunk.start_position
            correction.chunk_index = chunk_number
        LOGGER.info("[CHUNK %s] Done: %s corrections kept", chunk_number, len(cleaned))
        return ChunkResult(corrections=cleaned, usage=result.usage)

    async def run(self, chunks: Sequence[Chunk]) -> List[ChunkResult]:
        """Correct every chunk through the bounded pool; results follow chunk order."""

        return await run_with_concurrency(
            [lambda chunk=chunk: self.process_chunk(chunk) for chunk in chunks],
            self.config.concurrency,
        )


__all__ = [
    "CorrectionStage",
    "CorrectionStageConfig",
    "clean_corrections",
    "has_long_corrections",
    "rejection_feedback",
    "word_count",
]
