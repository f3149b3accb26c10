"""Second engine pass that flags false-positive corrections."""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from corrector.concurrency import run_with_concurrency
from corrector.config import CorrectorSettings
from corrector.engine.base import ChatMessage, CorrectionEngine
from corrector.models import Correction, TokenUsage, VerificationResult
from corrector.prompts import build_verification_system_prompt
from corrector.retry import AttemptState, RetryPolicy, call_with_retry
from corrector.telemetry import emit_stage_event

from .schemas import parse_verification_payload

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VerificationStageConfig:
    batch_size: int = 15
    concurrency: int = 10
    max_retries: int = 3
    retry_delay_seconds: float = 1.0
    timeout_seconds: Optional[float] = 60.0

    @classmethod
    def from_settings(cls, settings: CorrectorSettings) -> "VerificationStageConfig":
        return cls(
            batch_size=settings.verification_batch_size,
            concurrency=settings.verification_concurrency,
            max_retries=settings.max_retries,
            retry_delay_seconds=settings.retry_delay_seconds,
            timeout_seconds=settings.timeout_seconds,
        )


def _group_label(group: Sequence[Correction]) -> str:
    numbers = sorted({c.chunk_index for c in group if c.chunk_index is not None})
    if not numbers:
        return "[VERIFY]"
    return "[CHUNKS " + ", ".join(str(number) for number in numbers) + "]"


def _request_payload(group: Sequence[Correction]) -> str:
    items = [
        {
            "id": local_id,
            "original": correction.original,
            "correction": correction.correction,
            "type": correction.type.value,
            "explication": correction.explication,
        }
        for local_id, correction in enumerate(group)
    ]
    return json.dumps({"corrections": items}, ensure_ascii=False)


class VerificationStage:
    """Ask the engine to confirm or reject corrections, in bounded groups.

    The pass is fail-open: a correction without a verdict, or a group whose
    verification failed outright, is kept as verified.
    """

    def __init__(self, engine: CorrectionEngine, config: VerificationStageConfig | None = None) -> None:
        self.engine = engine
        self.config = config or VerificationStageConfig()

    async def verify_group(self, group: Sequence[Correction]) -> VerificationResult:
        label = _group_label(group)
        if not group:
            return VerificationResult()

        messages = [
            ChatMessage(role="system", content=build_verification_system_prompt()),
            ChatMessage(role="user", content=_request_payload(group)),
        ]
        spent = TokenUsage.zero()

        async def _attempt(state: AttemptState) -> dict[int, bool]:
            nonlocal spent
            reply = await self.engine.complete(messages, json_mode=True)
            spent = spent + reply.usage
            payload = parse_verification_payload(reply)
            return {verdict.id: verdict.valid for verdict in payload.results}

        def _on_retry(attempt: int, error: Exception) -> None:
            LOGGER.warning(
                "%s Verification attempt %s/%s failed (%s), retrying...",
                label,
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

        started = time.perf_counter()
        try:
            verdicts = await call_with_retry(_attempt, policy)
        except Exception as error:
            LOGGER.error("%s Verification failed, keeping all corrections: %s", label, error)
            for correction in group:
                correction.verified = True
            emit_stage_event(
                "verification.group.failed",
                duration_ms=(time.perf_counter() - started) * 1000.0,
                usage=spent,
                corrections=len(group),
            )
            return VerificationResult(corrections=list(group), usage=spent)

        for local_id, correction in enumerate(group):
            correction.verified = verdicts.get(local_id, True)

        rejected = sum(1 for correction in group if correction.verified is False)
        LOGGER.info("%s Verified: %s/%s valid", label, len(group) - rejected, len(group))
        emit_stage_event(
            "verification.group.complete",
            duration_ms=(time.perf_counter() - started) * 1000.0,
            usage=spent,
            corrections=len(group),
            rejected=rejected,
        )
        return VerificationResult(corrections=list(group), usage=spent)

    async def run(self, corrections: Sequence[Correction]) -> VerificationResult:
        """Verify ``corrections`` in groups; the merged list keeps input order."""

        if not corrections:
            return VerificationResult()

        size = self.config.batch_size
        groups = [list(corrections[start : start + size]) for start in range(0, len(corrections), size)]
        LOGGER.info("Verifying %s corrections in %s groups", len(corrections), len(groups))

        results = await run_with_concurrency(
            [lambda group=group: self.verify_group(group) for group in groups],
            self.config.concurrency,
        )

        merged: List[Correction] = []
        usage = TokenUsage.zero()
        for result in results:
            merged.extend(result.corrections)
            usage = usage + result.usage

        rejected = sum(1 for correction in merged if correction.verified is False)
        LOGGER.info("Verification done: %s false positives flagged", rejected)
        return VerificationResult(corrections=merged, usage=usage)


__all__ = ["VerificationStage", "VerificationStageConfig"]
