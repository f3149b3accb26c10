from __future__ import annotations

import asyncio
import json
from typing import List, Optional, Sequence

from corrector.correction import (
    CorrectionStage,
    CorrectionStageConfig,
    clean_corrections,
    has_long_corrections,
    rejection_feedback,
)
from corrector.engine import MockCorrectionEngine
from corrector.engine.base import ChatMessage, CorrectionEngine, EngineReply
from corrector.errors import CorrectionRejectedError, EngineTimeoutError
from corrector.models import Chunk, Correction, CorrectionType, TokenUsage

FAST = CorrectionStageConfig(max_retries=3, retry_delay_seconds=0, timeout_seconds=1.0)


def _payload(*corrections: dict) -> str:
    return json.dumps({"corrections": list(corrections)})


def _item(original: str, correction: str, position: int = 0, kind: str = "orthographe") -> dict:
    return {
        "position": position,
        "original": original,
        "correction": correction,
        "type": kind,
        "explication": "test",
    }


class ScriptedEngine(CorrectionEngine):
    """Return queued contents in order, each costing a fixed usage."""

    def __init__(self, contents: Sequence[Optional[str]], usage: TokenUsage) -> None:
        self._contents = list(contents)
        self._usage = usage
        self.calls: List[List[ChatMessage]] = []

    @property
    def name(self) -> str:
        return "scripted"

    async def complete(self, messages, *, json_mode=False, temperature=None) -> EngineReply:
        self.calls.append(list(messages))
        return EngineReply(content=self._contents.pop(0), usage=self._usage)


def test_teh_is_corrected_and_shifted_into_document_space() -> None:
    engine = MockCorrectionEngine(lambda _: _payload(_item("teh", "the", position=4)))
    stage = CorrectionStage(engine, FAST)
    chunk = Chunk(index=2, text="Saw teh cat.", start_position=100, end_position=112)

    result = asyncio.run(stage.process_chunk(chunk))

    assert len(result.corrections) == 1
    correction = result.corrections[0]
    assert correction.original == "teh"
    assert correction.correction == "the"
    assert correction.position == 104
    assert correction.chunk_index == 3
    assert correction.type is CorrectionType.ORTHOGRAPHE
    assert correction.verified is None


def test_identity_and_blank_corrections_never_survive() -> None:
    engine = MockCorrectionEngine(
        lambda _: _payload(
            _item("même", "même"),
            _item("vide", "   "),
            _item("erreur", "erreurs", kind="Grammaire"),
        )
    )
    stage = CorrectionStage(engine, FAST)

    result = asyncio.run(stage.process_chunk(Chunk(0, "texte", 0, 5)))

    assert [c.original for c in result.corrections] == ["erreur"]
    assert result.corrections[0].type is CorrectionType.GRAMMAIRE


def test_long_correction_triggers_exactly_one_feedback_retry() -> None:
    long_text = " ".join(["mot"] * 25)
    usage = TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15)
    engine = ScriptedEngine(
        [_payload(_item("a b c", long_text)), _payload(_item("teh", "the"))],
        usage,
    )
    stage = CorrectionStage(engine, FAST)

    result = asyncio.run(stage.correct_chunk("Saw teh cat.", 1))

    assert len(engine.calls) == 2
    first_system = engine.calls[0][0].content
    second_system = engine.calls[1][0].content
    assert "REJETÉE" not in first_system
    assert "REJETÉE" in second_system
    assert "18 mots" in second_system
    assert [c.correction for c in result.corrections] == ["the"]
    # Both completed attempts are billed.
    assert result.usage == usage + usage


def test_exhausted_retries_yield_no_corrections_but_keep_billed_usage() -> None:
    usage = TokenUsage(prompt_tokens=3, completion_tokens=1, total_tokens=4)
    engine = ScriptedEngine(["not json", "", None], usage)
    stage = CorrectionStage(engine, FAST)

    result = asyncio.run(stage.process_chunk(Chunk(0, "texte", 0, 5)))

    assert len(engine.calls) == 3
    assert result.corrections == []
    assert result.usage == usage + usage + usage


def test_off_category_item_is_dropped_and_the_rest_kept() -> None:
    engine = ScriptedEngine(
        [
            _payload(
                _item("teh", "the", position=4),
                _item("cat", "cats", position=8, kind="accord"),
                {"correction": "sans original", "type": "grammaire"},
            )
        ],
        TokenUsage.zero(),
    )
    stage = CorrectionStage(engine, FAST)

    result = asyncio.run(stage.correct_chunk("Saw teh cat.", 1))

    assert len(engine.calls) == 1
    assert [(c.original, c.correction) for c in result.corrections] == [("teh", "the")]


def test_corrections_that_are_not_a_list_are_retried() -> None:
    engine = ScriptedEngine(
        [json.dumps({"corrections": "none"}), _payload(_item("x", "y"))],
        TokenUsage.zero(),
    )
    stage = CorrectionStage(engine, FAST)

    result = asyncio.run(stage.correct_chunk("x", 1))

    assert len(engine.calls) == 2
    assert [c.correction for c in result.corrections] == ["y"]


def test_slow_engine_times_out_and_chunk_soft_fails() -> None:
    engine = MockCorrectionEngine(latency=0.5)
    config = CorrectionStageConfig(max_retries=2, retry_delay_seconds=0, timeout_seconds=0.02)
    stage = CorrectionStage(engine, config)

    result = asyncio.run(stage.correct_chunk("texte", 1))

    assert result.corrections == []
    assert len(engine.calls) == 2


def test_run_returns_results_in_chunk_order() -> None:
    async def _responder(messages: Sequence[ChatMessage]) -> str:
        text = messages[-1].content
        # Later chunks answer faster.
        await asyncio.sleep(0.03 if text == "zero" else 0.0)
        return _payload(_item(text, text.upper()))

    stage = CorrectionStage(MockCorrectionEngine(_responder), FAST)
    chunks = [Chunk(i, text, i * 10, i * 10 + 5) for i, text in enumerate(["zero", "one", "two"])]

    results = asyncio.run(stage.run(chunks))

    assert [r.corrections[0].correction for r in results] == ["ZERO", "ONE", "TWO"]
    assert [r.corrections[0].chunk_index for r in results] == [1, 2, 3]


def test_style_guide_is_sent_in_system_prompt() -> None:
    engine = MockCorrectionEngine()
    config = CorrectionStageConfig(retry_delay_seconds=0, style_guide="Passé simple, dialogues en tirets")
    stage = CorrectionStage(engine, config)

    asyncio.run(stage.correct_chunk("texte", 1))

    assert "Passé simple, dialogues en tirets" in engine.calls[0][0].content


def test_has_long_corrections_counts_space_separated_words() -> None:
    short = Correction(0, "a", " ".join(["w"] * 18), CorrectionType.SYNTAXE, "")
    long = Correction(0, "a", " ".join(["w"] * 19), CorrectionType.SYNTAXE, "")

    assert not has_long_corrections([short], 18)
    assert has_long_corrections([short, long], 18)


def test_clean_corrections_keeps_real_edits() -> None:
    kept = Correction(0, "teh", "the", CorrectionType.ORTHOGRAPHE, "")
    dropped = Correction(0, "the", "the", CorrectionType.ORTHOGRAPHE, "")

    assert clean_corrections([kept, dropped]) == [kept]


def test_rejection_feedback_only_reads_rejections() -> None:
    assert rejection_feedback(CorrectionRejectedError("x", feedback="fb")) == "fb"
    assert rejection_feedback(EngineTimeoutError("slow")) is None
