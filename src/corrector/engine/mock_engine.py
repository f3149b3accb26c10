"""Deterministic engine used offline and in tests."""
from __future__ import annotations

import asyncio
import inspect
import json
import math
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from corrector.models import TokenUsage

from .base import ChatMessage, CorrectionEngine, EngineReply

Responder = Callable[[Sequence[ChatMessage]], Union[str, None, Awaitable[Optional[str]]]]


def _estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


def default_responder(messages: Sequence[ChatMessage]) -> str:
    """Propose no corrections and accept every correction submitted for review."""

    last_user = next((message for message in reversed(messages) if message.role == "user"), None)
    if last_user is not None:
        try:
            payload = json.loads(last_user.content)
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("corrections"), list):
            results = [
                {"id": item.get("id", index), "valid": True, "reason": "mock"}
                for index, item in enumerate(payload["corrections"])
            ]
            return json.dumps({"results": results})
    return json.dumps({"corrections": []})


class MockCorrectionEngine(CorrectionEngine):
    """Return canned replies produced by ``responder`` and record every request."""

    def __init__(self, responder: Optional[Responder] = None, *, latency: float = 0.0) -> None:
        self._responder = responder or default_responder
        self.latency = latency
        self.calls: List[List[ChatMessage]] = []

    @property
    def name(self) -> str:
        return "mock"

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        json_mode: bool = False,
        temperature: float | None = None,
    ) -> EngineReply:
        del json_mode, temperature  # The mock ignores sampling options.
        self.calls.append(list(messages))
        if self.latency:
            await asyncio.sleep(self.latency)

        content = self._responder(messages)
        if inspect.isawaitable(content):
            content = await content

        prompt_tokens = sum(_estimate_tokens(message.content) for message in messages)
        completion_tokens = _estimate_tokens(content or "")
        usage = TokenUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )
        return EngineReply(content=content, usage=usage)


__all__ = ["MockCorrectionEngine", "Responder", "default_responder"]
