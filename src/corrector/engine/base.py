"""Contract shared by the correction engine backends."""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Literal, Optional, Sequence

from corrector.errors import EngineResponseError
from corrector.models import TokenUsage

ChatRole = Literal["system", "user", "assistant"]


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """A role-tagged message of an engine request."""

    role: ChatRole
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True, slots=True)
class EngineReply:
    """Raw text returned by the engine along with the tokens it consumed."""

    content: Optional[str]
    usage: TokenUsage


class CorrectionEngine(ABC):
    """Common contract for the language engines used to correct and verify text."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable identifier of the backend and model."""

    @abstractmethod
    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        json_mode: bool = False,
        temperature: float | None = None,
    ) -> EngineReply:
        """Send ``messages`` to the engine and return its reply.

        Implementations raise :class:`~corrector.errors.EngineTransientError`
        for failures worth retrying.
        """


def parse_json_payload(reply: EngineReply) -> dict[str, Any]:
    """Decode the JSON object carried by ``reply``.

    Raises :class:`EngineResponseError` when the content is empty, is not
    valid JSON or is not a JSON object.
    """

    if not reply.content or not reply.content.strip():
        raise EngineResponseError("Empty response from the correction engine")
    try:
        payload = json.loads(reply.content)
    except json.JSONDecodeError as error:
        raise EngineResponseError("Malformed JSON in engine response", cause=error) from error
    if not isinstance(payload, dict):
        raise EngineResponseError("Engine response is not a JSON object")
    return payload


__all__ = ["ChatMessage", "ChatRole", "CorrectionEngine", "EngineReply", "parse_json_payload"]
