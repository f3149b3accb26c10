"""Correction engine backed by the OpenAI chat completions API."""
from __future__ import annotations

import logging
import time
from typing import Any, Optional, Sequence

import openai
from openai import AsyncOpenAI

from corrector.errors import EngineTransientError, EngineUnavailableError
from corrector.models import TokenUsage
from corrector.telemetry import emit_engine_call

from .base import ChatMessage, CorrectionEngine, EngineReply

LOGGER = logging.getLogger(__name__)


class OpenAIChatEngine(CorrectionEngine):
    """Send chat messages to an OpenAI model and report token usage.

    The SDK's own retries are disabled; retry policy belongs to the caller.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str],
        model: str,
        temperature: float = 0.1,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        if client is None:
            if not api_key:
                raise EngineUnavailableError("OPENAI_API_KEY must be defined in environment")
            client = AsyncOpenAI(api_key=api_key, max_retries=0)
        self._client = client
        self.model = model
        self.temperature = temperature

    @property
    def name(self) -> str:
        return f"openai:{self.model}"

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        json_mode: bool = False,
        temperature: float | None = None,
    ) -> EngineReply:
        request: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_dict() for message in messages],
            "temperature": self.temperature if temperature is None else temperature,
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        started = time.perf_counter()
        try:
            completion = await self._client.chat.completions.create(**request)
        except openai.APIError as error:
            emit_engine_call(
                engine=self.name,
                duration_ms=(time.perf_counter() - started) * 1000.0,
                usage=None,
                error=error,
            )
            raise EngineTransientError(f"OpenAI request failed: {error}", cause=error) from error

        usage = _usage_from_completion(completion)
        content = None
        if completion.choices:
            content = completion.choices[0].message.content
        emit_engine_call(
            engine=self.name,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            usage=usage,
        )
        return EngineReply(content=content, usage=usage)


def _usage_from_completion(completion: Any) -> TokenUsage:
    usage = getattr(completion, "usage", None)
    if usage is None:
        return TokenUsage.zero()
    return TokenUsage(
        prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
        total_tokens=getattr(usage, "total_tokens", 0) or 0,
    )


__all__ = ["OpenAIChatEngine"]
