"""Retry wrapper with per-attempt deadlines and feedback threading."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import EngineTimeoutError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class AttemptState:
    """What an operation knows about the attempt it is running in.

    ``feedback`` holds the reason the previous attempt was rejected, if a
    feedback strategy produced one.
    """

    attempt: int = 1
    feedback: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded retries with a fixed delay and an optional per-attempt timeout."""

    max_retries: int = 3
    delay_seconds: float = 1.0
    timeout_seconds: Optional[float] = None
    on_retry: Optional[Callable[[int, Exception], None]] = None

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive when set")


FeedbackStrategy = Callable[[Exception], Optional[str]]


async def _run_attempt(awaitable: Awaitable[T], timeout_seconds: Optional[float]) -> T:
    if timeout_seconds is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError as exc:
        raise EngineTimeoutError(f"Timeout ({timeout_seconds * 1000:.0f}ms)", cause=exc) from exc


async def call_with_retry(
    operation: Callable[[AttemptState], Awaitable[T]],
    policy: RetryPolicy,
    *,
    feedback: Optional[FeedbackStrategy] = None,
) -> T:
    """Run ``operation`` until it succeeds or ``policy.max_retries`` attempts fail.

    On timeout the pending attempt is cancelled, not merely abandoned. Between
    attempts ``policy.on_retry`` is notified, ``feedback`` (when given) derives
    the next attempt's feedback text from the error, and the loop sleeps for
    ``policy.delay_seconds``. The last error is re-raised unchanged.
    """

    state = AttemptState()

    while True:
        try:
            return await _run_attempt(operation(state), policy.timeout_seconds)
        except Exception as error:
            if state.attempt >= policy.max_retries:
                LOGGER.debug("Giving up after %s attempts: %s", policy.max_retries, error)
                raise
            if policy.on_retry is not None:
                policy.on_retry(state.attempt, error)
            next_feedback = feedback(error) if feedback is not None else None
            state = AttemptState(
                attempt=state.attempt + 1,
                feedback=next_feedback if next_feedback is not None else state.feedback,
            )
        await asyncio.sleep(policy.delay_seconds)


__all__ = ["AttemptState", "FeedbackStrategy", "RetryPolicy", "call_with_retry"]
