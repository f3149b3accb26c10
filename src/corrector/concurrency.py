"""Bounded-concurrency execution of independent coroutine factories."""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, List, Sequence, TypeVar

T = TypeVar("T")

TaskFactory = Callable[[], Awaitable[T]]


async def run_with_concurrency(tasks: Sequence[TaskFactory[T]], limit: int) -> List[T]:
    """Run ``tasks`` with at most ``limit`` of them in flight.

    Each factory is only invoked once a slot is free, so the next queued task
    starts as soon as a running one finishes. Results are returned in input
    order regardless of completion order.

    A failing task does not stop the others: every started task is allowed to
    settle and the first failure (in input order) is then re-raised. Callers
    that need soft failure should catch inside the task and return a sentinel.
    """

    if limit < 1:
        raise ValueError("limit must be a positive integer")

    factories = list(tasks)
    results: List[Any] = [None] * len(factories)
    semaphore = asyncio.Semaphore(limit)

    async def _bounded(index: int, factory: TaskFactory[T]) -> None:
        async with semaphore:
            results[index] = await factory()

    outcomes = await asyncio.gather(
        *(_bounded(index, factory) for index, factory in enumerate(factories)),
        return_exceptions=True,
    )
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome
    return results


__all__ = ["TaskFactory", "run_with_concurrency"]
