"""Bounded fan-out for coroutine work."""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def gather_bounded(
    items: Iterable[T],
    fn: Callable[[T], Awaitable[R]],
    *,
    concurrency: int = 8,
    return_exceptions: bool = False,
) -> list[Any]:
    """Run ``fn`` over ``items`` with at most ``concurrency`` calls in flight.

    Calls start in submission order (the semaphore wakes waiters FIFO) and
    results come back in input order, whatever order the calls complete in.

    Args:
        items: Inputs to process.
        fn: Coroutine function applied to each input.
        concurrency: Maximum number of concurrent calls.
        return_exceptions: Forwarded to ``asyncio.gather``.

    Returns:
        One result (or exception, when ``return_exceptions``) per input.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    semaphore = asyncio.Semaphore(concurrency)

    async def run(item: T) -> R:
        async with semaphore:
            return await fn(item)

    return await asyncio.gather(
        *(run(item) for item in items), return_exceptions=return_exceptions
    )
