"""
Bounded fan-out for store-dependent work.

Field resolutions within a row, and row loads within a query result, run
concurrently but never more than `limit` at a time.

Invariants:
    - Results are returned in input order regardless of completion order
    - The first failure propagates; siblings already started run to completion
      and are not rolled back
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Iterable, List, TypeVar

T = TypeVar("T")

DEFAULT_FANOUT = 4


async def gather_bounded(aws: Iterable[Awaitable[T]], limit: int = DEFAULT_FANOUT) -> List[T]:
    """Await all awaitables with at most `limit` in flight.

    Args:
        aws: Awaitables (typically coroutines) to run
        limit: Maximum concurrently running awaitables

    Returns:
        Results in input order
    """
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")

    semaphore = asyncio.Semaphore(limit)

    async def run(aw: Awaitable[T]) -> T:
        async with semaphore:
            return await aw

    return list(await asyncio.gather(*(run(aw) for aw in aws)))
