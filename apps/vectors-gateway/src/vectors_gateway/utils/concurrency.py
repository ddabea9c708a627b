"""Bounded fan-out helpers."""

import asyncio
from typing import Awaitable, List, Optional, TypeVar, Union

T = TypeVar("T")


async def throttled_gather(
    coros: List[Awaitable[T]],
    semaphore: Optional[asyncio.Semaphore] = None,
    limit: int = 8,
    return_exceptions: bool = False,
) -> List[Union[T, BaseException]]:
    """
    Run awaitables concurrently with at most `limit` in flight.

    Results come back in input order regardless of completion order, so the
    i-th result always belongs to the i-th awaitable.

    Args:
        coros: Awaitables to run
        semaphore: Optional shared semaphore; a new one sized by `limit` is used otherwise
        limit: Concurrency bound when no semaphore is passed
        return_exceptions: Mirror of asyncio.gather semantics

    Returns:
        Results aligned with `coros`
    """
    if semaphore is None:
        semaphore = asyncio.Semaphore(max(1, limit))

    async def _wrapped(coro: Awaitable[T]) -> T:
        async with semaphore:
            return await coro

    return await asyncio.gather(
        *(_wrapped(c) for c in coros), return_exceptions=return_exceptions
    )
