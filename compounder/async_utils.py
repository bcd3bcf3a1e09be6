"""
Async Utilities - bounded fan-out for RPC queries.

Usage:
    from compounder.async_utils import gather_with_concurrency

    results = await gather_with_concurrency(
        20, *[rpc.get_bond(v, delegator, epoch) for v in validators],
        return_exceptions=True,
    )
"""

import asyncio
from typing import Any, Coroutine, List


async def gather_with_concurrency(
    n: int,
    *coros: Coroutine,
    return_exceptions: bool = False,
) -> List[Any]:
    """
    Run coroutines with limited concurrency.

    Args:
        n: Maximum concurrent coroutines
        coros: Coroutines to run
        return_exceptions: If True, return exceptions instead of raising

    Returns:
        List of results in order
    """
    if n < 1:
        raise ValueError(f"concurrency limit must be at least 1, got {n}")

    semaphore = asyncio.Semaphore(n)

    async def limited_coro(coro: Coroutine) -> Any:
        async with semaphore:
            return await coro

    return await asyncio.gather(
        *[limited_coro(c) for c in coros],
        return_exceptions=return_exceptions,
    )
