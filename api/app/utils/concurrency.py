"""
Settle-all fan-out helper
"""
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class Settled(Generic[T]):
    """Outcome of one awaited task: either a value or the exception it raised"""
    ok: bool
    value: Optional[T] = None
    error: Optional[BaseException] = None


async def settle_all(awaitables: List[Awaitable[T]]) -> List[Settled[T]]:
    """
    Await every task to completion, success or failure, and return one
    Settled per task in submission order.

    A failing task never cancels its siblings. Cancelling the caller
    cancels all of them.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)

    settled: List[Settled[T]] = []
    for result in results:
        if isinstance(result, BaseException):
            settled.append(Settled(ok=False, error=result))
        else:
            settled.append(Settled(ok=True, value=result))
    return settled
