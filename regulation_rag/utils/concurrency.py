"""Bounded-concurrency helpers shared by the ingestion pipeline.

``throttled_gather`` is ``asyncio.gather`` with a semaphore wrapped around
each awaitable.  ``CancellationToken`` is the cooperative stop signal that an
operator (CLI Ctrl-C handler, API shutdown) can set while a long ingestion
run is embedding chunks.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

_T = TypeVar("_T")


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most ``semaphore`` of them at once.

    Parameters
    ----------
    coros:
        Awaitable objects to execute.
    semaphore:
        Limits how many awaitables are in flight.
    return_exceptions:
        Same meaning as for :func:`asyncio.gather`.

    Returns
    -------
    list[_T | BaseException]
        Results in input order.
    """

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    return await asyncio.gather(
        *(_wrapped(c) for c in coros), return_exceptions=return_exceptions
    )


class CancellationToken:
    """One-way cancellation flag checked between units of ingestion work."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()
