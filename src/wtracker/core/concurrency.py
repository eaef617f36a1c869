from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")


async def run_until_cancelled(coro: Awaitable[T], cancel_event: asyncio.Event) -> T:
    """Await the given coroutine, cancelling it as soon as cancel_event is set."""
    fut = asyncio.ensure_future(coro)
    if cancel_event.is_set():
        fut.cancel()
    waiter = asyncio.ensure_future(cancel_event.wait())
    waiter.add_done_callback(lambda _: fut.cancel())
    try:
        return await fut
    finally:
        waiter.cancel()
