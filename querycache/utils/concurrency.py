"""Shared asyncio helpers for deadline-bound backend calls.

Every cache and dial operation accepts an optional ``timeout`` in seconds.
The helpers here apply it uniformly:

1. **with_deadline** -- await a coroutine, bounded by ``asyncio.wait_for``
   when a timeout is given.  Cancelling the awaiting task cancels the
   operation as usual.

2. **run_blocking** -- run a synchronous client call (Datastore, Cloud
   Storage) in the default thread pool via ``asyncio.to_thread`` so the event
   loop is never blocked, again bounded by the optional timeout.

3. **close_client** -- release a Google client whose ``close()`` may be
   synchronous or a coroutine, depending on the library.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, TypeVar

_T = TypeVar("_T")


async def with_deadline(awaitable: Awaitable[_T], timeout: float | None = None) -> _T:
    """Await *awaitable*, raising ``TimeoutError`` if *timeout* seconds pass first.

    Parameters
    ----------
    awaitable:
        The coroutine or future to await.
    timeout:
        Deadline in seconds.  ``None`` waits indefinitely.
    """
    if timeout is None:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout=timeout)


async def run_blocking(
    func: Callable[..., _T],
    *args: Any,
    timeout: float | None = None,
    **kwargs: Any,
) -> _T:
    """Run a blocking client call in a worker thread with an optional deadline.

    On timeout or cancellation the awaiting task is released immediately;
    the worker thread finishes its in-flight request in the background and
    its result is discarded.
    """
    return await with_deadline(asyncio.to_thread(func, *args, **kwargs), timeout)


async def close_client(client: Any) -> None:
    """Call ``client.close()`` if it exists, awaiting it when it is a coroutine."""
    close = getattr(client, "close", None)
    if close is None:
        return
    result = close()
    if inspect.isawaitable(result):
        await result
