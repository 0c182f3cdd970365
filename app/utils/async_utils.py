"""
Async Utilities Module

Ties long-running work to the lifetime of the HTTP request that asked for it.
When the client goes away, the work is cancelled so its subprocess gets killed
instead of running to completion for nobody.
"""
import asyncio
from typing import Any, Coroutine, TypeVar

from starlette.requests import Request


T = TypeVar('T')

DISCONNECT_POLL_SECONDS = 0.5


class ClientDisconnected(Exception):
    """The client closed the connection before the work finished."""


async def run_until_disconnect(
    request: Request,
    coro: Coroutine[Any, Any, T],
    poll_interval: float = DISCONNECT_POLL_SECONDS
) -> T:
    """
    Await coro while watching the request for a client disconnect.

    Args:
        request: The incoming request to watch.
        coro: The work to run, e.g. ExtractionInvoker.download(...).
        poll_interval: Seconds between disconnect checks.

    Returns:
        The coroutine's result.

    Raises:
        ClientDisconnected: the client went away; the work has been cancelled.
        Any exception raised by the coroutine is propagated unchanged.
    """
    task = asyncio.ensure_future(coro)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
                raise ClientDisconnected()
    except asyncio.CancelledError:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise
