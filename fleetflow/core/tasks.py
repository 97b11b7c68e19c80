import asyncio
from typing import Coroutine

from fleetflow.core.config import settings

# Strong references so pending tasks are not garbage-collected mid-flight
_pending: set[asyncio.Task] = set()


async def run_background(coro: Coroutine) -> None:
    """Fire-and-forget; in test mode, wait for it so assertions see the effect."""
    if settings.TESTING:
        await coro
        return
    task = asyncio.create_task(coro)
    _pending.add(task)
    task.add_done_callback(_pending.discard)
