from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)

_running_tasks: dict[str, asyncio.Task[Any]] = {}


def start_task(name: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
    """Create an asyncio task on the running loop and register it by name."""
    task = asyncio.create_task(coro, name=name)
    _running_tasks[name] = task
    task.add_done_callback(lambda t: _finish(name, t))
    return task


def _finish(name: str, task: asyncio.Task[Any]) -> None:
    if _running_tasks.get(name) is task:
        del _running_tasks[name]
    if not task.cancelled() and task.exception() is not None:
        logger.error("Background task %s failed: %r", name, task.exception())


def get_task(name: str) -> asyncio.Task[Any] | None:
    return _running_tasks.get(name)


def is_running(name: str) -> bool:
    task = _running_tasks.get(name)
    return task is not None and not task.done()


async def drain() -> None:
    """Wait for every registered task; used on shutdown."""
    tasks = [t for t in _running_tasks.values() if not t.done()]
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
