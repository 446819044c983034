"""Keyed debounce scheduler.

Coalesces bursts of calls under the same key into a single delayed action:
every schedule() cancels the still-pending timer of that key and arms a new
one. Must be used from the event loop thread.
"""
import asyncio
import inspect
from functools import partial
from typing import Any, Callable, Dict, Optional, Set

from booking_workflow.logging_config import get_logger

logger = get_logger(__name__)


class Debouncer:
    """One-shot timers keyed by name on the running asyncio loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: Dict[str, asyncio.TimerHandle] = {}
        self._tasks: Set[asyncio.Future] = set()

    def schedule(self, key: str, delay_ms: int, action: Callable[[], Any]) -> None:
        """
        Run action after delay_ms of silence under key.

        Args:
            key: Timer name; a newer schedule() under the same key supersedes this one
            delay_ms: Quiet period in milliseconds
            action: Callable; if it returns an awaitable it is run as a task
        """
        self.cancel(key)
        loop = self._loop or asyncio.get_running_loop()
        self._handles[key] = loop.call_later(
            max(delay_ms, 0) / 1000, self._fire, key, action
        )

    def cancel(self, key: str) -> bool:
        """Drop the pending timer for key without firing it."""
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for key in list(self._handles):
            self.cancel(key)

    def is_pending(self, key: str) -> bool:
        return key in self._handles

    async def drain(self) -> None:
        """Wait until every action started by a fired timer has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _fire(self, key: str, action: Callable[[], Any]) -> None:
        self._handles.pop(key, None)
        try:
            result = action()
        except Exception:
            logger.exception("debounced_action_failed", key=key)
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(partial(self._task_done, key))

    def _task_done(self, key: str, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("debounced_action_failed", key=key, error=repr(error))
