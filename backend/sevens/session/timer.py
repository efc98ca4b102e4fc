"""Cancellable one-shot timer backed by an asyncio task."""

import asyncio
from collections.abc import Awaitable, Callable

import structlog

logger = structlog.get_logger()


class DelayedAction:
    """
    Run an async callback once after a delay, unless cancelled first.

    The callback runs inside the timer's own task. The task is detached
    before the callback starts, so the callback may cancel or restart this
    same timer without aborting itself.
    """

    def __init__(self) -> None:
        self._active_task: asyncio.Task[None] | None = None

    @property
    def is_active(self) -> bool:
        return self._active_task is not None and not self._active_task.done()

    def start(self, seconds: float, on_fire: Callable[[], Awaitable[None]]) -> None:
        """Start (or restart) the timer."""
        self.cancel()
        self._active_task = asyncio.create_task(self._run_timer(seconds, on_fire))

    def cancel(self) -> None:
        if self._active_task is not None and not self._active_task.done():
            self._active_task.cancel()
        self._active_task = None

    async def _run_timer(self, seconds: float, on_fire: Callable[[], Awaitable[None]]) -> None:
        try:
            await asyncio.sleep(seconds)
            self._active_task = None
            await on_fire()
        except asyncio.CancelledError:
            pass
        except (RuntimeError, OSError, ConnectionError, ValueError):  # fmt: skip
            logger.exception("timer callback failed")
