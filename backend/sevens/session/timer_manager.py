"""Manage the per-room timers: bot pacing, disconnect grace and room deletion."""

from collections.abc import Awaitable, Callable

import structlog

from sevens.logic.enums import TimeoutType
from sevens.session.timer import DelayedAction

logger = structlog.get_logger()

# Callback type: (room_id, timeout_type, username) -> Awaitable[None]
# username is None for room-wide timers (room deletion).
TimeoutCallback = Callable[[str, TimeoutType, str | None], Awaitable[None]]

_TimerKey = tuple[TimeoutType, str | None]


class TimerManager:
    """Own every pending timer, grouped by room.

    A room has at most one bot timer and one deletion timer, plus one grace
    timer per disconnected player. The SessionManager decides when to start
    and cancel them; the callback re-validates room state when it fires.
    """

    def __init__(self, on_timeout: TimeoutCallback) -> None:
        self._timers: dict[str, dict[_TimerKey, DelayedAction]] = {}
        self._on_timeout = on_timeout

    def _start(self, room_id: str, timeout_type: TimeoutType, username: str | None, seconds: float) -> None:
        timers = self._timers.setdefault(room_id, {})
        key = (timeout_type, username)
        timer = timers.get(key)
        if timer is None:
            timer = DelayedAction()
            timers[key] = timer
        timer.start(seconds, lambda: self._fire(room_id, timeout_type, username))

    async def _fire(self, room_id: str, timeout_type: TimeoutType, username: str | None) -> None:
        timers = self._timers.get(room_id)
        if timers is not None:
            timers.pop((timeout_type, username), None)
            if not timers:
                self._timers.pop(room_id, None)
        await self._on_timeout(room_id, timeout_type, username)

    def _cancel(self, room_id: str, timeout_type: TimeoutType, username: str | None) -> bool:
        timers = self._timers.get(room_id)
        if timers is None:
            return False
        timer = timers.pop((timeout_type, username), None)
        if not timers:
            self._timers.pop(room_id, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def is_pending(self, room_id: str, timeout_type: TimeoutType, username: str | None = None) -> bool:
        timer = self._timers.get(room_id, {}).get((timeout_type, username))
        return timer is not None and timer.is_active

    def start_bot_timer(self, room_id: str, bot_name: str, seconds: float) -> None:
        """Schedule a bot move. Any earlier bot move pending for the room is replaced."""
        for key in [k for k in self._timers.get(room_id, {}) if k[0] == TimeoutType.BOT_MOVE]:
            self._cancel(room_id, *key)
        self._start(room_id, TimeoutType.BOT_MOVE, bot_name, seconds)

    def cancel_bot_timer(self, room_id: str) -> None:
        for key in [k for k in self._timers.get(room_id, {}) if k[0] == TimeoutType.BOT_MOVE]:
            self._cancel(room_id, *key)

    def start_grace_timer(self, room_id: str, username: str, seconds: float) -> None:
        self._start(room_id, TimeoutType.DISCONNECT_GRACE, username, seconds)

    def cancel_grace_timer(self, room_id: str, username: str) -> bool:
        """Cancel a player's pending removal. Returns True if one was pending."""
        return self._cancel(room_id, TimeoutType.DISCONNECT_GRACE, username)

    def start_deletion_timer(self, room_id: str, seconds: float) -> None:
        if self.is_pending(room_id, TimeoutType.ROOM_DELETION):
            return
        logger.info("room deletion countdown started", room_id=room_id, seconds=seconds)
        self._start(room_id, TimeoutType.ROOM_DELETION, None, seconds)

    def cancel_deletion_timer(self, room_id: str) -> bool:
        return self._cancel(room_id, TimeoutType.ROOM_DELETION, None)

    def cleanup_room(self, room_id: str) -> None:
        """Cancel all timers for a room and forget it."""
        timers = self._timers.pop(room_id, None)
        if timers:
            for timer in timers.values():
                timer.cancel()

    def cancel_all(self) -> None:
        """Cancel every pending timer (server shutdown)."""
        for room_id in list(self._timers):
            self.cleanup_room(room_id)

    def has_room(self, room_id: str) -> bool:
        return room_id in self._timers
