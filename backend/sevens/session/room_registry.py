"""Registry of live rooms and their serialization locks."""

import asyncio
import random

import structlog

from sevens.logic.exceptions import RoomIdCollisionError
from sevens.logic.state import Room, RoomPlayer

logger = structlog.get_logger()

ROOM_ID_MIN = 100
ROOM_ID_MAX = 999
MAX_ID_ATTEMPTS = 50


class RoomRegistry:
    """
    Map of room id to Room, plus one asyncio.Lock per room.

    Every method is synchronous, so a lookup-then-insert never interleaves
    with another coroutine on the event loop.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rooms: dict[str, Room] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._rng = rng or random.Random()  # noqa: S311

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def rooms(self) -> list[Room]:
        return list(self._rooms.values())

    def _generate_room_id(self) -> str:
        """
        Pick an unused 3-digit room id.

        Random ids are retried on collision; when random draws keep colliding
        the id space is scanned for a free slot before giving up.
        """
        for _ in range(MAX_ID_ATTEMPTS):
            room_id = str(self._rng.randint(ROOM_ID_MIN, ROOM_ID_MAX))
            if room_id not in self._rooms:
                return room_id
            logger.debug("room id collision, retrying", room_id=room_id)
        free = [str(n) for n in range(ROOM_ID_MIN, ROOM_ID_MAX + 1) if str(n) not in self._rooms]
        if not free:
            raise RoomIdCollisionError("no free room ids left")
        return self._rng.choice(free)

    def create(self, host_username: str, connection_id: str) -> Room:
        """Create a room with the given connection as its only player and host."""
        room_id = self._generate_room_id()
        room = Room(
            room_id=room_id,
            players=[RoomPlayer(username=host_username, connection_id=connection_id, is_host=True)],
        )
        self._rooms[room_id] = room
        self._locks[room_id] = asyncio.Lock()
        return room

    def get(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def lock_for(self, room_id: str) -> asyncio.Lock | None:
        return self._locks.get(room_id)

    def remove(self, room_id: str) -> Room | None:
        self._locks.pop(room_id, None)
        return self._rooms.pop(room_id, None)
