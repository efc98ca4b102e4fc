from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sevens.messaging.protocol import ConnectionProtocol


@dataclass
class Player:
    """A connection bound to a seat in a room."""

    connection: ConnectionProtocol
    username: str
    room_id: str

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id
