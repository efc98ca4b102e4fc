from typing import Any
from uuid import uuid4

from sevens.messaging.encoder import decode
from sevens.messaging.protocol import ConnectionProtocol


class MockConnection(ConnectionProtocol):
    """In-memory connection that records every message sent to it."""

    def __init__(self, connection_id: str | None = None) -> None:
        self._connection_id = connection_id or str(uuid4())
        self._outbox: list[dict[str, Any]] = []
        self._closed = False

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def sent_messages(self) -> list[dict[str, Any]]:
        return self._outbox.copy()

    def messages_of_type(self, message_type: str) -> list[dict[str, Any]]:
        return [m for m in self._outbox if m.get("type") == message_type]

    def last_message(self, message_type: str) -> dict[str, Any] | None:
        matching = self.messages_of_type(message_type)
        return matching[-1] if matching else None

    def clear(self) -> None:
        self._outbox.clear()

    async def send_bytes(self, data: bytes) -> None:
        if self._closed:
            raise RuntimeError("Connection is closed")
        # round-trip through the wire codec so tests see what a client would
        self._outbox.append(decode(data))

    async def close(self, code: int = 1000, reason: str = "") -> None:  # noqa: ARG002
        self._closed = True
