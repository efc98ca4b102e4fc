"""Abstract connection protocol for MessagePack binary communication."""

from abc import ABC, abstractmethod
from typing import Any

from sevens.messaging.encoder import encode


class ConnectionProtocol(ABC):
    """
    Abstract interface for one client connection (one browser tab).

    Lets the router and session manager be exercised without real
    WebSocket connections.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        """
        Send a message to the client using MessagePack encoding.
        """
        await self.send_bytes(encode(data))
