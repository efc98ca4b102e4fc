from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from sevens.messaging.encoder import DecodeError, decode
from sevens.messaging.protocol import ConnectionProtocol
from sevens.messaging.types import ErrorMessage, SessionErrorCode, to_wire
from sevens.server.rate_limit import TokenBucket

logger = structlog.get_logger()

if TYPE_CHECKING:
    from sevens.messaging.router import MessageRouter

# A human plays at most one card per turn, so a handful of frames per second
# covers play plus pings; the burst absorbs reconnect storms.
_RATE_LIMIT_RATE = 10.0
_RATE_LIMIT_BURST = 20

# Disconnect after this many consecutive decode errors
_MAX_DECODE_ERRORS = 5


class WebSocketConnection(ConnectionProtocol):
    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._connection_id = connection_id or str(uuid4())

    @property
    def connection_id(self) -> str:
        return self._connection_id

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self._websocket.send_bytes(data)
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_bytes(self) -> bytes:
        try:
            return await self._websocket.receive_bytes()
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect, RuntimeError):
            await self._websocket.close(code=code, reason=reason)


async def websocket_endpoint(websocket: WebSocket, router: MessageRouter) -> None:
    await websocket.accept()

    connection = WebSocketConnection(websocket)
    structlog.contextvars.bind_contextvars(connection_id=connection.connection_id)
    logger.info("websocket connected")
    await router.handle_connect(connection)

    bucket = TokenBucket(rate=_RATE_LIMIT_RATE, burst=_RATE_LIMIT_BURST)
    decode_errors = 0

    try:
        while True:
            raw = await connection.receive_bytes()

            try:
                data = decode(raw)
            except DecodeError as e:
                decode_errors += 1
                logger.warning("decode error", error=str(e), strikes=decode_errors)
                await connection.send_message(
                    to_wire(ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e))),
                )
                if decode_errors >= _MAX_DECODE_ERRORS:
                    logger.info("too many decode errors, disconnecting")
                    await connection.close(code=4004, reason="too_many_decode_errors")
                    return
                continue

            decode_errors = 0

            if not bucket.consume():
                await connection.send_message(
                    to_wire(ErrorMessage(code=SessionErrorCode.RATE_LIMITED, message="Too many messages")),
                )
                continue
            await router.handle_message(connection, data)
    except (WebSocketDisconnect, RuntimeError, ConnectionError):  # fmt: skip
        pass
    finally:
        logger.info("websocket disconnected")
        await router.handle_disconnect(connection)
        structlog.contextvars.clear_contextvars()
