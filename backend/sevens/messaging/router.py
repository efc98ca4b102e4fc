from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from sevens.logic.enums import GameAction
from sevens.logic.exceptions import GameRuleError
from sevens.messaging.types import (
    CreateRoomMessage,
    ErrorMessage,
    ForfeitMessage,
    JoinRoomMessage,
    LeaveRoomMessage,
    PassMessage,
    PingMessage,
    PlayCardMessage,
    ReconnectToRoomMessage,
    SessionErrorCode,
    StartGameMessage,
    parse_client_message,
    to_wire,
)

if TYPE_CHECKING:
    from sevens.messaging.protocol import ConnectionProtocol
    from sevens.messaging.types import ClientMessage
    from sevens.session.manager import SessionManager

logger = structlog.get_logger()


class MessageRouter:
    """
    Routes incoming messages to appropriate handlers.

    This class contains pure business logic and can be tested
    without real WebSocket connections.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message", connection_id=connection.connection_id, error=str(e))
            await connection.send_message(
                to_wire(ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e))),
            )
            return

        try:
            await self._dispatch(connection, message)
        except GameRuleError as e:
            logger.info("command rejected", code=e.code, error=str(e))
            await connection.send_message(to_wire(ErrorMessage(code=e.code, message=str(e))))
        except Exception:
            logger.exception("fatal error handling message", message_type=message.type)
            await self._session_manager.close_room_on_error(connection)

    async def _dispatch(self, connection: ConnectionProtocol, message: ClientMessage) -> None:
        manager = self._session_manager
        if isinstance(message, CreateRoomMessage):
            await manager.create_room(connection, message.username)
        elif isinstance(message, JoinRoomMessage):
            await manager.join_room(connection, message.username, message.room_id)
        elif isinstance(message, ReconnectToRoomMessage):
            await manager.reconnect(connection, message.username, message.room_id)
        elif isinstance(message, StartGameMessage):
            await manager.start_game(connection, message.room_id)
        elif isinstance(message, PlayCardMessage):
            await manager.handle_game_action(
                connection,
                message.room_id,
                GameAction.PLAY_CARD,
                {"card": message.card, "position": message.position.model_dump()},
            )
        elif isinstance(message, PassMessage):
            await manager.handle_game_action(connection, message.room_id, GameAction.PASS)
        elif isinstance(message, ForfeitMessage):
            await manager.handle_game_action(connection, message.room_id, GameAction.FORFEIT)
        elif isinstance(message, LeaveRoomMessage):
            await manager.leave_room(connection, message.room_id)
        elif isinstance(message, PingMessage):
            await manager.handle_ping(connection)

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._session_manager.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.disconnect(connection)
        self._session_manager.unregister_connection(connection)
