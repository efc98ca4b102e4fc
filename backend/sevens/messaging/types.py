from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from sevens.logic.enums import GameErrorCode
from sevens.logic.types import PlayerInfo, RoomSnapshot

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F

_ROOM_ID_PATTERN = r"^[1-9][0-9]{2}$"
_CARD_ID_PATTERN = r"^[cdhs](0[1-9]|1[0-3])$"
MAX_USERNAME_LENGTH = 24


class ClientMessageType(StrEnum):
    CREATE_ROOM = "createRoom"
    JOIN_ROOM = "joinRoom"
    RECONNECT_TO_ROOM = "reconnectToRoom"
    START_GAME = "startGame"
    PLAY_CARD = "playCard"
    PASS = "pass"
    FORFEIT = "forfeit"
    LEAVE_ROOM = "leaveRoom"
    PING = "ping"


class SessionMessageType(StrEnum):
    ROOM_CREATED = "roomCreated"
    ROOM_JOINED = "roomJoined"
    PLAYERS_UPDATE = "playersUpdate"
    PLAYER_DISCONNECTED = "playerDisconnected"
    PLAYER_RECONNECTED = "playerReconnected"
    PLAYER_LEFT = "playerLeft"
    ROOM_SNAPSHOT = "roomSnapshot"
    PONG = "pong"
    ERROR = "error"


class SessionErrorCode(StrEnum):
    INVALID_MESSAGE = "invalid_message"
    ALREADY_IN_ROOM = "already_in_room"
    NOT_IN_ROOM = "not_in_room"
    RATE_LIMITED = "rate_limited"
    SERVER_FULL = "server_full"
    INTERNAL_ERROR = "internal_error"


class _ClientMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _validate_username(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("username must not be blank")
    if any(ord(c) < _SPACE_ORD or ord(c) == _DEL_ORD for c in value):
        raise ValueError("username must not contain control characters")
    return value


Username = Annotated[str, Field(min_length=1, max_length=MAX_USERNAME_LENGTH), AfterValidator(_validate_username)]


class CreateRoomMessage(_ClientMessage):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM
    username: Username


class JoinRoomMessage(_ClientMessage):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM
    username: Username
    room_id: str = Field(alias="roomId", pattern=_ROOM_ID_PATTERN)


class ReconnectToRoomMessage(_ClientMessage):
    type: Literal[ClientMessageType.RECONNECT_TO_ROOM] = ClientMessageType.RECONNECT_TO_ROOM
    username: Username
    room_id: str = Field(alias="roomId", pattern=_ROOM_ID_PATTERN)


class StartGameMessage(_ClientMessage):
    type: Literal[ClientMessageType.START_GAME] = ClientMessageType.START_GAME
    room_id: str = Field(alias="roomId", pattern=_ROOM_ID_PATTERN)


class PositionPayload(BaseModel):
    row: int = Field(ge=0, le=3)
    col: int = Field(ge=1, le=13)


class PlayCardMessage(_ClientMessage):
    type: Literal[ClientMessageType.PLAY_CARD] = ClientMessageType.PLAY_CARD
    room_id: str = Field(alias="roomId", pattern=_ROOM_ID_PATTERN)
    card: str = Field(pattern=_CARD_ID_PATTERN)
    position: PositionPayload

    @field_validator("card", mode="before")
    @classmethod
    def _card_id_from_object(cls, v: Any) -> Any:  # noqa: ANN401
        # clients may send the whole card object; only its id is trusted
        if isinstance(v, dict):
            return v.get("id")
        return v


class PassMessage(_ClientMessage):
    type: Literal[ClientMessageType.PASS] = ClientMessageType.PASS
    room_id: str = Field(alias="roomId", pattern=_ROOM_ID_PATTERN)


class ForfeitMessage(_ClientMessage):
    type: Literal[ClientMessageType.FORFEIT] = ClientMessageType.FORFEIT
    room_id: str = Field(alias="roomId", pattern=_ROOM_ID_PATTERN)


class LeaveRoomMessage(_ClientMessage):
    type: Literal[ClientMessageType.LEAVE_ROOM] = ClientMessageType.LEAVE_ROOM
    room_id: str = Field(alias="roomId", pattern=_ROOM_ID_PATTERN)


class PingMessage(_ClientMessage):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = (
    CreateRoomMessage
    | JoinRoomMessage
    | ReconnectToRoomMessage
    | StartGameMessage
    | PlayCardMessage
    | PassMessage
    | ForfeitMessage
    | LeaveRoomMessage
    | PingMessage
)


class RoomCreatedMessage(BaseModel):
    type: Literal[SessionMessageType.ROOM_CREATED] = SessionMessageType.ROOM_CREATED
    room_id: str = Field(serialization_alias="roomId")


class RoomJoinedMessage(BaseModel):
    """Sent to the joining connection with the (possibly suffixed) name it was seated under."""

    type: Literal[SessionMessageType.ROOM_JOINED] = SessionMessageType.ROOM_JOINED
    room_id: str = Field(serialization_alias="roomId")
    username: str


class PlayersUpdateMessage(BaseModel):
    type: Literal[SessionMessageType.PLAYERS_UPDATE] = SessionMessageType.PLAYERS_UPDATE
    players: list[PlayerInfo]


class PlayerDisconnectedMessage(BaseModel):
    type: Literal[SessionMessageType.PLAYER_DISCONNECTED] = SessionMessageType.PLAYER_DISCONNECTED
    username: str


class PlayerReconnectedMessage(BaseModel):
    """Broadcast to other players when a player reconnects."""

    type: Literal[SessionMessageType.PLAYER_RECONNECTED] = SessionMessageType.PLAYER_RECONNECTED
    username: str


class PlayerLeftMessage(BaseModel):
    type: Literal[SessionMessageType.PLAYER_LEFT] = SessionMessageType.PLAYER_LEFT
    username: str


class RoomSnapshotMessage(RoomSnapshot):
    """Full room state sent to a reconnecting player."""

    type: Literal[SessionMessageType.ROOM_SNAPSHOT] = SessionMessageType.ROOM_SNAPSHOT


class PongMessage(BaseModel):
    type: Literal[SessionMessageType.PONG] = SessionMessageType.PONG


class ErrorMessage(BaseModel):
    type: Literal[SessionMessageType.ERROR] = SessionMessageType.ERROR
    code: GameErrorCode | SessionErrorCode
    message: str


def to_wire(message: BaseModel) -> dict[str, Any]:
    """Dump an outbound message with camelCase field names."""
    return message.model_dump(by_alias=True, mode="json")


_client_message_adapter = TypeAdapter(Annotated[ClientMessage, Field(discriminator="type")])


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed ClientMessage."""
    return _client_message_adapter.validate_python(data)
