"""Enumerations shared across the game logic layer."""

from enum import Enum, StrEnum


class RoomPhase(Enum):
    """Phase of a room's lifecycle."""

    LOBBY = "lobby"
    PLAYING = "playing"
    OVER = "over"


class GameAction(StrEnum):
    """Actions a player (or bot) can take on their turn."""

    PLAY_CARD = "playCard"
    PASS = "pass"
    FORFEIT = "forfeit"


class TimeoutType(StrEnum):
    """Kinds of per-room timers managed by the session layer."""

    BOT_MOVE = "bot_move"
    DISCONNECT_GRACE = "disconnect_grace"
    ROOM_DELETION = "room_deletion"


class GameErrorCode(StrEnum):
    """Stable error codes sent to clients for rule violations."""

    ROOM_NOT_FOUND = "room_not_found"
    ROOM_FULL = "room_full"
    ROOM_ID_COLLISION = "room_id_collision"
    GAME_ALREADY_STARTED = "game_already_started"
    NOT_HOST = "not_host"
    NOT_YOUR_TURN = "not_your_turn"
    CARD_NOT_IN_HAND = "card_not_in_hand"
    ILLEGAL_MOVE = "illegal_move"
    PASS_LIMIT_EXCEEDED = "pass_limit_exceeded"
    HAS_LEGAL_MOVE = "has_legal_move"
    PASSES_REMAINING = "passes_remaining"
    USERNAME_TAKEN = "username_taken"
    GAME_NOT_STARTED = "game_not_started"
