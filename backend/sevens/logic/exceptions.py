"""Typed domain exceptions for game rule violations.

All rule violations raised by the logic and session layers use subclasses
of GameRuleError rather than raw ValueError. Each subclass carries a stable
GameErrorCode so the messaging layer can convert it into an error message
for the offending connection without inspecting the exception type.
"""

from sevens.logic.enums import GameErrorCode


class GameRuleError(Exception):
    """Base exception for game rule violations.

    Raised by domain logic (turn.py, room_registry.py, manager.py) when a
    command violates the rules. Caught at the session boundary and sent back
    to the initiating connection only; room state is never mutated when one
    of these is raised.
    """

    code: GameErrorCode

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.code.value)


class RoomNotFoundError(GameRuleError):
    """Room does not exist."""

    code = GameErrorCode.ROOM_NOT_FOUND


class RoomFullError(GameRuleError):
    """Room already has the maximum number of seats."""

    code = GameErrorCode.ROOM_FULL


class RoomIdCollisionError(GameRuleError):
    """No free room id could be generated."""

    code = GameErrorCode.ROOM_ID_COLLISION


class GameAlreadyStartedError(GameRuleError):
    """Game has already started."""

    code = GameErrorCode.GAME_ALREADY_STARTED


class NotHostError(GameRuleError):
    """Only the host can start the game."""

    code = GameErrorCode.NOT_HOST


class NotYourTurnError(GameRuleError):
    """It is not your turn."""

    code = GameErrorCode.NOT_YOUR_TURN


class CardNotInHandError(GameRuleError):
    """Card is not in your hand."""

    code = GameErrorCode.CARD_NOT_IN_HAND


class IllegalMoveError(GameRuleError):
    """Card cannot be played there."""

    code = GameErrorCode.ILLEGAL_MOVE


class PassLimitExceededError(GameRuleError):
    """You have already passed 3 times."""

    code = GameErrorCode.PASS_LIMIT_EXCEEDED


class HasLegalMoveError(GameRuleError):
    """You still have a playable card."""

    code = GameErrorCode.HAS_LEGAL_MOVE


class PassesRemainingError(GameRuleError):
    """You must use all of your passes before forfeiting."""

    code = GameErrorCode.PASSES_REMAINING


class UsernameTakenError(GameRuleError):
    """Username is already in use by a connected player."""

    code = GameErrorCode.USERNAME_TAKEN


class GameNotStartedError(GameRuleError):
    """Game is not in progress."""

    code = GameErrorCode.GAME_NOT_STARTED
