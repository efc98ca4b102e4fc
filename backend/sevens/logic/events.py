"""Domain event models and service event transport container.

Rule functions in sevens.logic.turn return lists of ServiceEvent. Each one
pairs a domain event with a typed routing target: the whole room or a single
player (for private hand data). The session layer turns them into wire
messages with model_dump(by_alias=True) and delivers them to connected
human players only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from sevens.logic.types import BoardCardView, CardView, PlacementView  # noqa: TC001

# ---------------------------------------------------------------------------
# Typed routing targets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BroadcastTarget:
    """Event should be sent to every player in the room."""


@dataclass(frozen=True)
class PlayerTarget:
    """Event should be sent to a single player."""

    username: str


EventTarget = BroadcastTarget | PlayerTarget


# ---------------------------------------------------------------------------
# Event type enum
# ---------------------------------------------------------------------------


class EventType(StrEnum):
    """Types of game events. Values are the wire message names."""

    GAME_STARTED = "gameStarted"
    TURN_UPDATE = "turnUpdate"
    HAND_UPDATE = "handUpdate"
    PASS_UPDATE = "passUpdate"
    PLAYER_FORFEIT = "playerForfeit"
    GAME_OVER = "gameOver"


# ---------------------------------------------------------------------------
# Domain event models
# ---------------------------------------------------------------------------


class GameEvent(BaseModel):
    """Base class for all domain game events."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: EventType


class GameStartedEvent(GameEvent):
    """Sent to each player at game start with that player's own hand."""

    type: Literal[EventType.GAME_STARTED] = EventType.GAME_STARTED
    current_player: str = Field(serialization_alias="currentPlayer")
    hand: list[CardView]
    cards: list[BoardCardView]
    player_positions: dict[str, int] = Field(serialization_alias="playerPositions")
    hand_sizes: dict[str, int] = Field(serialization_alias="handSizes")


class TurnUpdateEvent(GameEvent):
    """Broadcast after every completed turn."""

    type: Literal[EventType.TURN_UPDATE] = EventType.TURN_UPDATE
    current_player: str = Field(serialization_alias="currentPlayer")
    cards: list[BoardCardView]
    hand_sizes: dict[str, int] = Field(serialization_alias="handSizes")


class HandUpdateEvent(GameEvent):
    """Sent privately to a player whose hand changed."""

    type: Literal[EventType.HAND_UPDATE] = EventType.HAND_UPDATE
    hand: list[CardView]


class PassUpdateEvent(GameEvent):
    type: Literal[EventType.PASS_UPDATE] = EventType.PASS_UPDATE
    player: str
    pass_counts: dict[str, int] = Field(serialization_alias="passCounts")


class PlayerForfeitEvent(GameEvent):
    """Broadcast when a player's remaining hand is dumped onto the board."""

    type: Literal[EventType.PLAYER_FORFEIT] = EventType.PLAYER_FORFEIT
    player: str
    cards: list[BoardCardView]
    hand_sizes: dict[str, int] = Field(serialization_alias="handSizes")


class GameOverEvent(GameEvent):
    type: Literal[EventType.GAME_OVER] = EventType.GAME_OVER
    winners: list[str]
    results: list[PlacementView]


GameEventUnion = (
    GameStartedEvent | TurnUpdateEvent | HandUpdateEvent | PassUpdateEvent | PlayerForfeitEvent | GameOverEvent
)


@dataclass(frozen=True)
class ServiceEvent:
    """A domain event paired with its routing target."""

    event: GameEventUnion
    target: EventTarget

    @property
    def type(self) -> EventType:
        return self.event.type

    def to_message(self) -> dict[str, object]:
        return self.event.model_dump(by_alias=True, mode="json")


def broadcast(event: GameEventUnion) -> ServiceEvent:
    return ServiceEvent(event=event, target=BroadcastTarget())


def to_player(username: str, event: GameEventUnion) -> ServiceEvent:
    return ServiceEvent(event=event, target=PlayerTarget(username=username))
