"""
Pydantic models for game data that crosses component boundaries.

Contains the client-facing views of cards, board cards, players and
placements, plus the full room snapshot sent on reconnection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sevens.logic.cards import BoardCard, Card
    from sevens.logic.state import Placement, Room


class CardView(BaseModel):
    id: str
    suit: str
    value: int


class PositionView(BaseModel):
    row: int
    col: int


class BoardCardView(CardView):
    position: PositionView
    isolated: bool
    forfeited: bool


class PlacementView(BaseModel):
    username: str
    place: int
    forfeited: bool


class PlayerInfo(BaseModel):
    """Public identity of a seat, sent in playersUpdate."""

    model_config = ConfigDict(populate_by_name=True)

    username: str
    is_host: bool = Field(serialization_alias="isHost")
    is_bot: bool = Field(serialization_alias="isBot")
    disconnected: bool


class RoomSnapshot(BaseModel):
    """Everything a reconnecting player needs to rebuild their view of a room."""

    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(serialization_alias="roomId")
    username: str
    players: list[PlayerInfo]
    game_started: bool = Field(serialization_alias="gameStarted")
    game_over: bool = Field(serialization_alias="gameOver")
    current_player: str | None = Field(serialization_alias="currentPlayer")
    hand: list[CardView]
    cards: list[BoardCardView]
    pass_counts: dict[str, int] = Field(serialization_alias="passCounts")
    hand_sizes: dict[str, int] = Field(serialization_alias="handSizes")
    player_positions: dict[str, int] = Field(serialization_alias="playerPositions")
    winners: list[str]
    results: list[PlacementView]


def card_view(card: Card) -> CardView:
    return CardView(id=card.id, suit=card.suit, value=card.value)


def hand_view(cards: Iterable[Card]) -> list[CardView]:
    return [card_view(card) for card in cards]


def board_view(board: Iterable[BoardCard]) -> list[BoardCardView]:
    return [
        BoardCardView(
            id=placed.card.id,
            suit=placed.card.suit,
            value=placed.card.value,
            position=PositionView(row=placed.position.row, col=placed.position.col),
            isolated=placed.isolated,
            forfeited=placed.forfeited,
        )
        for placed in board
    ]


def placement_views(placements: Iterable[Placement]) -> list[PlacementView]:
    return [PlacementView(username=p.username, place=p.place, forfeited=p.forfeited) for p in placements]


def player_infos(room: Room) -> list[PlayerInfo]:
    return [
        PlayerInfo(username=p.username, is_host=p.is_host, is_bot=p.is_bot, disconnected=p.disconnected)
        for p in room.players
    ]


def build_snapshot(room: Room, username: str) -> RoomSnapshot:
    """Build the full room state as seen by one player."""
    current = room.current_player
    return RoomSnapshot(
        room_id=room.room_id,
        username=username,
        players=player_infos(room),
        game_started=room.game_started,
        game_over=room.game_over,
        current_player=current.username if current is not None and not room.game_over else None,
        hand=hand_view(room.hands.get(username, [])),
        cards=board_view(room.board),
        pass_counts=dict(room.pass_counts),
        hand_sizes=room.hand_sizes(),
        player_positions=dict(room.player_positions),
        winners=list(room.winners),
        results=placement_views(room.placements),
    )
