"""
Room state models for Sevens.

A Room is the aggregate root of a single table: its seated players, their
private hands, the shared board and the turn/scoring bookkeeping. All
mutation goes through sevens.logic.turn while the session layer holds the
room's lock.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sevens.logic.cards import BoardCard, Card
from sevens.logic.enums import RoomPhase

MAX_SEATS = 4
MAX_PASSES = 3


@dataclass
class RoomPlayer:
    """
    A seat at the table.

    connection_id is None for bots and for humans who are currently
    disconnected.
    """

    username: str
    connection_id: str | None = None
    is_host: bool = False
    is_bot: bool = False
    disconnected: bool = False

    @property
    def is_connected_human(self) -> bool:
        return not self.is_bot and not self.disconnected


@dataclass
class GameResult:
    """A player leaving play, either by emptying their hand or by forfeiting."""

    username: str
    forfeited: bool


@dataclass
class Placement:
    username: str
    place: int
    forfeited: bool


@dataclass
class Room:
    room_id: str
    players: list[RoomPlayer] = field(default_factory=list)  # seat order
    board: list[BoardCard] = field(default_factory=list)
    hands: dict[str, list[Card]] = field(default_factory=dict)
    pass_counts: dict[str, int] = field(default_factory=dict)
    current_player_index: int = 0
    game_started: bool = False
    game_over: bool = False
    winners: list[str] = field(default_factory=list)  # finish order
    game_results: list[GameResult] = field(default_factory=list)
    placements: list[Placement] = field(default_factory=list)
    player_positions: dict[str, int] = field(default_factory=dict)

    @property
    def phase(self) -> RoomPhase:
        if self.game_over:
            return RoomPhase.OVER
        if self.game_started:
            return RoomPhase.PLAYING
        return RoomPhase.LOBBY

    @property
    def is_full(self) -> bool:
        """Seats held by disconnected players do not count; they are released at game start."""
        return sum(1 for p in self.players if not p.disconnected) >= MAX_SEATS

    @property
    def current_player(self) -> RoomPlayer | None:
        if not self.game_started or not 0 <= self.current_player_index < len(self.players):
            return None
        return self.players[self.current_player_index]

    @property
    def host(self) -> RoomPlayer | None:
        return next((p for p in self.players if p.is_host), None)

    def get_player(self, username: str) -> RoomPlayer | None:
        return next((p for p in self.players if p.username == username), None)

    def index_of(self, username: str) -> int:
        for index, player in enumerate(self.players):
            if player.username == username:
                return index
        raise ValueError(f"player {username!r} is not seated in room {self.room_id}")

    def has_connected_humans(self) -> bool:
        return any(p.is_connected_human for p in self.players)

    def reassign_host(self) -> RoomPlayer | None:
        """
        Keep exactly one host among connected humans.

        The current host keeps the role while connected; otherwise it moves to
        the first connected human in seat order. Returns the new host when the
        role changed hands, None otherwise.
        """
        current = self.host
        if current is not None and current.is_connected_human:
            return None
        for player in self.players:
            player.is_host = False
        successor = next((p for p in self.players if p.is_connected_human), None)
        if successor is not None:
            successor.is_host = True
        return successor

    def remaining_players(self) -> list[RoomPlayer]:
        """Seated players who have neither finished nor forfeited."""
        return [p for p in self.players if p.username not in self.winners]

    def hand_sizes(self) -> dict[str, int]:
        return {p.username: len(self.hands.get(p.username, [])) for p in self.players}
