"""
Card representation and board legality for Sevens.

A standard 52-card deck is used. The four 7s are fixed anchors in the middle
of the board, one row per suit. Every other card has exactly one board slot:
its row is the suit index and its column is the card's own value, so a card
can only ever be placed in one position regardless of play order.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

# suit order doubles as the board row index
SUITS = ("c", "d", "h", "s")
MIN_VALUE = 1
MAX_VALUE = 13
ANCHOR_VALUE = 7
DECK_SIZE = len(SUITS) * MAX_VALUE

MIN_PLAYERS = 2
MAX_PLAYERS = 4


@dataclass(frozen=True)
class Card:
    suit: str
    value: int

    def __post_init__(self) -> None:
        if self.suit not in SUITS:
            raise ValueError(f"suit must be one of {SUITS}, got {self.suit!r}")
        if not MIN_VALUE <= self.value <= MAX_VALUE:
            raise ValueError(f"value must be in [{MIN_VALUE}, {MAX_VALUE}], got {self.value}")

    @property
    def id(self) -> str:
        return f"{self.suit}{self.value:02d}"

    @property
    def is_anchor(self) -> bool:
        return self.value == ANCHOR_VALUE


@dataclass(frozen=True)
class Position:
    row: int
    col: int


@dataclass
class BoardCard:
    """
    A card placed on the board.

    `isolated` is derived from the rest of the board and refreshed by
    recompute_isolation() whenever a card is added.
    """

    card: Card
    position: Position
    isolated: bool = False
    forfeited: bool = False  # placed by a forced discard, not a legal play


@dataclass
class Deal:
    """Result of dealing a deck to a number of players."""

    anchors: list[BoardCard]
    hands: list[list[Card]]
    dropped: list[Card] = field(default_factory=list)  # remainder dealt to nobody


def parse_card_id(card_id: str) -> Card:
    """
    Parse a card id such as "c07" into a Card.

    Raises ValueError for anything that is not a suit letter followed by a
    two-digit value.
    """
    if len(card_id) != 3 or not card_id[1:].isdigit():  # noqa: PLR2004
        raise ValueError(f"malformed card id: {card_id!r}")
    return Card(suit=card_id[0], value=int(card_id[1:]))


def create_deck() -> list[Card]:
    """Return the 52 canonical cards, suit-major in ascending value."""
    return [Card(suit, value) for suit in SUITS for value in range(MIN_VALUE, MAX_VALUE + 1)]


def shuffle_deck(deck: Sequence[Card], rng: random.Random | None = None) -> list[Card]:
    """
    Return a uniformly shuffled copy of the deck (Fisher-Yates).
    """
    rng = rng or random.Random()  # noqa: S311
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def deal_cards(deck: Sequence[Card], num_players: int, rng: random.Random | None = None) -> Deal:
    """
    Split a deck into board anchors and player hands.

    The four 7s become anchors. The remaining cards are shuffled and cut into
    num_players contiguous shares of equal size; cards left over after integer
    division are not dealt.
    """
    if not MIN_PLAYERS <= num_players <= MAX_PLAYERS:
        raise ValueError(f"num_players must be in [{MIN_PLAYERS}, {MAX_PLAYERS}], got {num_players}")

    anchors = [BoardCard(card=card, position=position_of(card)) for card in deck if card.is_anchor]
    rest = shuffle_deck([card for card in deck if not card.is_anchor], rng)

    per_player = len(rest) // num_players
    hands = [rest[i * per_player : (i + 1) * per_player] for i in range(num_players)]
    dropped = rest[per_player * num_players :]
    return Deal(anchors=anchors, hands=hands, dropped=dropped)


def is_adjacent(a: Card, b: Card) -> bool:
    return a.suit == b.suit and abs(a.value - b.value) == 1


def position_of(card: Card) -> Position:
    return Position(row=SUITS.index(card.suit), col=card.value)


def is_occupied(board: Iterable[BoardCard], position: Position) -> bool:
    return any(placed.position == position for placed in board)


def is_isolated(card: Card, board: Iterable[BoardCard]) -> bool:
    """
    Check whether a placed card is cut off from its suit's 7.

    Walks from the card toward 7 one value at a time; any missing value on
    the way (7 included) means the card is isolated. Anchors never are.
    """
    if card.is_anchor:
        return False
    values = {placed.card.value for placed in board if placed.card.suit == card.suit}
    step = 1 if card.value < ANCHOR_VALUE else -1
    return any(value not in values for value in range(card.value + step, ANCHOR_VALUE + step, step))


def recompute_isolation(board: list[BoardCard]) -> None:
    """Refresh the isolated flag of every card on the board."""
    for placed in board:
        placed.isolated = is_isolated(placed.card, board)


def find_legal_moves(hand: Iterable[Card], board: Sequence[BoardCard]) -> list[Card]:
    """
    Return the hand cards that can legally be played on the board.

    A card is playable when it sits next to a non-isolated board card of the
    same suit and its own slot is still free. Isolated board cards cannot be
    extended.
    """
    connected = [placed.card for placed in board if not is_isolated(placed.card, board)]
    return [
        card
        for card in hand
        if any(is_adjacent(card, other) for other in connected) and not is_occupied(board, position_of(card))
    ]


def find_position_for_card(card: Card, board: Iterable[BoardCard]) -> Position | None:
    """Return the card's slot if it is free, None otherwise."""
    position = position_of(card)
    if is_occupied(board, position):
        return None
    return position
