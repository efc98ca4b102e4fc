"""
Bot decision making for Sevens.

Bots follow the same rules as humans: play a legal card if there is one,
otherwise pass while passes remain, otherwise forfeit. Strategies only
differ in which legal card they pick.
"""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from sevens.logic.cards import ANCHOR_VALUE, MAX_VALUE, MIN_VALUE, find_legal_moves
from sevens.logic.enums import GameAction
from sevens.logic.state import MAX_PASSES
from sevens.logic.turn import forfeit, pass_turn, play_card

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sevens.logic.cards import BoardCard, Card
    from sevens.logic.events import ServiceEvent
    from sevens.logic.state import Room

# heuristic weights
SCARCITY_WEIGHT = 1.0
DISTANCE_WEIGHT = 0.5
OPENING_PENALTY = 0.25


class BotStrategy(Enum):
    """Available bot strategies."""

    RANDOM = "random"  # uniform choice among legal cards
    HEURISTIC = "heuristic"  # scored choice, see score_card


@dataclass(frozen=True)
class BotDecision:
    action: GameAction
    card: Card | None = None


class BotPlayer:
    """
    Bot player with configurable card selection strategy.
    """

    def __init__(self, strategy: BotStrategy = BotStrategy.RANDOM, rng: random.Random | None = None) -> None:
        self.strategy = strategy
        self.rng = rng or random.Random()  # noqa: S311


def score_card(card: Card, hand: Sequence[Card]) -> float:
    """
    Score a legal card for the heuristic strategy. Higher is better.

    Favours the suit the bot holds fewest cards of (emptying a short suit
    early reduces the ways to get stuck), favours values far from 7, and
    slightly penalises a card whose outward neighbour the bot does not hold,
    since playing it opens that run for opponents.
    """
    suit_counts = Counter(c.suit for c in hand)
    scarcity = (len(hand) - suit_counts[card.suit]) / len(hand)
    distance = abs(card.value - ANCHOR_VALUE) / (MAX_VALUE - ANCHOR_VALUE)

    step = 1 if card.value > ANCHOR_VALUE else -1
    outward = card.value + step
    opens_run = MIN_VALUE <= outward <= MAX_VALUE and not any(
        c.suit == card.suit and c.value == outward for c in hand
    )
    return SCARCITY_WEIGHT * scarcity + DISTANCE_WEIGHT * distance - (OPENING_PENALTY if opens_run else 0.0)


def select_card(bot: BotPlayer, hand: Sequence[Card], board: Sequence[BoardCard]) -> Card | None:
    """
    Pick the card to play, or None when nothing is playable.
    """
    playable = find_legal_moves(hand, board)
    if not playable:
        return None
    if bot.strategy == BotStrategy.RANDOM:
        return bot.rng.choice(playable)

    scores = {card: score_card(card, hand) for card in playable}
    best = max(scores.values())
    return bot.rng.choice([card for card in playable if scores[card] == best])


def decide(bot: BotPlayer, room: Room, username: str) -> BotDecision:
    """Choose the bot's action for its current turn."""
    card = select_card(bot, room.hands.get(username, []), room.board)
    if card is not None:
        return BotDecision(action=GameAction.PLAY_CARD, card=card)
    if room.pass_counts.get(username, 0) < MAX_PASSES:
        return BotDecision(action=GameAction.PASS)
    return BotDecision(action=GameAction.FORFEIT)


def apply_decision(room: Room, username: str, decision: BotDecision) -> list[ServiceEvent]:
    """Run a bot decision through the same rule functions humans use."""
    if decision.action == GameAction.PLAY_CARD:
        if decision.card is None:
            raise ValueError("play decision without a card")
        return play_card(room, username, decision.card.id)
    if decision.action == GameAction.PASS:
        return pass_turn(room, username)
    return forfeit(room, username)
