"""
Turn state machine for Sevens.

Every public function here mutates a Room in place and returns the
ServiceEvents describing the change. Validation always happens before the
first mutation, so a raised GameRuleError leaves the room untouched.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

import structlog

from sevens.logic.cards import (
    BoardCard,
    create_deck,
    deal_cards,
    find_legal_moves,
    find_position_for_card,
    position_of,
    recompute_isolation,
)
from sevens.logic.enums import RoomPhase
from sevens.logic.events import (
    GameOverEvent,
    GameStartedEvent,
    HandUpdateEvent,
    PassUpdateEvent,
    PlayerForfeitEvent,
    ServiceEvent,
    TurnUpdateEvent,
    broadcast,
    to_player,
)
from sevens.logic.exceptions import (
    CardNotInHandError,
    GameAlreadyStartedError,
    GameNotStartedError,
    HasLegalMoveError,
    IllegalMoveError,
    NotHostError,
    NotYourTurnError,
    PassesRemainingError,
    PassLimitExceededError,
)
from sevens.logic.state import MAX_PASSES, MAX_SEATS, GameResult, Placement, RoomPlayer
from sevens.logic.types import board_view, hand_view, placement_views

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from sevens.logic.cards import Position
    from sevens.logic.state import Room

logger = structlog.get_logger()

BOT_NAME_PREFIX = "Bot"


def _fill_with_bots(room: Room) -> list[str]:
    """Seat bots until the table is full, skipping names already taken."""
    added: list[str] = []
    number = 1
    while len(room.players) < MAX_SEATS:
        name = f"{BOT_NAME_PREFIX} {number}"
        number += 1
        if room.get_player(name) is not None:
            continue
        room.players.append(RoomPlayer(username=name, is_bot=True))
        added.append(name)
    return added


def _release_disconnected_seats(room: Room) -> list[str]:
    """Free lobby seats whose players are still inside their disconnect grace period."""
    dropped = [p.username for p in room.players if p.disconnected]
    room.players = [p for p in room.players if not p.disconnected]
    return dropped


def start_game(room: Room, username: str, rng: random.Random | None = None) -> list[ServiceEvent]:
    """
    Start a game in a lobby room on behalf of its host.

    Seats of players who dropped in the lobby are released, empty seats are
    filled with bots, a fresh deck is dealt, all per-game state is reset and
    a random connected player starts. Each seated player receives a
    gameStarted event carrying only their own hand.
    """
    if room.game_started:
        raise GameAlreadyStartedError
    player = room.get_player(username)
    if player is None or not player.is_host or player.disconnected:
        raise NotHostError

    rng = rng or random.Random()  # noqa: S311
    dropped = _release_disconnected_seats(room)
    bots = _fill_with_bots(room)

    deal = deal_cards(create_deck(), len(room.players), rng)
    room.board = deal.anchors
    recompute_isolation(room.board)
    room.hands = {p.username: list(hand) for p, hand in zip(room.players, deal.hands, strict=True)}
    room.pass_counts = {p.username: 0 for p in room.players}
    room.winners = []
    room.game_results = []
    room.placements = []
    room.game_over = False
    room.game_started = True

    num_players = len(room.players)
    room.current_player_index = rng.choice([i for i, p in enumerate(room.players) if not p.disconnected])
    # seat numbers shown to clients count from the starting player
    room.player_positions = {
        p.username: ((index - room.current_player_index) % num_players) + 1 for index, p in enumerate(room.players)
    }

    current = room.players[room.current_player_index].username
    logger.info(
        "game started",
        room_id=room.room_id,
        players=num_players,
        bots=bots,
        dropped=dropped,
        current_player=current,
    )

    cards = board_view(room.board)
    hand_sizes = room.hand_sizes()
    return [
        to_player(
            p.username,
            GameStartedEvent(
                current_player=current,
                hand=hand_view(room.hands[p.username]),
                cards=cards,
                player_positions=dict(room.player_positions),
                hand_sizes=hand_sizes,
            ),
        )
        for p in room.players
    ]


def _require_turn(room: Room, username: str) -> RoomPlayer:
    if room.phase is not RoomPhase.PLAYING:
        raise GameNotStartedError
    current = room.current_player
    if current is None or current.username != username or current.disconnected:
        raise NotYourTurnError
    return current


def play_card(room: Room, username: str, card_id: str, position: Position | None = None) -> list[ServiceEvent]:
    """
    Play one card from the current player's hand onto the board.

    The server computes the slot itself; a client-supplied position is only
    checked against it.
    """
    _require_turn(room, username)
    hand = room.hands[username]
    card = next((c for c in hand if c.id == card_id), None)
    if card is None:
        raise CardNotInHandError
    if not find_legal_moves([card], room.board):
        raise IllegalMoveError
    slot = position_of(card)
    if position is not None and position != slot:
        raise IllegalMoveError(f"{card.id} belongs at row {slot.row}, col {slot.col}")

    hand.remove(card)
    room.board.append(BoardCard(card=card, position=slot))
    recompute_isolation(room.board)
    logger.debug("card played", room_id=room.room_id, username=username, card=card.id)

    events = [to_player(username, HandUpdateEvent(hand=hand_view(hand)))]
    if not hand:
        _record_result(room, username, forfeited=False)
        logger.info("player finished", room_id=room.room_id, username=username, place=len(room.winners))
    events.extend(_finish_or_advance(room))
    return events


def pass_turn(room: Room, username: str) -> list[ServiceEvent]:
    """Skip a turn. Only allowed when stuck and while passes remain."""
    _require_turn(room, username)
    if room.pass_counts.get(username, 0) >= MAX_PASSES:
        raise PassLimitExceededError
    if find_legal_moves(room.hands[username], room.board):
        raise HasLegalMoveError

    room.pass_counts[username] = room.pass_counts.get(username, 0) + 1
    logger.debug("player passed", room_id=room.room_id, username=username, passes=room.pass_counts[username])

    events = [broadcast(PassUpdateEvent(player=username, pass_counts=dict(room.pass_counts)))]
    events.extend(advance_turn(room))
    return events


def forfeit(room: Room, username: str) -> list[ServiceEvent]:
    """Give up once no legal move and no pass remain."""
    _require_turn(room, username)
    if find_legal_moves(room.hands[username], room.board):
        raise HasLegalMoveError
    if room.pass_counts.get(username, 0) < MAX_PASSES:
        raise PassesRemainingError

    events = _forfeit_hand(room, username)
    events.extend(_finish_or_advance(room))
    return events


def force_forfeit(room: Room, username: str) -> list[ServiceEvent]:
    """
    Forfeit the current player without rule checks.

    Used when the player whose turn it is drops their connection, so the
    table does not wait on them.
    """
    if room.phase is not RoomPhase.PLAYING or username in room.winners:
        return []
    events = _forfeit_hand(room, username)
    events.extend(_finish_or_advance(room))
    return events


def _forfeit_hand(room: Room, username: str) -> list[ServiceEvent]:
    """Dump a player's hand onto the board and record the forfeit."""
    hand = room.hands.get(username, [])
    for card in hand:
        slot = find_position_for_card(card, room.board)
        if slot is None:
            continue
        room.board.append(BoardCard(card=card, position=slot, forfeited=True))
    recompute_isolation(room.board)
    placed = len(hand)
    room.hands[username] = []
    _record_result(room, username, forfeited=True)
    logger.info("player forfeited", room_id=room.room_id, username=username, cards_released=placed)

    return [
        to_player(username, HandUpdateEvent(hand=[])),
        broadcast(
            PlayerForfeitEvent(player=username, cards=board_view(room.board), hand_sizes=room.hand_sizes()),
        ),
    ]


def _record_result(room: Room, username: str, *, forfeited: bool) -> None:
    if username in room.winners:
        return
    room.winners.append(username)
    room.game_results.append(GameResult(username=username, forfeited=forfeited))


def _next_index(room: Room, eligible: Callable[[RoomPlayer], bool]) -> int | None:
    """Index of the next eligible player after the current one, wrapping around to it."""
    count = len(room.players)
    for step in range(1, count + 1):
        index = (room.current_player_index + step) % count
        if eligible(room.players[index]):
            return index
    return None


def advance_turn(room: Room) -> list[ServiceEvent]:
    """
    Move the turn to the next player still in play and connected.

    Ends the game when at most one player remains in play. If every player
    still in play is disconnected, the next of them is forfeited and the
    search continues.
    """
    events: list[ServiceEvent] = []
    while True:
        if len(room.remaining_players()) <= 1:
            events.extend(_end_game(room))
            return events

        next_index = _next_index(room, lambda p: p.username not in room.winners and not p.disconnected)
        if next_index is not None:
            room.current_player_index = next_index
            events.append(_turn_update(room))
            return events

        stalled = _next_index(room, lambda p: p.username not in room.winners)
        if stalled is None:  # pragma: no cover
            raise RuntimeError(f"room {room.room_id} has players in play but none can be found")
        room.current_player_index = stalled
        username = room.players[stalled].username
        logger.info("forfeiting disconnected player", room_id=room.room_id, username=username)
        events.extend(_forfeit_hand(room, username))


def _finish_or_advance(room: Room) -> list[ServiceEvent]:
    if len(room.remaining_players()) <= 1:
        return _end_game(room)
    return advance_turn(room)


def _turn_update(room: Room) -> ServiceEvent:
    return broadcast(
        TurnUpdateEvent(
            current_player=room.players[room.current_player_index].username,
            cards=board_view(room.board),
            hand_sizes=room.hand_sizes(),
        ),
    )


def _end_game(room: Room) -> list[ServiceEvent]:
    for player in room.remaining_players():
        _record_result(room, player.username, forfeited=False)
    room.game_over = True
    room.placements = compute_final_placements(room.game_results)
    logger.info("game over", room_id=room.room_id, winners=room.winners)
    return [broadcast(GameOverEvent(winners=list(room.winners), results=placement_views(room.placements)))]


def compute_final_placements(game_results: Iterable[GameResult]) -> list[Placement]:
    """
    Rank players from their results.

    Regular finishers come first, in the order they finished. Forfeiters
    follow, with the earliest forfeiter ranked last.
    """
    results = list(game_results)
    finished = [r for r in results if not r.forfeited]
    forfeited = [r for r in results if r.forfeited]
    ordered = finished + forfeited[::-1]
    return [Placement(username=r.username, place=place, forfeited=r.forfeited) for place, r in enumerate(ordered, 1)]


def remove_player(room: Room, username: str) -> list[ServiceEvent]:
    """
    Take a player out of the room for good.

    During a game their hand is released onto the board as a forfeit and the
    turn pointer is repaired; the game may end as a result. In the lobby or
    after the game only the seat is freed. Host status is reassigned.
    """
    index = room.index_of(username)
    in_game = room.phase is RoomPhase.PLAYING
    events: list[ServiceEvent] = []

    if in_game and username not in room.winners:
        events.extend(_forfeit_hand(room, username))

    was_current = index == room.current_player_index
    room.players.pop(index)
    room.hands.pop(username, None)
    room.pass_counts.pop(username, None)
    room.player_positions.pop(username, None)
    room.reassign_host()

    if not room.players:
        return events
    if index < room.current_player_index:
        room.current_player_index -= 1
    room.current_player_index %= len(room.players)

    if not in_game:
        return events

    if len(room.remaining_players()) <= 1:
        events.extend(_end_game(room))
    elif was_current:
        # step back so the search starts at whoever inherited the removed seat
        room.current_player_index = (index - 1) % len(room.players)
        events.extend(advance_turn(room))
    else:
        events.append(_turn_update(room))
    return events


def current_bot(room: Room) -> RoomPlayer | None:
    """Return the current player if it is a bot in a running game."""
    if room.phase is not RoomPhase.PLAYING:
        return None
    current = room.current_player
    if current is None or not current.is_bot:
        return None
    return current
