"""Builders for rooms, boards and sessions used across the Sevens tests."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from sevens.logic.cards import SUITS, BoardCard, Card, parse_card_id, position_of, recompute_isolation
from sevens.logic.state import Room, RoomPlayer
from sevens.messaging.mock import MockConnection

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from sevens.session.manager import SessionManager


def cards(*card_ids: str) -> list[Card]:
    return [parse_card_id(card_id) for card_id in card_ids]


def anchor_board() -> list[BoardCard]:
    """The board as it looks right after the deal: the four 7s."""
    return [BoardCard(card=Card(suit, 7), position=position_of(Card(suit, 7))) for suit in SUITS]


def board_with(*card_ids: str, forfeited: Iterable[str] = ()) -> list[BoardCard]:
    """Anchors plus the given cards, with isolation flags refreshed."""
    board = anchor_board()
    forfeited = set(forfeited)
    for card in cards(*card_ids, *forfeited):
        board.append(BoardCard(card=card, position=position_of(card), forfeited=card.id in forfeited))
    recompute_isolation(board)
    return board


def create_room(
    usernames: Iterable[str] = ("Alice", "Bob"),
    *,
    hands: Mapping[str, Iterable[str]] | None = None,
    bots: Iterable[str] = (),
    disconnected: Iterable[str] = (),
    current: int = 0,
    board: list[BoardCard] | None = None,
    started: bool = True,
    room_id: str = "123",
) -> Room:
    """
    Build a room directly, bypassing the deal.

    The first human is the host. Unless ``started`` is False the room is
    mid-game with the given hands and the turn on seat ``current``.
    """
    bots = set(bots)
    disconnected = set(disconnected)
    hands = hands or {}
    players = []
    for name in usernames:
        is_bot = name in bots
        is_disconnected = name in disconnected
        connection_id = None if is_bot or is_disconnected else f"conn-{name}"
        players.append(
            RoomPlayer(username=name, connection_id=connection_id, is_bot=is_bot, disconnected=is_disconnected),
        )
    humans = [p for p in players if not p.is_bot]
    if humans:
        humans[0].is_host = True

    room = Room(room_id=room_id, players=players)
    if started:
        room.board = board if board is not None else anchor_board()
        room.hands = {p.username: cards(*hands.get(p.username, ())) for p in players}
        room.pass_counts = {p.username: 0 for p in players}
        room.current_player_index = current
        room.game_started = True
    return room


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll until the predicate holds, letting timers run in between."""

    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout=timeout)


async def create_lobby(manager: SessionManager, *usernames: str) -> tuple[str, list[MockConnection]]:
    """Create a room hosted by the first username and join the rest. Returns (room_id, connections)."""
    host, *guests = usernames
    host_conn = MockConnection()
    manager.register_connection(host_conn)
    await manager.create_room(host_conn, host)
    room_id = host_conn.last_message("roomCreated")["roomId"]

    connections = [host_conn]
    for name in guests:
        conn = MockConnection()
        manager.register_connection(conn)
        await manager.join_room(conn, name, room_id)
        connections.append(conn)
    return room_id, connections
