from __future__ import annotations

import asyncio
import contextlib
import random
from typing import TYPE_CHECKING, Any

import structlog

from sevens.logic import turn
from sevens.logic.bot import BotPlayer, BotStrategy, apply_decision, decide
from sevens.logic.cards import Position
from sevens.logic.enums import GameAction, RoomPhase, TimeoutType
from sevens.logic.events import BroadcastTarget, PlayerTarget
from sevens.logic.exceptions import (
    GameAlreadyStartedError,
    RoomFullError,
    RoomNotFoundError,
    UsernameTakenError,
)
from sevens.logic.state import RoomPlayer
from sevens.logic.types import build_snapshot, player_infos
from sevens.messaging.types import (
    MAX_USERNAME_LENGTH,
    ErrorMessage,
    PlayerDisconnectedMessage,
    PlayerLeftMessage,
    PlayerReconnectedMessage,
    PlayersUpdateMessage,
    PongMessage,
    RoomCreatedMessage,
    RoomJoinedMessage,
    RoomSnapshotMessage,
    SessionErrorCode,
    to_wire,
)
from sevens.session.broadcast import broadcast_to_players
from sevens.session.models import Player
from sevens.session.room_registry import RoomRegistry
from sevens.session.timer_manager import TimerManager

if TYPE_CHECKING:
    from sevens.logic.events import ServiceEvent
    from sevens.logic.state import Room
    from sevens.messaging.protocol import ConnectionProtocol

logger = structlog.get_logger()

DEFAULT_BOT_DELAY_SECONDS = 1.5
DEFAULT_DISCONNECT_GRACE_SECONDS = 30.0
DEFAULT_ROOM_DELETION_SECONDS = 5.0
DEFAULT_MAX_ROOMS = 500


class SessionManager:
    """
    Own every connection, room and timer of the server.

    Each room is guarded by its own asyncio.Lock: every read-then-write of a
    room, and the broadcast of what changed, happens while holding it.
    Rule violations surface as GameRuleError and propagate to the caller
    (MessageRouter), which reports them to the offending connection only.
    """

    def __init__(
        self,
        *,
        bot_delay_seconds: float = DEFAULT_BOT_DELAY_SECONDS,
        disconnect_grace_seconds: float = DEFAULT_DISCONNECT_GRACE_SECONDS,
        room_deletion_seconds: float = DEFAULT_ROOM_DELETION_SECONDS,
        max_rooms: int = DEFAULT_MAX_ROOMS,
        bot_strategy: BotStrategy = BotStrategy.RANDOM,
        rng: random.Random | None = None,
    ) -> None:
        self._bot_delay_seconds = bot_delay_seconds
        self._disconnect_grace_seconds = disconnect_grace_seconds
        self._room_deletion_seconds = room_deletion_seconds
        self._max_rooms = max_rooms
        self._rng = rng or random.Random()  # noqa: S311
        self._connections: dict[str, ConnectionProtocol] = {}
        self._players: dict[str, Player] = {}  # connection_id -> Player
        self._registry = RoomRegistry(rng=self._rng)
        self._timer_manager = TimerManager(on_timeout=self._handle_timeout)
        self._bot = BotPlayer(strategy=bot_strategy, rng=self._rng)

    def register_connection(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection

    def unregister_connection(self, connection: ConnectionProtocol) -> None:
        self._connections.pop(connection.connection_id, None)
        self._players.pop(connection.connection_id, None)

    def get_room(self, room_id: str) -> Room | None:
        return self._registry.get(room_id)

    def get_player(self, connection_id: str) -> Player | None:
        return self._players.get(connection_id)

    @property
    def room_count(self) -> int:
        return len(self._registry)

    @property
    def active_game_count(self) -> int:
        return sum(1 for room in self._registry.rooms() if room.phase is RoomPhase.PLAYING)

    def cancel_all_timers(self) -> None:
        self._timer_manager.cancel_all()

    async def _send_error(self, connection: ConnectionProtocol, code: SessionErrorCode, message: str) -> None:
        with contextlib.suppress(RuntimeError, OSError, ConnectionError):
            await connection.send_message(to_wire(ErrorMessage(code=code, message=message)))

    # --- Delivery ---

    def _room_players(self, room: Room) -> list[Player]:
        """Connected human players of a room."""
        return [
            self._players[seat.connection_id]
            for seat in room.players
            if seat.connection_id is not None and seat.connection_id in self._players
        ]

    async def _broadcast(self, room: Room, message: dict[str, Any], exclude_connection_id: str | None = None) -> None:
        await broadcast_to_players(self._room_players(room), message, exclude_connection_id)

    async def _send_to_seat(self, room: Room, username: str, message: dict[str, Any]) -> None:
        seat = room.get_player(username)
        if seat is None or seat.connection_id is None:
            return
        player = self._players.get(seat.connection_id)
        if player is None:
            return
        with contextlib.suppress(RuntimeError, OSError, ConnectionError):
            await player.connection.send_message(message)

    async def _broadcast_players_update(self, room: Room) -> None:
        await self._broadcast(room, to_wire(PlayersUpdateMessage(players=player_infos(room))))

    async def _process_events(self, room: Room, events: list[ServiceEvent]) -> None:
        """Deliver events from the rule layer, then schedule the next bot move if any."""
        for event in events:
            message = event.to_message()
            if isinstance(event.target, BroadcastTarget):
                await self._broadcast(room, message)
            elif isinstance(event.target, PlayerTarget):
                await self._send_to_seat(room, event.target.username, message)
        self._schedule_bot(room)

    def _schedule_bot(self, room: Room) -> None:
        bot = turn.current_bot(room)
        if bot is not None:
            self._timer_manager.start_bot_timer(room.room_id, bot.username, self._bot_delay_seconds)
        else:
            self._timer_manager.cancel_bot_timer(room.room_id)

    # --- Room membership ---

    async def create_room(self, connection: ConnectionProtocol, username: str) -> None:
        if connection.connection_id in self._players:
            await self._send_error(connection, SessionErrorCode.ALREADY_IN_ROOM, "You are already in a room")
            return
        if len(self._registry) >= self._max_rooms:
            await self._send_error(connection, SessionErrorCode.SERVER_FULL, "No rooms available")
            return

        room = self._registry.create(username, connection.connection_id)
        self._players[connection.connection_id] = Player(connection=connection, username=username, room_id=room.room_id)
        structlog.contextvars.bind_contextvars(room_id=room.room_id, username=username)
        logger.info("room created")

        await connection.send_message(to_wire(RoomCreatedMessage(room_id=room.room_id)))
        await connection.send_message(to_wire(RoomJoinedMessage(room_id=room.room_id, username=username)))
        await self._broadcast_players_update(room)

    @staticmethod
    def _unique_username(room: Room, username: str) -> str:
        """Suffix a taken name as "Alice (2)", trimming it so the result still fits the name limit."""
        if room.get_player(username) is None:
            return username
        suffix = 2
        while True:
            tag = f" ({suffix})"
            candidate = username[: MAX_USERNAME_LENGTH - len(tag)].rstrip() + tag
            if room.get_player(candidate) is None:
                return candidate
            suffix += 1

    def _locked_room(self, room_id: str) -> tuple[Room, asyncio.Lock]:
        room = self._registry.get(room_id)
        lock = self._registry.lock_for(room_id)
        if room is None or lock is None:
            raise RoomNotFoundError(f"room {room_id} does not exist")
        return room, lock

    def _ensure_live(self, room: Room) -> None:
        """Re-check after acquiring the lock: the room may have been deleted while we waited."""
        if self._registry.get(room.room_id) is not room:
            raise RoomNotFoundError(f"room {room.room_id} does not exist")

    async def join_room(self, connection: ConnectionProtocol, username: str, room_id: str) -> None:
        """
        Seat a connection in an existing room.

        A name matching a disconnected player in the room is treated as that
        player reconnecting, which is allowed in any phase. Otherwise joining
        is only possible in the lobby, and a name already in use gets a
        numeric suffix.
        """
        if connection.connection_id in self._players:
            await self._send_error(connection, SessionErrorCode.ALREADY_IN_ROOM, "You are already in a room")
            return

        room, lock = self._locked_room(room_id)
        structlog.contextvars.bind_contextvars(room_id=room_id, username=username)
        async with lock:
            self._ensure_live(room)
            existing = room.get_player(username)
            if existing is not None and existing.disconnected and not existing.is_bot:
                await self._restore_player(room, existing, connection)
                return
            await self._seat_new_player(room, connection, username)

    async def _seat_new_player(self, room: Room, connection: ConnectionProtocol, username: str) -> None:
        if room.game_started:
            raise GameAlreadyStartedError
        if room.is_full:
            raise RoomFullError

        seated_as = self._unique_username(room, username)
        room.players.append(RoomPlayer(username=seated_as, connection_id=connection.connection_id))
        room.reassign_host()
        self._players[connection.connection_id] = Player(connection=connection, username=seated_as, room_id=room.room_id)
        self._timer_manager.cancel_deletion_timer(room.room_id)
        logger.info("player joined room", seated_as=seated_as, seats=len(room.players))

        await connection.send_message(to_wire(RoomJoinedMessage(room_id=room.room_id, username=seated_as)))
        await self._broadcast_players_update(room)

    async def reconnect(self, connection: ConnectionProtocol, username: str, room_id: str) -> None:
        """
        Re-attach a connection to the seat of a disconnected player.

        Fails with UsernameTakenError while that player is still connected. A
        name with no seat in the room is handled like a regular join.
        """
        if connection.connection_id in self._players:
            await self._send_error(connection, SessionErrorCode.ALREADY_IN_ROOM, "You are already in a room")
            return

        room, lock = self._locked_room(room_id)
        structlog.contextvars.bind_contextvars(room_id=room_id, username=username)
        async with lock:
            self._ensure_live(room)
            existing = room.get_player(username)
            if existing is None or existing.is_bot:
                await self._seat_new_player(room, connection, username)
                return
            if not existing.disconnected:
                raise UsernameTakenError
            await self._restore_player(room, existing, connection)

    async def _restore_player(self, room: Room, seat: RoomPlayer, connection: ConnectionProtocol) -> None:
        if room.phase is RoomPhase.LOBBY and room.is_full:
            raise RoomFullError
        seat.connection_id = connection.connection_id
        seat.disconnected = False
        self._players[connection.connection_id] = Player(
            connection=connection,
            username=seat.username,
            room_id=room.room_id,
        )
        self._timer_manager.cancel_grace_timer(room.room_id, seat.username)
        self._timer_manager.cancel_deletion_timer(room.room_id)
        room.reassign_host()
        logger.info("player reconnected", phase=room.phase)

        snapshot = build_snapshot(room, seat.username)
        await connection.send_message(to_wire(RoomJoinedMessage(room_id=room.room_id, username=seat.username)))
        await connection.send_message(to_wire(RoomSnapshotMessage(**dict(snapshot))))
        await self._broadcast(
            room,
            to_wire(PlayerReconnectedMessage(username=seat.username)),
            exclude_connection_id=connection.connection_id,
        )
        await self._broadcast_players_update(room)

    async def leave_room(self, connection: ConnectionProtocol, room_id: str | None = None) -> None:
        """Explicit leave: the player is removed from the room immediately."""
        player = self._players.get(connection.connection_id)
        if player is None or (room_id is not None and player.room_id != room_id):
            await self._send_error(connection, SessionErrorCode.NOT_IN_ROOM, "You are not in this room")
            return

        self._players.pop(connection.connection_id, None)
        room = self._registry.get(player.room_id)
        lock = self._registry.lock_for(player.room_id)
        if room is None or lock is None:
            return

        structlog.contextvars.bind_contextvars(room_id=room.room_id, username=player.username)
        async with lock:
            if self._registry.get(room.room_id) is not room:
                return
            logger.info("player left room")
            await self._remove_player(room, player.username)

    async def disconnect(self, connection: ConnectionProtocol) -> None:
        """
        Handle a dropped connection.

        The seat is kept for the grace period so the player can reconnect by
        name. If it was their turn they are forfeited immediately so the game
        does not wait on them.
        """
        player = self._players.pop(connection.connection_id, None)
        if player is None:
            return
        room = self._registry.get(player.room_id)
        lock = self._registry.lock_for(player.room_id)
        if room is None or lock is None:
            return

        structlog.contextvars.bind_contextvars(room_id=room.room_id, username=player.username)
        async with lock:
            seat = room.get_player(player.username)
            if self._registry.get(room.room_id) is not room or seat is None:
                return
            if seat.connection_id != connection.connection_id:
                return

            was_current = room.phase is RoomPhase.PLAYING and room.current_player is seat
            seat.disconnected = True
            seat.connection_id = None
            room.reassign_host()
            events = turn.force_forfeit(room, seat.username) if was_current else []
            self._timer_manager.start_grace_timer(room.room_id, seat.username, self._disconnect_grace_seconds)
            logger.info("player disconnected", forfeited=was_current, grace_seconds=self._disconnect_grace_seconds)

            await self._broadcast(room, to_wire(PlayerDisconnectedMessage(username=seat.username)))
            await self._broadcast_players_update(room)
            await self._process_events(room, events)
            self._check_abandoned(room)

    async def _remove_player(self, room: Room, username: str) -> None:
        """Hard removal of a seat. Caller holds the room lock."""
        events = turn.remove_player(room, username)
        self._timer_manager.cancel_grace_timer(room.room_id, username)

        if not room.players:
            self._delete_room(room.room_id)
            return

        await self._broadcast(room, to_wire(PlayerLeftMessage(username=username)))
        await self._broadcast_players_update(room)
        await self._process_events(room, events)
        self._check_abandoned(room)

    def _check_abandoned(self, room: Room) -> None:
        if not room.has_connected_humans():
            self._timer_manager.start_deletion_timer(room.room_id, self._room_deletion_seconds)

    def _delete_room(self, room_id: str) -> None:
        self._timer_manager.cleanup_room(room_id)
        self._registry.remove(room_id)
        for connection_id in [cid for cid, p in self._players.items() if p.room_id == room_id]:
            self._players.pop(connection_id, None)
        logger.info("room deleted", room_id=room_id, rooms=len(self._registry))

    # --- Game commands ---

    async def _require_member(self, connection: ConnectionProtocol, room_id: str) -> Player | None:
        player = self._players.get(connection.connection_id)
        if player is None or player.room_id != room_id:
            await self._send_error(connection, SessionErrorCode.NOT_IN_ROOM, "You are not in this room")
            return None
        structlog.contextvars.bind_contextvars(room_id=room_id, username=player.username)
        return player

    async def start_game(self, connection: ConnectionProtocol, room_id: str) -> None:
        player = await self._require_member(connection, room_id)
        if player is None:
            return
        room, lock = self._locked_room(room_id)
        async with lock:
            self._ensure_live(room)
            dropped = [p.username for p in room.players if p.disconnected]
            events = turn.start_game(room, player.username, self._rng)
            for username in dropped:
                self._timer_manager.cancel_grace_timer(room_id, username)
                await self._broadcast(room, to_wire(PlayerLeftMessage(username=username)))
            await self._broadcast_players_update(room)
            await self._process_events(room, events)

    async def handle_game_action(
        self,
        connection: ConnectionProtocol,
        room_id: str,
        action: GameAction,
        data: dict[str, Any] | None = None,
    ) -> None:
        player = await self._require_member(connection, room_id)
        if player is None:
            return
        room, lock = self._locked_room(room_id)
        async with lock:
            self._ensure_live(room)
            if action == GameAction.PLAY_CARD:
                data = data or {}
                position = data.get("position")
                events = turn.play_card(
                    room,
                    player.username,
                    data["card"],
                    Position(row=position["row"], col=position["col"]) if position else None,
                )
            elif action == GameAction.PASS:
                events = turn.pass_turn(room, player.username)
            else:
                events = turn.forfeit(room, player.username)
            await self._process_events(room, events)

    async def handle_ping(self, connection: ConnectionProtocol) -> None:
        await connection.send_message(to_wire(PongMessage()))

    async def close_room_on_error(self, connection: ConnectionProtocol) -> None:
        """Tear down the room of a connection after an unexpected failure."""
        player = self._players.get(connection.connection_id)
        if player is None:
            return
        room = self._registry.get(player.room_id)
        if room is None:
            return
        await self._fail_room(room)

    async def _fail_room(self, room: Room) -> None:
        logger.error("closing room after internal error", room_id=room.room_id)
        message = to_wire(ErrorMessage(code=SessionErrorCode.INTERNAL_ERROR, message="Room closed after an error"))
        await self._broadcast(room, message)
        self._delete_room(room.room_id)

    # --- Timers ---

    async def _handle_timeout(self, room_id: str, timeout_type: TimeoutType, username: str | None) -> None:
        room = self._registry.get(room_id)
        lock = self._registry.lock_for(room_id)
        if room is None or lock is None:
            return

        structlog.contextvars.bind_contextvars(room_id=room_id, username=username)
        async with lock:
            if self._registry.get(room_id) is not room:
                return
            try:
                if timeout_type == TimeoutType.BOT_MOVE and username is not None:
                    await self._run_bot_turn(room, username)
                elif timeout_type == TimeoutType.DISCONNECT_GRACE and username is not None:
                    await self._expire_grace(room, username)
                elif timeout_type == TimeoutType.ROOM_DELETION:
                    self._delete_if_abandoned(room)
            except Exception:
                logger.exception("timer handling failed", timeout_type=timeout_type)
                await self._fail_room(room)

    async def _run_bot_turn(self, room: Room, username: str) -> None:
        bot = turn.current_bot(room)
        if bot is None or bot.username != username:
            logger.debug("stale bot timer ignored")
            return
        decision = decide(self._bot, room, username)
        logger.debug("bot move", action=decision.action, card=decision.card.id if decision.card else None)
        events = apply_decision(room, username, decision)
        await self._process_events(room, events)

    async def _expire_grace(self, room: Room, username: str) -> None:
        seat = room.get_player(username)
        if seat is None or not seat.disconnected:
            return
        logger.info("disconnect grace expired, removing player")
        await self._remove_player(room, username)

    def _delete_if_abandoned(self, room: Room) -> None:
        if room.has_connected_humans():
            return
        self._delete_room(room.room_id)
