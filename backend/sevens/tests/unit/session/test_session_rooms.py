import asyncio

import pytest

from sevens.logic.exceptions import GameAlreadyStartedError, RoomFullError, RoomNotFoundError, UsernameTakenError
from sevens.messaging.mock import MockConnection
from sevens.messaging.types import MAX_USERNAME_LENGTH, SessionErrorCode, SessionMessageType
from sevens.session.manager import SessionManager
from sevens.tests.helpers import create_lobby


class TestCreateRoom:
    async def test_creator_becomes_host(self, manager):
        conn = MockConnection()
        manager.register_connection(conn)

        await manager.create_room(conn, "Alice")

        types = [m["type"] for m in conn.sent_messages]
        assert types == [
            SessionMessageType.ROOM_CREATED,
            SessionMessageType.ROOM_JOINED,
            SessionMessageType.PLAYERS_UPDATE,
        ]
        room_id = conn.sent_messages[0]["roomId"]
        assert manager.room_count == 1
        players = conn.last_message(SessionMessageType.PLAYERS_UPDATE)["players"]
        assert players == [{"username": "Alice", "isHost": True, "isBot": False, "disconnected": False}]
        assert manager.get_player(conn.connection_id).room_id == room_id

    async def test_one_room_per_connection(self, manager):
        conn = MockConnection()
        await manager.create_room(conn, "Alice")
        conn.clear()

        await manager.create_room(conn, "Alice")

        error = conn.last_message(SessionMessageType.ERROR)
        assert error["code"] == SessionErrorCode.ALREADY_IN_ROOM
        assert manager.room_count == 1

    async def test_server_full(self):
        manager = SessionManager(max_rooms=1)
        await manager.create_room(MockConnection(), "Alice")
        conn = MockConnection()

        await manager.create_room(conn, "Bob")

        assert conn.last_message(SessionMessageType.ERROR)["code"] == SessionErrorCode.SERVER_FULL
        assert manager.room_count == 1


class TestJoinRoom:
    async def test_join_notifies_everyone(self, manager):
        room_id, (alice, bob) = await create_lobby(manager, "Alice", "Bob")

        joined = bob.last_message(SessionMessageType.ROOM_JOINED)
        assert joined == {"type": "roomJoined", "roomId": room_id, "username": "Bob"}
        for conn in (alice, bob):
            players = conn.last_message(SessionMessageType.PLAYERS_UPDATE)["players"]
            assert [p["username"] for p in players] == ["Alice", "Bob"]

    async def test_unknown_room(self, manager):
        with pytest.raises(RoomNotFoundError):
            await manager.join_room(MockConnection(), "Bob", "999")

    async def test_duplicate_names_get_a_suffix(self, manager):
        room_id, (_, second, third) = await create_lobby(manager, "Alice", "Alice", "Alice")

        assert second.last_message(SessionMessageType.ROOM_JOINED)["username"] == "Alice (2)"
        assert third.last_message(SessionMessageType.ROOM_JOINED)["username"] == "Alice (3)"
        room = manager.get_room(room_id)
        assert [p.username for p in room.players] == ["Alice", "Alice (2)", "Alice (3)"]

    async def test_room_holds_four(self, manager):
        room_id, _ = await create_lobby(manager, "A", "B", "C", "D")
        with pytest.raises(RoomFullError):
            await manager.join_room(MockConnection(), "E", room_id)

    async def test_cannot_join_running_game(self, slow_manager):
        room_id, (alice,) = await create_lobby(slow_manager, "Alice")
        await slow_manager.start_game(alice, room_id)
        with pytest.raises(GameAlreadyStartedError):
            await slow_manager.join_room(MockConnection(), "Bob", room_id)

    async def test_dropped_lobby_seat_does_not_block_newcomers(self, slow_manager):
        room_id, (*_, dave) = await create_lobby(slow_manager, "A", "B", "C", "D")
        await slow_manager.disconnect(dave)
        eve = MockConnection()

        await slow_manager.join_room(eve, "E", room_id)

        assert eve.last_message(SessionMessageType.ROOM_JOINED)["username"] == "E"
        with pytest.raises(RoomFullError):
            await slow_manager.reconnect(MockConnection(), "D", room_id)
        assert slow_manager.get_room(room_id).get_player("D").disconnected

    async def test_suffixed_names_stay_within_the_name_limit(self, manager):
        long_name = "x" * MAX_USERNAME_LENGTH
        room_id, (_, second, third) = await create_lobby(manager, long_name, long_name, long_name)

        seated = [conn.last_message(SessionMessageType.ROOM_JOINED)["username"] for conn in (second, third)]
        assert seated == ["x" * 20 + " (2)", "x" * 20 + " (3)"]
        assert all(len(name) == MAX_USERNAME_LENGTH for name in seated)

    async def test_join_from_a_seated_connection_is_rejected(self, manager):
        room_id, (alice,) = await create_lobby(manager, "Alice")
        alice.clear()

        await manager.join_room(alice, "Alice", room_id)

        assert alice.last_message(SessionMessageType.ERROR)["code"] == SessionErrorCode.ALREADY_IN_ROOM


class TestLeaveRoom:
    async def test_leave_notifies_remaining_players(self, manager):
        room_id, (alice, bob) = await create_lobby(manager, "Alice", "Bob")
        alice.clear()

        await manager.leave_room(bob, room_id)

        assert alice.last_message(SessionMessageType.PLAYER_LEFT) == {"type": "playerLeft", "username": "Bob"}
        assert [p.username for p in manager.get_room(room_id).players] == ["Alice"]
        assert manager.get_player(bob.connection_id) is None

    async def test_host_leaving_hands_over_host(self, manager):
        room_id, (alice, bob) = await create_lobby(manager, "Alice", "Bob")

        await manager.leave_room(alice, room_id)

        players = bob.last_message(SessionMessageType.PLAYERS_UPDATE)["players"]
        assert players == [{"username": "Bob", "isHost": True, "isBot": False, "disconnected": False}]

    async def test_last_player_leaving_deletes_room(self, manager):
        room_id, (alice,) = await create_lobby(manager, "Alice")

        await manager.leave_room(alice, room_id)

        assert manager.get_room(room_id) is None
        assert manager.room_count == 0

    async def test_leave_when_not_seated(self, manager):
        conn = MockConnection()
        await manager.leave_room(conn, "123")
        assert conn.last_message(SessionMessageType.ERROR)["code"] == SessionErrorCode.NOT_IN_ROOM


class TestReconnect:
    async def test_reconnect_restores_seat_and_sends_snapshot(self, slow_manager):
        room_id, (alice, bob) = await create_lobby(slow_manager, "Alice", "Bob")
        await slow_manager.start_game(alice, room_id)
        room = slow_manager.get_room(room_id)
        bob_hand = [card.id for card in room.hands["Bob"]]
        if room.current_player.username == "Bob":
            room.current_player_index = 0  # keep Bob's hand intact across the disconnect

        await slow_manager.disconnect(bob)
        alice.clear()
        new_bob = MockConnection()
        await slow_manager.reconnect(new_bob, "Bob", room_id)

        snapshot = new_bob.last_message(SessionMessageType.ROOM_SNAPSHOT)
        assert snapshot["roomId"] == room_id
        assert snapshot["username"] == "Bob"
        assert [card["id"] for card in snapshot["hand"]] == bob_hand
        assert snapshot["gameStarted"] is True
        assert alice.last_message(SessionMessageType.PLAYER_RECONNECTED) == {
            "type": "playerReconnected",
            "username": "Bob",
        }
        seat = room.get_player("Bob")
        assert seat.connection_id == new_bob.connection_id
        assert not seat.disconnected

    async def test_reconnect_is_idempotent(self, slow_manager):
        room_id, (alice, bob) = await create_lobby(slow_manager, "Alice", "Bob")
        room = slow_manager.get_room(room_id)

        for _ in range(3):
            await slow_manager.disconnect(bob)
            bob = MockConnection()
            await slow_manager.reconnect(bob, "Bob", room_id)

        assert [p.username for p in room.players] == ["Alice", "Bob"]
        assert room.get_player("Bob").connection_id == bob.connection_id
        assert room.host.username == "Alice"

    async def test_reconnect_while_connected_is_rejected(self, manager):
        room_id, _ = await create_lobby(manager, "Alice", "Bob")
        with pytest.raises(UsernameTakenError):
            await manager.reconnect(MockConnection(), "Bob", room_id)

    async def test_reconnect_with_unknown_name_joins(self, manager):
        room_id, _ = await create_lobby(manager, "Alice")
        conn = MockConnection()

        await manager.reconnect(conn, "Carol", room_id)

        assert conn.last_message(SessionMessageType.ROOM_JOINED)["username"] == "Carol"

    async def test_join_with_disconnected_name_reconnects(self, slow_manager):
        room_id, (_, bob) = await create_lobby(slow_manager, "Alice", "Bob")
        await slow_manager.disconnect(bob)
        conn = MockConnection()

        await slow_manager.join_room(conn, "Bob", room_id)

        assert conn.last_message(SessionMessageType.ROOM_SNAPSHOT) is not None
        assert len(slow_manager.get_room(room_id).players) == 2

    async def test_reconnect_cancels_grace_timer(self, manager):
        room_id, (_, bob) = await create_lobby(manager, "Alice", "Bob")
        await manager.disconnect(bob)
        await manager.reconnect(MockConnection(), "Bob", room_id)

        await asyncio.sleep(0.1)

        seat = manager.get_room(room_id).get_player("Bob")
        assert seat is not None
        assert not seat.disconnected
