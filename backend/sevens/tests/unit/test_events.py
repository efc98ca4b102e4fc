from sevens.logic.events import (
    BroadcastTarget,
    EventType,
    GameOverEvent,
    HandUpdateEvent,
    PassUpdateEvent,
    PlayerTarget,
    TurnUpdateEvent,
    broadcast,
    to_player,
)
from sevens.logic.types import PlacementView, board_view, build_snapshot, hand_view
from sevens.tests.helpers import board_with, cards, create_room


class TestServiceEvent:
    def test_broadcast_and_private_targets(self):
        hand_event = to_player("Alice", HandUpdateEvent(hand=hand_view(cards("c06"))))
        pass_event = broadcast(PassUpdateEvent(player="Alice", pass_counts={"Alice": 1}))

        assert hand_event.target == PlayerTarget(username="Alice")
        assert pass_event.target == BroadcastTarget()
        assert hand_event.type == EventType.HAND_UPDATE

    def test_messages_use_camel_case_wire_names(self):
        event = broadcast(
            TurnUpdateEvent(
                current_player="Bob",
                cards=board_view(board_with("c06")),
                hand_sizes={"Alice": 3, "Bob": 4},
            ),
        )

        message = event.to_message()

        assert message["type"] == "turnUpdate"
        assert message["currentPlayer"] == "Bob"
        assert message["handSizes"] == {"Alice": 3, "Bob": 4}
        assert {"id": "c06", "suit": "c", "value": 6}.items() <= message["cards"][-1].items()
        assert message["cards"][-1]["position"] == {"row": 0, "col": 6}

    def test_game_over_payload(self):
        event = broadcast(
            GameOverEvent(
                winners=["Bob", "Alice"],
                results=[
                    PlacementView(username="Bob", place=1, forfeited=False),
                    PlacementView(username="Alice", place=2, forfeited=True),
                ],
            ),
        )
        assert event.to_message() == {
            "type": "gameOver",
            "winners": ["Bob", "Alice"],
            "results": [
                {"username": "Bob", "place": 1, "forfeited": False},
                {"username": "Alice", "place": 2, "forfeited": True},
            ],
        }


class TestRoomSnapshot:
    def test_snapshot_only_contains_own_hand(self):
        room = create_room(hands={"Alice": ["c06", "d02"], "Bob": ["h01"]})

        snapshot = build_snapshot(room, "Bob").model_dump(by_alias=True, mode="json")

        assert snapshot["roomId"] == "123"
        assert [card["id"] for card in snapshot["hand"]] == ["h01"]
        assert snapshot["handSizes"] == {"Alice": 2, "Bob": 1}
        assert snapshot["currentPlayer"] == "Alice"
        assert snapshot["gameStarted"] is True
        assert [p["username"] for p in snapshot["players"]] == ["Alice", "Bob"]
        assert snapshot["players"][0]["isHost"] is True

    def test_lobby_snapshot_has_no_current_player(self):
        room = create_room(started=False)
        snapshot = build_snapshot(room, "Alice")
        assert snapshot.current_player is None
        assert snapshot.hand == []
