"""Plays a complete game over the WebSocket: one human against three bots."""

from unittest.mock import patch

from starlette.testclient import TestClient

from sevens.logic.enums import GameErrorCode
from sevens.messaging.encoder import decode, encode
from sevens.server import websocket as ws_module


def send_ws(ws, data: dict) -> None:
    ws.send_bytes(encode(data))


def recv_ws(ws) -> dict:
    return decode(ws.receive_bytes())


def take_turn(ws, room_id: str, hand: list[dict]) -> list[dict]:
    """Try each card until the server accepts one, else pass, else forfeit. Returns the new hand."""
    for card in hand:
        row = "cdhs".index(card["suit"])
        send_ws(
            ws,
            {"type": "playCard", "roomId": room_id, "card": card["id"], "position": {"row": row, "col": card["value"]}},
        )
        response = recv_ws(ws)
        if response["type"] == "handUpdate":
            return response["hand"]
        assert response["code"] == GameErrorCode.ILLEGAL_MOVE

    send_ws(ws, {"type": "pass", "roomId": room_id})
    response = recv_ws(ws)
    if response["type"] == "passUpdate":
        return hand
    assert response["code"] == GameErrorCode.PASS_LIMIT_EXCEEDED

    send_ws(ws, {"type": "forfeit", "roomId": room_id})
    response = recv_ws(ws)
    assert response == {"type": "handUpdate", "hand": []}
    return []


class TestFullGame:
    def test_human_against_bots_until_game_over(self, app):
        with (
            patch.object(ws_module, "_RATE_LIMIT_BURST", 10_000),
            TestClient(app) as client,
            client.websocket_connect("/ws") as ws,
        ):
            send_ws(ws, {"type": "createRoom", "username": "Alice"})
            room_id = recv_ws(ws)["roomId"]
            send_ws(ws, {"type": "startGame", "roomId": room_id})

            hand: list[dict] = []
            game_over = None
            for _ in range(2000):
                message = recv_ws(ws)
                if message["type"] == "gameStarted":
                    hand = message["hand"]
                    assert len(hand) == 12
                    assert len(message["cards"]) == 4
                if message["type"] == "gameOver":
                    game_over = message
                    break
                if message["type"] in ("gameStarted", "turnUpdate") and message["currentPlayer"] == "Alice":
                    assert hand, "a player with an empty hand is never given the turn"
                    hand = take_turn(ws, room_id, hand)

            assert game_over is not None
            assert sorted(game_over["winners"]) == ["Alice", "Bot 1", "Bot 2", "Bot 3"]
            assert sorted(r["place"] for r in game_over["results"]) == [1, 2, 3, 4]

            status = client.get("/status").json()
            assert status["active_games"] == 0
