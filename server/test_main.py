"""
End-to-end tests for the FastAPI app: HTTP endpoints and the /ws socket.

Run with: pytest test_main.py -v
"""

import pytest
from fastapi.testclient import TestClient

from game import GameOptions
from main import create_app
from room import RoomManager


@pytest.fixture
def client():
    app = create_app(RoomManager(seed=8, options_factory=GameOptions))
    with TestClient(app) as test_client:
        yield test_client


class TestHttpEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["active_rooms"] == 0

    def test_metrics_empty(self, client):
        data = client.get("/metrics").json()
        assert data["active_rooms"] == 0
        assert data["total_players"] == 0
        assert data["games_in_progress"] == 0


class TestWebSocket:

    def test_two_players_start_a_match(self, client):
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            alice.send_json({"type": "join", "roomId": "table-1", "name": "Alice"})
            waiting = alice.receive_json()
            assert waiting["type"] == "state"
            assert waiting["data"]["phase"] == "waiting"

            bob.send_json({"type": "join", "roomId": "table-1", "name": "Bob"})
            bob_state = bob.receive_json()["data"]
            alice_state = alice.receive_json()["data"]

            assert bob_state["phase"] == alice_state["phase"] == "playing"
            assert len(bob_state["yourHand"]) == len(alice_state["yourHand"]) == 7
            assert bob_state["yourTurn"] != alice_state["yourTurn"]

            metrics = client.get("/metrics").json()
            assert metrics["active_rooms"] == 1
            assert metrics["total_players"] == 2
            assert metrics["connected_players"] == 2
            assert metrics["games_in_progress"] == 1

    def test_malformed_frame_then_join(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("this is not json")
            ws.send_json({"type": "join", "roomId": "table-2", "name": "Solo"})
            assert ws.receive_json()["data"]["roomId"] == "table-2"

    def test_join_error(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "join", "roomId": "table-3"})
            assert ws.receive_json() == {"type": "error", "message": "Room and name are required."}

    def test_binary_frame_ignored(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_bytes(b"\xff\xfe garbage")
            ws.send_json({"type": "join", "roomId": "table-4", "name": "Solo"})
            state = ws.receive_json()
            assert state["type"] == "state"
            assert state["data"]["roomId"] == "table-4"

    def test_closing_socket_detaches_seat(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "join", "roomId": "table-5", "name": "Solo"})
            ws.receive_json()
            assert client.get("/metrics").json()["connected_players"] == 1

        metrics = client.get("/metrics").json()
        assert metrics["total_players"] == 1
        assert metrics["connected_players"] == 0
