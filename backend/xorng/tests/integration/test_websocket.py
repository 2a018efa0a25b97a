"""Integration tests for the WebSocket and HTTP endpoints.

These drive the real Starlette app through the test client, so they cover
the transport wiring (accept, frame decoding, fan-out to sockets) on top of
the router behaviour the unit tests already pin down.
"""

import json
import random

import pytest
from starlette.testclient import TestClient

from xorng.server.app import LIVENESS_TEXT, create_app
from xorng.server.settings import ServerSettings
from xorng.session.registry import RoomRegistry


def recv(ws) -> dict:
    return json.loads(ws.receive_text())


def recv_until(ws, message_type: str) -> dict:
    while True:
        message = recv(ws)
        if message["type"] == message_type:
            return message


class TestWebSocketIntegration:
    @pytest.fixture
    def client(self):
        app = create_app(settings=ServerSettings(), registry=RoomRegistry(rng=random.Random(1)))
        with TestClient(app) as client:
            yield client

    def test_hello_on_connect(self, client):
        with client.websocket_connect("/") as ws:
            hello = recv(ws)
            assert hello["type"] == "hello"
            assert len(hello["clientId"]) == 8

    def test_any_path_accepts_websockets(self, client):
        with client.websocket_connect("/some/where") as ws:
            assert recv(ws)["type"] == "hello"

    def test_create_and_join(self, client):
        with client.websocket_connect("/") as ws1, client.websocket_connect("/") as ws2:
            recv(ws1)
            recv(ws2)

            ws1.send_text(json.dumps({"type": "create_room", "name": "Ann"}))
            created = recv(ws1)
            assert created["type"] == "room_created"
            assert created["role"] == "player"
            assert recv(ws1)["status"] == "waiting"

            ws2.send_text(json.dumps({"type": "join_room", "roomCode": created["roomCode"].lower(), "name": "Bob"}))
            joined = recv(ws2)
            assert joined == {"type": "room_joined", "roomCode": created["roomCode"], "role": "player", "name": "Bob"}

            state = recv(ws2)
            assert state["status"] == "playing"
            assert recv_until(ws1, "state") == state

    def test_invalid_json_keeps_connection(self, client):
        with client.websocket_connect("/") as ws:
            recv(ws)
            ws.send_text("{oops")
            assert recv(ws) == {"type": "error", "message": "Invalid JSON"}

            ws.send_text(json.dumps({"type": "create_room", "name": "Ann"}))
            assert recv(ws)["type"] == "room_created"

    def test_binary_frame_is_treated_as_text(self, client):
        with client.websocket_connect("/") as ws:
            recv(ws)
            ws.send_bytes(json.dumps({"type": "create_room", "name": "Ann"}).encode())
            assert recv(ws)["type"] == "room_created"

    def test_disconnect_updates_peer(self, client):
        with client.websocket_connect("/") as ws1:
            recv(ws1)
            ws1.send_text(json.dumps({"type": "create_room", "name": "Ann"}))
            code = recv(ws1)["roomCode"]
            recv(ws1)

            with client.websocket_connect("/") as ws2:
                recv(ws2)
                ws2.send_text(json.dumps({"type": "join_room", "roomCode": code, "name": "Bob"}))
                assert recv_until(ws1, "state")["status"] == "playing"

            state = recv_until(ws1, "state")
            assert state["status"] == "waiting"
            assert [p["name"] for p in state["players"]] == ["Ann"]


class TestHttpEndpoints:
    @pytest.fixture
    def client(self):
        registry = RoomRegistry(rng=random.Random(1))
        registry.create()
        app = create_app(settings=ServerSettings(), registry=registry)
        with TestClient(app) as client:
            yield client

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": "test", "commit": "test"}

    def test_status_counts(self, client):
        response = client.get("/status")
        assert response.status_code == 200
        body = response.json()
        assert body["rooms"] == 1
        assert body["connections"] == 0

    def test_status_counts_open_sockets(self, client):
        with client.websocket_connect("/") as ws:
            recv(ws)
            assert client.get("/status").json()["connections"] == 1

    @pytest.mark.parametrize("path", ["/", "/anything", "/deeply/nested/path"])
    def test_liveness_on_any_path(self, client, path):
        response = client.get(path)
        assert response.status_code == 200
        assert response.text == LIVENESS_TEXT

    def test_liveness_on_post(self, client):
        response = client.post("/whatever", content=b"ignored")
        assert response.status_code == 200
        assert response.text == LIVENESS_TEXT
