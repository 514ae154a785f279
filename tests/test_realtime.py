"""Tests for the realtime location channel."""

import pytest
from fastapi import WebSocketDisconnect

from app.services.realtime import ConnectionManager


class TestRealtime:
    """Tests for the /ws socket."""

    def test_authenticate(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "authenticate", "data": "user-1"})
            assert ws.receive_json() == {
                "event": "authenticated",
                "data": {"success": True, "user_id": "user-1"},
            }
        assert client.app.state.realtime.users == {}

    def test_location_update_is_broadcast(self, client):
        update = {"user_id": "user-2", "location": {"latitude": 40.75, "longitude": -73.99}}
        with client.websocket_connect("/ws") as watcher, client.websocket_connect("/ws") as reader:
            watcher.send_json({"event": "authenticate", "data": "admin-1"})
            watcher.receive_json()

            reader.send_json({"event": "location_update", "data": update})

            assert watcher.receive_json() == {"event": "user_location_update", "data": update}
            assert reader.receive_json() == {"event": "user_location_update", "data": update}

    def test_malformed_frames_are_ignored(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            ws.send_json(["not", "an", "object"])
            ws.send_json({"event": "location_update", "data": {"user_id": "u"}})
            ws.send_json({"event": "authenticate", "data": ""})
            ws.send_json({"event": "authenticate", "data": "user-3"})
            # Only the last frame produces a reply
            assert ws.receive_json()["event"] == "authenticated"

    def test_disconnect_forgets_socket(self, client):
        manager = client.app.state.realtime
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "authenticate", "data": "user-4"})
            ws.receive_json()
            assert "user-4" in manager.users
        assert manager.connections == set()


class _Peer:
    """Stand-in socket recording what it was sent."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_json(self, message):
        if self.fail:
            # What Starlette raises when the transport is already gone
            raise WebSocketDisconnect(code=1006)
        self.sent.append(message)


class TestBroadcast:
    """A dead peer must not stop delivery to the others."""

    @pytest.mark.asyncio
    async def test_dead_peer_is_dropped_and_others_still_receive(self):
        manager = ConnectionManager()
        first, dead, last = _Peer(), _Peer(fail=True), _Peer()
        manager.connections.update({first, dead, last})
        manager.users["gone"] = dead

        await manager.broadcast("user_location_update", {"user_id": "u1"})

        expected = [{"event": "user_location_update", "data": {"user_id": "u1"}}]
        assert first.sent == expected
        assert last.sent == expected
        assert manager.connections == {first, last}
        assert "gone" not in manager.users

    def test_sender_survives_dead_peer(self, client):
        manager = client.app.state.realtime
        update = {"user_id": "user-5", "location": {"latitude": 1.0, "longitude": 2.0}}
        with client.websocket_connect("/ws") as reader:
            reader.send_json({"event": "authenticate", "data": "user-5"})
            reader.receive_json()
            manager.connections.add(_Peer(fail=True))

            reader.send_json({"event": "location_update", "data": update})
            assert reader.receive_json() == {"event": "user_location_update", "data": update}

            # Still connected and registered after the failed delivery
            reader.send_json({"event": "authenticate", "data": "user-5"})
            assert reader.receive_json()["event"] == "authenticated"
            assert "user-5" in manager.users
