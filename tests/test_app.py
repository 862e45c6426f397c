"""End-to-end tests through the FastAPI app: websocket signaling and room lookup."""
import json

import pytest
from fastapi import WebSocketDisconnect

import app as app_module
from backend import registry


def create_room(ws):
    ws.send_json({"type": "create-room"})
    reply = ws.receive_json()
    assert reply["type"] == "room-created"
    return reply["roomCode"]


def test_two_party_session(client):
    with client.websocket_connect("/ws") as host:
        room_code = create_room(host)

        with client.websocket_connect("/ws") as peer:
            peer.send_json({"type": "join-room", "roomCode": room_code})
            assert peer.receive_json() == {"type": "room-joined", "roomCode": room_code, "role": "peer"}
            assert host.receive_json() == {"type": "peer-joined", "role": "host"}

            host.send_json({"type": "offer", "sdp": "..."})
            assert peer.receive_json() == {"type": "offer", "sdp": "...", "senderRole": "host"}

            peer.send_json({"type": "ice-candidate", "candidate": {"candidate": "candidate:1 1 udp", "sdpMid": "0"}})
            assert host.receive_json() == {
                "type": "ice-candidate",
                "candidate": {"candidate": "candidate:1 1 udp", "sdpMid": "0"},
                "senderRole": "peer",
            }

        # Peer socket closed without sending leave-room
        assert host.receive_json() == {"type": "peer-left", "role": "host"}
        session = registry.get(room_code)
        assert session is not None
        assert session.peer is None


def test_lone_host_disconnect_deletes_room(client):
    with client.websocket_connect("/ws") as host:
        room_code = create_room(host)
        assert room_code in registry

    assert room_code not in registry
    assert len(registry) == 0


def test_host_disconnect_notifies_peer_and_closes_room(client):
    with client.websocket_connect("/ws") as peer:
        with client.websocket_connect("/ws") as host:
            room_code = create_room(host)
            peer.send_json({"type": "join-room", "roomCode": room_code})
            assert peer.receive_json()["type"] == "room-joined"
            assert host.receive_json()["type"] == "peer-joined"

        assert peer.receive_json() == {"type": "host-left", "message": "Host has left the room"}
        assert room_code not in registry

        # The peer is free again and can host its own room
        new_code = create_room(peer)
        assert new_code in registry


def test_join_missing_room(client):
    with client.websocket_connect("/ws") as joiner:
        joiner.send_json({"type": "join-room", "roomCode": "ZZZZZZ"})
        assert joiner.receive_json() == {"type": "error", "message": "Room not found"}
    assert len(registry) == 0


def test_join_full_room(client):
    with client.websocket_connect("/ws") as host, \
            client.websocket_connect("/ws") as peer, \
            client.websocket_connect("/ws") as latecomer:
        room_code = create_room(host)
        peer.send_json({"type": "join-room", "roomCode": room_code})
        assert peer.receive_json()["type"] == "room-joined"
        assert host.receive_json()["type"] == "peer-joined"

        latecomer.send_json({"type": "join-room", "roomCode": room_code.lower()})
        assert latecomer.receive_json() == {"type": "error", "message": "Room is full"}
        assert registry.get(room_code).peer is not None


def test_root_path_speaks_the_same_protocol(client):
    with client.websocket_connect("/") as host:
        room_code = create_room(host)
        assert room_code in registry


def test_malformed_and_unknown_messages_keep_connection_open(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("this is not json")
        ws.send_text(json.dumps({"type": "subscribe"}))
        ws.send_text(json.dumps({"type": "join-room"}))
        ws.send_bytes(b"\x00\x01")

        # Still usable: the next valid request gets the first reply on the socket
        room_code = create_room(ws)
        assert room_code in registry


def test_binary_frame_with_json(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_bytes(json.dumps({"type": "create-room"}).encode())
        assert ws.receive_json()["type"] == "room-created"


def test_explicit_leave_then_rejoin(client):
    with client.websocket_connect("/ws") as host, client.websocket_connect("/ws") as peer:
        room_code = create_room(host)
        peer.send_json({"type": "join-room", "roomCode": room_code})
        assert peer.receive_json()["type"] == "room-joined"
        assert host.receive_json()["type"] == "peer-joined"

        peer.send_json({"type": "leave-room"})
        assert host.receive_json() == {"type": "peer-left", "role": "host"}

        peer.send_json({"type": "join-room", "roomCode": room_code})
        assert peer.receive_json()["type"] == "room-joined"
        assert host.receive_json()["type"] == "peer-joined"


def test_room_details(client):
    with client.websocket_connect("/ws") as host:
        room_code = create_room(host)

        response = client.get(f"/rooms/{room_code.lower()}")
        assert response.status_code == 200
        assert response.json() == {
            "room_code": room_code,
            "has_host": True,
            "has_peer": False,
            "is_full": False,
            "member_count": 1,
        }

        stats = client.get("/rooms/")
        assert stats.status_code == 200
        assert stats.json() == {"active_rooms": 1}


def test_room_details_not_found(client):
    response = client.get("/rooms/ZZZZZZ")
    assert response.status_code == 404
    assert response.json() == {"detail": "Room not found"}


def test_unexpected_error_closes_socket_and_leaves_room(client, monkeypatch):
    with client.websocket_connect("/ws") as host:
        room_code = create_room(host)

        async def explode(connection, raw):
            raise RuntimeError("handler bug")
        monkeypatch.setattr(app_module.message_router, "dispatch", explode)

        host.send_json({"type": "offer", "sdp": "x"})
        with pytest.raises(WebSocketDisconnect):
            host.receive_json()

    assert room_code not in registry
