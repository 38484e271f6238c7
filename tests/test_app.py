import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app import create_app
from message_router import create_message_router


def make_client(policy: str = "replace", capacity: int = 15) -> TestClient:
    return TestClient(create_app(create_message_router(capacity, policy)))


def wait_registered(ws, identity: str):
    """Round-trip an online query so the server has certainly bound ``identity``."""
    ws.send_json({"type": "online", "ids": [identity]})
    assert ws.receive_json() == {"type": "online", "online": [True]}


def test_offer_answer_over_websockets():
    client = make_client()
    with client.websocket_connect("/ws?key=alice") as alice:
        wait_registered(alice, "alice")
        with client.websocket_connect("/ws?key=bob") as bob:
            wait_registered(bob, "bob")

            alice.send_json({"type": "offer", "offer": "X", "toId": "bob"})
            assert bob.receive_json() == {"type": "offer", "offer": "X", "from": "alice"}

            bob.send_json({"type": "answer", "answer": "Y", "toId": "alice"})
            assert alice.receive_json() == {"type": "answer", "answer": "Y", "from": "bob"}


def test_login_as_first_frame():
    client = make_client()
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "online", "ids": []})
        assert ws.receive_json() == {"type": "error", "message": "Not logged in"}

        ws.send_json({"type": "login", "name": "carol"})
        assert ws.receive_json() == {"type": "login", "success": True}

        wait_registered(ws, "carol")


def test_unrecognized_and_malformed_frames():
    client = make_client()
    with client.websocket_connect("/ws?key=alice") as ws:
        ws.send_text("not json at all")
        assert ws.receive_json() == {"type": "error", "message": "Unrecognized command: None"}

        ws.send_json({"type": "bogus"})
        assert ws.receive_json() == {"type": "error", "message": "Unrecognized command: bogus"}


def test_disconnect_broadcasts_leave():
    client = make_client()
    with client.websocket_connect("/ws?key=bob") as bob:
        wait_registered(bob, "bob")
        with client.websocket_connect("/ws?key=alice") as alice:
            wait_registered(alice, "alice")
            alice.send_json({"type": "join", "room": "R", "play": "pa"})
            assert alice.receive_json() == {"type": "join", "plays": []}
            bob.send_json({"type": "join", "room": "R", "play": "pb"})
            assert bob.receive_json() == {"type": "join", "plays": ["pa"]}

        assert bob.receive_json() == {"type": "quit", "key": "alice"}
        assert bob.receive_json() == {"type": "leave", "key": "alice"}


def test_reject_policy_closes_duplicate_identity():
    client = make_client(policy="reject")
    with client.websocket_connect("/ws?key=alice") as first:
        wait_registered(first, "alice")
        with client.websocket_connect("/ws?key=alice") as second:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                second.receive_json()
        assert exc_info.value.code == 1008

        wait_registered(first, "alice")


def test_room_details_endpoint():
    client = make_client(capacity=2)
    assert client.get("/rooms/R").status_code == 404

    with client.websocket_connect("/ws?key=alice") as alice:
        alice.send_json({"type": "join", "room": "R", "play": {"title": "demo"}})
        assert alice.receive_json() == {"type": "join", "plays": []}

        response = client.get("/rooms/R")
        assert response.status_code == 200
        assert response.json() == {
            "room_id": "R",
            "members": ["alice"],
            "member_count": 1,
            "capacity": 2,
            "is_full": False,
        }

        stats = client.get("/rooms").json()
        assert stats == {"rooms": 1, "connections": 1, "capacity": 2}


def test_presence_and_health_endpoints():
    client = make_client()
    assert client.get("/health").json() == {"status": "ok"}

    with client.websocket_connect("/ws?key=alice") as alice:
        wait_registered(alice, "alice")
        response = client.get("/presence", params=[("ids", "alice"), ("ids", "bob")])
        assert response.json() == {"online": [True, False]}


def test_binary_frames_do_not_end_the_session():
    client = make_client()
    with client.websocket_connect("/ws?key=alice") as ws:
        ws.send_bytes(b"\xff\xfe")
        assert ws.receive_json() == {"type": "error", "message": "Unrecognized command: None"}

        ws.send_bytes(b'{"type": "bogus"}')
        assert ws.receive_json() == {"type": "error", "message": "Unrecognized command: bogus"}

        wait_registered(ws, "alice")


def test_wildcard_origin_is_served_without_credentials():
    client = make_client()
    response = client.get("/health", headers={"Origin": "https://example.com"})

    assert response.headers["access-control-allow-origin"] == "*"
    assert "access-control-allow-credentials" not in response.headers
