from datetime import timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from backend import LocalBroker
from games import GameFeed
from gateway import Session
from registry import RoomRegistry
from users import UserDirectory
from conftest import T0, drain


@pytest.fixture
def api_registry(clock):
    return RoomRegistry(clock=clock)


@pytest.fixture
def client(api_registry):
    app = create_app(registry=api_registry, broker=LocalBroker(), game_feed=GameFeed(transport=httpx.MockTransport(lambda r: httpx.Response(500))))
    return TestClient(app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_create_room_and_list(client, clock):
    resp = client.post("/api/rooms", json={"name": "USA vs Brazil"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["name"] == "USA vs Brazil"
    assert body["id"].startswith("usa-vs-brazil-")
    assert body["createdAt"] == T0.isoformat().replace("+00:00", "Z")
    assert body["expiresAt"] == (T0 + timedelta(minutes=90)).isoformat().replace("+00:00", "Z")

    clock.advance(minutes=1)
    client.post("/api/rooms", json={"name": "Derby"})

    rooms = client.get("/api/rooms").json()
    assert [r["name"] for r in rooms] == ["Derby", "USA vs Brazil"]
    assert rooms[0]["participantCount"] == 0


def test_create_room_reuses_same_name(client):
    first = client.post("/api/rooms", json={"name": "Derby"})
    second = client.post("/api/rooms", json={"name": "derby"})
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]


def test_create_room_without_name(client):
    resp = client.post("/api/rooms", json={})
    assert resp.status_code == 201
    assert resp.json()["name"] == "fan room"


def test_create_lobby_is_singleton(client, api_registry):
    a = client.post("/api/rooms", json={"name": "Global"}).json()
    b = client.post("/api/rooms", json={"name": "global-lobby"}).json()
    assert a["id"] == b["id"] == "global-lobby"
    assert list(api_registry.rooms) == ["global-lobby"]


def test_room_detail_live_then_archived(client, api_registry, clock):
    room = api_registry.create_room("Derby")
    api_registry.tracker.join(room, "u1", "Ann")

    live = client.get(f"/api/rooms/{room.id}").json()
    assert live["participants"] == [{"id": "u1", "name": "Ann"}]

    clock.advance(minutes=90)
    past = client.get(f"/api/rooms/{room.id}").json()
    assert past["participantsHistory"] == [{"id": "u1", "name": "Ann"}]
    assert "expiredAt" in past


def test_room_detail_archiving_notifies_room_list(client, api_registry, clock):
    session = Session()
    client.app.state.gateway.connect(session)
    room = api_registry.create_room("Derby")

    client.get(f"/api/rooms/{room.id}")
    assert drain(session) == []

    clock.advance(minutes=91)
    assert "expiredAt" in client.get(f"/api/rooms/{room.id}").json()
    assert [e["event"] for e in drain(session)] == ["rooms_updated"]

    # already archived, nothing changes on a second look
    client.get(f"/api/rooms/{room.id}")
    assert drain(session) == []


def test_room_detail_not_found(client):
    assert client.get("/api/rooms/nope").status_code == 404


def test_delete_room(client, api_registry):
    room = api_registry.create_room("Derby")
    api_registry.tracker.join(room, "u1", "Ann")

    resp = client.delete(f"/api/rooms/{room.id}")
    assert resp.status_code == 200
    assert client.get(f"/api/rooms/{room.id}").status_code == 404
    assert client.get("/api/users/u1/rooms").json() == []
    assert client.delete(f"/api/rooms/{room.id}").status_code == 404


@pytest.mark.parametrize("room_id", ["global", "global-lobby"])
def test_delete_lobby_conflicts(client, room_id):
    assert client.delete(f"/api/rooms/{room_id}").status_code == 409


def test_user_rooms_ledger(client, api_registry, clock):
    derby = api_registry.create_room("Derby")
    api_registry.tracker.join(derby, "u1", "Ann")
    clock.advance(minutes=5)
    final = api_registry.create_room("Final")
    api_registry.tracker.join(final, "u1", "Ann")
    clock.advance(minutes=1)
    api_registry.tracker.join(derby, "u1", "Ann")

    ledger = client.get("/api/users/u1/rooms").json()
    assert [e["roomId"] for e in ledger] == [derby.id, final.id]
    assert ledger[0]["name"] == "Derby"
    assert ledger[0]["expiredAt"] is None
    assert ledger[0]["participants"] == [{"id": "u1", "name": "Ann"}]


def test_create_room_from_game(client, clock):
    body = {
        "sport": "Soccer",
        "league": "Friendly",
        "home": "USA",
        "away": "Brazil",
        "startTimeIso": (T0 + timedelta(hours=2)).isoformat(),
    }
    resp = client.post("/api/rooms/from-game", json=body)
    assert resp.status_code == 201
    room = resp.json()
    assert room["name"] == "USA vs Brazil"
    assert room["expiresAt"] == (T0 + timedelta(hours=2 + 2 + 24)).isoformat().replace("+00:00", "Z")

    again = client.post("/api/rooms/from-game", json=body)
    assert again.status_code == 200
    assert again.json()["id"] == room["id"]


def test_create_room_from_finished_game(client):
    body = {"sport": "Soccer", "home": "USA", "away": "Brazil", "startTimeIso": (T0 - timedelta(days=3)).isoformat()}
    assert client.post("/api/rooms/from-game", json=body).status_code == 400


def test_create_room_from_game_requires_timezone(client):
    body = {"sport": "Soccer", "home": "USA", "away": "Brazil", "startTimeIso": "2026-06-14T20:00:00"}
    assert client.post("/api/rooms/from-game", json=body).status_code == 400


def test_games_feed_failure_is_bad_gateway(client):
    assert client.get("/api/games/live").status_code == 502


def test_user_rooms_unknown_user_with_directory(api_registry):
    def handler(request):
        if request.url.path == "/api/users/u1":
            return httpx.Response(200, json={"id": "u1", "name": "Ann"})
        return httpx.Response(404, json={"error": "not found"})

    directory = UserDirectory("http://users.test", transport=httpx.MockTransport(handler))
    client = TestClient(create_app(registry=api_registry, broker=LocalBroker(), user_directory=directory))

    assert client.get("/api/users/u1/rooms").json() == []
    assert client.get("/api/users/u2/rooms").status_code == 404


def test_websocket_join_and_chat(client):
    with client.websocket_connect("/ws") as a:
        a.send_json({"event": "join_room", "payload": {"roomId": "derby-abcde", "userId": "a", "user": "Ann"}})
        assert a.receive_json() == {"event": "history", "payload": []}
        assert a.receive_json() == {"event": "participants", "payload": [{"id": "a", "name": "Ann"}]}
        assert a.receive_json() == {"event": "rooms_updated", "payload": None}

        a.send_json({"event": "chat_message", "payload": {"roomId": "derby-abcde", "user": "Ann", "text": "hi"}})
        message = a.receive_json()
        assert message["event"] == "chat_message"
        assert message["payload"]["user"] == "Ann"
        assert message["payload"]["text"] == "hi"

        with client.websocket_connect("/ws") as b:
            b.send_json({"event": "join_room", "payload": {"roomId": "derby-abcde", "userId": "b", "user": "Bob"}})
            history = b.receive_json()
            assert history["event"] == "history"
            assert [m["text"] for m in history["payload"]] == ["hi"]

        rooms = client.get("/api/rooms").json()
        assert rooms[0]["id"] == "derby-abcde"


def test_websocket_ignores_garbage_frames(client):
    with client.websocket_connect("/ws") as a:
        a.send_text("not json")
        a.send_json({"event": "join_room", "payload": {}})
        a.send_json({"event": "join_room", "payload": {"roomId": "derby-abcde", "userId": "a"}})
        assert a.receive_json()["event"] == "history"
