from fastapi.testclient import TestClient

from trashtalk.main import create_app
from trashtalk.settings import Settings


def _client(**overrides):
    settings = Settings(SNAPSHOT_ENABLED=False, **overrides)
    return TestClient(create_app(settings))


def test_http_endpoints():
    with _client() as client:
        assert client.get("/health").json()["ok"] is True

        packs = client.get("/api/packs").json()
        assert "base" in packs
        assert packs["base"]["card_count"] > 0

        assert client.get("/admin/rooms").json() == {"rooms": []}
        assert client.post("/admin/rooms/NOPE/close").status_code == 404


def test_create_join_and_admin_close():
    with _client() as client:
        with client.websocket_connect("/ws") as tv:
            hello = tv.receive_json()
            assert hello["type"] == "hello" and hello["cid"]

            tv.send_json({"type": "create_game", "display_mode": "shared"})
            created = tv.receive_json()
            assert created["type"] == "game_created"
            code = created["room_code"]

            with client.websocket_connect("/ws") as phone:
                phone.receive_json()
                phone.send_json({"type": "join_game", "room_code": code, "player_name": "Bob"})
                joined = phone.receive_json()
                assert joined["type"] == "joined_success"
                assert joined["session_token"]

                seen = tv.receive_json()
                assert seen["type"] == "player_joined"
                assert seen["player_name"] == "Bob"
                assert seen["player_count"] == 1

                rooms = client.get("/admin/rooms").json()["rooms"]
                assert [r["room_code"] for r in rooms] == [code]
                assert rooms[0]["players"] == 1

                assert client.post(f"/admin/rooms/{code}/close").json()["ok"] is True
                assert tv.receive_json() == {"type": "game_ended", "reason": "Closed by admin"}
                assert phone.receive_json()["type"] == "game_ended"

        assert client.get("/admin/rooms").json() == {"rooms": []}


def test_bad_messages_and_rate_limit():
    with _client(RATE_LIMIT_MAX=3, RATE_LIMIT_WINDOW_MS=60_000) as client:
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()

            ws.send_text("not json")
            assert ws.receive_json()["code"] == "BAD_MESSAGE"

            ws.send_json({"type": "launch_rockets"})
            assert ws.receive_json()["code"] == "BAD_MESSAGE"

            ws.send_json({"type": "join_game", "room_code": "ABCD"})
            assert ws.receive_json()["code"] == "BAD_MESSAGE"

            ws.send_json({"type": "join_game", "room_code": "ABCD", "player_name": "Bob"})
            assert ws.receive_json()["code"] == "ROOM_NOT_FOUND"

            ws.send_json({"type": "start_game"})
            assert ws.receive_json()["code"] == "RATE_LIMITED"
