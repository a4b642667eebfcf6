"""
HTTP surface of the 24-point blueprint.
"""

import pytest

from arena.games.core.kv_store import StoreError
from arena.games.game24 import services

API = "/games/game24/api"


def post(client, path, **body):
    return client.post(f"{API}{path}", json=body)


def get(client, path):
    return client.get(f"{API}{path}")


@pytest.fixture
def table(client):
    """alice's room with bob joined; returns the room id."""
    for name in ("alice", "bob", "carol"):
        assert post(client, "/users", username=name).status_code == 201
    r = post(client, "/rooms", username="alice", roomName="table one")
    assert r.status_code == 201
    room_id = r.get_json()["room"]["id"]
    assert post(client, f"/rooms/{room_id}/join", username="bob").status_code == 200
    return room_id


def deal(cards):
    services.rooms().deal = lambda: list(cards)


# ---------------------------------------------------------------------------
# players
# ---------------------------------------------------------------------------
def test_register(client):
    r = post(client, "/users", username="alice")
    assert r.status_code == 201
    assert r.get_json()["user"]["username"] == "alice"

    r = post(client, "/users", username="alice")
    assert r.status_code == 400
    assert r.get_json()["error"] == "player_exists"

    r = post(client, "/users", username="")
    assert r.status_code == 400
    assert r.get_json()["error"] == "invalid_username"


def test_user_lookup(client):
    post(client, "/users", username="alice")
    assert get(client, "/users/alice").get_json()["user"]["games"] == 0
    r = get(client, "/users/ghost")
    assert r.status_code == 404
    assert r.get_json() == {"ok": False, "error": "player_not_found", "detail": "no player 'ghost'"}


# ---------------------------------------------------------------------------
# rooms
# ---------------------------------------------------------------------------
def test_create_room_validation(client):
    post(client, "/users", username="alice")
    r = post(client, "/rooms", username="alice")
    assert r.status_code == 400
    assert r.get_json()["error"] == "bad_request"
    assert post(client, "/rooms", username="ghost", roomName="x").status_code == 404


def test_lobby(client, table):
    rooms = get(client, "/rooms").get_json()["rooms"]
    assert [r["id"] for r in rooms] == [table]
    assert rooms[0]["players"] == ["alice", "bob"]
    assert get(client, f"/rooms/{table}").get_json()["room"]["owner"] == "alice"
    assert get(client, "/rooms/NOPE00").status_code == 404


def test_join_errors(client, table):
    r = post(client, f"/rooms/{table}/join", username="bob")
    assert r.status_code == 400
    assert r.get_json()["error"] == "already_joined"
    assert post(client, "/rooms/NOPE00/join", username="carol").status_code == 404
    assert post(client, f"/rooms/{table}/join").status_code == 400


def test_owner_leaves(client, table):
    r = post(client, f"/rooms/{table}/leave", username="alice")
    assert r.get_json()["roomDestroyed"] is True
    assert get(client, f"/rooms/{table}").status_code == 404


# ---------------------------------------------------------------------------
# a round, end to end
# ---------------------------------------------------------------------------
def test_win_flow(client, table):
    assert post(client, f"/rooms/{table}/start", username="bob").status_code == 403

    deal([2, 3, 4, 5])
    r = post(client, f"/rooms/{table}/start", username="alice")
    assert r.status_code == 200
    assert r.get_json()["cards"] == [2, 3, 4, 5]

    state = get(client, f"/rooms/{table}/state").get_json()
    assert state["status"] == "playing"
    assert state["currentRound"] == 1

    r = post(client, f"/rooms/{table}/submit", username="bob", expression="2+3*4+5")
    assert r.status_code == 400
    assert r.get_json()["error"] == "wrong_result"

    r = post(client, f"/rooms/{table}/submit", username="bob", expression="(5+3-2)*4")
    assert r.status_code == 200
    body = r.get_json()
    assert body["winner"] == "bob"
    assert body["elapsedTime"] == 0

    rounds = get(client, f"/rooms/{table}/history").get_json()["rounds"]
    assert len(rounds) == 1
    assert rounds[0]["outcome"] == "win"
    assert rounds[0]["winner"] == "bob"
    assert rounds[0]["cards"] == [2, 3, 4, 5]
    assert rounds[0]["roomId"] == table

    board = get(client, "/leaderboard").get_json()["leaderboard"]
    assert board[0]["username"] == "bob"
    assert board[0]["winRate"] == "100.0"


def test_draw_flow(client, table):
    deal([1, 1, 1, 1])
    post(client, f"/rooms/{table}/start", username="alice")
    r = post(client, f"/rooms/{table}/fold", username="alice")
    assert r.get_json()["isDraw"] is False
    r = post(client, f"/rooms/{table}/fold", username="bob")
    body = r.get_json()
    assert body["isDraw"] is True
    assert body["noSolution"] is True

    state = get(client, f"/rooms/{table}/state").get_json()
    assert state["winner"] == "draw"
    assert state["solutionInfo"]["hasAnswer"] is False

    (rec,) = get(client, f"/rooms/{table}/history?limit=5").get_json()["rounds"]
    assert rec["outcome"] == "draw"
    assert rec["winner"] is None
    assert rec["hasAnswer"] is False


def test_round_preconditions(client, table):
    r = post(client, f"/rooms/{table}/fold", username="bob")
    assert r.status_code == 400
    assert r.get_json()["error"] == "game_not_in_progress"
    r = post(client, f"/rooms/{table}/submit", username="bob")
    assert r.status_code == 400
    assert r.get_json()["error"] == "bad_request"


def test_history_of_unknown_room_is_empty(client):
    r = get(client, "/rooms/NOPE00/history")
    assert r.status_code == 200
    assert r.get_json()["rounds"] == []


# ---------------------------------------------------------------------------
# liveness
# ---------------------------------------------------------------------------
def test_heartbeat(client, table):
    r = post(client, "/heartbeat", roomId=table, username="bob")
    assert r.status_code == 200
    assert r.get_json()["expiresIn"] == 30
    assert post(client, "/heartbeat", roomId=table).status_code == 400
    assert post(client, "/heartbeat", roomId="NOPE00", username="bob").status_code == 404
    assert post(client, "/heartbeat", roomId=table, username="carol").status_code == 400


def test_sweep(client, table, clock):
    clock.advance(31)
    body = post(client, "/sweep").get_json()
    assert body == {"ok": True, "swept": True, "cleanedPlayers": 2, "cleanedRooms": 1}
    assert get(client, "/rooms").get_json()["rooms"] == []


# ---------------------------------------------------------------------------
# solver / failures
# ---------------------------------------------------------------------------
def test_solve(client):
    body = post(client, "/solve", cards=[3, 3, 8, 8]).get_json()
    assert body["hasAnswer"] is True
    assert body["solutions"]

    body = post(client, "/solve", cards=[1, 1, 1, 1]).get_json()
    assert body == {"ok": True, "cards": [1, 1, 1, 1], "solutions": [], "hasAnswer": False}

    assert post(client, "/solve", cards=[1, 2, 3]).status_code == 400
    assert post(client, "/solve", cards=[0, 2, 3, 4]).status_code == 400
    assert post(client, "/solve").status_code == 400


def test_store_outage_is_503(client, table, kv, monkeypatch):
    def down(*args, **kwargs):
        raise StoreError("connection refused")

    monkeypatch.setattr(kv, "hgetall", down)
    r = get(client, f"/rooms/{table}")
    assert r.status_code == 503
    assert r.get_json()["error"] == "store_unavailable"


# ---------------------------------------------------------------------------
# malformed bodies
# ---------------------------------------------------------------------------
def test_register_rejects_non_text_username(client):
    for bad in (123, ["alice"], {"name": "alice"}):
        r = post(client, "/users", username=bad)
        assert r.status_code == 400
        assert r.get_json()["error"] == "invalid_username"


def test_fields_must_be_text(client, table):
    r = post(client, f"/rooms/{table}/join", username=["carol"])
    assert r.status_code == 400
    assert r.get_json()["error"] == "bad_request"
    assert "username" in r.get_json()["detail"]

    deal([2, 3, 4, 5])
    post(client, f"/rooms/{table}/start", username="alice")
    r = post(client, f"/rooms/{table}/submit", username="bob", expression=24)
    assert r.status_code == 400
    assert r.get_json()["error"] == "bad_request"


def test_non_object_body(client):
    r = client.post(f"{API}/rooms", json=["alice", "table"])
    assert r.status_code == 400
    assert r.get_json()["error"] == "bad_request"


def test_huge_answer_is_rejected_cleanly(client, table):
    deal([2, 3, 4, 5])
    post(client, f"/rooms/{table}/start", username="alice")
    r = post(client, f"/rooms/{table}/submit", username="bob", expression="1" * 5000 + "+2+3+4")
    assert r.status_code == 400
    assert r.get_json()["error"] == "operand_mismatch"
