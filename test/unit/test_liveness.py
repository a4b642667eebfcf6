"""
Heartbeats and the timeout sweep.
"""

from arena.games.game24 import keys
from arena.games.game24.outcomes import Reason


def test_heartbeat(liveness, room_id, kv, clock):
    clock.advance(25)
    out = liveness.heartbeat(room_id, "bob")
    assert out.ok and out.data["expiresIn"] == 30
    clock.advance(25)
    # refreshed, so still alive 50s after joining
    assert kv.exists(keys.heartbeat(room_id, "bob"))
    assert not kv.exists(keys.heartbeat(room_id, "alice"))


def test_heartbeat_checks(liveness, room_id):
    assert liveness.heartbeat("NOPE00", "bob").reason is Reason.ROOM_NOT_FOUND
    assert liveness.heartbeat(room_id, "carol").reason is Reason.NOT_MEMBER


def test_sweep_with_everyone_alive(liveness, room_id):
    assert liveness.sweep() == {"swept": True, "cleanedPlayers": 0, "cleanedRooms": 0}


def test_sweep_evicts_and_hands_over(liveness, rooms, room_id, clock):
    clock.advance(20)
    liveness.heartbeat(room_id, "bob")
    clock.advance(15)

    res = liveness.sweep()
    assert res == {"swept": True, "cleanedPlayers": 1, "cleanedRooms": 0}
    room = rooms.get_room(room_id).data["room"]
    assert room["players"] == ["bob"]
    assert room["owner"] == "bob"
    assert room["playerCount"] == 1

    # nothing left to do on a second pass
    assert liveness.sweep()["cleanedPlayers"] == 0


def test_sweep_destroys_abandoned_room(liveness, rooms, room_id, kv, clock):
    clock.advance(31)
    res = liveness.sweep()
    assert res["cleanedPlayers"] == 2
    assert res["cleanedRooms"] == 1
    assert not kv.exists(keys.room(room_id))
    assert room_id not in kv.smembers(keys.ROOMS_ALL)
    assert liveness.sweep()["cleanedRooms"] == 0


def test_sweep_cleans_dangling_ids(liveness, kv):
    kv.sadd(keys.ROOMS_ALL, "GHOST1")
    assert liveness.sweep()["cleanedRooms"] == 1
    assert not kv.smembers(keys.ROOMS_ALL)


def test_sweep_settles_draw_for_absent_player(liveness, rooms, room_id, clock):
    rooms.join(room_id, "carol")
    rooms.deal = lambda: [2, 3, 4, 5]
    rooms.start(room_id, "alice")
    rooms.fold(room_id, "bob")
    rooms.fold(room_id, "carol")

    clock.advance(20)
    liveness.heartbeat(room_id, "bob")
    liveness.heartbeat(room_id, "carol")
    clock.advance(15)
    liveness.sweep()

    state = rooms.game_state(room_id).data
    assert state["winner"] == "draw"
    assert state["owner"] == "bob"
    assert state["players"] == ["bob", "carol"]


def test_maybe_sweep_is_rate_limited(liveness, clock):
    assert liveness.maybe_sweep()["swept"] is True
    assert liveness.maybe_sweep() == {"swept": False, "cleanedPlayers": 0, "cleanedRooms": 0}
    clock.advance(10)
    assert liveness.maybe_sweep()["swept"] is True
