# arena/games/game24/game24_routes.py
# JSON API for multiplayer 24-point rooms. Thin: parse, call a service, map the Outcome.
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from flask import Blueprint, jsonify, request

from arena import limiter
from arena.games.core.coerce_utils import coerce_int, coerce_int_list
from arena.games.core.kv_store import StoreError
from arena.games.core.solver import solve_24
from . import services
from .outcomes import Outcome, Reason
from .track import round_history

logger = logging.getLogger(__name__)
bp = Blueprint("game24", __name__, url_prefix="/games/game24")

_STATUS_BY_CATEGORY = {"not_found": 404, "validation": 400, "precondition": 400}


# -----------------------------------------------------------------------------
# Small per-request helpers
# -----------------------------------------------------------------------------
def _body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}

def _fields(data: Dict[str, Any], *names: str) -> Tuple[Optional[list], Optional[Any]]:
    """Pull required string fields; returns (values, None) or (None, error_response)."""
    vals = []
    missing = []
    wrong_type = []
    for n in names:
        v = data.get(n)
        if v is not None and not isinstance(v, str):
            wrong_type.append(n)
            continue
        v = (v or "").strip()
        if not v:
            missing.append(n)
        vals.append(v)
    if missing or wrong_type:
        problems = []
        if missing:
            problems.append(f"missing field(s): {', '.join(missing)}")
        if wrong_type:
            problems.append(f"not a string: {', '.join(wrong_type)}")
        return None, (jsonify({"ok": False, "error": "bad_request",
                               "detail": "; ".join(problems)}), 400)
    return vals, None

def _reply(outcome: Outcome, ok_status: int = 200):
    if outcome.ok:
        return jsonify(outcome.to_dict()), ok_status
    if outcome.reason is Reason.NOT_OWNER:
        status = 403
    else:
        status = _STATUS_BY_CATEGORY[outcome.reason.category]
    return jsonify(outcome.to_dict()), status


@bp.errorhandler(StoreError)
def _store_failed(e: StoreError):
    logger.error("store failure on %s %s: %s", request.method, request.path, e)
    return jsonify({"ok": False, "error": "store_unavailable", "detail": str(e)}), 503


# -----------------------------------------------------------------------------
# Players
# -----------------------------------------------------------------------------
@bp.post("/api/users")
def api_register():
    data = _body()
    return _reply(services.players().register(data.get("username")), ok_status=201)

@bp.get("/api/users/<username>")
def api_user(username: str):
    return _reply(services.players().get(username))

@bp.get("/api/leaderboard")
def api_leaderboard():
    return jsonify({"ok": True, "leaderboard": services.players().leaderboard()}), 200


# -----------------------------------------------------------------------------
# Rooms
# -----------------------------------------------------------------------------
@bp.get("/api/rooms")
def api_rooms():
    services.liveness().maybe_sweep()
    return jsonify({"ok": True, "rooms": services.rooms().list_rooms()}), 200

@bp.post("/api/rooms")
def api_create_room():
    vals, err = _fields(_body(), "username", "roomName")
    if err:
        return err
    username, room_name = vals
    return _reply(services.rooms().create_room(username, room_name), ok_status=201)

@bp.get("/api/rooms/<room_id>")
def api_room(room_id: str):
    return _reply(services.rooms().get_room(room_id))

@bp.post("/api/rooms/<room_id>/join")
def api_join(room_id: str):
    vals, err = _fields(_body(), "username")
    if err:
        return err
    return _reply(services.rooms().join(room_id, vals[0]))

@bp.post("/api/rooms/<room_id>/leave")
def api_leave(room_id: str):
    vals, err = _fields(_body(), "username")
    if err:
        return err
    return _reply(services.rooms().leave(room_id, vals[0]))


# -----------------------------------------------------------------------------
# Rounds
# -----------------------------------------------------------------------------
@bp.post("/api/rooms/<room_id>/start")
def api_start(room_id: str):
    vals, err = _fields(_body(), "username")
    if err:
        return err
    return _reply(services.rooms().start(room_id, vals[0]))

@bp.post("/api/rooms/<room_id>/submit")
def api_submit(room_id: str):
    vals, err = _fields(_body(), "username", "expression")
    if err:
        return err
    username, expression = vals
    return _reply(services.rooms().submit(room_id, username, expression))

@bp.post("/api/rooms/<room_id>/fold")
def api_fold(room_id: str):
    vals, err = _fields(_body(), "username")
    if err:
        return err
    return _reply(services.rooms().fold(room_id, vals[0]))

@bp.get("/api/rooms/<room_id>/state")
def api_state(room_id: str):
    return _reply(services.rooms().game_state(room_id))

@bp.get("/api/rooms/<room_id>/history")
def api_history(room_id: str):
    limit = coerce_int(request.args.get("limit"), 20)
    return jsonify({"ok": True, "rounds": round_history(room_id, limit=limit)}), 200


# -----------------------------------------------------------------------------
# Liveness
# -----------------------------------------------------------------------------
@bp.post("/api/heartbeat")
@limiter.limit("60 per minute")
def api_heartbeat():
    vals, err = _fields(_body(), "roomId", "username")
    if err:
        return err
    room_id, username = vals
    return _reply(services.liveness().heartbeat(room_id, username))

@bp.post("/api/sweep")
@limiter.limit("20 per minute")
def api_sweep():
    return jsonify({"ok": True, **services.liveness().sweep()}), 200


# -----------------------------------------------------------------------------
# Solver utility
# -----------------------------------------------------------------------------
@bp.post("/api/solve")
@limiter.limit("20 per minute")
def api_solve():
    cards = coerce_int_list(_body().get("cards"))
    if len(cards) != 4 or any(c < 1 or c > 13 for c in cards):
        return jsonify({"ok": False, "error": "bad_request",
                        "detail": "cards must be 4 integers between 1 and 13"}), 400
    sols = solve_24(cards)
    return jsonify({"ok": True, "cards": cards, "solutions": sols, "hasAnswer": bool(sols)}), 200
