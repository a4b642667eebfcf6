# arena/games/game24/services.py
# Per-app service objects, built once and kept in app.extensions.
from __future__ import annotations
import time

from flask import current_app

from arena.games.core.store_registry import get_kv, get_store
from .liveness import LivenessMonitor
from .players import PlayerRegistry
from .rooms import RoomService
from .track import log_round

CLOCK_KEY = "game24.clock"
RNG_KEY = "game24.rng"
ROOMS_KEY = "game24.rooms"
LIVENESS_KEY = "game24.liveness"


def _build_rooms() -> RoomService:
    cfg = current_app.config
    kv = get_kv()
    return RoomService(
        kv,
        PlayerRegistry(kv),
        clock=current_app.extensions.get(CLOCK_KEY, time.time),
        rng=current_app.extensions.get(RNG_KEY),
        max_players=int(cfg.get("GAME24_MAX_PLAYERS", 4)),
        min_players=int(cfg.get("GAME24_MIN_PLAYERS", 2)),
        heartbeat_timeout=int(cfg.get("GAME24_HEARTBEAT_TIMEOUT", 30)),
        solution_limit=int(cfg.get("GAME24_SOLUTION_LIMIT", 5)),
        on_round_finished=log_round,
    )


def rooms() -> RoomService:
    return get_store(ROOMS_KEY, _build_rooms)


def players() -> PlayerRegistry:
    return rooms().players


def liveness() -> LivenessMonitor:
    return get_store(LIVENESS_KEY, lambda: LivenessMonitor(
        rooms(), sweep_interval=int(current_app.config.get("GAME24_SWEEP_INTERVAL", 10))))
