# arena/games/game24/liveness.py
from __future__ import annotations
from typing import Any, Dict
import logging

from . import keys
from .outcomes import Outcome, Reason
from .rooms import RoomService

logger = logging.getLogger(__name__)


class LivenessMonitor:
    """
    Heartbeats are plain keys with a TTL; a missing key means the player
    timed out. `sweep` evicts timed-out members and destroys empty rooms.
    It is safe to run redundantly or from several workers at once: every
    removal is an srem, and only the caller whose srem succeeded counts it.
    """

    def __init__(self, rooms: RoomService, sweep_interval: int = 10):
        self.rooms = rooms
        self.kv = rooms.kv
        self.sweep_interval = sweep_interval

    def heartbeat(self, room_id: str, username: str) -> Outcome:
        if not self.kv.exists(keys.room(room_id)):
            return Outcome.fail(Reason.ROOM_NOT_FOUND, f"no room {room_id!r}")
        if not self.kv.sismember(keys.players(room_id), username):
            return Outcome.fail(Reason.NOT_MEMBER, f"{username} is not in room {room_id}")
        self.rooms.touch(room_id, username)
        logger.debug("heartbeat room=%s player=%s", room_id, username)
        return Outcome.success(expiresIn=self.rooms.heartbeat_timeout)

    def maybe_sweep(self) -> Dict[str, Any]:
        """Sweep unless another caller did so within the last sweep_interval seconds."""
        if not self.kv.set(keys.SWEEP_MARKER, self.rooms.now_ms(), ex=self.sweep_interval, nx=True):
            return {"swept": False, "cleanedPlayers": 0, "cleanedRooms": 0}
        return self.sweep()

    def sweep(self) -> Dict[str, Any]:
        cleaned_players = 0
        cleaned_rooms = 0
        for room_id in sorted(self.kv.smembers(keys.ROOMS_ALL)):
            if not self.kv.exists(keys.room(room_id)):
                # listed but half-deleted by an interrupted destroy
                if self.rooms.destroy_room(room_id):
                    cleaned_rooms += 1
                continue

            evicted = 0
            for username in sorted(self.rooms.members(room_id)):
                if self.kv.exists(keys.heartbeat(room_id, username)):
                    continue
                if self.rooms.remove_member(room_id, username):
                    logger.info("sweep: %s timed out in room %s", username, room_id)
                    evicted += 1
            cleaned_players += evicted

            if evicted or not self.rooms.members(room_id):
                destroyed, _ = self.rooms.after_removal(room_id)
                if destroyed:
                    cleaned_rooms += 1

        if cleaned_players or cleaned_rooms:
            logger.info("sweep done: %d players, %d rooms cleaned", cleaned_players, cleaned_rooms)
        return {"swept": True, "cleanedPlayers": cleaned_players, "cleanedRooms": cleaned_rooms}
