# arena/games/game24/players.py
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from arena.games.core.coerce_utils import coerce_int
from arena.games.core.kv_store import KVStore
from . import keys
from .outcomes import Outcome, Reason

logger = logging.getLogger(__name__)

MAX_USERNAME = 32
# the room hash stores winner=draw for an all-fold round
DRAW = "draw"


def profile_payload(raw: Dict[str, str]) -> Dict[str, Any]:
    return {
        "username": raw.get("username"),
        "score": coerce_int(raw.get("score")),
        "wins": coerce_int(raw.get("wins")),
        "games": coerce_int(raw.get("games")),
        "createdAt": raw.get("createdAt"),
    }


class PlayerRegistry:
    """Player profiles: identity, score, wins, games played."""

    def __init__(self, kv: KVStore):
        self.kv = kv

    def register(self, username: Optional[str]) -> Outcome:
        if not isinstance(username, str):
            return Outcome.fail(Reason.INVALID_USERNAME, "username must be a string")
        name = username.strip()
        if not name or len(name) > MAX_USERNAME:
            return Outcome.fail(Reason.INVALID_USERNAME,
                                f"username must be 1-{MAX_USERNAME} characters")
        if name.lower() == DRAW:
            return Outcome.fail(Reason.INVALID_USERNAME, f"{name!r} is reserved")
        # sadd is the uniqueness gate; a concurrent register of the same name gets 0
        if not self.kv.sadd(keys.USERS_ALL, name):
            return Outcome.fail(Reason.PLAYER_EXISTS, f"username {name!r} is taken")
        created = datetime.now(timezone.utc).isoformat()
        self.kv.hset(keys.user(name), mapping={
            "username": name, "score": 0, "wins": 0, "games": 0, "createdAt": created,
        })
        logger.info("player registered: %s", name)
        return Outcome.success(user={"username": name, "score": 0, "wins": 0,
                                     "games": 0, "createdAt": created})

    def exists(self, username: str) -> bool:
        return self.kv.exists(keys.user(username))

    def get(self, username: str) -> Outcome:
        raw = self.kv.hgetall(keys.user(username))
        if not raw:
            return Outcome.fail(Reason.PLAYER_NOT_FOUND, f"no player {username!r}")
        return Outcome.success(user=profile_payload(raw))

    # ---- round resolution bookkeeping ----
    def record_win(self, username: str) -> None:
        k = keys.user(username)
        self.kv.hincrby(k, "score", 1)
        self.kv.hincrby(k, "wins", 1)
        self.kv.hincrby(k, "games", 1)

    def record_game(self, username: str) -> None:
        self.kv.hincrby(keys.user(username), "games", 1)

    def leaderboard(self) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        for name in self.kv.smembers(keys.USERS_ALL):
            raw = self.kv.hgetall(keys.user(name))
            if not raw:
                continue
            row = profile_payload(raw)
            games, wins = row["games"], row["wins"]
            row["winRate"] = f"{(wins / games * 100):.1f}" if games > 0 else "0.0"
            rows.append(row)
        rows.sort(key=lambda r: (-r["score"], r["username"] or ""))
        return [{"rank": i, **r} for i, r in enumerate(rows, start=1)]
