# arena/games/game24/rooms.py
"""
Room / round lifecycle for multiplayer 24-point.

    waiting --start--> playing --first valid submit--> finished (winner)
                       playing --everyone folds-----> finished (draw)
    finished --start--> playing

All state lives in the KV store; this class holds no per-room memory, so
any number of workers can serve the same room. There are no multi-key
transactions. Races are narrowed with single-key atomics:

  - room[winner] is claimed with hsetnx, by a winning submit or by the
    draw resolution. The first claim is the round's outcome; later
    claimants are rejected and write nothing.
  - join/fold use the sadd return value instead of check-then-add.
  - room destruction is counted by whoever removes the id from rooms:all.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set
import logging
import random
import time

from arena.games.core.coerce_utils import coerce_int, coerce_int_list, dump_json, load_json
from arena.games.core.kv_store import KVStore, StoreError
from arena.games.core.solver import solve_24
from . import keys
from .logic.evaluator import validate_expression
from .outcomes import Outcome, Reason
from .players import DRAW, PlayerRegistry

logger = logging.getLogger(__name__)

WAITING = "waiting"
PLAYING = "playing"
FINISHED = "finished"

ROOM_ID_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"  # Crockford base32
ROOM_ID_LENGTH = 6
ROOM_CLAIM_TTL = 60  # seconds; the room hash guards the id after that


class RoomService:

    def __init__(
        self,
        kv: KVStore,
        players: Optional[PlayerRegistry] = None,
        *,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
        max_players: int = 4,
        min_players: int = 2,
        heartbeat_timeout: int = 30,
        solution_limit: int = 5,
        on_round_finished: Optional[Callable[[str, Dict[str, Any]], None]] = None,
    ):
        self.kv = kv
        self.players = players or PlayerRegistry(kv)
        self.clock = clock
        self.rng = rng or random.SystemRandom()
        self.max_players = max_players
        self.min_players = min_players
        self.heartbeat_timeout = heartbeat_timeout
        self.solution_limit = solution_limit
        self.on_round_finished = on_round_finished

    # ============================================================
    # small helpers
    # ============================================================
    def now_ms(self) -> int:
        return int(self.clock() * 1000)

    def deal(self) -> List[int]:
        return [self.rng.randint(1, 13) for _ in range(4)]

    def touch(self, room_id: str, username: str) -> None:
        """Refresh the (room, player) liveness window."""
        self.kv.set(keys.heartbeat(room_id, username), self.now_ms(), ex=self.heartbeat_timeout)

    def cards(self, room_id: str) -> List[int]:
        return coerce_int_list(load_json(self.kv.get(keys.cards(room_id)), []))

    def members(self, room_id: str) -> Set[str]:
        return self.kv.smembers(keys.players(room_id))

    def _summary(self, meta: Dict[str, str], members: Iterable[str]) -> Dict[str, Any]:
        members = sorted(members)
        return {
            "id": meta.get("id"),
            "name": meta.get("name"),
            "owner": meta.get("owner"),
            "status": meta.get("status"),
            "createdAt": meta.get("createdAt"),
            "currentRound": coerce_int(meta.get("currentRound")),
            "players": members,
            "playerCount": len(members),
            "maxPlayers": self.max_players,
        }

    def _claim_room_id(self) -> str:
        # the claim key is the uniqueness check; the room hash only appears
        # once it is complete. Regenerate on rare hits.
        for _ in range(6):
            room_id = "".join(self.rng.choice(ROOM_ID_ALPHABET) for _ in range(ROOM_ID_LENGTH))
            if self.kv.exists(keys.room(room_id)):
                continue
            if self.kv.set(keys.room_claim(room_id), self.now_ms(), ex=ROOM_CLAIM_TTL, nx=True):
                return room_id
        raise StoreError("could not allocate a unique room id")

    def _discard_partial(self, room_id: str, owner: str) -> None:
        """Best-effort removal of a room whose creation failed half way."""
        try:
            self.kv.srem(keys.ROOMS_ALL, room_id)
            self.kv.delete(*keys.room_keys(room_id), keys.room_claim(room_id),
                           keys.heartbeat(room_id, owner))
        except StoreError:
            logger.warning("room %s: cleanup after failed create also failed", room_id, exc_info=True)

    # ============================================================
    # queries
    # ============================================================
    def list_rooms(self) -> List[Dict[str, Any]]:
        rooms = []
        for room_id in sorted(self.kv.smembers(keys.ROOMS_ALL)):
            meta = self.kv.hgetall(keys.room(room_id))
            if meta.get("status") == WAITING:
                rooms.append(self._summary(meta, self.members(room_id)))
        return rooms

    def get_room(self, room_id: str) -> Outcome:
        meta = self.kv.hgetall(keys.room(room_id))
        if not meta:
            return Outcome.fail(Reason.ROOM_NOT_FOUND, f"no room {room_id!r}")
        return Outcome.success(room=self._summary(meta, self.members(room_id)))

    def game_state(self, room_id: str) -> Outcome:
        meta = self.kv.hgetall(keys.room(room_id))
        if not meta:
            return Outcome.fail(Reason.ROOM_NOT_FOUND, f"no room {room_id!r}")
        status = meta.get("status")
        winner = meta.get("winner") or None
        solution_info = None
        if status == FINISHED and winner == DRAW:
            solution_info = load_json(self.kv.get(keys.solutions(room_id)))
        return Outcome.success(
            status=status,
            cards=self.cards(room_id) or None,
            winner=winner,
            owner=meta.get("owner"),
            currentRound=coerce_int(meta.get("currentRound")),
            players=sorted(self.members(room_id)),
            foldedPlayers=sorted(self.kv.smembers(keys.folds(room_id))),
            solutionInfo=solution_info,
        )

    # ============================================================
    # membership
    # ============================================================
    def create_room(self, owner: str, name: str) -> Outcome:
        if not self.players.exists(owner):
            return Outcome.fail(Reason.PLAYER_NOT_FOUND, f"no player {owner!r}")
        room_id = self._claim_room_id()
        created = datetime.now(timezone.utc).isoformat()
        try:
            # one hset: readers see either no room or the whole record
            self.kv.hset(keys.room(room_id), mapping={
                "id": room_id,
                "name": name,
                "owner": owner,
                "status": WAITING,
                "createdAt": created,
                "currentRound": 0,
                "playerCount": 1,
            })
            self.kv.sadd(keys.players(room_id), owner)
            self.touch(room_id, owner)
            # published last, so a concurrent sweep never sees a half-built room
            self.kv.sadd(keys.ROOMS_ALL, room_id)
        except StoreError:
            self._discard_partial(room_id, owner)
            raise
        logger.info("room %s created by %s (%s)", room_id, owner, name)
        meta = {"id": room_id, "name": name, "owner": owner, "status": WAITING,
                "createdAt": created, "currentRound": "0"}
        return Outcome.success(room=self._summary(meta, [owner]))

    def join(self, room_id: str, username: str) -> Outcome:
        rkey, pkey = keys.room(room_id), keys.players(room_id)
        meta = self.kv.hgetall(rkey)
        if not meta:
            return Outcome.fail(Reason.ROOM_NOT_FOUND, f"no room {room_id!r}")
        if not self.players.exists(username):
            return Outcome.fail(Reason.PLAYER_NOT_FOUND, f"no player {username!r}")
        if meta.get("status") not in (WAITING, FINISHED):
            return Outcome.fail(Reason.GAME_IN_PROGRESS, "a round is being played")
        if self.kv.sismember(pkey, username):
            return Outcome.fail(Reason.ALREADY_JOINED, f"{username} is already in the room")
        if self.kv.scard(pkey) >= self.max_players:
            return Outcome.fail(Reason.ROOM_FULL, f"room holds at most {self.max_players} players")

        if not self.kv.sadd(pkey, username):
            return Outcome.fail(Reason.ALREADY_JOINED, f"{username} is already in the room")
        count = self.kv.scard(pkey)
        if count > self.max_players:
            # lost a race for the last seat; undo our own add only
            self.kv.srem(pkey, username)
            return Outcome.fail(Reason.ROOM_FULL, f"room holds at most {self.max_players} players")
        if not self.kv.exists(rkey):
            # room was destroyed between the check and the add
            self.kv.delete(pkey)
            return Outcome.fail(Reason.ROOM_NOT_FOUND, f"no room {room_id!r}")

        self.kv.hset(rkey, "playerCount", count)
        self.touch(room_id, username)
        logger.info("room %s: %s joined (%d/%d)", room_id, username, count, self.max_players)
        return Outcome.success(players=sorted(self.members(room_id)))

    def leave(self, room_id: str, username: str) -> Outcome:
        meta = self.kv.hgetall(keys.room(room_id))
        if not meta:
            return Outcome.fail(Reason.ROOM_NOT_FOUND, f"no room {room_id!r}")
        if not self.kv.sismember(keys.players(room_id), username):
            return Outcome.fail(Reason.NOT_MEMBER, f"{username} is not in room {room_id}")

        if meta.get("owner") == username:
            logger.info("room %s: owner %s left, closing room", room_id, username)
            self.destroy_room(room_id)
            return Outcome.success(roomDestroyed=True, players=[])

        self.remove_member(room_id, username)
        destroyed, remaining = self.after_removal(room_id)
        logger.info("room %s: %s left", room_id, username)
        return Outcome.success(roomDestroyed=destroyed, players=sorted(remaining))

    def remove_member(self, room_id: str, username: str) -> bool:
        """Drop one player and their per-round traces. True if they were a member."""
        removed = self.kv.srem(keys.players(room_id), username)
        self.kv.srem(keys.folds(room_id), username)
        self.kv.hdel(keys.submissions(room_id), username)
        self.kv.delete(keys.heartbeat(room_id, username))
        return bool(removed)

    def after_removal(self, room_id: str):
        """
        Reconcile a room after members were removed: destroy it when empty,
        otherwise fill a vacant owner seat and settle a round in which every
        remaining member has already folded. Returns (destroyed, members).
        """
        remaining = self.members(room_id)
        if not remaining:
            return self.destroy_room(room_id), set()

        rkey = keys.room(room_id)
        meta = self.kv.hgetall(rkey)
        if not meta:
            return False, remaining
        owner = meta.get("owner")
        if owner not in remaining:
            new_owner = sorted(remaining)[0]
            self.kv.hset(rkey, "owner", new_owner)
            logger.info("room %s: ownership %s -> %s", room_id, owner, new_owner)
        self.kv.hset(rkey, "playerCount", len(remaining))

        if meta.get("status") == PLAYING:
            folded = self.kv.smembers(keys.folds(room_id))
            if remaining <= folded:
                self._resolve_draw(room_id, remaining)
        return False, remaining

    def destroy_room(self, room_id: str) -> bool:
        """Delete every key the room owns. True only for the caller that actually unlisted it."""
        members = self.members(room_id)
        claimed = self.kv.srem(keys.ROOMS_ALL, room_id)
        self.kv.delete(*keys.room_keys(room_id))
        if members:
            self.kv.delete(*(keys.heartbeat(room_id, m) for m in members))
        if claimed:
            logger.info("room %s destroyed", room_id)
        return bool(claimed)

    # ============================================================
    # rounds
    # ============================================================
    def start(self, room_id: str, initiator: str) -> Outcome:
        rkey = keys.room(room_id)
        meta = self.kv.hgetall(rkey)
        if not meta:
            return Outcome.fail(Reason.ROOM_NOT_FOUND, f"no room {room_id!r}")
        if meta.get("owner") != initiator:
            return Outcome.fail(Reason.NOT_OWNER, "only the room owner can start a round")
        if meta.get("status") not in (WAITING, FINISHED):
            return Outcome.fail(Reason.GAME_IN_PROGRESS, "a round is already being played")
        count = self.kv.scard(keys.players(room_id))
        if count < self.min_players:
            return Outcome.fail(Reason.INSUFFICIENT_PLAYERS,
                                f"need at least {self.min_players} players, have {count}")

        cards = self.deal()
        self.kv.delete(keys.submissions(room_id), keys.folds(room_id), keys.solutions(room_id))
        self.kv.hdel(rkey, "winner")
        # cards land before the status flip: playing always has a hand
        self.kv.set(keys.cards(room_id), dump_json(cards))
        round_no = self.kv.hincrby(rkey, "currentRound", 1)
        self.kv.hset(rkey, mapping={"status": PLAYING, "startTime": self.now_ms()})
        logger.info("room %s: round %d started, cards=%s", room_id, round_no, cards)
        return Outcome.success(cards=cards, currentRound=round_no)

    def submit(self, room_id: str, username: str, expression: str) -> Outcome:
        rkey = keys.room(room_id)
        meta = self.kv.hgetall(rkey)
        if not meta:
            return Outcome.fail(Reason.ROOM_NOT_FOUND, f"no room {room_id!r}")
        if meta.get("status") != PLAYING:
            return Outcome.fail(Reason.GAME_NOT_IN_PROGRESS, "no round is being played")
        if not self.kv.sismember(keys.players(room_id), username):
            return Outcome.fail(Reason.NOT_MEMBER, f"{username} is not in room {room_id}")
        if self.kv.sismember(keys.folds(room_id), username):
            return Outcome.fail(Reason.ALREADY_FOLDED, "you folded this round")
        if self.kv.hexists(keys.submissions(room_id), username):
            return Outcome.fail(Reason.ALREADY_SUBMITTED, "you already submitted this round")

        cards = self.cards(room_id)
        if len(cards) != 4:
            raise StoreError(f"room {room_id} is playing without a dealt hand")

        check = validate_expression(expression, cards)
        if not check.valid:
            logger.debug("room %s: %s submitted %r -> %s", room_id, username, expression, check.reason.value)
            return Outcome.fail(check.reason, check.detail)

        now = self.now_ms()
        if not self.kv.hsetnx(rkey, "winner", username):
            return Outcome.fail(Reason.GAME_NOT_IN_PROGRESS, "this round has already been decided")

        self.kv.hset(keys.submissions(room_id), username, dump_json({
            "expression": expression, "time": now, "result": check.result,
        }))
        elapsed = now - coerce_int(meta.get("startTime"), now)

        self.players.record_win(username)
        folded = self.kv.smembers(keys.folds(room_id))
        for other in self.members(room_id) - folded - {username}:
            self.players.record_game(other)
        self.kv.hset(rkey, "status", FINISHED)

        logger.info("room %s: %s won round %s with %r in %d ms",
                    room_id, username, meta.get("currentRound"), expression, elapsed)
        self._finished(room_id, {
            "outcome": "win", "round": coerce_int(meta.get("currentRound")), "cards": cards,
            "winner": username, "expression": expression, "elapsedMs": elapsed,
        })
        return Outcome.success(
            winner=username,
            elapsedTime=elapsed,
            expression=expression,
            result=check.result,
            cards=cards,
            currentRound=coerce_int(meta.get("currentRound")),
        )

    def fold(self, room_id: str, username: str) -> Outcome:
        rkey = keys.room(room_id)
        meta = self.kv.hgetall(rkey)
        if not meta:
            return Outcome.fail(Reason.ROOM_NOT_FOUND, f"no room {room_id!r}")
        if meta.get("status") != PLAYING:
            return Outcome.fail(Reason.GAME_NOT_IN_PROGRESS, "no round is being played")
        if not self.kv.sismember(keys.players(room_id), username):
            return Outcome.fail(Reason.NOT_MEMBER, f"{username} is not in room {room_id}")
        if not self.kv.sadd(keys.folds(room_id), username):
            return Outcome.fail(Reason.ALREADY_FOLDED, "you already folded this round")

        members = self.members(room_id)
        folded = self.kv.smembers(keys.folds(room_id)) & members
        payload: Dict[str, Any] = {
            "isDraw": False,
            "foldedCount": len(folded),
            "totalPlayers": len(members),
        }
        if members and members <= folded:
            info = self._resolve_draw(room_id, members)
            if info is None:
                # another request settled the round first; report what it recorded
                if self.kv.hget(rkey, "winner") == DRAW:
                    info = load_json(self.kv.get(keys.solutions(room_id)), {})
            if info is not None:
                payload.update(
                    isDraw=True,
                    hasAnswer=bool(info.get("hasAnswer")),
                    noSolution=not info.get("hasAnswer"),
                    solutions=info.get("solutions", []),
                )
        logger.info("room %s: %s folded (%d/%d)%s", room_id, username,
                    payload["foldedCount"], payload["totalPlayers"],
                    " -> draw" if payload["isDraw"] else "")
        return Outcome.success(**payload)

    def _resolve_draw(self, room_id: str, members: Set[str]) -> Optional[Dict[str, Any]]:
        """Settle the round as a draw. None if the round was already decided."""
        rkey = keys.room(room_id)
        if not self.kv.hsetnx(rkey, "winner", DRAW):
            return None
        cards = self.cards(room_id)
        sols = solve_24(cards, limit=self.solution_limit) if len(cards) == 4 else []
        info = {"hasAnswer": bool(sols), "solutions": sols, "cards": cards}
        self.kv.set(keys.solutions(room_id), dump_json(info))
        self.kv.hset(rkey, "status", FINISHED)
        for m in members:
            self.players.record_game(m)
        logger.info("room %s: round drawn, cards=%s has_answer=%s", room_id, cards, info["hasAnswer"])
        self._finished(room_id, {
            "outcome": "draw", "round": coerce_int(self.kv.hget(rkey, "currentRound")), "cards": cards,
            "hasAnswer": info["hasAnswer"], "solutions": sols,
        })
        return info

    def _finished(self, room_id: str, record: Dict[str, Any]) -> None:
        if self.on_round_finished is None:
            return
        try:
            self.on_round_finished(room_id, record)
        except Exception:
            # history is a side channel; the round is already settled in the store
            logger.exception("room %s: on_round_finished hook failed", room_id)
