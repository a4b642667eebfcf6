# arena/games/game24/outcomes.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class Reason(str, Enum):
    # not found
    ROOM_NOT_FOUND = "room_not_found"
    PLAYER_NOT_FOUND = "player_not_found"
    # preconditions
    PLAYER_EXISTS = "player_exists"
    INVALID_USERNAME = "invalid_username"
    ROOM_FULL = "room_full"
    GAME_IN_PROGRESS = "game_in_progress"
    GAME_NOT_IN_PROGRESS = "game_not_in_progress"
    ALREADY_JOINED = "already_joined"
    NOT_MEMBER = "not_member"
    NOT_OWNER = "not_owner"
    INSUFFICIENT_PLAYERS = "insufficient_players"
    ALREADY_SUBMITTED = "already_submitted"
    ALREADY_FOLDED = "already_folded"
    # expression validation
    INVALID_CHARACTER = "invalid_character"
    WRONG_OPERAND_COUNT = "wrong_operand_count"
    OPERAND_MISMATCH = "operand_mismatch"
    EVALUATION_ERROR = "evaluation_error"
    WRONG_RESULT = "wrong_result"

    @property
    def category(self) -> str:
        if self in _NOT_FOUND:
            return "not_found"
        if self in _VALIDATION:
            return "validation"
        return "precondition"


_NOT_FOUND = {Reason.ROOM_NOT_FOUND, Reason.PLAYER_NOT_FOUND}
_VALIDATION = {
    Reason.INVALID_CHARACTER, Reason.WRONG_OPERAND_COUNT, Reason.OPERAND_MISMATCH,
    Reason.EVALUATION_ERROR, Reason.WRONG_RESULT,
}


@dataclass
class Outcome:
    """
    Result of a game operation. Game-logic failures are values, not
    exceptions: `ok` is False and `reason` says why. Nothing was written
    to the store when `ok` is False.
    """
    ok: bool
    data: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[Reason] = None
    detail: Optional[str] = None

    @classmethod
    def success(cls, **data: Any) -> "Outcome":
        return cls(ok=True, data=data)

    @classmethod
    def fail(cls, reason: Reason, detail: Optional[str] = None) -> "Outcome":
        return cls(ok=False, reason=reason, detail=detail)

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"ok": True, **self.data}
        return {"ok": False, "error": self.reason.value, "detail": self.detail}
