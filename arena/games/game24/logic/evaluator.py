# arena/games/game24/logic/evaluator.py
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from arena.games.core.expression_utils import ExpressionError, evaluate, extract_numbers
from ..outcomes import Reason

TARGET = 24
TOLERANCE = 1e-4

_ALLOWED_RE = re.compile(r"^[0-9+\-*/()]*$")


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    result: Optional[float] = None
    reason: Optional[Reason] = None
    detail: Optional[str] = None


def validate_expression(expression: str, cards: Sequence[int]) -> ValidationResult:
    """
    Check a player's answer against the dealt hand:
      - only digits and + - * / ( ) after removing whitespace
      - exactly four numbers, and they are the dealt cards (any order)
      - the value is 24 within TOLERANCE
    Floating point is deliberate here; the solver uses exact fractions.
    """
    if not isinstance(expression, str):
        return ValidationResult(False, reason=Reason.INVALID_CHARACTER,
                                detail="expression must be text")
    expr = re.sub(r"\s+", "", expression)

    if not _ALLOWED_RE.match(expr):
        return ValidationResult(False, reason=Reason.INVALID_CHARACTER,
                                detail="only digits, + - * / and parentheses are allowed")

    try:
        used: List[int] = extract_numbers(expr)
    except ExpressionError as e:
        return ValidationResult(False, reason=Reason.OPERAND_MISMATCH, detail=str(e))
    if len(used) != 4:
        return ValidationResult(False, reason=Reason.WRONG_OPERAND_COUNT,
                                detail=f"must use exactly 4 numbers, found {len(used)}")

    if sorted(used) != sorted(int(c) for c in cards):
        return ValidationResult(False, reason=Reason.OPERAND_MISMATCH,
                                detail="must use the 4 dealt cards exactly once")

    try:
        result = float(evaluate(expr))
    except ExpressionError as e:
        return ValidationResult(False, reason=Reason.EVALUATION_ERROR, detail=str(e))

    if abs(result - TARGET) > TOLERANCE:
        return ValidationResult(False, result=result, reason=Reason.WRONG_RESULT,
                                detail=f"result is {result:g}, not {TARGET}")
    return ValidationResult(True, result=result)
