# arena/games/core/solver.py
from __future__ import annotations
from itertools import permutations
from typing import Callable, List, Sequence, Set, Tuple
import logging

from .fraction import DivisionByZero, Fraction

logger = logging.getLogger(__name__)

TARGET = 24
DEFAULT_LIMIT = 5

# ============================================================
# Exact solver: every ordering, every ordered pair, + - * /
# ============================================================

_OPS: List[Tuple[str, Callable[[Fraction, Fraction], Fraction]]] = [
    ("+", Fraction.add),
    ("-", Fraction.subtract),
    ("*", Fraction.multiply),
    ("/", Fraction.divide),
]


def enumerate_solutions(values: Sequence[int], target: int = TARGET,
                        limit: int = DEFAULT_LIMIT) -> List[str]:
    """
    Return up to `limit` distinct infix expressions that use every value
    exactly once and evaluate to exactly `target`.

    Operands are combined as ordered pairs (a-b and b-a are both tried).
    A zero divisor only prunes that branch. States already explored are
    keyed by their (value, text) multiset, so repeated permutations of the
    same hand cost nothing.
    """
    sols: List[str] = []
    seen: Set[str] = set()
    visited: Set[Tuple] = set()

    def dfs(nums: Tuple[Fraction, ...], exps: Tuple[str, ...]) -> None:
        if len(sols) >= limit:
            return
        n = len(nums)
        if n == 1:
            if nums[0].equals_integer(target) and exps[0] not in seen:
                seen.add(exps[0])
                sols.append(exps[0])
            return
        state = tuple(sorted((f.numerator, f.denominator, e) for f, e in zip(nums, exps)))
        if state in visited:
            return
        visited.add(state)
        for i in range(n):
            for j in range(n):
                if i == j:
                    continue
                a, b = nums[i], nums[j]
                ea, eb = exps[i], exps[j]
                restn = [nums[k] for k in range(n) if k not in (i, j)]
                reste = [exps[k] for k in range(n) if k not in (i, j)]
                for sym, fn in _OPS:
                    try:
                        res = fn(a, b)
                    except DivisionByZero:
                        continue
                    dfs(tuple(restn + [res]), tuple(reste + [f"({ea}{sym}{eb})"]))
                    if len(sols) >= limit:
                        return

    for perm in permutations([int(v) for v in values]):
        dfs(tuple(Fraction(v) for v in perm), tuple(str(v) for v in perm))
        if len(sols) >= limit:
            break

    logger.debug("enumerate_solutions values=%s target=%s found=%d", list(values), target, len(sols))
    return sols


def solve_24(cards: Sequence[int], limit: int = DEFAULT_LIMIT) -> List[str]:
    if len(cards) != 4:
        raise ValueError("a hand must have exactly 4 cards")
    return enumerate_solutions(cards, TARGET, limit)


def has_solution(cards: Sequence[int]) -> bool:
    return bool(solve_24(cards, limit=1))
