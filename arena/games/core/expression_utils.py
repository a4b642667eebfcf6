# arena/games/core/expression_utils.py
from __future__ import annotations
import re
from typing import Any, Callable, List, Tuple

_NUMBER_RE = re.compile(r"\d+")
_TOKEN_RE = re.compile(r"\s*(?:(\d+)|(.))")
# longer digit runs are never a card, and int() of huge runs is refused
MAX_DIGITS = 9


class ExpressionError(ValueError):
    """Malformed arithmetic, or division by zero while evaluating."""


def extract_numbers(expr: str, max_digits: int = MAX_DIGITS) -> List[int]:
    """
    All maximal digit runs, in order: '(12-3)*2' -> [12, 3, 2].
    Raises ExpressionError for a run longer than `max_digits`.
    """
    runs = _NUMBER_RE.findall(expr or "")
    for run in runs:
        if len(run) > max_digits:
            raise ExpressionError(f"number {run[:8]}... is too long")
    return [int(run) for run in runs]


def tokenize(expr: str) -> List[Tuple[str, str]]:
    tokens: List[Tuple[str, str]] = []
    for num, op in _TOKEN_RE.findall(expr or ""):
        if num:
            if len(num) > MAX_DIGITS:
                raise ExpressionError(f"number {num[:8]}... is too long")
            tokens.append(("num", num))
        elif op.strip():
            if op not in "+-*/()":
                raise ExpressionError(f"unexpected character {op!r}")
            tokens.append(("op", op))
    return tokens


class _Parser:
    """
    Recursive descent over:

      expr   := term (('+' | '-') term)*
      term   := factor (('*' | '/') factor)*
      factor := NUMBER | '(' expr ')' | ('+' | '-') factor

    `literal` turns a digit run into the working number type (float for
    player input, Fraction for exact checks).
    """

    def __init__(self, tokens: List[Tuple[str, str]], literal: Callable[[int], Any]):
        self.tokens = tokens
        self.pos = 0
        self.literal = literal

    def peek(self) -> Tuple[str, str]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return ("end", "")

    def take(self) -> Tuple[str, str]:
        tok = self.peek()
        self.pos += 1
        return tok

    def parse(self):
        if not self.tokens:
            raise ExpressionError("empty expression")
        value = self.expr()
        kind, text = self.peek()
        if kind != "end":
            raise ExpressionError(f"unexpected {text!r} at token {self.pos}")
        return value

    def expr(self):
        value = self.term()
        while self.peek() in (("op", "+"), ("op", "-")):
            _, op = self.take()
            rhs = self.term()
            value = value + rhs if op == "+" else value - rhs
        return value

    def term(self):
        value = self.factor()
        while self.peek() in (("op", "*"), ("op", "/")):
            _, op = self.take()
            rhs = self.factor()
            if op == "*":
                value = value * rhs
            else:
                if rhs == 0:
                    raise ExpressionError("division by zero")
                value = value / rhs
        return value

    def factor(self):
        kind, text = self.take()
        if kind == "num":
            return self.literal(int(text))
        if (kind, text) == ("op", "("):
            value = self.expr()
            if self.take() != ("op", ")"):
                raise ExpressionError("missing closing parenthesis")
            return value
        if (kind, text) == ("op", "-"):
            return -self.factor()
        if (kind, text) == ("op", "+"):
            return self.factor()
        if kind == "end":
            raise ExpressionError("unexpected end of expression")
        raise ExpressionError(f"unexpected {text!r}")


def evaluate(expr: str, literal: Callable[[int], Any] = float):
    """
    Evaluate + - * / and parentheses without touching eval().
    Raises ExpressionError on bad syntax or a zero divisor.
    """
    try:
        return _Parser(tokenize(expr), literal).parse()
    except RecursionError:
        raise ExpressionError("expression nested too deeply") from None
