# arena/games/core/fraction.py
from __future__ import annotations
import fractions
import numbers


class DivisionByZero(ZeroDivisionError):
    """Zero denominator, or division by a zero-valued fraction."""


def _lift(value):
    # stdlib operators hand back a plain fractions.Fraction
    if isinstance(value, numbers.Rational) and not isinstance(value, Fraction):
        return Fraction(value)
    return value


class Fraction(fractions.Fraction):
    """
    Exact rational number on top of `fractions.Fraction`: lowest terms,
    positive denominator, immutable. Results stay this type so callers
    can keep using `equals_integer`.

      Fraction(6, -4)  -> -3/2
      Fraction(3).add(Fraction(1, 2))  -> 7/2
    """
    __slots__ = ()

    def __new__(cls, numerator=0, denominator=None):
        if denominator is not None and denominator == 0:
            raise DivisionByZero("denominator must not be zero")
        return super().__new__(cls, numerator, denominator)

    # ---- arithmetic ----
    def add(self, other) -> "Fraction":
        return _lift(super().__add__(other))

    def subtract(self, other) -> "Fraction":
        return _lift(super().__sub__(other))

    def multiply(self, other) -> "Fraction":
        return _lift(super().__mul__(other))

    def divide(self, other) -> "Fraction":
        if other == 0:
            raise DivisionByZero("division by a zero fraction")
        return _lift(super().__truediv__(other))

    def equals_integer(self, n: int) -> bool:
        return self.denominator == 1 and self.numerator == int(n)

    # operator sugar so the expression evaluator can run on Fractions too
    __add__ = add
    __sub__ = subtract
    __mul__ = multiply
    __truediv__ = divide

    def __radd__(self, other): return _lift(super().__radd__(other))
    def __rsub__(self, other): return _lift(super().__rsub__(other))
    def __rmul__(self, other): return _lift(super().__rmul__(other))

    def __rtruediv__(self, other):
        if self == 0:
            raise DivisionByZero("division by a zero fraction")
        return _lift(super().__rtruediv__(other))

    def __neg__(self): return _lift(super().__neg__())
    def __pos__(self): return self
