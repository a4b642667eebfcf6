"""
Exact fraction arithmetic.
"""

import pytest

from arena.games.core.fraction import DivisionByZero, Fraction


def test_reduces_to_lowest_terms():
    f = Fraction(6, 8)
    assert (f.numerator, f.denominator) == (3, 4)


def test_sign_moves_to_numerator():
    f = Fraction(3, -6)
    assert (f.numerator, f.denominator) == (-1, 2)
    g = Fraction(-3, -6)
    assert (g.numerator, g.denominator) == (1, 2)


def test_zero_denominator_rejected():
    with pytest.raises(DivisionByZero):
        Fraction(1, 0)


def test_division_by_zero_fraction():
    with pytest.raises(ZeroDivisionError):
        Fraction(5).divide(Fraction(0, 7))


@pytest.mark.parametrize("n,d", [(1, 2), (-3, 7), (24, 1), (0, 5), (10, -4)])
@pytest.mark.parametrize("k", [2, -3, 13, 100])
def test_scaling_gives_equal_fraction(n, d, k):
    assert Fraction(n, d) == Fraction(k * n, k * d)


def test_operations():
    a, b = Fraction(1, 2), Fraction(1, 3)
    assert a.add(b) == Fraction(5, 6)
    assert a.subtract(b) == Fraction(1, 6)
    assert a.multiply(b) == Fraction(1, 6)
    assert a.divide(b) == Fraction(3, 2)
    # inputs untouched
    assert (a.numerator, a.denominator) == (1, 2)


def test_equals_integer():
    assert Fraction(48, 2).equals_integer(24)
    assert not Fraction(47, 2).equals_integer(24)
    assert Fraction(0, 9).equals_integer(0)


def test_operators_match_methods():
    a, b = Fraction(8), Fraction(3)
    assert a / (b - a / b) == Fraction(24)
    assert 2 * Fraction(1, 4) == Fraction(1, 2)
    assert -Fraction(1, 3) == Fraction(-1, 3)


def test_immutable():
    f = Fraction(1, 2)
    with pytest.raises(AttributeError):
        f.numerator = 5


def test_results_keep_the_exact_type():
    r = Fraction(1, 3).add(Fraction(2, 3))
    assert isinstance(r, Fraction)
    assert r.equals_integer(1)
    assert isinstance(1 - Fraction(1, 2), Fraction)
    assert isinstance(-Fraction(1, 2), Fraction)


def test_reverse_division_by_zero():
    with pytest.raises(DivisionByZero):
        3 / Fraction(0)


def test_text_forms():
    assert str(Fraction(6, -4)) == "-3/2"
    assert str(Fraction(48, 2)) == "24"
    assert float(Fraction(1, 4)) == 0.25
