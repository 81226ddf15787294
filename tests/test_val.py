import math

import pytest
from hypothesis import given, strategies as st

from stacklang.compiler.val import Val, ValKind, saturate
from stacklang.errors import ArithmeticTypeError, DivisionByZeroError
from stacklang.types.expr import I64_MAX, I64_MIN, Expr

i64 = st.integers(min_value=I64_MIN, max_value=I64_MAX)
near_bounds = st.one_of(
    st.integers(min_value=I64_MAX - 1000, max_value=I64_MAX),
    st.integers(min_value=I64_MIN, max_value=I64_MIN + 1000),
    i64,
)


def _clamp(x):
    return max(I64_MIN, min(I64_MAX, x))


@given(near_bounds, near_bounds)
def test_add_saturates(a, b):
    assert Val.integer(a).add(Val.integer(b)).value == _clamp(a + b)


@given(near_bounds, near_bounds)
def test_sub_saturates(a, b):
    assert (Val.integer(a) - Val.integer(b)).value == _clamp(a - b)


@given(near_bounds, near_bounds)
def test_mul_saturates(a, b):
    assert (Val.integer(a) * Val.integer(b)).value == _clamp(a * b)


@given(near_bounds, near_bounds.filter(lambda b: b != 0))
def test_div_stays_in_range(a, b):
    result = (Val.integer(a) / Val.integer(b)).value
    assert I64_MIN <= result <= I64_MAX


def test_min_divided_by_minus_one_saturates():
    assert Val.integer(I64_MIN).div(Val.integer(-1)).value == I64_MAX


@pytest.mark.parametrize(
    "a,b,quotient,remainder",
    [(7, 2, 3, 1), (-7, 2, -3, -1), (7, -2, -3, 1), (-7, -2, 3, -1)],
)
def test_integer_division_truncates_toward_zero(a, b, quotient, remainder):
    assert Val.integer(a).div(Val.integer(b)).value == quotient
    assert Val.integer(a).rem(Val.integer(b)).value == remainder


@pytest.mark.parametrize("method", ["div", "rem"])
def test_integer_division_by_zero(method):
    with pytest.raises(DivisionByZeroError):
        getattr(Val.integer(1), method)(Val.integer(0))


def test_float_division_is_ieee():
    assert Val.float(1.0).div(Val.float(0.0)).value == math.inf
    assert Val.float(-1.0).div(Val.float(0.0)).value == -math.inf
    assert math.isnan(Val.float(0.0).div(Val.float(0.0)).value)
    assert math.isnan(Val.float(1.0).rem(Val.float(0.0)).value)
    assert Val.float(0.1).add(Val.float(0.2)).value == 0.1 + 0.2


def test_mismatched_variants_carry_both_operands():
    lhs, rhs = Val.integer(1), Val.float(2.0)
    with pytest.raises(ArithmeticTypeError) as info:
        lhs.add(rhs)
    assert info.value.lhs == lhs
    assert info.value.rhs == rhs
    assert info.value.op == "+"


def test_conversions():
    assert Val.from_expr(Expr.integer(3)) == Val(ValKind.INTEGER, 3)
    assert Val.from_expr(Expr.float(0.5)).kind is ValKind.FLOAT
    assert Val.from_expr(Expr.string("3")) is None
    assert Val.from_expr(Expr.boolean(True)) is None
    assert Val.integer(3).to_expr() == Expr.integer(3)
    assert repr(Val.integer(2)) == "Integer(2)"
    assert saturate(I64_MAX + 5) == I64_MAX
