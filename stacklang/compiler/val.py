"""Machine-level numeric values carried by Push instructions.

Integer arithmetic saturates at the signed 64-bit bounds instead of wrapping;
float arithmetic follows IEEE 754 (division by zero gives inf or nan).
Operands of different kinds raise ArithmeticTypeError carrying both values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from stacklang.errors import ArithmeticTypeError, DivisionByZeroError
from stacklang.types.expr import I64_MAX, I64_MIN, Expr, ExprKind


class ValKind(Enum):
    INTEGER = "integer"
    FLOAT = "float"


def saturate(i: int) -> int:
    return max(I64_MIN, min(I64_MAX, i))


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def _int_div(a: int, b: int) -> int:
    if b == 0:
        raise DivisionByZeroError("integer division by zero")
    return saturate(_trunc_div(a, b))


def _int_rem(a: int, b: int) -> int:
    if b == 0:
        raise DivisionByZeroError("integer remainder by zero")
    return a - b * _trunc_div(a, b)


def _float_div(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _float_rem(a: float, b: float) -> float:
    try:
        return math.fmod(a, b)
    except ValueError:
        return math.nan


@dataclass(frozen=True)
class Val:
    kind: ValKind
    value: int | float

    @classmethod
    def integer(cls, i: int) -> Val:
        return cls(ValKind.INTEGER, saturate(int(i)))

    @classmethod
    def float(cls, f: float) -> Val:
        return cls(ValKind.FLOAT, float(f))

    @classmethod
    def from_expr(cls, expr: Expr) -> Val | None:
        if expr.kind is ExprKind.INTEGER:
            return cls.integer(expr.value)
        if expr.kind is ExprKind.FLOAT:
            return cls.float(expr.value)
        return None

    def to_expr(self) -> Expr:
        if self.kind is ValKind.INTEGER:
            return Expr.integer(self.value)
        return Expr.float(self.value)

    def __repr__(self) -> str:
        return f"{self.kind.name.title()}({self.value!r})"

    def _binary(
        self,
        other: Val,
        name: str,
        int_op: Callable[[int, int], int],
        float_op: Callable[[float, float], float],
    ) -> Val:
        if self.kind is not other.kind:
            raise ArithmeticTypeError(name, self, other)
        if self.kind is ValKind.INTEGER:
            return Val.integer(saturate(int_op(self.value, other.value)))
        return Val.float(float_op(self.value, other.value))

    def add(self, other: Val) -> Val:
        return self._binary(other, "+", lambda a, b: a + b, lambda a, b: a + b)

    def sub(self, other: Val) -> Val:
        return self._binary(other, "-", lambda a, b: a - b, lambda a, b: a - b)

    def mul(self, other: Val) -> Val:
        return self._binary(other, "*", lambda a, b: a * b, lambda a, b: a * b)

    def div(self, other: Val) -> Val:
        return self._binary(other, "/", _int_div, _float_div)

    def rem(self, other: Val) -> Val:
        return self._binary(other, "%", _int_rem, _float_rem)

    __add__ = add
    __sub__ = sub
    __mul__ = mul
    __truediv__ = div
    __mod__ = rem
