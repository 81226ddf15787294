"""The Expr tagged union.

One type serves as both syntax and runtime value: the parser produces Exprs,
the compiler lowers them, and the VM pushes them on its stack. Each Expr holds
exactly one active ExprKind and the payload for that kind:

    NIL         None
    BOOLEAN     bool
    INTEGER     int (64-bit signed range)
    FLOAT       float
    STRING      str
    SYMBOL      Symbol   (data, never resolved)
    CALL        Symbol   (resolved and invoked when reached)
    BLOCK       tuple[Expr, ...]  (lazy)
    LIST        tuple[Expr, ...]  (eager)
    RECORD      dict[str, Expr]
    FUNCTION    FnValue
    SEXPR       SExprValue
    UNDERSCORE  None

Consumers dispatch with `match expr.kind` and finish with `assert_never`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, assert_never

from stacklang.types.symbol import Symbol


class ExprKind(Enum):
    NIL = "nil"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    SYMBOL = "symbol"
    CALL = "call"
    BLOCK = "block"
    LIST = "list"
    RECORD = "record"
    FUNCTION = "function"
    SEXPR = "sexpr"
    UNDERSCORE = "underscore"


I64_MIN = -(1 << 63)
I64_MAX = (1 << 63) - 1


@dataclass(frozen=True, eq=False)
class FnValue:
    """A closure: the scope captured at creation plus the body block."""
    scope: Any  # stacklang.context.Scope
    body: tuple["Expr", ...]

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FnValue) and self.scope is other.scope and self.body == other.body


@dataclass(frozen=True)
class SExprValue:
    call: Symbol
    body: tuple["Expr", ...]


@dataclass(frozen=True, eq=False)
class Expr:
    kind: ExprKind
    value: Any = None
    span: Any = field(default=None, compare=False, repr=False)

    # --- constructors ---
    @classmethod
    def nil(cls, span=None) -> Expr:
        return cls(ExprKind.NIL, None, span)

    @classmethod
    def boolean(cls, b: bool, span=None) -> Expr:
        return cls(ExprKind.BOOLEAN, bool(b), span)

    @classmethod
    def integer(cls, i: int, span=None) -> Expr:
        return cls(ExprKind.INTEGER, int(i), span)

    @classmethod
    def float(cls, f: float, span=None) -> Expr:
        return cls(ExprKind.FLOAT, float(f), span)

    @classmethod
    def string(cls, s: str, span=None) -> Expr:
        return cls(ExprKind.STRING, s, span)

    @classmethod
    def symbol(cls, name: str | Symbol, span=None) -> Expr:
        return cls(ExprKind.SYMBOL, name if isinstance(name, Symbol) else Symbol(name), span)

    @classmethod
    def call(cls, name: str | Symbol, span=None) -> Expr:
        return cls(ExprKind.CALL, name if isinstance(name, Symbol) else Symbol(name), span)

    @classmethod
    def block(cls, items: Iterable[Expr], span=None) -> Expr:
        return cls(ExprKind.BLOCK, tuple(items), span)

    @classmethod
    def list(cls, items: Iterable[Expr], span=None) -> Expr:
        return cls(ExprKind.LIST, tuple(items), span)

    @classmethod
    def record(cls, items: dict[str, Expr], span=None) -> Expr:
        return cls(ExprKind.RECORD, dict(items), span)

    @classmethod
    def function(cls, scope: Any, body: Iterable[Expr], span=None) -> Expr:
        return cls(ExprKind.FUNCTION, FnValue(scope, tuple(body)), span)

    @classmethod
    def sexpr(cls, call: str | Symbol, body: Iterable[Expr], span=None) -> Expr:
        name = call if isinstance(call, Symbol) else Symbol(call)
        return cls(ExprKind.SEXPR, SExprValue(name, tuple(body)), span)

    @classmethod
    def underscore(cls, span=None) -> Expr:
        return cls(ExprKind.UNDERSCORE, None, span)

    # --- predicates ---
    def is_nil(self) -> bool:
        return self.kind is ExprKind.NIL

    def is_truthy(self) -> bool:
        match self.kind:
            case ExprKind.NIL:
                return False
            case ExprKind.BOOLEAN:
                return self.value
            case ExprKind.INTEGER | ExprKind.FLOAT:
                return self.value != 0
            case _:
                return True

    def is_invocable(self) -> bool:
        return self.kind in (ExprKind.BLOCK, ExprKind.FUNCTION)

    def type_name(self) -> str:
        return self.kind.value

    # --- equality ---
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Expr):
            return NotImplemented
        a, b = self.kind, other.kind
        if a is b:
            if a is ExprKind.RECORD:
                return self.value.keys() == other.value.keys() and all(
                    self.value[k] == other.value[k] for k in self.value
                )
            return self.value == other.value
        # Cross-variant numeric coercion
        if {a, b} == {ExprKind.INTEGER, ExprKind.FLOAT}:
            return float(self.value) == float(other.value)
        if {a, b} == {ExprKind.INTEGER, ExprKind.BOOLEAN}:
            i, flag = (self.value, other.value) if a is ExprKind.INTEGER else (other.value, self.value)
            return (i != 0) == flag
        return False

    def __ne__(self, other: object) -> bool:
        eq = self.__eq__(other)
        return eq if eq is NotImplemented else not eq

    __hash__ = None  # type: ignore[assignment]

    # --- rendering ---
    def __str__(self) -> str:
        return self._render(quoted=False)

    def __format__(self, spec: str) -> str:
        if spec == "#":
            return self._render(quoted=True)
        return format(str(self), spec)

    def __repr__(self) -> str:
        name = self.kind.name.title()
        match self.kind:
            case ExprKind.NIL | ExprKind.UNDERSCORE:
                return name
            case ExprKind.SYMBOL | ExprKind.CALL:
                return f"{name}({self.value.id!r})"
            case ExprKind.BLOCK | ExprKind.LIST:
                return f"{name}({list(self.value)!r})"
            case ExprKind.FUNCTION:
                return f"Function({list(self.value.body)!r})"
            case ExprKind.SEXPR:
                return f"SExpr({self.value.call.id!r}, {list(self.value.body)!r})"
            case _:
                return f"{name}({self.value!r})"

    def _render(self, quoted: bool) -> str:
        def inner(items: Iterable[Expr]) -> str:
            return " ".join(e._render(quoted) for e in items)

        match self.kind:
            case ExprKind.NIL:
                return "nil"
            case ExprKind.BOOLEAN:
                return "true" if self.value else "false"
            case ExprKind.INTEGER:
                return str(self.value)
            case ExprKind.FLOAT:
                return repr(self.value)
            case ExprKind.STRING:
                return _quote(self.value) if quoted else self.value
            case ExprKind.SYMBOL:
                return f"'{self.value.id}" if quoted else self.value.id
            case ExprKind.CALL:
                return self.value.id
            case ExprKind.BLOCK:
                return f"({inner(self.value)})"
            case ExprKind.LIST:
                return f"[{inner(self.value)}]"
            case ExprKind.RECORD:
                fields = ", ".join(f"{k}: {v._render(quoted)}" for k, v in self.value.items())
                return "{" + fields + "}"
            case ExprKind.FUNCTION:
                body = inner(self.value.body)
                return f"(fn {body})" if body else "(fn)"
            case ExprKind.SEXPR:
                body = inner(self.value.body)
                return f"({self.value.call.id} {body})" if body else f"({self.value.call.id})"
            case ExprKind.UNDERSCORE:
                return "_"
            case _:
                assert_never(self.kind)


_ESCAPES = {"\\": "\\\\", "\"": "\\\"", "\n": "\\n", "\t": "\\t", "\r": "\\r", "\0": "\\0"}


def _quote(s: str) -> str:
    return '"' + "".join(_ESCAPES.get(ch, ch) for ch in s) + '"'


NIL = Expr.nil()
