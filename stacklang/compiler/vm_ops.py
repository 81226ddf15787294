from __future__ import annotations

import math
from typing import Callable

from stacklang.compiler.compiler import QUOTE_FORM
from stacklang.compiler.intrinsics import Intrinsic
from stacklang.compiler.opcodes import Op, RunSignal
from stacklang.compiler.val import Val, saturate
from stacklang.debug_utils.pprint import pretty
from stacklang.errors import (
    ArithmeticTypeError,
    AssertionFailedError,
    TypeMismatchError,
    UnknownModuleError,
    UnknownNameError,
)
from stacklang.types.expr import I64_MAX, I64_MIN, Expr, ExprKind

SEQUENCES = (ExprKind.LIST, ExprKind.BLOCK)
QUOTED_BY_LAZY = (ExprKind.LIST, ExprKind.BLOCK, ExprKind.SEXPR)
NAMES = (ExprKind.SYMBOL, ExprKind.CALL, ExprKind.STRING)


def expect(expr: Expr, op: Intrinsic | str, *kinds: ExprKind) -> Expr:
    if expr.kind not in kinds:
        wanted = " or ".join(k.value for k in kinds)
        raise TypeMismatchError(f"{op}: expected {wanted}, got {expr.type_name()} {expr:#}")
    return expr


def name_of(expr: Expr, op: Intrinsic | str) -> str:
    expect(expr, op, *NAMES)
    return expr.value if expr.kind is ExprKind.STRING else expr.value.id


def index_of(expr: Expr, op: Intrinsic | str) -> int:
    return expect(expr, op, ExprKind.INTEGER).value


def _number(expr: Expr) -> int | float | None:
    if expr.kind is ExprKind.BOOLEAN:
        return int(expr.value)
    if expr.kind in (ExprKind.INTEGER, ExprKind.FLOAT):
        return expr.value
    return None


def _rebuild(coll: Expr, items) -> Expr:
    return Expr(coll.kind, tuple(items))


def _pairs(record: Expr) -> Expr:
    return Expr.list(Expr.list((Expr.symbol(k), v)) for k, v in record.value.items())


def _from_pairs(expr: Expr, op: Intrinsic) -> Expr:
    items: dict[str, Expr] = {}
    for pair in expr.value:
        if pair.kind not in SEQUENCES or len(pair.value) != 2:
            raise TypeMismatchError(f"{op}: expected [key value] pairs, got {pair:#}")
        key, value = pair.value
        items[name_of(key, op)] = value
    return Expr.record(items)


def cast(value: Expr, target: str, op: Intrinsic = Intrinsic.CAST) -> Expr:
    """Convert `value` to the kind named by `target`."""
    kind = value.kind
    fail = TypeMismatchError(f"cannot cast {value.type_name()} {value:#} to {target}")
    match target:
        case "integer":
            if kind is ExprKind.FLOAT:
                if math.isnan(value.value):
                    raise fail
                if math.isinf(value.value):
                    return Expr.integer(I64_MAX if value.value > 0 else I64_MIN)
                return Expr.integer(saturate(int(value.value)))
            if kind in (ExprKind.INTEGER, ExprKind.BOOLEAN):
                return Expr.integer(int(value.value))
            if kind is ExprKind.STRING:
                try:
                    return Expr.integer(saturate(int(value.value.strip())))
                except ValueError:
                    raise fail from None
        case "float":
            if kind in (ExprKind.INTEGER, ExprKind.FLOAT, ExprKind.BOOLEAN):
                return Expr.float(float(value.value))
            if kind is ExprKind.STRING:
                try:
                    return Expr.float(float(value.value.strip()))
                except ValueError:
                    raise fail from None
        case "string":
            return Expr.string(str(value))
        case "boolean":
            return Expr.boolean(value.is_truthy())
        case "symbol":
            if kind in NAMES:
                return Expr.symbol(name_of(value, op))
        case "call":
            if kind in NAMES:
                return Expr.call(name_of(value, op))
        case "list" | "block":
            if kind in SEQUENCES:
                items = value.value
            elif kind is ExprKind.STRING:
                items = tuple(Expr.string(ch) for ch in value.value)
            elif kind is ExprKind.RECORD:
                items = _pairs(value).value
            else:
                raise fail
            return Expr.list(items) if target == "list" else Expr.block(items)
        case "record":
            if kind is ExprKind.RECORD:
                return value
            if kind in SEQUENCES:
                return _from_pairs(value, op)
        case "nil":
            return Expr.nil()
    raise fail


class IntrinsicOpsMixin:
    """Intrinsic handlers for the VM.

    Every handler takes the executing Op and returns a RunSignal. Operands are
    popped top-down, so the second value popped is the left operand.
    """

    def _init_intrinsics(self) -> None:
        d: dict[Intrinsic, Callable[[Op], RunSignal]] = self._intrinsics
        # Arithmetic
        d[Intrinsic.ADD] = self.intrinsic_add
        d[Intrinsic.SUB] = self.intrinsic_sub
        d[Intrinsic.MUL] = self.intrinsic_mul
        d[Intrinsic.DIV] = self.intrinsic_div
        d[Intrinsic.REM] = self.intrinsic_rem
        # Comparison
        d[Intrinsic.EQ] = self.intrinsic_eq
        d[Intrinsic.NE] = self.intrinsic_ne
        d[Intrinsic.LT] = self.intrinsic_lt
        d[Intrinsic.LE] = self.intrinsic_le
        d[Intrinsic.GT] = self.intrinsic_gt
        d[Intrinsic.GE] = self.intrinsic_ge
        # Boolean
        d[Intrinsic.OR] = self.intrinsic_or
        d[Intrinsic.AND] = self.intrinsic_and
        d[Intrinsic.NOT] = self.intrinsic_not
        d[Intrinsic.ASSERT] = self.intrinsic_assert
        # Stack
        d[Intrinsic.DROP] = self.intrinsic_drop
        d[Intrinsic.DUPE] = self.intrinsic_dupe
        d[Intrinsic.SWAP] = self.intrinsic_swap
        d[Intrinsic.ROT] = self.intrinsic_rot
        # Collections
        d[Intrinsic.LEN] = self.intrinsic_len
        d[Intrinsic.NTH] = self.intrinsic_nth
        d[Intrinsic.SPLIT] = self.intrinsic_split
        d[Intrinsic.CONCAT] = self.intrinsic_concat
        d[Intrinsic.PUSH] = self.intrinsic_push
        d[Intrinsic.POP] = self.intrinsic_pop
        d[Intrinsic.INSERT] = self.intrinsic_insert
        d[Intrinsic.PROP] = self.intrinsic_prop
        d[Intrinsic.HAS] = self.intrinsic_has
        d[Intrinsic.REMOVE] = self.intrinsic_remove
        d[Intrinsic.KEYS] = self.intrinsic_keys
        d[Intrinsic.VALUES] = self.intrinsic_values
        # Types
        d[Intrinsic.CAST] = self.intrinsic_cast
        d[Intrinsic.TYPE_OF] = self.intrinsic_type_of
        # Control
        d[Intrinsic.LAZY] = self.intrinsic_lazy
        d[Intrinsic.IF] = self.intrinsic_if
        d[Intrinsic.HALT] = self.intrinsic_halt
        d[Intrinsic.CALL] = self.intrinsic_call
        d[Intrinsic.RECUR] = self.intrinsic_recur
        d[Intrinsic.OR_ELSE] = self.intrinsic_or_else
        # Scope
        d[Intrinsic.LET] = self.intrinsic_let
        d[Intrinsic.DEF] = self.intrinsic_def
        d[Intrinsic.SET] = self.intrinsic_set
        d[Intrinsic.GET] = self.intrinsic_get
        # I/O
        d[Intrinsic.DEBUG] = self.intrinsic_debug
        d[Intrinsic.PRINT] = self.intrinsic_print
        d[Intrinsic.PRETTY] = self.intrinsic_pretty
        d[Intrinsic.IMPORT] = self.intrinsic_import

    def _pop2(self, op: Op) -> tuple[Expr, Expr]:
        rhs = self.stack_pop(op.arg)
        lhs = self.stack_pop(op.arg)
        return lhs, rhs

    # Arithmetic
    def _arith(self, op: Op, fn: Callable[[Val, Val], Val]) -> RunSignal:
        lhs, rhs = self._pop2(op)
        a, b = Val.from_expr(lhs), Val.from_expr(rhs)
        if a is None or b is None:
            raise ArithmeticTypeError(op.arg.value, lhs, rhs)
        self.stack_push(fn(a, b).to_expr())
        return RunSignal.NORMAL

    def intrinsic_add(self, op: Op) -> RunSignal:
        return self._arith(op, Val.add)

    def intrinsic_sub(self, op: Op) -> RunSignal:
        return self._arith(op, Val.sub)

    def intrinsic_mul(self, op: Op) -> RunSignal:
        return self._arith(op, Val.mul)

    def intrinsic_div(self, op: Op) -> RunSignal:
        return self._arith(op, Val.div)

    def intrinsic_rem(self, op: Op) -> RunSignal:
        return self._arith(op, Val.rem)

    # Comparison
    def intrinsic_eq(self, op: Op) -> RunSignal:
        lhs, rhs = self._pop2(op)
        self.stack_push(Expr.boolean(lhs == rhs))
        return RunSignal.NORMAL

    def intrinsic_ne(self, op: Op) -> RunSignal:
        lhs, rhs = self._pop2(op)
        self.stack_push(Expr.boolean(lhs != rhs))
        return RunSignal.NORMAL

    def _compare(self, op: Op, fn: Callable[[object, object], bool]) -> RunSignal:
        lhs, rhs = self._pop2(op)
        a, b = _number(lhs), _number(rhs)
        if a is None or b is None:
            if lhs.kind is ExprKind.STRING and rhs.kind is ExprKind.STRING:
                a, b = lhs.value, rhs.value
            else:
                raise TypeMismatchError(f"{op.arg}: cannot compare {lhs:#} and {rhs:#}")
        self.stack_push(Expr.boolean(fn(a, b)))
        return RunSignal.NORMAL

    def intrinsic_lt(self, op: Op) -> RunSignal:
        return self._compare(op, lambda a, b: a < b)

    def intrinsic_le(self, op: Op) -> RunSignal:
        return self._compare(op, lambda a, b: a <= b)

    def intrinsic_gt(self, op: Op) -> RunSignal:
        return self._compare(op, lambda a, b: a > b)

    def intrinsic_ge(self, op: Op) -> RunSignal:
        return self._compare(op, lambda a, b: a >= b)

    # Boolean
    def intrinsic_or(self, op: Op) -> RunSignal:
        lhs, rhs = self._pop2(op)
        self.stack_push(Expr.boolean(lhs.is_truthy() or rhs.is_truthy()))
        return RunSignal.NORMAL

    def intrinsic_and(self, op: Op) -> RunSignal:
        lhs, rhs = self._pop2(op)
        self.stack_push(Expr.boolean(lhs.is_truthy() and rhs.is_truthy()))
        return RunSignal.NORMAL

    def intrinsic_not(self, op: Op) -> RunSignal:
        self.stack_push(Expr.boolean(not self.stack_pop(op.arg).is_truthy()))
        return RunSignal.NORMAL

    def intrinsic_assert(self, op: Op) -> RunSignal:
        value, message = self._pop2(op)
        if not value.is_truthy():
            raise AssertionFailedError(str(message))
        return RunSignal.NORMAL

    # Stack
    def intrinsic_drop(self, op: Op) -> RunSignal:
        self.stack_pop(op.arg)
        return RunSignal.NORMAL

    def intrinsic_dupe(self, op: Op) -> RunSignal:
        self.stack_push(self.stack_peek(op.arg))
        return RunSignal.NORMAL

    def intrinsic_swap(self, op: Op) -> RunSignal:
        a, b = self._pop2(op)
        self.stack_push(b)
        self.stack_push(a)
        return RunSignal.NORMAL

    def intrinsic_rot(self, op: Op) -> RunSignal:
        c = self.stack_pop(op.arg)
        a, b = self._pop2(op)
        self.stack_push(b)
        self.stack_push(c)
        self.stack_push(a)
        return RunSignal.NORMAL

    # Collections
    def intrinsic_len(self, op: Op) -> RunSignal:
        coll = self.stack_pop(op.arg)
        expect(coll, op.arg, ExprKind.LIST, ExprKind.BLOCK, ExprKind.STRING, ExprKind.RECORD)
        self.stack_push(Expr.integer(len(coll.value)))
        return RunSignal.NORMAL

    def _item(self, coll: Expr, index: int) -> Expr:
        if not 0 <= index < len(coll.value):
            return Expr.nil()
        if coll.kind is ExprKind.STRING:
            return Expr.string(coll.value[index])
        return coll.value[index]

    def intrinsic_nth(self, op: Op) -> RunSignal:
        coll, index = self._pop2(op)
        expect(coll, op.arg, ExprKind.LIST, ExprKind.BLOCK, ExprKind.STRING)
        self.stack_push(self._item(coll, index_of(index, op.arg)))
        return RunSignal.NORMAL

    def intrinsic_split(self, op: Op) -> RunSignal:
        coll, index = self._pop2(op)
        expect(coll, op.arg, ExprKind.LIST, ExprKind.BLOCK, ExprKind.STRING)
        at = max(0, min(index_of(index, op.arg), len(coll.value)))
        if coll.kind is ExprKind.STRING:
            self.stack_push(Expr.string(coll.value[:at]))
            self.stack_push(Expr.string(coll.value[at:]))
        else:
            self.stack_push(_rebuild(coll, coll.value[:at]))
            self.stack_push(_rebuild(coll, coll.value[at:]))
        return RunSignal.NORMAL

    def intrinsic_concat(self, op: Op) -> RunSignal:
        lhs, rhs = self._pop2(op)
        expect(lhs, op.arg, ExprKind.LIST, ExprKind.BLOCK, ExprKind.STRING, ExprKind.RECORD)
        expect(rhs, op.arg, lhs.kind)
        if lhs.kind is ExprKind.STRING:
            self.stack_push(Expr.string(lhs.value + rhs.value))
        elif lhs.kind is ExprKind.RECORD:
            self.stack_push(Expr.record({**lhs.value, **rhs.value}))
        else:
            self.stack_push(_rebuild(lhs, lhs.value + rhs.value))
        return RunSignal.NORMAL

    def intrinsic_push(self, op: Op) -> RunSignal:
        coll, item = self._pop2(op)
        expect(coll, op.arg, ExprKind.LIST, ExprKind.BLOCK, ExprKind.STRING)
        if coll.kind is ExprKind.STRING:
            self.stack_push(Expr.string(coll.value + expect(item, op.arg, ExprKind.STRING).value))
        else:
            self.stack_push(_rebuild(coll, coll.value + (item,)))
        return RunSignal.NORMAL

    def intrinsic_pop(self, op: Op) -> RunSignal:
        coll = self.stack_pop(op.arg)
        expect(coll, op.arg, ExprKind.LIST, ExprKind.BLOCK, ExprKind.STRING)
        if not coll.value:
            self.stack_push(coll)
            self.stack_push(Expr.nil())
        elif coll.kind is ExprKind.STRING:
            self.stack_push(Expr.string(coll.value[:-1]))
            self.stack_push(Expr.string(coll.value[-1]))
        else:
            self.stack_push(_rebuild(coll, coll.value[:-1]))
            self.stack_push(coll.value[-1])
        return RunSignal.NORMAL

    def intrinsic_insert(self, op: Op) -> RunSignal:
        key = self.stack_pop(op.arg)
        coll, item = self._pop2(op)
        expect(coll, op.arg, ExprKind.LIST, ExprKind.BLOCK, ExprKind.RECORD)
        if coll.kind is ExprKind.RECORD:
            self.stack_push(Expr.record({**coll.value, name_of(key, op.arg): item}))
            return RunSignal.NORMAL
        at = index_of(key, op.arg)
        if not 0 <= at <= len(coll.value):
            raise TypeMismatchError(f"{op.arg}: index {at} out of range for length {len(coll.value)}")
        self.stack_push(_rebuild(coll, coll.value[:at] + (item,) + coll.value[at:]))
        return RunSignal.NORMAL

    def intrinsic_prop(self, op: Op) -> RunSignal:
        coll, key = self._pop2(op)
        expect(coll, op.arg, ExprKind.RECORD, ExprKind.LIST, ExprKind.BLOCK)
        if coll.kind is ExprKind.RECORD:
            self.stack_push(coll.value.get(name_of(key, op.arg), Expr.nil()))
        else:
            self.stack_push(self._item(coll, index_of(key, op.arg)))
        return RunSignal.NORMAL

    def intrinsic_has(self, op: Op) -> RunSignal:
        coll, key = self._pop2(op)
        expect(coll, op.arg, ExprKind.RECORD, ExprKind.LIST, ExprKind.BLOCK, ExprKind.STRING)
        if coll.kind is ExprKind.RECORD:
            found = name_of(key, op.arg) in coll.value
        elif coll.kind is ExprKind.STRING:
            found = expect(key, op.arg, ExprKind.STRING).value in coll.value
        else:
            found = any(item == key for item in coll.value)
        self.stack_push(Expr.boolean(found))
        return RunSignal.NORMAL

    def intrinsic_remove(self, op: Op) -> RunSignal:
        coll, key = self._pop2(op)
        expect(coll, op.arg, ExprKind.RECORD, ExprKind.LIST, ExprKind.BLOCK)
        if coll.kind is ExprKind.RECORD:
            name = name_of(key, op.arg)
            self.stack_push(Expr.record({k: v for k, v in coll.value.items() if k != name}))
        else:
            at = index_of(key, op.arg)
            items = coll.value
            if 0 <= at < len(items):
                items = items[:at] + items[at + 1:]
            self.stack_push(_rebuild(coll, items))
        return RunSignal.NORMAL

    def intrinsic_keys(self, op: Op) -> RunSignal:
        record = expect(self.stack_pop(op.arg), op.arg, ExprKind.RECORD)
        self.stack_push(Expr.list(Expr.symbol(k) for k in record.value))
        return RunSignal.NORMAL

    def intrinsic_values(self, op: Op) -> RunSignal:
        record = expect(self.stack_pop(op.arg), op.arg, ExprKind.RECORD)
        self.stack_push(Expr.list(record.value.values()))
        return RunSignal.NORMAL

    # Types
    def intrinsic_cast(self, op: Op) -> RunSignal:
        value, target = self._pop2(op)
        self.stack_push(cast(value, name_of(target, op.arg), op.arg))
        return RunSignal.NORMAL

    def intrinsic_type_of(self, op: Op) -> RunSignal:
        self.stack_push(Expr.string(self.stack_pop(op.arg).type_name()))
        return RunSignal.NORMAL

    # Control
    def intrinsic_lazy(self, op: Op) -> RunSignal:
        value = self.stack_pop(op.arg)
        # Composites would be rebuilt when the block runs; quote them
        if value.kind in QUOTED_BY_LAZY:
            value = Expr.sexpr(QUOTE_FORM, (value,))
        self.stack_push(Expr.block((value,)))
        return RunSignal.NORMAL

    def intrinsic_if(self, op: Op) -> RunSignal:
        top = self.stack_pop(op.arg)
        second = self.stack_pop(op.arg)
        if second.is_invocable():
            cond = self.stack_pop(op.arg)
            branch = second if cond.is_truthy() else top
        else:
            branch = top if second.is_truthy() else None
        if branch is not None:
            self.call_value(branch, op.span, branch=True)
        return RunSignal.NORMAL

    def intrinsic_halt(self, op: Op) -> RunSignal:
        return self.halt()

    def intrinsic_call(self, op: Op) -> RunSignal:
        return self.call_value(self.stack_pop(op.arg), op.span)

    def intrinsic_recur(self, op: Op) -> RunSignal:
        return self.recur()

    def intrinsic_or_else(self, op: Op) -> RunSignal:
        lhs, rhs = self._pop2(op)
        self.stack_push(rhs if lhs.is_nil() else lhs)
        return RunSignal.NORMAL

    # Scope
    def intrinsic_let(self, op: Op) -> RunSignal:
        value, name = self._pop2(op)
        self.context.let_set(name_of(name, op.arg), value)
        return RunSignal.NORMAL

    def intrinsic_def(self, op: Op) -> RunSignal:
        value, name = self._pop2(op)
        self.context.def_item(name_of(name, op.arg), value)
        return RunSignal.NORMAL

    def intrinsic_set(self, op: Op) -> RunSignal:
        value, name = self._pop2(op)
        key = name_of(name, op.arg)
        if self.context.let_update(key, value):
            return RunSignal.NORMAL
        cell = self.context.scope_item(key)
        if cell is None:
            raise UnknownNameError(key, op.span)
        cell.value = value
        return RunSignal.NORMAL

    def intrinsic_get(self, op: Op) -> RunSignal:
        name = name_of(self.stack_pop(op.arg), op.arg)
        where, value = self.resolve(name)
        if where in ("intrinsic", "module"):
            self.stack_push(Expr.call(name))
        else:
            self.stack_push(value if value is not None else Expr.nil())
        return RunSignal.NORMAL

    # I/O
    def intrinsic_debug(self, op: Op) -> RunSignal:
        print(format(self.stack_peek(op.arg), "#"), file=self.err)
        return RunSignal.NORMAL

    def intrinsic_print(self, op: Op) -> RunSignal:
        print(self.stack_pop(op.arg), file=self.out)
        return RunSignal.NORMAL

    def intrinsic_pretty(self, op: Op) -> RunSignal:
        print(pretty(self.stack_pop(op.arg)), file=self.out)
        return RunSignal.NORMAL

    def intrinsic_import(self, op: Op) -> RunSignal:
        name = name_of(self.stack_pop(op.arg), op.arg)
        if self.engine is None:
            raise UnknownModuleError(f"cannot import '{name}': no engine attached")
        self.engine.import_module(name)
        return RunSignal.NORMAL
