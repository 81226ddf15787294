from __future__ import annotations

from typing import Iterable, assert_never

from stacklang.compiler.intrinsics import Intrinsic
from stacklang.compiler.opcodes import Op, Opcode
from stacklang.compiler.val import Val
from stacklang.types.expr import Expr, ExprKind
from stacklang.types.symbol import Symbol

FN_MARKER = "fn"
# S-expression head whose arguments are pushed as-is
QUOTE_FORM = "quote"


def compile_module(exprs: Iterable[Expr]) -> list[Op]:
    """Compile an expression sequence into a flat op stream ending in End.
    Single pass, no optimization.
    """
    ops: list[Op] = []
    for expr in exprs:
        compile_expr(expr, ops)
    ops.append(Op.end())
    return ops


def _compile_call(name: Symbol, ops: list[Op], span=None) -> None:
    intrinsic = Intrinsic.lookup(name.id)
    if intrinsic is not None:
        ops.append(Op.intrinsic(intrinsic, span))
    else:
        ops.append(Op(Opcode.CALL, name, span))


def is_fn_block(expr: Expr) -> bool:
    """A block whose first element is the bare call `fn` denotes a function literal."""
    items = expr.value
    return (
        expr.kind is ExprKind.BLOCK
        and len(items) > 0
        and items[0].kind is ExprKind.CALL
        and items[0].value.id == FN_MARKER
    )


def compile_expr(expr: Expr, ops: list[Op]) -> None:
    match expr.kind:
        case ExprKind.INTEGER:
            ops.append(Op.push(Val.integer(expr.value)))
        case ExprKind.FLOAT:
            ops.append(Op.push(Val.float(expr.value)))
        case ExprKind.CALL:
            _compile_call(expr.value, ops, expr.span)
        case ExprKind.BLOCK:
            if is_fn_block(expr):
                ops.append(Op(Opcode.MAKE_FN, expr.value[1:], expr.span))
            else:
                ops.append(Op(Opcode.PUSH_EXPR, expr, expr.span))
        case ExprKind.LIST:
            # Elements are reduced eagerly between the markers
            ops.append(Op(Opcode.LIST_START, None, expr.span))
            for item in expr.value:
                compile_expr(item, ops)
            ops.append(Op(Opcode.LIST_END, None, expr.span))
        case ExprKind.SEXPR:
            if expr.value.call.id == QUOTE_FORM:
                for item in expr.value.body:
                    ops.append(Op(Opcode.PUSH_EXPR, item, expr.span))
                return
            for item in expr.value.body:
                compile_expr(item, ops)
            _compile_call(expr.value.call, ops, expr.span)
        case (
            ExprKind.NIL
            | ExprKind.BOOLEAN
            | ExprKind.STRING
            | ExprKind.SYMBOL
            | ExprKind.RECORD
            | ExprKind.FUNCTION
            | ExprKind.UNDERSCORE
        ):
            ops.append(Op(Opcode.PUSH_EXPR, expr, expr.span))
        case _:
            assert_never(expr.kind)
