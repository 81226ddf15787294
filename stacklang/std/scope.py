"""`scope` module: introspection of name resolution and persistent items.

    'name scope:where   ; "intrinsic", "module", "let", "scope" or nil
    scope:dump          ; [['name value] ...]

`where` answers "module" whenever the text before the first ':' names a
registered module, whether or not that module defines the function. Any
operand that is not a symbol gives nil.
"""

from __future__ import annotations

from stacklang.compiler.intrinsics import Intrinsic
from stacklang.engine import Module
from stacklang.types.expr import Expr, ExprKind


def _where(vm, name) -> str | None:
    if Intrinsic.lookup(name.id) is not None:
        return "intrinsic"
    if vm.engine is not None and vm.engine.module(name.module) is not None:
        return "module"
    if vm.context.let_get(name.id) is not None:
        return "let"
    if vm.context.scope_item(name.id) is not None:
        return "scope"
    return None


def where(vm, expr: Expr) -> None:
    value = vm.stack_pop(expr)
    found = _where(vm, value.value) if value.kind is ExprKind.SYMBOL else None
    vm.stack_push(Expr.string(found) if found is not None else Expr.nil())


def dump(vm, expr: Expr) -> None:
    items = vm.context.scope_items()
    vm.stack_push(Expr.list(Expr.list((Expr.symbol(name), cell.value)) for name, cell in items))


def module() -> Module:
    return Module("scope").add_func("where", where).add_func("dump", dump)
