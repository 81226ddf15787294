from __future__ import annotations
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from stacklang.config import get_modules_roots
from stacklang.errors import UnknownModuleError
from stacklang.reader.lexer import Source
from stacklang.types.context import Cell
from stacklang.types.expr import ExprKind

if TYPE_CHECKING:
    from stacklang.engine import Engine, Module, ModuleFunc


# Map a dotted module name to a .stack file underneath a set of roots

def _module_to_relpath(name: str) -> Path:
    return Path(*name.split('.')).with_suffix('.stack')


def resolve_module(name: str) -> Optional[Path]:
    rel = _module_to_relpath(name)
    for root in get_modules_roots():
        candidate = root / rel
        if candidate.is_file():
            return candidate
    return None


def _export(cell: Cell) -> ModuleFunc:
    def func(vm, expr):
        value = cell.value
        if value.kind is ExprKind.FUNCTION:
            vm.invoke(value)
        else:
            vm.stack_push(value)

    return func


def load_source_module(engine: Engine, name: str) -> Module:
    """Evaluate `<name>.stack` in a fresh program; its scope items become the exports."""
    # Lazy imports to avoid circular imports
    from stacklang.engine import Module
    from stacklang.interpreter import Program

    path = resolve_module(name)
    if path is None:
        raise UnknownModuleError(f"cannot find module '{name}' in STACK_MODULES_PATH")
    try:
        source = Source.from_path(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise UnknownModuleError(f"cannot read module '{name}' from {path}: {exc}") from exc
    program = Program(engine=engine)
    program.eval_source(source)

    module = Module(name)
    for item, cell in program.context.scope_items():
        module.add_func(item, _export(cell))
    return module
