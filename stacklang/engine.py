from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, Iterator, Optional

from stacklang.types.expr import Expr
from stacklang.types.symbol import Symbol

if TYPE_CHECKING:
    from stacklang.compiler.vm import VM

log = logging.getLogger(__name__)

# A module function receives the running VM and the call expression that reached it
ModuleFunc = Callable[["VM", Expr], None]


@dataclass
class Module:
    name: str
    funcs: Dict[str, ModuleFunc] = field(default_factory=dict)

    def add_func(self, name: str, func: ModuleFunc) -> Module:
        self.funcs[name] = func
        return self

    def func(self, name: str) -> Optional[ModuleFunc]:
        return self.funcs.get(name)


class Engine:
    """Registry of modules, addressed from code as `module:name`."""

    def __init__(self):
        self._modules: Dict[str, Module] = {}

    def add_module(self, module: Module) -> Engine:
        log.debug("registering module %s (%d funcs)", module.name, len(module.funcs))
        self._modules[module.name] = module
        return self

    def module(self, name: str) -> Optional[Module]:
        return self._modules.get(name)

    def modules(self) -> Iterator[Module]:
        return iter(self._modules.values())

    def resolve(self, qualified: str) -> Optional[ModuleFunc]:
        symbol = Symbol(qualified)
        if not symbol.is_qualified:
            return None
        module = self._modules.get(symbol.module)
        return module.func(symbol.name) if module is not None else None

    def import_module(self, name: str) -> Module:
        """Make `name` resolvable: registered modules first, then the
        standard library, then `<name>.stack` on the modules path.
        """
        module = self._modules.get(name)
        if module is not None:
            return module

        # Lazy imports to avoid circular dependency at module load time
        from stacklang.std import STD_MODULES
        from stacklang.modules.module_loader import load_source_module

        factory = STD_MODULES.get(name)
        if factory is not None:
            module = factory()
        else:
            module = load_source_module(self, name)
        log.info("imported module %s", name)
        self.add_module(module)
        return module


def with_std(engine: Engine | None = None, *names: str) -> Engine:
    """Register the named standard modules up front."""
    engine = engine if engine is not None else Engine()
    for name in names:
        if engine.module(name) is None:
            engine.import_module(name)
    return engine
