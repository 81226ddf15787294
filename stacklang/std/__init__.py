from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict

from stacklang.std import scope

if TYPE_CHECKING:
    from stacklang.engine import Module

# Standard modules by import name
STD_MODULES: Dict[str, Callable[[], Module]] = {
    "scope": scope.module,
}

__all__ = ["STD_MODULES"]
