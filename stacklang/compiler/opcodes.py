from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from stacklang.compiler.intrinsics import Intrinsic
from stacklang.compiler.val import Val


class RunSignal(IntEnum):
    NORMAL = 0
    HALT = 1


class Opcode(IntEnum):
    # Values
    PUSH = 0x01  # Val
    PUSH_EXPR = 0x02  # Expr constant

    # Dispatch
    INTRINSIC = 0x10  # Intrinsic
    CALL = 0x11  # Symbol, resolved at run time

    # Composite construction
    LIST_START = 0x20
    LIST_END = 0x21
    MAKE_FN = 0x22  # tuple[Expr, ...] body

    # Misc
    END = 0xFF


@dataclass(frozen=True)
class Op:
    code: Opcode
    arg: Any = None
    span: Any = field(default=None, compare=False, repr=False)

    @classmethod
    def push(cls, val: Val) -> Op:
        return cls(Opcode.PUSH, val)

    @classmethod
    def intrinsic(cls, intrinsic: Intrinsic, span=None) -> Op:
        return cls(Opcode.INTRINSIC, intrinsic, span)

    @classmethod
    def end(cls) -> Op:
        return cls(Opcode.END)

    def __repr__(self) -> str:
        if self.code is Opcode.END:
            return "End"
        if self.code is Opcode.PUSH:
            return f"Push({self.arg!r})"
        if self.code is Opcode.INTRINSIC:
            return f"Intrinsic({self.arg.name.title().replace('_', '')})"
        name = self.code.name.title().replace("_", "")
        return name if self.arg is None else f"{name}({self.arg!r})"
