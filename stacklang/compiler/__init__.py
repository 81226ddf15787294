from __future__ import annotations

# Public surface for the compiler package
from .opcodes import Op, Opcode, RunSignal
from .intrinsics import Intrinsic
from .val import Val, ValKind
from .compiler import compile_module, compile_expr
from .disasm import disassemble
from .vm import VM, Frame

__all__ = [
    "Op",
    "Opcode",
    "RunSignal",
    "Intrinsic",
    "Val",
    "ValKind",
    "compile_module",
    "compile_expr",
    "disassemble",
    "VM",
    "Frame",
]
