from __future__ import annotations

from typing import Sequence

from .opcodes import Op, Opcode


def disassemble(ops: Sequence[Op]) -> str:
    out = []
    for ip, op in enumerate(ops):
        line = f"{ip:04d}: {op.code.name}"
        if op.code is Opcode.PUSH:
            line += f" {op.arg.value!r}"
        elif op.code is Opcode.INTRINSIC:
            line += f" {op.arg.value}"
        elif op.code is Opcode.CALL:
            line += f" {op.arg.id}"
        elif op.code is Opcode.PUSH_EXPR:
            line += f" {op.arg:#}"
        elif op.code is Opcode.MAKE_FN:
            line += " (fn " + " ".join(format(e, "#") for e in op.arg) + ")"
        out.append(line)
    return "\n".join(out)
