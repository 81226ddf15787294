from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, TextIO

from stacklang import config
from stacklang.errors import IPBoundsError, StackError, StackUnderflowError, TypeMismatchError, UnknownNameError
from stacklang.types.context import Context, Scope
from stacklang.types.expr import Expr, ExprKind
from stacklang.types.symbol import Symbol

from .compiler import compile_module
from .disasm import disassemble
from .intrinsics import Intrinsic
from .opcodes import Op, Opcode, RunSignal
from .vm_ops import IntrinsicOpsMixin

log = logging.getLogger(__name__)


@dataclass
class Frame:
    ops: list[Op]
    ip: int = 0
    callee: Expr | None = None  # None for the top-level stream
    # `if` branches are not restarted by recur; it restarts the frame that ran them
    recur_target: bool = True

    def at_end(self) -> bool:
        return self.ip < len(self.ops) and self.ops[self.ip].code is Opcode.END


def _changed(before: list[Expr], after: list[Expr]) -> bool:
    return len(before) != len(after) or any(a is not b for a, b in zip(before, after))


class VM(IntrinsicOpsMixin):
    RunSignal = RunSignal

    def __init__(
        self,
        context: Context | None = None,
        engine: Any = None,
        stack: list[Expr] | None = None,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ):
        self.context = context if context is not None else Context()
        self.engine = engine
        self.stack: List[Expr] = stack if stack is not None else []
        # Register file: caller frames saved while a block or function runs
        self.registers: List[Frame] = []
        self.frame = Frame([Op.end()])
        # Stack heights recorded by ListStart; pops may not cross the innermost one
        self.marks: List[int] = []
        self.halted = False
        self._out = out
        self._err = err
        # Opcode and intrinsic dispatch tables
        self._dispatch: dict[Opcode, Callable[[Op], RunSignal]] = {}
        self._intrinsics: dict[Intrinsic, Callable[[Op], RunSignal]] = {}
        self._init_dispatch()
        self._init_intrinsics()

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err if self._err is not None else sys.stderr

    @property
    def ops(self) -> list[Op]:
        return self.frame.ops

    @property
    def ip(self) -> int:
        return self.frame.ip

    def _init_dispatch(self) -> None:
        d = self._dispatch
        # Values
        d[Opcode.PUSH] = self.op_push
        d[Opcode.PUSH_EXPR] = self.op_push_expr
        # Dispatch
        d[Opcode.INTRINSIC] = self.op_intrinsic
        d[Opcode.CALL] = self.op_call
        # Composite construction
        d[Opcode.LIST_START] = self.op_list_start
        d[Opcode.LIST_END] = self.op_list_end
        d[Opcode.MAKE_FN] = self.op_make_fn
        # Misc
        d[Opcode.END] = self.op_end

    # --- Loading ---
    def load(self, ops: Iterable[Op]) -> None:
        """Replace the current program with `ops` and rewind."""
        self.frame = Frame(list(ops))
        self.registers.clear()
        self.marks.clear()
        self.halted = False

    def compile(self, exprs: Iterable[Expr]) -> list[Op]:
        ops = compile_module(exprs)
        if config.disasm_enabled():
            print(disassemble(ops), file=self.err)
        self.load(ops)
        return ops

    # --- Stack helpers ---
    def stack_push(self, value: Expr) -> None:
        self.stack.append(value)

    def stack_pop(self, op: Any = None) -> Expr:
        floor = self.marks[-1] if self.marks else 0
        if len(self.stack) <= floor:
            raise StackUnderflowError(op)
        return self.stack.pop()

    def stack_peek(self, op: Any = None) -> Expr:
        floor = self.marks[-1] if self.marks else 0
        if len(self.stack) <= floor:
            raise StackUnderflowError(op)
        return self.stack[-1]

    # --- Per-op handlers ---
    def op_push(self, op: Op) -> RunSignal:
        self.stack_push(op.arg.to_expr())
        return RunSignal.NORMAL

    def op_push_expr(self, op: Op) -> RunSignal:
        self.stack_push(op.arg)
        return RunSignal.NORMAL

    def op_intrinsic(self, op: Op) -> RunSignal:
        return self._intrinsics[op.arg](op)

    def op_call(self, op: Op) -> RunSignal:
        return self.call_name(op.arg.id, op.span)

    def op_list_start(self, op: Op) -> RunSignal:
        self.marks.append(len(self.stack))
        return RunSignal.NORMAL

    def op_list_end(self, op: Op) -> RunSignal:
        floor = self.marks.pop()
        items = self.stack[floor:]
        del self.stack[floor:]
        self.stack_push(Expr.list(items, op.span))
        return RunSignal.NORMAL

    def op_make_fn(self, op: Op) -> RunSignal:
        self.stack_push(Expr.function(self.context.scope, op.arg, op.span))
        return RunSignal.NORMAL

    def op_end(self, op: Op) -> RunSignal:
        if self.registers:
            self.context.pop_frame()
            self.frame = self.registers.pop()
            return RunSignal.NORMAL
        self.halted = True
        return RunSignal.HALT

    # --- Name resolution and invocation ---
    def resolve(self, name: str) -> tuple[Optional[str], Any]:
        """Resolve `name` as intrinsic, module function, let binding or scope item.

        Returns a `(where, target)` pair; `where` is None when nothing matches.
        """
        intrinsic = Intrinsic.lookup(name)
        if intrinsic is not None:
            return "intrinsic", intrinsic
        if Symbol(name).is_qualified and self.engine is not None:
            func = self.engine.resolve(name)
            if func is not None:
                return "module", func
        value = self.context.let_get(name)
        if value is not None:
            return "let", value
        cell = self.context.scope_item(name)
        if cell is not None:
            return "scope", cell.value
        return None, None

    def call_name(self, name: str, span: Any = None) -> RunSignal:
        where, target = self.resolve(name)
        if where is None:
            raise UnknownNameError(name, span)
        if where == "intrinsic":
            return self._intrinsics[target](Op.intrinsic(target, span))
        if where == "module":
            target(self, Expr.call(name, span))
            return RunSignal.NORMAL
        if target.kind is ExprKind.FUNCTION:
            self.invoke(target)
        else:
            self.stack_push(target)
        return RunSignal.NORMAL

    def call_value(self, value: Expr, span: Any = None, branch: bool = False) -> RunSignal:
        """Invoke blocks and functions, resolve symbols and calls, push anything else back."""
        if value.is_invocable():
            self.invoke(value, branch)
            return RunSignal.NORMAL
        if value.kind in (ExprKind.SYMBOL, ExprKind.CALL):
            return self.call_name(value.value.id, span)
        self.stack_push(value)
        return RunSignal.NORMAL

    def invoke(self, callee: Expr, branch: bool = False) -> None:
        """Start running a block or function in a new frame.

        `branch` marks a block run by `if`, which recur passes through.
        Functions are always restarted by recur.
        """
        if callee.kind is ExprKind.BLOCK:
            body, scope = callee.value, None
        elif callee.kind is ExprKind.FUNCTION:
            body, scope = callee.value.body, Scope(callee.value.scope)
            # Callers with nothing left to run would only return; drop them so
            # tail calls run in constant space. Their lets are not visible here.
            while self.registers and self.frame.at_end():
                self.context.pop_frame()
                self.frame = self.registers.pop()
        else:
            raise TypeMismatchError(f"cannot invoke {callee.type_name()} {callee:#}")
        self.registers.append(self.frame)
        target = not branch or scope is not None
        self.frame = Frame(compile_module(body), callee=callee, recur_target=target)
        self.context.push_frame(scope)
        log.debug("invoke %r depth=%d", callee, len(self.registers))

    def unwind(self) -> None:
        """Drop every nested frame, returning to the top-level stream."""
        while self.registers:
            self.context.pop_frame()
            self.frame = self.registers.pop()

    def recur(self) -> RunSignal:
        """Restart the innermost block or function, dropping its let bindings."""
        while not self.frame.recur_target:
            self.context.pop_frame()
            self.frame = self.registers.pop()
        self.frame.ip = 0
        self.context.reset_frame()
        return RunSignal.NORMAL

    def halt(self) -> RunSignal:
        self.unwind()
        self.halted = True
        return RunSignal.HALT

    # --- Execution ---
    def step(self) -> RunSignal:
        """Execute a single op.

        Returns RunSignal.HALT once End is reached at top level (and on every
        later call). Failures raise a StackError with the stack restored to its
        state before the failing step.
        """
        if self.halted:
            return RunSignal.HALT
        frame = self.frame
        if frame.ip >= len(frame.ops):
            raise IPBoundsError(frame.ip, len(frame.ops))
        op = frame.ops[frame.ip]
        frame.ip = min(frame.ip + 1, len(frame.ops))
        log.debug("%04d %r stack=%r", frame.ip - 1, op, self.stack)

        saved = list(self.stack)
        saved_marks = list(self.marks)
        try:
            signal = self._dispatch[op.code](op)
        except StackError:
            self.stack[:] = saved
            self.marks[:] = saved_marks
            self.unwind()
            raise
        journal = self.context.journal
        if journal is not None and _changed(saved, self.stack):
            journal.commit(self.stack)
        return signal

    def run(self) -> List[Expr]:
        while self.step() is not RunSignal.HALT:
            pass
        return self.stack


def run_exprs(exprs: Iterable[Expr], context: Context | None = None, engine: Any = None) -> List[Expr]:
    vm = VM(context, engine)
    vm.compile(exprs)
    return vm.run()
