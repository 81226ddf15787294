from __future__ import annotations

import logging
from typing import Iterable, TextIO

from stacklang.compiler.vm import VM
from stacklang.engine import Engine
from stacklang.reader.lexer import Lexer, Source
from stacklang.reader.parser import parse
from stacklang.types.context import Context
from stacklang.types.expr import Expr

log = logging.getLogger(__name__)


class Program:
    """
    Orchestrates reading and running stack code.
    Keeps an Engine, a Context and the value stack across calls, so each
    evaluation continues from where the previous one left off.
    """

    def __init__(
        self,
        engine: Engine | None = None,
        *,
        journal: bool = False,
        journal_length: int | None = None,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ):
        self.engine = engine if engine is not None else Engine()
        self.journal = journal
        self.journal_length = journal_length
        self.out = out
        self.err = err
        self.stack: list[Expr] = []
        self.context = self._new_context()

    def _new_context(self) -> Context:
        context = Context()
        if self.journal:
            context.with_journal(self.journal_length)
        return context

    def eval_source(self, source: Source) -> list[Expr]:
        """Parse and run a Source. Nothing runs if the source fails to parse."""
        self.context.add_source(source)
        exprs = parse(Lexer(source))
        return self.eval(exprs)

    def eval_string(self, code: str, origin: str = "<input>") -> list[Expr]:
        return self.eval_source(Source(origin, code))

    def eval(self, exprs: Iterable[Expr]) -> list[Expr]:
        """Run already-parsed expressions against the persistent stack.

        On a StackError the stack keeps its last good state and the error propagates.
        """
        vm = VM(self.context, self.engine, self.stack, out=self.out, err=self.err)
        vm.compile(exprs)
        return vm.run()

    def reset(self) -> None:
        """Drop the stack and all bindings; registered modules are kept."""
        log.debug("reset")
        self.stack = []
        self.context = self._new_context()
