"""Evaluation context.

The Context holds everything a run binds or records outside the VM itself:

- a chain of lexical Scopes. Each Scope stores persistent (`def`) items in
  shared Cells so that readers such as `scope:dump` can enumerate them
  without taking the values away from the bindings;
- a stack of `let` frames, one per running block, dropped when the block ends;
- an optional Journal of stack snapshots;
- the Sources evaluated so far.

A Context is created once per top-level evaluation unit and replaced on reset.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from io import StringIO
from typing import Iterator, Optional

from stacklang import config
from stacklang.reader.lexer import Source
from stacklang.types.expr import Expr
from stacklang.types.journal import Journal


@dataclass
class Cell:
    value: Expr


class Scope:
    """Persistent bindings with a link to the enclosing scope."""

    __slots__ = ("items", "parent")

    def __init__(self, parent: Optional[Scope] = None):
        self.items: dict[str, Cell] = {}
        self.parent: Scope | None = parent

    def find(self, name: str) -> Optional[Cell]:
        """Find the nearest cell in the chain bound to `name`."""
        scope: Optional[Scope] = self
        while scope is not None:
            cell = scope.items.get(name)
            if cell is not None:
                return cell
            scope = scope.parent
        return None

    def define(self, name: str, value: Expr) -> None:
        cell = self.items.get(name)
        if cell is None:
            self.items[name] = Cell(value)
        else:
            cell.value = value

    def __repr__(self) -> str:
        with StringIO() as buffer:
            buffer.write("<Scope chain: ")
            chain = []
            scope = self
            while scope is not None:
                chain.append("{" + ", ".join(f"{k}: {c.value:#}" for k, c in scope.items.items()) + "}")
                scope = scope.parent
            buffer.write(" -> ".join(chain))
            buffer.write(">")
            return buffer.getvalue()


@dataclass
class LetFrame:
    bindings: dict[str, Expr] = field(default_factory=dict)
    # A boundary frame starts a function activation (or the top level);
    # let lookups do not cross it.
    boundary: bool = False
    scope: Scope | None = None


class Context:
    def __init__(self, scope: Optional[Scope] = None):
        self.root = scope if scope is not None else Scope()
        self._scopes: list[Scope] = [self.root]
        self._lets: list[LetFrame] = [LetFrame(boundary=True)]
        self.journal: Journal | None = None
        self._sources: dict[str, Source] = {}

    def with_journal(self, max_len: int | None) -> Context:
        """Enable journaling, keeping at most `max_len` snapshots."""
        self.journal = Journal(config.get_journal_length() if max_len is None else max_len)
        return self

    # --- sources ---
    def add_source(self, source: Source) -> None:
        self._sources[source.name] = source

    def sources(self) -> Iterator[Source]:
        return iter(self._sources.values())

    # --- scopes ---
    @property
    def scope(self) -> Scope:
        return self._scopes[-1]

    def scopes(self) -> Iterator[Scope]:
        """Lexical scope chain, innermost first."""
        scope: Optional[Scope] = self.scope
        while scope is not None:
            yield scope
            scope = scope.parent

    def push_frame(self, scope: Scope | None = None) -> None:
        """Enter a block (same scope) or a function activation (new scope)."""
        if scope is not None:
            self._scopes.append(scope)
        self._lets.append(LetFrame(boundary=scope is not None, scope=scope))

    def pop_frame(self) -> None:
        if len(self._lets) == 1:
            raise RuntimeError("cannot pop the top-level frame")
        frame = self._lets.pop()
        if frame.scope is not None:
            self._scopes.pop()

    def reset_frame(self) -> None:
        self._lets[-1].bindings.clear()

    # --- let bindings ---
    def let_get(self, name: str) -> Optional[Expr]:
        for frame in reversed(self._lets):
            if name in frame.bindings:
                return frame.bindings[name]
            if frame.boundary:
                break
        return None

    def let_set(self, name: str, value: Expr) -> None:
        self._lets[-1].bindings[name] = value

    def let_update(self, name: str, value: Expr) -> bool:
        for frame in reversed(self._lets):
            if name in frame.bindings:
                frame.bindings[name] = value
                return True
            if frame.boundary:
                break
        return False

    # --- persistent scope items ---
    def scope_item(self, name: str) -> Optional[Cell]:
        return self.scope.find(name)

    def def_item(self, name: str, value: Expr) -> None:
        self.scope.define(name, value)

    def scope_items(self) -> Iterator[tuple[str, Cell]]:
        """Visible persistent items, inner bindings shadowing outer ones."""
        seen: set[str] = set()
        for scope in self.scopes():
            for name, cell in scope.items.items():
                if name not in seen:
                    seen.add(name)
                    yield name, cell

    def __repr__(self) -> str:
        lets = {k: format(v, "#") for f in self._lets for k, v in f.bindings.items()}
        return f"<Context scope={self.scope!r} lets={lets}>"
