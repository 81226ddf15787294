from __future__ import annotations

from typing import Iterator, Sequence

from stacklang.types.expr import Expr

Snapshot = tuple[Expr, ...]


class Journal:
    """Bounded chronological history of stack snapshots.

    Backed by a fixed-capacity buffer addressed by index: once full, each new
    snapshot overwrites the oldest slot, so the length can never exceed
    `max_len`.
    """

    __slots__ = ("max_len", "_slots", "_start", "_len")

    def __init__(self, max_len: int):
        if max_len < 0:
            raise ValueError("journal length must be non-negative")
        self.max_len = max_len
        self._slots: list[Snapshot | None] = [None] * max_len
        self._start = 0
        self._len = 0

    def commit(self, stack: Sequence[Expr]) -> None:
        if self.max_len == 0:
            return
        snapshot = tuple(stack)
        if self._len < self.max_len:
            self._slots[(self._start + self._len) % self.max_len] = snapshot
            self._len += 1
        else:
            self._slots[self._start] = snapshot
            self._start = (self._start + 1) % self.max_len

    def clear(self) -> None:
        self._slots = [None] * self.max_len
        self._start = 0
        self._len = 0

    def __len__(self) -> int:
        return self._len

    def __iter__(self) -> Iterator[Snapshot]:
        for i in range(self._len):
            yield self._slots[(self._start + i) % self.max_len]

    def __getitem__(self, index: int) -> Snapshot:
        if index < 0:
            index += self._len
        if not 0 <= index < self._len:
            raise IndexError("journal index out of range")
        return self._slots[(self._start + index) % self.max_len]

    def entries(self) -> list[Snapshot]:
        return list(self)

    def __repr__(self) -> str:
        return f"<Journal {self._len}/{self.max_len}>"
