from __future__ import annotations
import sys

MODULE_SEPARATOR = ":"


class Symbol:
    """An interned name, optionally qualified as `module:name`."""

    __slots__ = ("id",)

    def __init__(self, name: str):
        self.id = sys.intern(name)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Symbol) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self):
        return f"Symbol({self.id!r})"

    def __str__(self):
        return self.id

    @property
    def is_qualified(self) -> bool:
        return MODULE_SEPARATOR in self.id

    @property
    def module(self) -> str:
        """Text before the first ':'; the whole id when unqualified."""
        return self.id.partition(MODULE_SEPARATOR)[0]

    @property
    def name(self) -> str | None:
        """Text after the first ':'; None when unqualified."""
        head, sep, rest = self.id.partition(MODULE_SEPARATOR)
        return rest if sep else None
