from __future__ import annotations

from enum import Enum


class Intrinsic(str, Enum):
    # Arithmetic
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    REM = "%"

    # Comparison
    EQ = "="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="

    # Boolean
    OR = "or"
    AND = "and"
    NOT = "not"
    ASSERT = "assert"

    # Stack
    DROP = "drop"
    DUPE = "dupe"
    SWAP = "swap"
    ROT = "rot"

    # Collections
    LEN = "len"
    NTH = "nth"
    SPLIT = "split"
    CONCAT = "concat"
    PUSH = "push"
    POP = "pop"
    INSERT = "insert"
    PROP = "prop"
    HAS = "has"
    REMOVE = "remove"
    KEYS = "keys"
    VALUES = "values"

    # Types
    CAST = "cast"
    TYPE_OF = "typeof"

    # Control
    LAZY = "lazy"
    IF = "if"
    HALT = "halt"
    CALL = "call"
    RECUR = "recur"
    OR_ELSE = "orelse"

    # Scope
    LET = "let"
    DEF = "def"
    SET = "set"
    GET = "get"

    # I/O
    DEBUG = "debug"
    PRINT = "print"
    PRETTY = "pretty"
    IMPORT = "import"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def lookup(cls, name: str) -> Intrinsic | None:
        try:
            return cls(name)
        except ValueError:
            return None
