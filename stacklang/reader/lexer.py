"""
  Lexer for the stack language.

- Streaming: tokens are produced lazily while iterating a Lexer.
- Never raises mid-scan. Malformed input is recorded in `Lexer.diagnostics`
  and scanning continues; the parser surfaces the first diagnostic.

    (  )      -> block open/close
    [  ]      -> list open/close
    "text"    -> string (escapes: \\n \\t \\r \\0 \\\\ \\" \\')
    'name     -> symbol
    12  -4    -> integer (64-bit range)
    1.5  -.5  -> float (any word with a decimal point)
    nil       -> nil
    other     -> call
    ; ...     -> comment to end of line
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Any, Iterator

from stacklang.errors import LexError
from stacklang.types.expr import I64_MAX, I64_MIN


@dataclass(frozen=True)
class Source:
    """Source text tagged with an origin name used in diagnostics."""
    name: str
    content: str

    @classmethod
    def from_path(cls, path: str | Path) -> Source:
        p = Path(path)
        return cls(str(p), p.read_text(encoding="utf-8"))


@dataclass(frozen=True)
class Span:
    origin: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.origin}:{self.line}:{self.column}"


class TokenKind(Enum):
    INTEGER = auto()
    FLOAT = auto()
    STRING = auto()
    SYMBOL = auto()
    CALL = auto()
    NIL = auto()
    BLOCK_OPEN = auto()
    BLOCK_CLOSE = auto()
    LIST_OPEN = auto()
    LIST_CLOSE = auto()


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: Any = None
    span: Span | None = field(default=None, compare=False)


TOKEN_RE = re.compile(
    r"(?P<ws>\s+)"
    r"|(?P<comment>;[^\n]*)"
    r"|(?P<block_open>\()"
    r"|(?P<block_close>\))"
    r"|(?P<list_open>\[)"
    r"|(?P<list_close>\])"
    r'|(?P<string>"(?:\\.|[^\\"])*")'
    r'|(?P<open_string>"(?:\\.|[^\\"])*\Z)'
    r"""|(?P<symbol>'[^\s()\[\]";']+)"""
    r"""|(?P<word>[^\s()\[\]";']+)""",
    re.DOTALL,
)

INT_RE = re.compile(r"-?\d+")
FLOAT_RE = re.compile(r"-?(?:\d+\.\d*|\.\d+)")
# Words that start like a number and contain a dot must be valid floats
NUMERIC_START_RE = re.compile(r"-?\.?\d")

ESCAPES: dict[str, str] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
    "\\": "\\",
    '"': '"',
    "'": "'",
}

PUNCTUATION: dict[str, TokenKind] = {
    "block_open": TokenKind.BLOCK_OPEN,
    "block_close": TokenKind.BLOCK_CLOSE,
    "list_open": TokenKind.LIST_OPEN,
    "list_close": TokenKind.LIST_CLOSE,
}


def unescape(body: str, span: Span) -> str:
    out = []
    chars = iter(body)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        esc = next(chars, "")
        if esc not in ESCAPES:
            raise LexError(f"unknown escape sequence '\\{esc}'", span)
        out.append(ESCAPES[esc])
    return "".join(out)


def classify_word(word: str, span: Span) -> Token:
    if INT_RE.fullmatch(word):
        value = int(word)
        if not I64_MIN <= value <= I64_MAX:
            raise LexError(f"integer literal '{word}' does not fit in 64 bits", span)
        return Token(TokenKind.INTEGER, value, span)
    if FLOAT_RE.fullmatch(word):
        return Token(TokenKind.FLOAT, float(word), span)
    if "." in word and NUMERIC_START_RE.match(word):
        raise LexError(f"malformed float literal '{word}'", span)
    if word == "nil":
        return Token(TokenKind.NIL, None, span)
    return Token(TokenKind.CALL, word, span)


class Lexer:
    """Lazy token iterator over a Source."""

    def __init__(self, source: Source | str, origin: str = "<input>"):
        if isinstance(source, str):
            source = Source(origin, source)
        self.source = source
        self.diagnostics: list[LexError] = []
        self._tokens = self._scan()

    def __iter__(self) -> Iterator[Token]:
        return self

    def __next__(self) -> Token:
        return next(self._tokens)

    def _scan(self) -> Iterator[Token]:
        text = self.source.content
        pos, n = 0, len(text)
        line, line_start = 1, 0

        while pos < n:
            span = Span(self.source.name, line, pos - line_start + 1)
            m = TOKEN_RE.match(text, pos)
            if m is None:
                self.diagnostics.append(LexError(f"unexpected character {text[pos]!r}", span))
                pos += 1
                continue

            kind = m.lastgroup
            lexeme = m.group()
            pos = m.end()
            newlines = lexeme.count("\n")
            if newlines:
                line += newlines
                line_start = m.start() + lexeme.rfind("\n") + 1

            try:
                if kind in ("ws", "comment"):
                    continue
                if kind in PUNCTUATION:
                    yield Token(PUNCTUATION[kind], lexeme, span)
                elif kind == "string":
                    yield Token(TokenKind.STRING, unescape(lexeme[1:-1], span), span)
                elif kind == "open_string":
                    raise LexError("unterminated string literal", span)
                elif kind == "symbol":
                    yield Token(TokenKind.SYMBOL, lexeme[1:], span)
                else:
                    yield classify_word(lexeme, span)
            except LexError as err:
                self.diagnostics.append(err)


def lex(source: Source | str, origin: str = "<input>") -> Lexer:
    """Token generator over `source`; see Lexer."""
    return Lexer(source, origin)
