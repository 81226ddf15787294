"""
  Parser: tokens -> ordered sequence of Expr.

Bracketing is resolved with a stack of open frames. An opener pushes an empty
frame and remembers which closer it expects; a closer pops the frame and wraps
its expressions as a Block `( )` or a List `[ ]` inside the parent frame.

Failures raise instead of returning a partial result:
    - closer that does not match the innermost opener -> MismatchedBracketError
    - input ending with brackets still open          -> UnbalancedBlockError
    - any diagnostic recorded by the Lexer            -> that LexError
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from stacklang.errors import MismatchedBracketError, UnbalancedBlockError
from stacklang.reader.lexer import Lexer, Source, Span, Token, TokenKind
from stacklang.types.expr import Expr

CLOSERS: dict[TokenKind, TokenKind] = {
    TokenKind.BLOCK_CLOSE: TokenKind.BLOCK_OPEN,
    TokenKind.LIST_CLOSE: TokenKind.LIST_OPEN,
}

BRACKET_TEXT: dict[TokenKind, str] = {
    TokenKind.BLOCK_OPEN: "(",
    TokenKind.BLOCK_CLOSE: ")",
    TokenKind.LIST_OPEN: "[",
    TokenKind.LIST_CLOSE: "]",
}

LITERAL_CALLS = {
    "true": lambda span: Expr.boolean(True, span),
    "false": lambda span: Expr.boolean(False, span),
    "_": lambda span: Expr.underscore(span),
}


@dataclass
class Frame:
    opener: TokenKind | None
    span: Span | None = None
    items: list[Expr] = field(default_factory=list)


def token_to_expr(tok: Token) -> Expr:
    match tok.kind:
        case TokenKind.INTEGER:
            return Expr.integer(tok.value, tok.span)
        case TokenKind.FLOAT:
            return Expr.float(tok.value, tok.span)
        case TokenKind.STRING:
            return Expr.string(tok.value, tok.span)
        case TokenKind.SYMBOL:
            return Expr.symbol(tok.value, tok.span)
        case TokenKind.NIL:
            return Expr.nil(tok.span)
        case TokenKind.CALL:
            literal = LITERAL_CALLS.get(tok.value)
            return literal(tok.span) if literal else Expr.call(tok.value, tok.span)
    raise ValueError(f"not a value token: {tok.kind}")


class Parser:
    def __init__(self, tokens: Iterable[Token]):
        self.tokens = tokens
        self.frames: list[Frame] = [Frame(opener=None)]

    def _check_diagnostics(self) -> None:
        if isinstance(self.tokens, Lexer) and self.tokens.diagnostics:
            raise self.tokens.diagnostics[0]

    def _close(self, tok: Token) -> None:
        frame = self.frames[-1]
        if frame.opener is None or CLOSERS[tok.kind] is not frame.opener:
            self._check_diagnostics()
            expected = "end of input" if frame.opener is None else f"closer for '{BRACKET_TEXT[frame.opener]}'"
            raise MismatchedBracketError(
                f"mismatched '{BRACKET_TEXT[tok.kind]}', expected {expected}", tok.span
            )
        self.frames.pop()
        if frame.opener is TokenKind.BLOCK_OPEN:
            wrapped = Expr.block(frame.items, frame.span)
        else:
            wrapped = Expr.list(frame.items, frame.span)
        self.frames[-1].items.append(wrapped)

    def parse(self) -> list[Expr]:
        for tok in self.tokens:
            if tok.kind in (TokenKind.BLOCK_OPEN, TokenKind.LIST_OPEN):
                self.frames.append(Frame(opener=tok.kind, span=tok.span))
            elif tok.kind in CLOSERS:
                self._close(tok)
            else:
                self.frames[-1].items.append(token_to_expr(tok))

        self._check_diagnostics()
        if len(self.frames) != 1:
            innermost = self.frames[-1]
            raise UnbalancedBlockError(
                f"unclosed '{BRACKET_TEXT[innermost.opener]}' ({len(self.frames) - 1} open)",
                innermost.span,
            )
        return self.frames[0].items


def parse(tokens: Iterable[Token]) -> list[Expr]:
    return Parser(tokens).parse()


def parse_source(source: Source | str, origin: str = "<input>") -> list[Expr]:
    """Lex and parse `source` in one go."""
    return parse(Lexer(source, origin))
