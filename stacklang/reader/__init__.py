from stacklang.reader.lexer import Lexer, Source, Span, Token, TokenKind, lex
from stacklang.reader.parser import Parser, parse, parse_source

__all__ = [
    "Lexer",
    "Source",
    "Span",
    "Token",
    "TokenKind",
    "lex",
    "Parser",
    "parse",
    "parse_source",
]
