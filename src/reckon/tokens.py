"""Token kinds and token representation for the reckon lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reckon.source import Span


class TokenClass(Enum):
    DELIMITER = "delimiter"
    OPERATOR = "operator"
    ATOM = "atom"
    KEYWORD = "keyword"


class TokenKind(Enum):
    # Delimiters
    SEMICOLON = auto()
    EOF = auto()

    # Operators
    LPAREN = auto()
    RPAREN = auto()
    PLUS = auto()
    MINUS = auto()
    SLASH = auto()
    STAR = auto()
    EQUALS = auto()

    # Atoms
    NUMBER = auto()
    IDENTIFIER = auto()

    # Keywords
    LET = auto()

    @property
    def token_class(self) -> TokenClass:
        return _CLASSES[self]


_CLASSES: dict[TokenKind, TokenClass] = {
    TokenKind.SEMICOLON: TokenClass.DELIMITER,
    TokenKind.EOF: TokenClass.DELIMITER,
    TokenKind.LPAREN: TokenClass.OPERATOR,
    TokenKind.RPAREN: TokenClass.OPERATOR,
    TokenKind.PLUS: TokenClass.OPERATOR,
    TokenKind.MINUS: TokenClass.OPERATOR,
    TokenKind.SLASH: TokenClass.OPERATOR,
    TokenKind.STAR: TokenClass.OPERATOR,
    TokenKind.EQUALS: TokenClass.OPERATOR,
    TokenKind.NUMBER: TokenClass.ATOM,
    TokenKind.IDENTIFIER: TokenClass.ATOM,
    TokenKind.LET: TokenClass.KEYWORD,
}


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    span: Span

    @property
    def row(self) -> int:
        return self.span.start_line

    @property
    def col(self) -> int:
        return self.span.start_col

    def describe(self) -> str:
        """Human-readable form used in diagnostics."""
        if self.kind == TokenKind.EOF:
            return "end of input"
        return f"{self.value!r}"


KEYWORDS: dict[str, TokenKind] = {
    "let": TokenKind.LET,
}

SINGLE_CHAR_TOKENS: dict[str, TokenKind] = {
    ";": TokenKind.SEMICOLON,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "+": TokenKind.PLUS,
    "-": TokenKind.MINUS,
    "/": TokenKind.SLASH,
    "*": TokenKind.STAR,
    "=": TokenKind.EQUALS,
}

TERMINATORS: frozenset[TokenKind] = frozenset({
    TokenKind.SEMICOLON,
    TokenKind.EOF,
})
