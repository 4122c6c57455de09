"""Lexer for the reckon expression language.

Single left-to-right scan with one character of lookahead.  The first
invalid character aborts the scan with a :class:`LexError`.
"""

from __future__ import annotations

import logging
from typing import NoReturn

from reckon.errors import LexError, LexErrorKind, error_diagnostic
from reckon.source import Span
from reckon.tokens import KEYWORDS, SINGLE_CHAR_TOKENS, Token, TokenKind

logger = logging.getLogger(__name__)

# Newlines are counted in _advance.
_WHITESPACE = frozenset(" \t\r\n")
_DIGITS = frozenset("0123456789")


class Lexer:
    """Tokenizes reckon source code."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0
        self.line = 1
        self.col = 1
        self.tokens: list[Token] = []

    def lex(self) -> list[Token]:
        """Tokenize the entire source and return the token list."""
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in _WHITESPACE:
                self._advance()
            elif ch in SINGLE_CHAR_TOKENS:
                start_line, start_col = self.line, self.col
                self._advance()
                self._emit(SINGLE_CHAR_TOKENS[ch], ch, start_line, start_col)
            elif ch in _DIGITS:
                self._lex_number()
            elif ch.isalpha() or ch == '_':
                self._lex_identifier()
            else:
                self._fail(
                    LexErrorKind.UNEXPECTED_CHARACTER,
                    f"unexpected character: {ch!r}",
                    self.line, self.col,
                )

        self.tokens.append(Token(TokenKind.EOF, "", Span.point(self.line, self.col)))
        logger.debug("lexed %d token(s)", len(self.tokens))
        return self.tokens

    # ── Helpers ───────────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def _advance(self) -> str:
        if self.pos >= len(self.source):
            self._fail(
                LexErrorKind.UNEXPECTED_END_OF_INPUT,
                "unexpected end of input",
                self.line, self.col,
            )
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _emit(self, kind: TokenKind, value: str, start_line: int, start_col: int) -> Token:
        end_col = self.col - 1 if self.col > 1 else 1
        tok = Token(kind, value, Span(start_line, start_col, self.line, end_col))
        self.tokens.append(tok)
        return tok

    def _fail(self, kind: LexErrorKind, message: str, line: int, col: int) -> NoReturn:
        raise LexError([error_diagnostic(kind, message, span=Span.point(line, col))])

    # ── Numbers ──────────────────────────────────────────────────

    def _lex_number(self) -> None:
        start_line = self.line
        start_col = self.col
        text = []
        seen_dot = False

        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in _DIGITS:
                text.append(self._advance())
            elif ch == '.':
                if seen_dot:
                    self._fail(
                        LexErrorKind.INVALID_NUMERIC_LITERAL,
                        f"invalid numeric literal: {''.join(text) + ch!r}",
                        self.line, self.col,
                    )
                seen_dot = True
                text.append(self._advance())
            else:
                break

        self._emit(TokenKind.NUMBER, ''.join(text), start_line, start_col)

    # ── Identifiers and Keywords ─────────────────────────────────

    def _lex_identifier(self) -> None:
        start_line = self.line
        start_col = self.col
        text = []
        while self.pos < len(self.source) and (self._peek().isalnum() or self._peek() == '_'):
            text.append(self._advance())
        word = ''.join(text)
        self._emit(KEYWORDS.get(word, TokenKind.IDENTIFIER), word, start_line, start_col)
