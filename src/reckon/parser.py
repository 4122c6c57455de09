"""Parser for the reckon expression language.

Transforms a token stream into an AST using a Pratt expression parser
under a small recursive-descent statement layer.

The parser always runs in recovery mode: a local failure is recorded as
an :class:`ErrorNode` that takes the place of the malformed subtree and
is also appended to ``Parser.errors``.  Parsing then resumes, and
:meth:`Parser.parse` raises a :class:`ParseError` listing every recorded
error once the whole token stream has been consumed.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from reckon.ast_nodes import (
    BinaryExpr,
    Empty,
    ErrorNode,
    Expr,
    LetStmt,
    NumberLit,
    ParenExpr,
    Program,
    Stmt,
    UnaryExpr,
    VariableExpr,
)
from reckon.errors import Diagnostic, ParseError, SyntaxErrorKind, error_diagnostic
from reckon.tokens import TERMINATORS, Token, TokenKind

logger = logging.getLogger(__name__)

# ── Binding powers for Pratt parser ─────────────────────────────


@dataclass(frozen=True)
class BindingPowers:
    """A named precedence table.

    ``infix`` maps an operator to its (left_bp, right_bp) pair; ``prefix``
    is the binding power unary minus parses its operand at.
    """

    name: str
    infix: Mapping[TokenKind, tuple[float, float]]
    prefix: float


# Star, slash and plus have left > right, so with the "left_bp < min_bp"
# stop rule they chain to the right; minus chains to the left.
HISTORICAL = BindingPowers(
    name="historical",
    infix={
        TokenKind.STAR: (10.1, 10.0),
        TokenKind.SLASH: (9.1, 9.0),
        TokenKind.MINUS: (8.1, 11.0),
        TokenKind.PLUS: (7.1, 7.0),
    },
    prefix=11.0,  # right bp of binary minus
)

CONVENTIONAL = BindingPowers(
    name="conventional",
    infix={
        TokenKind.STAR: (10.0, 10.1),
        TokenKind.SLASH: (10.0, 10.1),
        TokenKind.MINUS: (7.0, 7.1),
        TokenKind.PLUS: (7.0, 7.1),
    },
    prefix=11.0,
)

PRECEDENCE_TABLES: dict[str, BindingPowers] = {
    HISTORICAL.name: HISTORICAL,
    CONVENTIONAL.name: CONVENTIONAL,
}


def binding_powers(name: str) -> BindingPowers:
    """Look up a precedence table by name. Raises ValueError."""
    try:
        return PRECEDENCE_TABLES[name]
    except KeyError:
        known = ", ".join(sorted(PRECEDENCE_TABLES))
        raise ValueError(f"unknown precedence table {name!r} (expected one of: {known})") from None


# Maximum depth of nested operands: parentheses, unary minus and
# right-chained operators each open one level.
MAX_NESTING = 150

# Operators that may never start an operand.
_BINARY_ONLY = frozenset({TokenKind.PLUS, TokenKind.STAR, TokenKind.SLASH})


class Parser:
    """Parses a list of tokens into a reckon AST.

    After :meth:`parse` returns or raises, ``tree`` holds the parsed
    program; on failure its malformed subtrees are the ErrorNodes listed
    in ``errors``.
    """

    def __init__(self, tokens: list[Token], *, powers: BindingPowers = HISTORICAL) -> None:
        self.tokens = tokens
        self.pos = 0
        self.powers = powers
        self.errors: list[ErrorNode] = []
        self.diagnostics: list[Diagnostic] = []
        self._errors_at_end = 0
        self._depth = 0
        self.tree: Program | Empty | None = None

    # ── Token access ─────────────────────────────────────────────

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]  # EOF

    def _at(self, kind: TokenKind) -> bool:
        return self._current().kind == kind

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _error(
        self,
        kind: SyntaxErrorKind,
        token: Token,
        message: str,
        *,
        label: str = "",
        notes: list[str] | None = None,
    ) -> ErrorNode:
        """Record a syntax error and return the node standing in for it."""
        node = ErrorNode(kind, token, len(self.errors))
        self.errors.append(node)
        self.diagnostics.append(
            error_diagnostic(kind, message, token=token, label=label, notes=notes)
        )
        # More input cannot make an over-deep expression shallower.
        if self._at(TokenKind.EOF) and kind != SyntaxErrorKind.NESTING_TOO_DEEP:
            self._errors_at_end += 1
        return node

    def _synchronize(self) -> None:
        """Skip tokens up to and including the next ';'."""
        while not self._at(TokenKind.EOF):
            if self._advance().kind == TokenKind.SEMICOLON:
                return

    # ── Top-level parsing ────────────────────────────────────────

    def parse(self) -> Program | Empty:
        """Parse the entire token stream into a Program."""
        body: list[Stmt] = []

        while not self._at(TokenKind.EOF):
            if self._at(TokenKind.SEMICOLON):
                self._advance()
                continue
            try:
                body.append(self._parse_statement())
            except _ParseError as e:
                body.append(e.node)
                self._synchronize()

        logger.debug(
            "parsed %d statement(s) with %d error(s)", len(body), len(self.errors),
        )
        self.tree = Program(body) if body else Empty()
        if self.errors:
            incomplete = self._errors_at_end == len(self.errors)
            raise ParseError(self.diagnostics, incomplete=incomplete)
        return self.tree

    def _parse_statement(self) -> Stmt:
        if self._at(TokenKind.LET):
            return self._parse_let()

        expr = self._parse_expression(0)
        tok = self._current()
        if tok.kind == TokenKind.SEMICOLON:
            self._advance()
        elif tok.kind != TokenKind.EOF:
            raise _ParseError(self._error(
                SyntaxErrorKind.EXPECTED_END_OF_INPUT, tok,
                f"expected ';' or end of input, got {tok.describe()}",
            ))
        return expr

    def _parse_let(self) -> LetStmt:
        let_tok = self._advance()
        name_tok = self._expect(TokenKind.IDENTIFIER, "an identifier after 'let'")
        self._expect(TokenKind.EQUALS, f"'=' after {name_tok.value!r}")
        value = self._parse_expression(0)
        self._expect(TokenKind.SEMICOLON, "';' after the assigned expression")
        return LetStmt(let_tok, name_tok, name_tok.value, value)

    def _expect(self, kind: TokenKind, what: str) -> Token:
        tok = self._current()
        if tok.kind == kind:
            return self._advance()
        raise _ParseError(self._error(
            SyntaxErrorKind.UNEXPECTED_TOKEN, tok,
            f"expected {what}, got {tok.describe()}",
        ))

    # ── Pratt expression parser ──────────────────────────────────

    def _parse_expression(self, min_bp: float, operator: Token | None = None) -> Expr:
        """Parse an expression using Pratt parsing with binding powers.

        ``operator`` is the binary operator whose right operand is being
        parsed, if any; it only affects how a missing operand is reported.
        """
        if self._depth >= MAX_NESTING:
            tok = self._current()
            raise _ParseError(self._error(
                SyntaxErrorKind.NESTING_TOO_DEEP, tok,
                f"expression nested more than {MAX_NESTING} levels deep",
            ))
        self._depth += 1
        try:
            return self._parse_infix(min_bp, operator)
        finally:
            self._depth -= 1

    def _parse_infix(self, min_bp: float, operator: Token | None) -> Expr:
        left = self._parse_prefix(operator)

        while True:
            tok = self._current()
            if tok.kind in TERMINATORS:
                break

            bp = self.powers.infix.get(tok.kind)
            if bp is None:
                if tok.kind in (TokenKind.RPAREN, TokenKind.EQUALS):
                    break
                raise _ParseError(self._error(
                    SyntaxErrorKind.EXPECTED_OPERATOR, tok,
                    f"expected an operator, got {tok.describe()}",
                ))

            left_bp, right_bp = bp
            if left_bp < min_bp:
                break

            op_tok = self._advance()
            right = self._parse_expression(right_bp, op_tok)
            left = BinaryExpr(op_tok, left, right)

        return left

    def _parse_prefix(self, operator: Token | None = None) -> Expr:
        """Parse a prefix expression (atom, negation or parenthesised)."""
        tok = self._current()

        if tok.kind == TokenKind.NUMBER:
            self._advance()
            return NumberLit(tok, float(tok.value))

        if tok.kind == TokenKind.IDENTIFIER:
            self._advance()
            return VariableExpr(tok, tok.value)

        if tok.kind == TokenKind.MINUS:
            self._advance()
            operand = self._parse_expression(self.powers.prefix)
            return UnaryExpr(tok, operand)

        if tok.kind == TokenKind.LPAREN:
            return self._parse_paren()

        if tok.kind in _BINARY_ONLY:
            node = self._error(
                SyntaxErrorKind.UNEXPECTED_UNARY_OPERATOR, tok,
                f"{tok.value!r} is not a unary operator",
            )
            # Parse the would-be operand so recovery resumes after it.
            self._advance()
            self._parse_expression(self.powers.prefix)
            return node

        if tok.kind == TokenKind.LET:
            raise _ParseError(self._error(
                SyntaxErrorKind.UNEXPECTED_TOKEN, tok,
                "'let' is only allowed at the start of a statement",
            ))

        if operator is not None:
            return self._error(
                SyntaxErrorKind.MISSING_RIGHT_OPERAND, tok,
                f"missing right operand for {operator.value!r}",
                label="expected an expression here",
            )
        return self._error(
            SyntaxErrorKind.EXPECTED_EXPRESSION, tok,
            f"expected an expression, got {tok.describe()}",
        )

    def _parse_paren(self) -> Expr:
        open_tok = self._advance()
        inner = self._parse_expression(0)
        if self._at(TokenKind.RPAREN):
            self._advance()
            return ParenExpr(open_tok, inner)
        return self._error(
            SyntaxErrorKind.UNCLOSED_EXPRESSION, open_tok,
            "unclosed parenthesised expression",
            label="this '(' is never closed",
            notes=[f"expected ')' before {self._current().describe()}"],
        )


class _ParseError(Exception):
    """Internal exception unwinding to the statement layer for recovery."""

    def __init__(self, node: ErrorNode) -> None:
        super().__init__(node.kind.slug)
        self.node = node
