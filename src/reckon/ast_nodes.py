"""AST node definitions for the reckon language."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from reckon.errors import SyntaxErrorKind
from reckon.tokens import Token

# ── Expressions ──────────────────────────────────────────────────


@dataclass(frozen=True)
class NumberLit:
    token: Token
    value: float


@dataclass(frozen=True)
class VariableExpr:
    token: Token
    name: str


@dataclass(frozen=True)
class UnaryExpr:
    token: Token  # the operator
    operand: Expr


@dataclass(frozen=True)
class BinaryExpr:
    token: Token  # the operator
    left: Expr
    right: Expr


@dataclass(frozen=True)
class ParenExpr:
    token: Token  # the opening paren
    inner: Expr


@dataclass(frozen=True)
class ErrorNode:
    """Placeholder for a malformed subtree.

    The same node is also listed in the parser's error list; ``index`` is
    its position there.
    """

    kind: SyntaxErrorKind
    token: Token
    index: int


Expr = Union[NumberLit, VariableExpr, UnaryExpr, BinaryExpr, ParenExpr, ErrorNode]


# ── Statements ───────────────────────────────────────────────────


@dataclass(frozen=True)
class LetStmt:
    token: Token  # the `let` keyword
    name_token: Token
    name: str
    value: Expr


Stmt = Union[LetStmt, Expr]


# ── Roots ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Empty:
    """An empty submission."""


@dataclass(frozen=True)
class Program:
    body: list[Stmt]


Node = Union[Program, Empty, LetStmt, Expr]
