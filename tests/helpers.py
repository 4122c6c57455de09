"""Shared test helpers for the reckon test suite."""

from __future__ import annotations

from reckon.ast_nodes import (
    BinaryExpr,
    Empty,
    LetStmt,
    NumberLit,
    ParenExpr,
    Program,
    UnaryExpr,
    VariableExpr,
)
from reckon.source import Span
from reckon.tokens import Token, TokenKind


def tok(kind: TokenKind, value: str = "", line: int = 1, col: int = 1) -> Token:
    """Build a token at a fixed position."""
    return Token(kind, value, Span(line, col, line, col + max(len(value), 1) - 1))


def tree_eval(node, env: dict | None = None):
    """Evaluate a parsed tree directly, without compiling it.

    Returns the value of the last expression statement, mirroring what
    the VM leaves on its stack for a single-expression program.
    """
    env = {} if env is None else env
    if isinstance(node, Empty):
        return None
    if isinstance(node, Program):
        result = None
        for stmt in node.body:
            result = tree_eval(stmt, env)
        return result
    if isinstance(node, LetStmt):
        env[node.name] = tree_eval(node.value, env)
        return None
    if isinstance(node, ParenExpr):
        return tree_eval(node.inner, env)
    if isinstance(node, NumberLit):
        return node.value
    if isinstance(node, VariableExpr):
        return env[node.name]
    if isinstance(node, UnaryExpr):
        return -tree_eval(node.operand, env)
    if isinstance(node, BinaryExpr):
        left = tree_eval(node.left, env)
        right = tree_eval(node.right, env)
        return {
            TokenKind.PLUS: lambda: left + right,
            TokenKind.MINUS: lambda: left - right,
            TokenKind.STAR: lambda: left * right,
            TokenKind.SLASH: lambda: left / right,
        }[node.token.kind]()
    raise TypeError(f"unexpected node {node!r}")


def shape(node) -> object:
    """Reduce an expression tree to nested tuples for easy comparison."""
    if isinstance(node, NumberLit):
        return node.value
    if isinstance(node, VariableExpr):
        return node.name
    if isinstance(node, ParenExpr):
        return ("()", shape(node.inner))
    if isinstance(node, UnaryExpr):
        return ("neg", shape(node.operand))
    if isinstance(node, BinaryExpr):
        return (node.token.value, shape(node.left), shape(node.right))
    raise TypeError(f"unexpected node {node!r}")
