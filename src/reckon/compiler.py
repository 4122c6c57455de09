"""Bytecode compiler: lowers a reckon AST into a Chunk.

Post-order walk.  Every instruction is tagged with the token it came
from so runtime errors can point back at the source.  Apart from an
over-deep tree, the error paths here are unreachable from a successful
parse and signal internal bugs.
"""

from __future__ import annotations

import logging
from typing import NoReturn

from reckon.ast_nodes import (
    BinaryExpr,
    Empty,
    LetStmt,
    Node,
    NumberLit,
    ParenExpr,
    Program,
    UnaryExpr,
    VariableExpr,
)
from reckon.chunk import Chunk, OpCode
from reckon.errors import CompileError, CompileErrorKind, error_diagnostic
from reckon.tokens import Token, TokenClass, TokenKind

logger = logging.getLogger(__name__)

_BINARY_OPCODES: dict[TokenKind, OpCode] = {
    TokenKind.PLUS: OpCode.ADD,
    TokenKind.MINUS: OpCode.SUBTRACT,
    TokenKind.STAR: OpCode.MULTIPLY,
    TokenKind.SLASH: OpCode.DIVIDE,
}


class Compiler:
    """Emits bytecode for one program."""

    def __init__(self) -> None:
        self.chunk = Chunk()
        self._names: dict[str, int] = {}

    def compile(self, root: Node) -> Chunk:
        try:
            self._compile_node(root)
        except RecursionError:
            # Long left-chained operator runs ("1 - 1 - 1 ...") build deep
            # trees without deep parser recursion.
            self._fail(
                CompileErrorKind.NESTING_TOO_DEEP,
                "expression is nested too deeply to compile",
                None,
            )
        logger.debug(
            "compiled %d word(s), %d constant(s)",
            len(self.chunk.code), len(self.chunk.constants),
        )
        return self.chunk

    def _fail(self, kind: CompileErrorKind, message: str, token: Token | None) -> NoReturn:
        raise CompileError([error_diagnostic(kind, message, token=token)])

    def _name_constant(self, name: str) -> int:
        if name not in self._names:
            self._names[name] = self.chunk.add_constant(name)
        return self._names[name]

    # ── Nodes ────────────────────────────────────────────────────

    def _compile_node(self, node: Node) -> None:
        if isinstance(node, Program):
            for stmt in node.body:
                self._compile_node(stmt)
            return

        if isinstance(node, Empty):
            return

        if isinstance(node, LetStmt):
            self._compile_node(node.value)
            self.chunk.emit(OpCode.SET_VAR, node.name_token, self._name_constant(node.name))
            return

        if isinstance(node, ParenExpr):
            self._compile_node(node.inner)
            return

        if isinstance(node, NumberLit):
            idx = self.chunk.add_constant(node.value)
            self.chunk.emit(OpCode.CONSTANT, node.token, idx)
            return

        if isinstance(node, VariableExpr):
            self.chunk.emit(OpCode.GET_VAR, node.token, self._name_constant(node.name))
            return

        if isinstance(node, UnaryExpr):
            self._compile_unary(node)
            return

        if isinstance(node, BinaryExpr):
            self._compile_binary(node)
            return

        self._fail(
            CompileErrorKind.UNSUPPORTED_TOKEN,
            f"cannot compile {type(node).__name__}",
            getattr(node, "token", None),
        )

    def _compile_unary(self, node: UnaryExpr) -> None:
        tok = node.token
        if tok.kind.token_class is not TokenClass.OPERATOR:
            self._fail(
                CompileErrorKind.EXPECTED_OPERATOR_NODE,
                f"expected an operator for unary expression, got {tok.describe()}",
                tok,
            )
        if tok.kind != TokenKind.MINUS:
            self._fail(
                CompileErrorKind.UNSUPPORTED_TOKEN,
                f"unsupported unary operator {tok.value!r}",
                tok,
            )
        self._compile_node(node.operand)
        self.chunk.emit(OpCode.NEGATE, tok)

    def _compile_binary(self, node: BinaryExpr) -> None:
        tok = node.token
        if tok.kind.token_class is not TokenClass.OPERATOR:
            self._fail(
                CompileErrorKind.EXPECTED_OPERATOR_NODE,
                f"expected an operator for binary expression, got {tok.describe()}",
                tok,
            )
        op = _BINARY_OPCODES.get(tok.kind)
        if op is None:
            self._fail(
                CompileErrorKind.UNSUPPORTED_BINARY_OPERATOR,
                f"unsupported binary operator {tok.value!r}",
                tok,
            )
        self._compile_node(node.left)
        self._compile_node(node.right)
        self.chunk.emit(op, tok)
