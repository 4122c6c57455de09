"""Stack-based virtual machine for reckon bytecode.

The operand stack and instruction pointer are reset on every
:meth:`VM.execute` call; the variable :class:`Environment` persists for
the lifetime of the VM until :meth:`VM.reset` is called.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Mapping
from typing import NoReturn

from reckon.chunk import BINARY_OPS, Chunk, OpCode, Value
from reckon.errors import RuntimeErrorKind, VMError, error_diagnostic

logger = logging.getLogger(__name__)


class Environment(Mapping[str, Value]):
    """Variable bindings; the last write to a name wins."""

    def __init__(self, bindings: Mapping[str, Value] | None = None) -> None:
        self._bindings: dict[str, Value] = dict(bindings or {})

    def __getitem__(self, name: str) -> Value:
        return self._bindings[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def bind(self, name: str, value: Value) -> None:
        logger.debug("bind %s = %r", name, value)
        self._bindings[name] = value

    def clear(self) -> None:
        logger.debug("environment reset (%d binding(s) dropped)", len(self._bindings))
        self._bindings.clear()

    def snapshot(self) -> dict[str, Value]:
        return dict(self._bindings)

    def restore(self, bindings: Mapping[str, Value]) -> None:
        """Replace every binding with ``bindings`` (a prior snapshot)."""
        self._bindings = dict(bindings)


def format_value(value: Value) -> str:
    """Render a value for display: integral numbers print without '.0'."""
    if isinstance(value, str):
        return value
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


def _divide(left: float, right: float) -> float:
    # IEEE-754: no exception on a zero divisor.
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


class VM:
    """Executes chunks against a persistent variable environment."""

    def __init__(self, environment: Environment | None = None) -> None:
        self.environment = environment if environment is not None else Environment()
        self.stack: list[Value] = []
        self.ip = 0

    def reset(self) -> None:
        """Drop every variable binding."""
        self.environment.clear()

    def execute(self, chunk: Chunk) -> Value | None:
        """Run ``chunk`` and return its residual value, if any."""
        self.stack = []
        self.ip = 0

        while self.ip < len(chunk.code):
            offset = self.ip
            word = chunk.code[offset]
            op = OpCode.decode(word)
            if op is None:
                self._fail(
                    RuntimeErrorKind.INVALID_OPCODE,
                    f"invalid opcode {word}", chunk, offset,
                )
            logger.debug("%04d %-10s stack=%r", offset, op.name, self.stack)

            match op:
                case OpCode.CONSTANT:
                    self.stack.append(
                        self._constant(chunk, offset, RuntimeErrorKind.INVALID_OPCODE)
                    )
                    self.ip += 2
                case OpCode.NEGATE:
                    if not self.stack:
                        self._fail(
                            RuntimeErrorKind.EXPECTED_OPERAND,
                            "negation needs an operand", chunk, offset,
                        )
                    operand = self._number(self.stack.pop(), chunk, offset)
                    self.stack.append(-operand)
                    self.ip += 1
                case OpCode.ADD | OpCode.SUBTRACT | OpCode.MULTIPLY | OpCode.DIVIDE:
                    self._binary(op, chunk, offset)
                    self.ip += 1
                case OpCode.SET_VAR:
                    if not self.stack:
                        self._fail(
                            RuntimeErrorKind.EXPECTED_EXPRESSION,
                            "assignment needs a value", chunk, offset,
                        )
                    value = self.stack.pop()
                    name = self._name(chunk, offset)
                    self.environment.bind(name, value)
                    self.ip += 2
                case OpCode.GET_VAR:
                    name = self._name(chunk, offset)
                    if name not in self.environment:
                        self._fail(
                            RuntimeErrorKind.UNINITIALISED_VARIABLE,
                            f"variable {name!r} is used before it is assigned",
                            chunk, offset,
                        )
                    self.stack.append(self.environment[name])
                    self.ip += 2

        if len(self.stack) > 1:
            self._fail(
                RuntimeErrorKind.INCOMPLETE_EXPRESSION,
                f"{len(self.stack)} values left on the stack, expected at most one",
                chunk, self._last_offset(chunk),
            )
        return self.stack[0] if self.stack else None

    # ── Helpers ───────────────────────────────────────────────────

    def _fail(self, kind: RuntimeErrorKind, message: str, chunk: Chunk, offset: int | None) -> NoReturn:
        token = chunk.token_at(offset) if offset is not None else None
        raise VMError([error_diagnostic(kind, message, token=token)])

    def _constant(self, chunk: Chunk, offset: int, kind: RuntimeErrorKind) -> Value:
        """Fetch the constant named by the operand word at offset + 1."""
        if offset + 1 >= len(chunk.code):
            self._fail(
                RuntimeErrorKind.INVALID_OPCODE,
                "instruction is missing its operand", chunk, offset,
            )
        idx = chunk.code[offset + 1]
        if not 0 <= idx < len(chunk.constants):
            self._fail(
                kind,
                f"operand {idx} is outside the constant pool (size {len(chunk.constants)})",
                chunk, offset,
            )
        return chunk.constants[idx]

    def _name(self, chunk: Chunk, offset: int) -> str:
        name = self._constant(chunk, offset, RuntimeErrorKind.INVALID_IDENTIFIER)
        if not isinstance(name, str):
            self._fail(
                RuntimeErrorKind.INVALID_IDENTIFIER,
                f"expected a variable name, got {name!r}", chunk, offset,
            )
        return name

    def _number(self, value: Value, chunk: Chunk, offset: int) -> float:
        if isinstance(value, str):
            self._fail(
                RuntimeErrorKind.EXPECTED_OPERAND,
                f"expected a number, got name {value!r}", chunk, offset,
            )
        return value

    def _binary(self, op: OpCode, chunk: Chunk, offset: int) -> None:
        if op not in BINARY_OPS:
            self._fail(
                RuntimeErrorKind.INVALID_BINARY_OPERATOR,
                f"{op.name} is not a binary operator", chunk, offset,
            )
        if len(self.stack) < 2:
            self._fail(
                RuntimeErrorKind.EXPECTED_OPERAND,
                f"{op.name.lower()} needs two operands", chunk, offset,
            )
        # Right operand is on top.
        right = self._number(self.stack.pop(), chunk, offset)
        left = self._number(self.stack.pop(), chunk, offset)

        match op:
            case OpCode.ADD:
                result = left + right
            case OpCode.SUBTRACT:
                result = left - right
            case OpCode.MULTIPLY:
                result = left * right
            case OpCode.DIVIDE:
                result = _divide(left, right)
        self.stack.append(result)

    def _last_offset(self, chunk: Chunk) -> int | None:
        return max(chunk.tokens) if chunk.tokens else None
