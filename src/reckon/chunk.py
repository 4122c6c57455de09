"""Bytecode model: opcodes, constant pool and token provenance."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Union

from reckon.tokens import Token

Value = Union[float, str]


class OpCode(IntEnum):
    CONSTANT = 0
    ADD = 1
    SUBTRACT = 2
    MULTIPLY = 3
    DIVIDE = 4
    NEGATE = 5
    SET_VAR = 6
    GET_VAR = 7

    @property
    def has_operand(self) -> bool:
        return self in _WITH_OPERAND

    @classmethod
    def decode(cls, word: int) -> OpCode | None:
        """Return the opcode for ``word``, or None if it names none."""
        try:
            return cls(word)
        except ValueError:
            return None


_WITH_OPERAND = frozenset({OpCode.CONSTANT, OpCode.SET_VAR, OpCode.GET_VAR})

BINARY_OPS = frozenset({OpCode.ADD, OpCode.SUBTRACT, OpCode.MULTIPLY, OpCode.DIVIDE})


@dataclass
class Chunk:
    """A compiled program.

    ``code`` interleaves opcode words with operand words, ``constants`` is
    append-only, and ``tokens`` maps each instruction's start offset to
    the token it was compiled from.
    """

    code: list[int] = field(default_factory=list)
    constants: list[Value] = field(default_factory=list)
    tokens: dict[int, Token] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.code)

    def add_constant(self, value: Value) -> int:
        self.constants.append(value)
        return len(self.constants) - 1

    def emit(self, op: OpCode, token: Token, operand: int | None = None) -> int:
        """Append one instruction and return its offset.

        The opcode and its operand are written together so the stream never
        ends mid-instruction.
        """
        if op.has_operand:
            if operand is None or not 0 <= operand < len(self.constants):
                raise ValueError(f"{op.name} needs a constant-pool index, got {operand!r}")
        elif operand is not None:
            raise ValueError(f"{op.name} takes no operand")

        offset = len(self.code)
        self.code.append(int(op))
        if operand is not None:
            self.code.append(operand)
        self.tokens[offset] = token
        return offset

    def token_at(self, offset: int) -> Token | None:
        return self.tokens.get(offset)

    def disassemble(self) -> str:
        """Render the instruction stream, one instruction per line."""
        lines: list[str] = []
        offset = 0
        while offset < len(self.code):
            word = self.code[offset]
            tok = self.tokens.get(offset)
            where = f"{tok.row}:{tok.col}" if tok is not None else "-"
            op = OpCode.decode(word)
            if op is None:
                lines.append(f"{offset:04d}  {where:>7}  <invalid {word}>")
                offset += 1
                continue
            if op.has_operand and offset + 1 < len(self.code):
                idx = self.code[offset + 1]
                constant = self.constants[idx] if 0 <= idx < len(self.constants) else "?"
                lines.append(
                    f"{offset:04d}  {where:>7}  {op.name:<10} {idx:>4}  ({constant!r})"
                )
                offset += 2
            else:
                lines.append(f"{offset:04d}  {where:>7}  {op.name}")
                offset += 1
        return "\n".join(lines)
