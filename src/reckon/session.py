"""Host-facing entry points: text in, result or error out.

A :class:`Session` owns one VM and therefore one variable environment.
Each call runs lexer → parser → compiler → VM to completion or to the
first failing stage; only the environment outlives the call.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from reckon.ast_nodes import Empty, Program
from reckon.chunk import Chunk, Value
from reckon.compiler import Compiler
from reckon.errors import EvalError, ParseError
from reckon.lexer import Lexer
from reckon.parser import HISTORICAL, BindingPowers, Parser
from reckon.tokens import Token
from reckon.vm import VM, Environment, format_value

logger = logging.getLogger(__name__)


class BufferAction(Enum):
    """What the host should do with its pending-input buffer."""

    CLEAR = "clear"
    RETAIN = "retain"


@dataclass(frozen=True)
class Evaluation:
    output: str
    buffer: BufferAction
    value: Value | None = None


def tokenize(text: str) -> list[Token]:
    return Lexer(text).lex()


def parse(text: str, *, powers: BindingPowers = HISTORICAL) -> Program | Empty:
    return Parser(tokenize(text), powers=powers).parse()


def compile_source(text: str, *, powers: BindingPowers = HISTORICAL) -> Chunk:
    return Compiler().compile(parse(text, powers=powers))


class Session:
    """One interactive or batch evaluation context."""

    def __init__(
        self,
        *,
        powers: BindingPowers = HISTORICAL,
        environment: Environment | None = None,
    ) -> None:
        self.powers = powers
        self.vm = VM(environment)

    @property
    def variables(self) -> dict[str, Value]:
        return self.vm.environment.snapshot()

    def reset(self) -> None:
        self.vm.reset()

    def run(self, text: str) -> Value | None:
        """Evaluate ``text`` strictly; incomplete input is an error.

        A submission is all or nothing: if any statement fails, bindings
        made by earlier statements of the same submission are rolled back.
        """
        chunk = compile_source(text, powers=self.powers)
        saved = self.vm.environment.snapshot()
        try:
            return self.vm.execute(chunk)
        except EvalError:
            self.vm.environment.restore(saved)
            raise

    def evaluate(self, text: str) -> Evaluation:
        """Evaluate one submission for an interactive host.

        Returns ``RETAIN`` when the text ends before the program does, so
        the host can keep buffering lines.  Any other failure propagates as
        an :class:`EvalError`.
        """
        try:
            value = self.run(text)
        except ParseError as e:
            if e.incomplete:
                logger.debug("input incomplete, retaining buffer")
                return Evaluation("", BufferAction.RETAIN)
            raise
        output = format_value(value) if value is not None else ""
        return Evaluation(output, BufferAction.CLEAR, value)


def step(
    env: Mapping[str, Value],
    text: str,
    *,
    powers: BindingPowers = HISTORICAL,
) -> tuple[dict[str, Value], Value | EvalError | None]:
    """Pure form of :meth:`Session.run`.

    Returns the environment after evaluating ``text`` against a copy of
    ``env`` together with the result or the error.  ``env`` itself is
    never modified, and on error the returned environment equals it.
    """
    session = Session(powers=powers, environment=Environment(env))
    try:
        result: Value | EvalError | None = session.run(text)
    except EvalError as e:
        result = e
    return session.variables, result
