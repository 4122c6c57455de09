"""Error taxonomy and Rust-style diagnostic rendering.

Every pipeline stage reports failures as an :class:`EvalError` subclass
carrying one or more :class:`Diagnostic` records.  Each error kind is an
enum member whose value is its stable diagnostic code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from reckon.source import SourceText, Span
    from reckon.tokens import Token


class Severity(Enum):
    ERROR = "error"


class Stage(Enum):
    LEXICAL = "lexical"
    SYNTAX = "syntax"
    COMPILATION = "compilation"
    RUNTIME = "runtime"


class ErrorKind(Enum):
    """Base for the per-stage error kinds; values are diagnostic codes."""

    @property
    def code(self) -> str:
        return self.value

    @property
    def slug(self) -> str:
        return self.name.lower().replace("_", "-")


class LexErrorKind(ErrorKind):
    UNEXPECTED_END_OF_INPUT = "E101"
    UNEXPECTED_CHARACTER = "E102"
    INVALID_NUMERIC_LITERAL = "E103"


class SyntaxErrorKind(ErrorKind):
    UNEXPECTED_TOKEN = "E201"
    EXPECTED_EXPRESSION = "E202"
    EXPECTED_OPERATOR = "E203"
    UNEXPECTED_UNARY_OPERATOR = "E204"
    UNCLOSED_EXPRESSION = "E205"
    MISSING_RIGHT_OPERAND = "E206"
    EXPECTED_END_OF_INPUT = "E207"
    NESTING_TOO_DEEP = "E208"


class CompileErrorKind(ErrorKind):
    UNSUPPORTED_TOKEN = "E301"
    UNSUPPORTED_BINARY_OPERATOR = "E302"
    EXPECTED_OPERATOR_NODE = "E303"
    NESTING_TOO_DEEP = "E304"


class RuntimeErrorKind(ErrorKind):
    INVALID_OPCODE = "E401"
    INVALID_BINARY_OPERATOR = "E402"
    INCOMPLETE_EXPRESSION = "E403"
    INVALID_IDENTIFIER = "E404"
    EXPECTED_OPERAND = "E405"
    EXPECTED_EXPRESSION = "E406"
    UNINITIALISED_VARIABLE = "E407"


# ANSI color codes
_COLORS = {
    Severity.ERROR: "\033[1;31m",  # bold red
}
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


@dataclass(frozen=True)
class DiagnosticLabel:
    """Points to a specific source location."""

    span: Span
    message: str


@dataclass
class Diagnostic:
    """A single diagnostic message with optional labels and notes."""

    severity: Severity
    code: str
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    kind: ErrorKind | None = None
    token: Token | None = None


def error_diagnostic(
    kind: ErrorKind,
    message: str,
    *,
    token: Token | None = None,
    span: Span | None = None,
    label: str = "",
    notes: list[str] | None = None,
) -> Diagnostic:
    """Build an error-severity diagnostic for ``kind``.

    The label points at ``span`` when given, otherwise at ``token``.
    """
    labels: list[DiagnosticLabel] = []
    where = span if span is not None else (token.span if token is not None else None)
    if where is not None:
        labels.append(DiagnosticLabel(span=where, message=label))
    return Diagnostic(
        severity=Severity.ERROR,
        code=kind.code,
        message=message,
        labels=labels,
        notes=list(notes or []),
        kind=kind,
        token=token,
    )


class DiagnosticRenderer:
    """Renders diagnostics in Rust-style format with colors."""

    def __init__(self, *, color: bool = True) -> None:
        self.color = color

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def render(self, diag: Diagnostic, source: SourceText | None = None) -> str:
        lines: list[str] = []
        sev = diag.severity
        color = _COLORS[sev]

        # Header: error[E205]: message
        lines.append(
            f"{self._c(color)}{sev.value}[{diag.code}]{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        )

        name = source.name if source is not None else "<input>"
        for label in diag.labels:
            span = label.span
            lines.append(
                f"  {self._c(_BLUE)}-->{self._c(_RESET)} {name}:{span}"
            )
            gutter = f"{span.start_line:>4}"
            lines.append(f"  {self._c(_BLUE)}   |{self._c(_RESET)}")

            source_line = source.line_at(span.start_line) if source is not None else ""
            if source_line:
                lines.append(
                    f"  {self._c(_BLUE)}{gutter} |{self._c(_RESET)} {source_line}"
                )
                if span.start_line == span.end_line:
                    caret_len = max(1, span.end_col - span.start_col + 1)
                    padding = " " * (span.start_col - 1)
                    carets = "^" * caret_len
                    lines.append(
                        f"  {self._c(_BLUE)}   |{self._c(_RESET)} "
                        f"{padding}{self._c(color)}{carets}{self._c(_RESET)}"
                    )

            if label.message:
                lines.append(
                    f"  {self._c(_BLUE)}   |{self._c(_RESET)}   "
                    f"{self._c(color)}{label.message}{self._c(_RESET)}"
                )

        for note in diag.notes:
            lines.append(f"  {self._c(_BLUE)}={self._c(_RESET)} note: {note}")

        return "\n".join(lines)


class EvalError(Exception):
    """A pipeline failure carrying one or more diagnostics."""

    stage: ClassVar[Stage]

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        messages = [d.message for d in diagnostics]
        if len(diagnostics) == 1:
            summary = messages[0]
        else:
            summary = f"{len(diagnostics)} error(s): {'; '.join(messages)}"
        super().__init__(f"{self.stage.value} error: {summary}")

    @property
    def kind(self) -> ErrorKind | None:
        return self.diagnostics[0].kind if self.diagnostics else None

    @property
    def kinds(self) -> list[ErrorKind | None]:
        return [d.kind for d in self.diagnostics]

    @property
    def token(self) -> Token | None:
        return self.diagnostics[0].token if self.diagnostics else None


class LexError(EvalError):
    """Bad character, malformed number or premature end of input."""

    stage = Stage.LEXICAL


class ParseError(EvalError):
    """One or more grammar violations.

    ``incomplete`` is set when every error was raised at the end of the
    input, i.e. more text could still complete the submission.
    """

    stage = Stage.SYNTAX

    def __init__(self, diagnostics: list[Diagnostic], *, incomplete: bool = False) -> None:
        super().__init__(diagnostics)
        self.incomplete = incomplete


class CompileError(EvalError):
    """An AST shape the emitter cannot lower; indicates an internal bug."""

    stage = Stage.COMPILATION


class VMError(EvalError):
    """Stack underflow, unbound variable, malformed operand or opcode."""

    stage = Stage.RUNTIME
