"""reckon command-line host."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from reckon import __version__
from reckon.config import ReckonConfig, discover_config, load_config
from reckon.errors import DiagnosticRenderer, EvalError
from reckon.session import BufferAction, Session, compile_source, parse, tokenize
from reckon.source import SourceText
from reckon.tokens import TokenKind
from reckon.vm import format_value

_EXIT_COMMANDS = frozenset({"exit", "kill"})


def _render_error(err: EvalError, source: SourceText, config: ReckonConfig) -> None:
    renderer = DiagnosticRenderer(color=config.diagnostics.color)
    for diag in err.diagnostics:
        click.echo(renderer.render(diag, source), err=True)


def _read_source(file: str | None, expr: str | None) -> SourceText:
    if expr is not None:
        return SourceText(expr, "<expr>")
    if file is None:
        raise click.UsageError("give a FILE or an expression with -e")
    if file == "-":
        return SourceText(sys.stdin.read(), "<stdin>")
    return SourceText(Path(file).read_text(), file)


def _source_options(func):
    func = click.option("-e", "--expr", default=None, help="Evaluate EXPR instead of a file.")(func)
    func = click.argument(
        "file", required=False,
        type=click.Path(exists=True, dir_okay=False, allow_dash=True),
    )(func)
    return func


@click.group()
@click.version_option(__version__, prog_name="reckon")
@click.option("-v", "--verbose", is_flag=True, help="Log pipeline internals to stderr.")
@click.option(
    "--config", "config_path", default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Use this reckon.toml instead of searching for one.",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: str | None) -> None:
    """The reckon expression language."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        ctx.obj = load_config(Path(config_path)) if config_path else discover_config()
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="config") from e


@main.command()
@_source_options
@click.pass_obj
def run(config: ReckonConfig, file: str | None, expr: str | None) -> None:
    """Evaluate a source file and print its result."""
    source = _read_source(file, expr)
    session = Session(powers=config.parser.powers)
    try:
        value = session.run(source.content)
    except EvalError as e:
        _render_error(e, source, config)
        raise SystemExit(1)
    if value is not None:
        click.echo(format_value(value))


@main.command()
@click.pass_obj
def repl(config: ReckonConfig) -> None:
    """Start an interactive session."""
    session = Session(powers=config.parser.powers)
    stdin = sys.stdin
    prompt = config.repl.prompt
    continuation = "." * len(prompt.rstrip()) + prompt[len(prompt.rstrip()):]
    buffer: list[str] = []

    click.echo(config.repl.banner)
    while True:
        click.echo(continuation if buffer else prompt, nl=False)
        line = stdin.readline()
        if not line:
            break

        command = line.strip()
        if not command and not buffer:
            continue
        if command in _EXIT_COMMANDS:
            break
        if command == "clear":
            buffer.clear()
            click.echo("buffer cleared")
            continue
        if command == "reset":
            buffer.clear()
            session.reset()
            click.echo("variables cleared")
            continue

        buffer.append(line)
        text = "".join(buffer)
        try:
            result = session.evaluate(text)
        except EvalError as e:
            buffer.clear()
            _render_error(e, SourceText(text), config)
            continue

        if result.buffer is BufferAction.CLEAR:
            buffer.clear()
            if result.output:
                click.echo(result.output)

    click.echo("bye")


@main.command()
@_source_options
@click.pass_obj
def tokens(config: ReckonConfig, file: str | None, expr: str | None) -> None:
    """Print the token stream of a source file."""
    source = _read_source(file, expr)
    try:
        toks = tokenize(source.content)
    except EvalError as e:
        _render_error(e, source, config)
        raise SystemExit(1)
    for tok in toks:
        value = "" if tok.kind == TokenKind.EOF else f" {tok.value!r}"
        click.echo(f"{tok.row}:{tok.col} {tok.kind.name}{value}")


@main.command()
@_source_options
@click.pass_obj
def view(config: ReckonConfig, file: str | None, expr: str | None) -> None:
    """View the AST of a source file."""
    source = _read_source(file, expr)
    try:
        tree = parse(source.content, powers=config.parser.powers)
    except EvalError as e:
        _render_error(e, source, config)
        raise SystemExit(1)
    _dump_ast(tree, 0)


@main.command()
@_source_options
@click.pass_obj
def disasm(config: ReckonConfig, file: str | None, expr: str | None) -> None:
    """Print the compiled bytecode of a source file."""
    source = _read_source(file, expr)
    try:
        chunk = compile_source(source.content, powers=config.parser.powers)
    except EvalError as e:
        _render_error(e, source, config)
        raise SystemExit(1)
    if len(chunk):
        click.echo(chunk.disassemble())


def _dump_ast(node: object, depth: int) -> None:
    """Print a readable AST dump."""
    indent = "  " * depth
    name = type(node).__name__

    if hasattr(node, "__dataclass_fields__"):
        fields = node.__dataclass_fields__  # type: ignore[union-attr]
        click.echo(f"{indent}{name}")
        for field_name in fields:
            value = getattr(node, field_name)
            if field_name == "token":
                # Operator nodes are identified by their token.
                if name in ("BinaryExpr", "UnaryExpr"):
                    click.echo(f"{indent}  op: {value.value!r}")
                continue
            if field_name == "name_token":
                continue
            if isinstance(value, list):
                if value:
                    click.echo(f"{indent}  {field_name}:")
                    for item in value:
                        _dump_ast(item, depth + 2)
                else:
                    click.echo(f"{indent}  {field_name}: []")
            elif hasattr(value, "__dataclass_fields__"):
                click.echo(f"{indent}  {field_name}:")
                _dump_ast(value, depth + 2)
            elif value is not None:
                click.echo(f"{indent}  {field_name}: {value!r}")
    else:
        click.echo(f"{indent}{name}: {node!r}")
