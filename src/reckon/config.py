"""TOML config loading for reckon.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from reckon.parser import BindingPowers, binding_powers

CONFIG_NAME = "reckon.toml"


@dataclass
class ParserConfig:
    precedence: str = "historical"

    @property
    def powers(self) -> BindingPowers:
        return binding_powers(self.precedence)


@dataclass
class ReplConfig:
    prompt: str = ">> "
    banner: str = "reckon: type 'exit' to quit"


@dataclass
class DiagnosticsConfig:
    color: bool = True


@dataclass
class ReckonConfig:
    parser: ParserConfig = field(default_factory=ParserConfig)
    repl: ReplConfig = field(default_factory=ReplConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find reckon.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_NAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_NAME} found in any parent directory")
        path = parent


def load_config(path: Path) -> ReckonConfig:
    """Parse a reckon.toml file into a ReckonConfig."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = ReckonConfig()

    if "parser" in data:
        prs = data["parser"]
        config.parser = ParserConfig(
            precedence=prs.get("precedence", "historical"),
        )
        # Fail on load rather than on first use.
        binding_powers(config.parser.precedence)

    if "repl" in data:
        rpl = data["repl"]
        config.repl = ReplConfig(
            prompt=rpl.get("prompt", ">> "),
            banner=rpl.get("banner", ReplConfig.banner),
        )

    if "diagnostics" in data:
        dgn = data["diagnostics"]
        config.diagnostics = DiagnosticsConfig(
            color=dgn.get("color", True),
        )

    return config


def discover_config(start_path: Path | None = None) -> ReckonConfig:
    """Load the nearest reckon.toml, or the defaults if there is none."""
    try:
        return load_config(find_config(start_path))
    except FileNotFoundError:
        return ReckonConfig()
