"""reckon: a small expression language with a bytecode VM."""

__version__ = "0.1.0"
