"""Shared CLI utilities for flagged tools.

Provides standardised error / JSON output and the verbose tracer handed to
the generator stages, so every command reports problems the same way.

Usage in a tool::

    import typer
    from flagged.cli import error_exit, json_print, make_tracer

    app = typer.Typer()

    @app.command()
    def main(verbose: bool = typer.Option(False, "--verbose")) -> None:
        trace = make_tracer(verbose)
        ...
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape

_err_console = Console(stderr=True)


def error_exit(msg: str, *, json_mode: bool = False, code: int = 1) -> NoReturn:
    """Print *msg* as an error and ``raise typer.Exit(code)``."""
    if json_mode:
        print(json.dumps({"error": msg}, indent=2))
    else:
        _err_console.print(f"[red bold]error:[/red bold] {escape(msg)}", soft_wrap=True)
    raise typer.Exit(code=code)


def warn(msg: str) -> None:
    """Print a warning line on stderr."""
    _err_console.print(f"[yellow]{escape(msg)}[/yellow]", soft_wrap=True)


def json_print(data: dict[str, Any] | list[Any]) -> None:
    """Print *data* as pretty-printed JSON to stdout."""
    print(json.dumps(data, indent=2))


def make_tracer(enabled: bool, prefix: str = "genflagged") -> Callable[[str], None]:
    """Return a callable printing diagnostic lines on stderr when *enabled*."""

    def _trace(msg: str) -> None:
        if enabled:
            _err_console.print(f"[dim]{prefix}:[/dim] {escape(msg)}", soft_wrap=True)

    return _trace


def parse_int(text: str, *, json_mode: bool = False) -> int:
    """Parse a decimal or ``0x``/``0o``/``0b`` prefixed integer, exiting on invalid input."""
    try:
        return int(text.strip(), 0)
    except ValueError:
        error_exit(f"Invalid integer: {text!r}", json_mode=json_mode)
