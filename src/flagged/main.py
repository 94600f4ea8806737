"""main.py – Umbrella CLI entry point for flagged.

Lazily imports and registers the subcommand typer apps so that a broken
optional module does not prevent the whole CLI from loading.  Every module
is registered as a flat ``app.command()`` entry.
"""

import importlib
import sys
from collections.abc import Callable

import typer

app = typer.Typer(
    help="Compact typed bit flags for Python classes.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Typical workflow:[/bold]
  flagged gen --type Permissions     Generate PermissionsBitFlags next to Permissions
  flagged show 0x44 --size 16        Inspect a stored flags value

[dim]'flagged gen' is the same command as 'genflagged'.
Run 'flagged <cmd> --help' for details.[/dim]""",
)

# ---------------------------------------------------------------------------
# Subcommand registry
# ---------------------------------------------------------------------------

_SINGLE_COMMANDS: list[tuple[str, str, str]] = [
    ("gen", "flagged.genflagged", "Generate bit flags classes from bool fields."),
    ("show", "flagged.show", "Show an integer value as bit flags."),
]


def _make_stub_cmd(mod_name: str, err: ImportError) -> Callable[[], None]:
    """Create a stub command function that reports a missing dependency."""

    def _stub() -> None:
        print(f"Error: could not load '{mod_name}': {err}", file=sys.stderr)
        raise typer.Exit(code=1)

    return _stub


for _name, _module, _help in _SINGLE_COMMANDS:
    try:
        _mod = importlib.import_module(_module)
        _epilog = getattr(_mod.app.info, "epilog", None)
        if not isinstance(_epilog, str):
            _epilog = None
        app.command(name=_name, help=_help, epilog=_epilog)(_mod.main)
    except ImportError as _exc:
        app.command(name=_name, help=f"[unavailable] {_help}")(_make_stub_cmd(_module, _exc))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
