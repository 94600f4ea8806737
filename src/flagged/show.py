"""show.py - Print an integer as bit flags.

Usage:
    flagged show 0x44                 # 8-bit view
    flagged show 1092 --size 16       # 0000010001000100 / O|O|O|O|O|I|O|O_O|I|O|O|O|I|O|O
    flagged show 0b101 --json
"""

import typer

from flagged.bitflags import for_width
from flagged.cli import error_exit, json_print, parse_int

app = typer.Typer(
    help="Show an integer value as fixed-width bit flags.",
    rich_markup_mode="rich",
)


@app.command()
def main(
    value: str | None = typer.Argument(None, help="Value: decimal, or 0x / 0o / 0b prefixed"),
    size: int = typer.Option(8, "--size", "-s", help="Width in bits: 8, 16, 32 or 64"),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
) -> None:
    """Print the binary and pretty forms of VALUE and the indexes of its set bits."""
    if value is None:
        error_exit("Value argument is required", json_mode=json_output)

    number = parse_int(value, json_mode=json_output)
    try:
        flags = for_width(size)(number)
    except ValueError as exc:
        error_exit(str(exc), json_mode=json_output)

    set_bits = [idx for idx in range(flags.size()) if flags.is_set(idx)]
    if json_output:
        json_print(
            {
                "value": number,
                "size": flags.size(),
                "binary": str(flags),
                "pretty": flags.pretty_string(),
                "set": set_bits,
            }
        )
        return

    typer.echo(str(flags))
    typer.echo(flags.pretty_string())
    typer.echo("set: " + (", ".join(str(i) for i in set_bits) or "none"))


def main_entry() -> None:
    """Package entry point for ``flagged-show``."""
    app()
