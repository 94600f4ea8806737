"""genflagged.py - Generate typed bit flags classes from the bool fields of a class.

For each requested class ``T``, emits a class (``TBitFlags`` by default)
wrapping the smallest of ``BitFlags8/16/32/64`` that holds one bit per bool
field of ``T``, with named accessors per field::

    is_<flag>()  set_<flag>()  reset_<flag>()  set_<flag>_to(new)  toggle_<flag>()

plus ``bit_flags()``, ``clone()``, ``typed_flags()`` and
``set_typed_flags(value)``.

Usage:
    genflagged --type Permissions                      # package in cwd
    genflagged --type Permissions,Mode src/perms       # one directory
    genflagged --type Options --size 32 a.py b.py      # explicit files
    genflagged --type Options --trimprefix opt --trimsuffix Enabled

Types are looked up in the production modules first, then in the package
together with its in-package test modules, then in the ``tests/`` directory.
One module is written per package variant that resolved at least one type:
``<type>_flagged.py`` (or ``<type>_flagged_test.py`` next to tests), named
after the first type resolved there, unless ``--outFile`` is given.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import typer

from flagged.cli import error_exit, json_print, make_tracer, warn
from flagged.config import GenConfig, load_config
from flagged.errors import GenerateError, InputError, OutputConflictError, ResolutionError
from flagged.locator import load_variants, walk_variants
from flagged.naming import (
    DEFAULT_NAME_PLACEHOLDER,
    RESERVED_NAMES,
    default_out_type_name,
    is_identifier,
)
from flagged.planner import plan_emission
from flagged.render import format_source, render
from flagged.sizing import SUPPORTED_WIDTHS
from flagged.utils import atomic_write_text

Trace = Callable[[str], None]

PROG = "genflagged"


@dataclass(frozen=True)
class TypeRequest:
    source_name: str
    out_type_name: str | None = None


@dataclass(frozen=True)
class GenerateInput:
    """Validated, ready-to-use generator input."""

    requests: tuple[TypeRequest, ...]
    paths: tuple[Path, ...]
    trim_prefix: str = ""
    trim_suffix: str = ""
    size: int = 0
    out_file: Path | None = None
    tags: tuple[str, ...] = ()
    tests_dir: str = "tests"

    @property
    def source_names(self) -> tuple[str, ...]:
        return tuple(r.source_name for r in self.requests)


@dataclass(frozen=True)
class WrittenFile:
    path: Path
    package: str
    types: tuple[str, ...]


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


def split_list(raw: str | None) -> list[str]:
    """Split a comma-separated option value; empty input gives an empty list."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",")]


def validate_type_names(names: list[str], option: str, allow_placeholder: bool = False) -> None:
    for name in names:
        if allow_placeholder and name == DEFAULT_NAME_PLACEHOLDER:
            continue
        if not is_identifier(name):
            raise InputError(f"invalid {option} argument: invalid type identifier {name!r}")
        if name in RESERVED_NAMES:
            raise InputError(
                f"invalid {option} argument: {name} is reserved in generated modules"
            )


def validate_input(
    type_names: str | None,
    paths: list[str] | None = None,
    out_type: str | None = None,
    out_file: str | None = None,
    size: int | None = None,
    trim_prefix: str | None = None,
    trim_suffix: str | None = None,
    tags: str | None = None,
    config: GenConfig | None = None,
) -> GenerateInput:
    """Check the raw option values and merge them over *config*."""
    cfg = config or GenConfig()

    source_names = split_list(type_names)
    if not source_names:
        raise InputError("--type is required")
    validate_type_names(source_names, "--type")
    duplicates = sorted({n for n in source_names if source_names.count(n) > 1})
    if duplicates:
        raise InputError(f"invalid --type argument: duplicate type names {','.join(duplicates)}")

    out_names: list[str | None] = [None] * len(source_names)
    if out_type:
        requested = split_list(out_type)
        validate_type_names(requested, "--outType", allow_placeholder=True)
        if len(requested) != len(source_names):
            raise InputError(f"--type argument doesn't match --outType argument: {out_type}")
        out_names = [None if n == DEFAULT_NAME_PLACEHOLDER else n for n in requested]
    effective = [o or default_out_type_name(s) for s, o in zip(source_names, out_names)]
    clashes = sorted({n for n in effective if n in source_names})
    if clashes:
        raise InputError(
            f"invalid --outType argument: {','.join(clashes)} would shadow a source type"
        )
    repeated = sorted({n for n in effective if effective.count(n) > 1})
    if repeated:
        raise InputError(f"invalid --outType argument: duplicate type names {','.join(repeated)}")

    width = cfg.size if size is None else size
    if width and width not in SUPPORTED_WIDTHS:
        raise InputError(
            f"invalid size argument {width}; supported values are "
            + ",".join(str(w) for w in SUPPORTED_WIDTHS)
        )

    raw_paths = paths or ["."]
    resolved_paths = tuple(Path(p) for p in raw_paths)
    for path in resolved_paths:
        if not path.exists():
            raise InputError(f"cannot access {path}: no such file or directory")
    is_dir_mode = len(resolved_paths) == 1 and resolved_paths[0].is_dir()

    tag_list = split_list(tags) if tags is not None else list(cfg.tags)
    if tags and not is_dir_mode:
        raise InputError("--tags option applies only to directories, not when files are specified")

    return GenerateInput(
        requests=tuple(TypeRequest(s, o) for s, o in zip(source_names, out_names)),
        paths=resolved_paths,
        trim_prefix=cfg.trim_prefix if trim_prefix is None else trim_prefix,
        trim_suffix=cfg.trim_suffix if trim_suffix is None else trim_suffix,
        size=width,
        out_file=Path(out_file) if out_file else None,
        tags=tuple(t for t in tag_list if t) if is_dir_mode else (),
        tests_dir=cfg.tests_dir,
    )


def command_line(inp: GenerateInput, raw_paths: list[str] | None = None) -> str:
    """Canonical command recorded in the generated-code header."""
    parts = [PROG, "--type=" + ",".join(inp.source_names)]
    if any(r.out_type_name for r in inp.requests):
        out_names = [r.out_type_name or DEFAULT_NAME_PLACEHOLDER for r in inp.requests]
        parts.append("--outType=" + ",".join(out_names))
    if inp.out_file is not None:
        parts.append(f"--outFile={inp.out_file.name}")
    if inp.size:
        parts.append(f"--size={inp.size}")
    if inp.trim_prefix:
        parts.append(f"--trimprefix={inp.trim_prefix}")
    if inp.trim_suffix:
        parts.append(f"--trimsuffix={inp.trim_suffix}")
    if inp.tags:
        parts.append("--tags=" + ",".join(inp.tags))
    parts.extend(raw_paths or [])
    return " ".join(parts)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


def generate(
    inp: GenerateInput,
    command: str = PROG,
    trace: Trace | None = None,
    warn_fn: Trace | None = None,
) -> list[WrittenFile]:
    """Resolve, plan, render and write every requested type.

    Variants are handled one at a time; files written for earlier variants
    stay on disk if a later one fails.
    """
    trace = trace or (lambda msg: None)
    variants = load_variants(inp.paths, tags=inp.tags, tests_dir=inp.tests_dir, trace=trace)
    out_types = {r.source_name: r.out_type_name for r in inp.requests}

    remaining = inp.source_names
    written: list[WrittenFile] = []
    for result in walk_variants(
        variants,
        remaining,
        trim_prefix=inp.trim_prefix,
        trim_suffix=inp.trim_suffix,
        trace=trace,
    ):
        remaining = result.remaining
        if not result.resolved:
            continue

        if remaining:
            trace(
                f"info: {len(remaining)} remaining types after processing package "
                f"{result.variant.label}"
            )
            if inp.out_file is not None:
                raise OutputConflictError(
                    f"cannot write to single file (--outFile={str(inp.out_file)!r}) when "
                    "matching types are found in multiple packages"
                )

        plan = plan_emission(
            result, out_types, size=inp.size, out_file=inp.out_file, command=command
        )
        src = format_source(render(plan), warn=warn_fn)
        trace(
            f"info: writing output to file {plan.out_path} after processing package "
            f"{result.variant.label}"
        )
        try:
            atomic_write_text(plan.out_path, src)
        except OSError as exc:
            raise OutputConflictError(f"failed to write to out file: {exc}") from exc
        written.append(
            WrittenFile(
                path=plan.out_path,
                package=plan.package,
                types=tuple(t.out_type_name for t in plan.types),
            )
        )

    if remaining:
        raise ResolutionError(f"no matching types found for names: {','.join(remaining)}")
    return written


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="Generate typed bit flags classes from the bool fields of a class.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]
  genflagged --type Permissions                   Package in the current directory
  genflagged --type Options,Mode --size 32 pkg/   Two types, 32-bit backing value
  genflagged --type Options --outType _ a.py      Explicit files, default out name

[dim]Defaults may be set in [tool.flagged] of the nearest pyproject.toml.[/dim]""",
)


@app.command()
def main(
    paths: list[str] | None = typer.Argument(
        None, help="A package directory, or the .py files of a single package (default: .)"
    ),
    type_names: str | None = typer.Option(
        None, "--type", help="Comma-separated list of class names to generate flags for"
    ),
    out_type: str | None = typer.Option(
        None,
        "--outType",
        "--out-type",
        help="Comma-separated generated class names; '_' keeps the default <type>BitFlags",
    ),
    out_file: str | None = typer.Option(
        None, "--outFile", "--out-file", help="Output file (default: <dir>/<type>_flagged.py)"
    ),
    size: int | None = typer.Option(
        None, "--size", help="Backing width: 8, 16, 32 or 64 (default: smallest that fits)"
    ),
    trim_prefix: str | None = typer.Option(
        None, "--trimprefix", "--trim-prefix", help="Prefix trimmed from each field name"
    ),
    trim_suffix: str | None = typer.Option(
        None, "--trimsuffix", "--trim-suffix", help="Suffix trimmed from each field name"
    ),
    tags: str | None = typer.Option(
        None, "--tags", help="Comma-separated build tags for '# flagged:build' directives"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Trace every generator step"),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
) -> None:
    """Generate bit flags classes for the requested types."""
    if not type_names:
        error_exit("--type is required; see 'genflagged --help'", json_mode=json_output, code=2)

    start = Path(paths[0]) if paths else Path.cwd()
    try:
        cfg = load_config(start)
        inp = validate_input(
            type_names,
            paths=paths,
            out_type=out_type,
            out_file=out_file,
            size=size,
            trim_prefix=trim_prefix,
            trim_suffix=trim_suffix,
            tags=tags,
            config=cfg,
        )
        trace = make_tracer(verbose or cfg.verbose, prefix=PROG)
        if cfg.path is not None:
            trace(f"info: using config from {cfg.path}")
        written = generate(inp, command=command_line(inp, paths), trace=trace, warn_fn=warn)
    except GenerateError as exc:
        error_exit(str(exc), json_mode=json_output)

    if json_output:
        json_print(
            {
                "files": [
                    {"path": str(w.path), "package": w.package, "types": list(w.types)}
                    for w in written
                ]
            }
        )
        return

    for w in written:
        typer.echo(f"Wrote {w.path} ({', '.join(w.types)})", err=True)


def main_entry() -> None:
    """Package entry point for ``genflagged``."""
    app()


if __name__ == "__main__":
    main_entry()
