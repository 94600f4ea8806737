"""Project configuration for genflagged.

Defaults for the generator options can live in the ``[tool.flagged]`` table
of the nearest ``pyproject.toml`` above the package being processed::

    [tool.flagged]
    size = 16
    trim_prefix = "opt"
    trim_suffix = "Enabled"
    tags = ["linux"]
    tests_dir = "tests"
    verbose = false

Command-line options always override these values.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from flagged.errors import InputError

CONFIG_FILE = "pyproject.toml"
CONFIG_TABLE = "flagged"


@dataclass
class GenConfig:
    """Generator defaults read from ``[tool.flagged]``."""

    # pyproject.toml the values came from; None when no table was found.
    path: Path | None = None

    size: int = 0
    trim_prefix: str = ""
    trim_suffix: str = ""
    tags: list[str] = field(default_factory=list)
    tests_dir: str = "tests"
    verbose: bool = False


def _find_pyproject(start: Path) -> Path | None:
    """Walk up from *start* to the nearest pyproject.toml, like git finds .git/."""
    candidate = start.resolve()
    if candidate.is_file():
        candidate = candidate.parent
    while True:
        if (candidate / CONFIG_FILE).is_file():
            return candidate / CONFIG_FILE
        if candidate == candidate.parent:
            return None
        candidate = candidate.parent


def _expect(raw: dict[str, Any], key: str, kind: type, path: Path) -> Any:
    value = raw[key]
    # bool is an int subclass; keep them apart.
    if isinstance(value, bool) != (kind is bool) or not isinstance(value, kind):
        raise InputError(
            f"{path}: [tool.{CONFIG_TABLE}] {key} must be of type {kind.__name__}, "
            f"got {type(value).__name__}"
        )
    return value


def load_config(start: Path | None = None) -> GenConfig:
    """Load ``[tool.flagged]`` from the pyproject.toml nearest to *start* (or cwd)."""
    toml_path = _find_pyproject(start or Path.cwd())
    if toml_path is None:
        return GenConfig()

    try:
        with open(toml_path, "rb") as f:
            raw = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise InputError(f"failed to read {toml_path}: {exc}") from exc

    table = raw.get("tool", {}).get(CONFIG_TABLE)
    if table is None:
        return GenConfig()

    known = {"size", "trim_prefix", "trim_suffix", "tags", "tests_dir", "verbose"}
    unknown = sorted(set(table) - known)
    if unknown:
        raise InputError(
            f"{toml_path}: unknown keys in [tool.{CONFIG_TABLE}]: {', '.join(unknown)}"
        )

    cfg = GenConfig(path=toml_path)
    if "size" in table:
        cfg.size = _expect(table, "size", int, toml_path)
    if "trim_prefix" in table:
        cfg.trim_prefix = _expect(table, "trim_prefix", str, toml_path)
    if "trim_suffix" in table:
        cfg.trim_suffix = _expect(table, "trim_suffix", str, toml_path)
    if "tags" in table:
        tags = _expect(table, "tags", list, toml_path)
        if not all(isinstance(t, str) for t in tags):
            raise InputError(f"{toml_path}: [tool.{CONFIG_TABLE}] tags must be a list of strings")
        cfg.tags = list(tags)
    if "tests_dir" in table:
        cfg.tests_dir = _expect(table, "tests_dir", str, toml_path)
    if "verbose" in table:
        cfg.verbose = _expect(table, "verbose", bool, toml_path)
    return cfg
