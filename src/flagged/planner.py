"""planner.py - Turn resolved types into a renderer-agnostic emission plan.

One :class:`EmissionPlan` describes one output module: the generated classes
(name, width, flags in bit order with their accessor stems), the source-type
imports they need and the path the module goes to.  The runtime is imported
as a module (``import flagged``) so no generated or source name can shadow it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from flagged.locator import ResolvedType, VariantResult
from flagged.naming import (
    DEFAULT_NAME_PLACEHOLDER,
    accessor_stems,
    default_file_name,
    default_out_type_name,
)
from flagged.sizing import reconcile

RUNTIME_MODULE = "flagged"
RUNTIME_INTERFACE = "BitFlags"


@dataclass(frozen=True)
class FlagPlan:
    field: str
    flag: str
    index: int
    stem: str


@dataclass(frozen=True)
class TypePlan:
    source_name: str
    out_type_name: str
    width: int
    flags: tuple[FlagPlan, ...]

    @property
    def base_class(self) -> str:
        return f"{RUNTIME_INTERFACE}{self.width}"


@dataclass(frozen=True)
class ImportPlan:
    module: str
    names: tuple[str, ...]


@dataclass(frozen=True)
class EmissionPlan:
    package: str
    out_path: Path
    types: tuple[TypePlan, ...]
    source_imports: tuple[ImportPlan, ...]
    consumed: frozenset[str]
    command: str = "genflagged"
    runtime_module: str = RUNTIME_MODULE


def out_type_name_for(source_name: str, requested: str | None) -> str:
    """Requested name, or the default one when absent or ``_``."""
    if not requested or requested == DEFAULT_NAME_PLACEHOLDER:
        return default_out_type_name(source_name)
    return requested


def plan_type(resolved: ResolvedType, out_type_name: str | None = None, size: int = 0) -> TypePlan:
    """Plan one generated class; *size* 0 keeps the minimal width."""
    width = reconcile(resolved.source_name, resolved.bit_width, size)
    stems = accessor_stems([f.flag_name for f in resolved.fields])
    flags = tuple(
        FlagPlan(field=f.name, flag=f.flag_name, index=idx, stem=stem)
        for idx, (f, stem) in enumerate(zip(resolved.fields, stems))
    )
    return TypePlan(
        source_name=resolved.source_name,
        out_type_name=out_type_name_for(resolved.source_name, out_type_name),
        width=width,
        flags=flags,
    )


def _source_imports(result: VariantResult, out_path: Path) -> tuple[ImportPlan, ...]:
    variant = result.variant
    relative = variant.is_package and out_path.parent.resolve() == variant.directory.resolve()
    grouped: dict[str, list[str]] = {}
    for resolved in result.resolved:
        module = ("." if relative else "") + resolved.module.name
        names = grouped.setdefault(module, [])
        if resolved.source_name not in names:
            names.append(resolved.source_name)
    return tuple(ImportPlan(module, tuple(names)) for module, names in grouped.items())


def plan_emission(
    result: VariantResult,
    out_types: Mapping[str, str | None] | None = None,
    size: int = 0,
    out_file: Path | None = None,
    command: str = "genflagged",
) -> EmissionPlan:
    """Plan the output module for the types resolved from one variant.

    Raises :class:`~flagged.errors.SizingError` before anything is written
    when *size* is too small for one of the types.
    """
    if not result.resolved:
        raise ValueError(f"nothing resolved in package {result.variant.label}")
    out_types = out_types or {}
    types = tuple(
        plan_type(r, out_types.get(r.source_name), size) for r in result.resolved
    )

    variant = result.variant
    if out_file is None:
        first = result.resolved[0].source_name
        out_path = variant.directory / default_file_name(first, variant.has_test_files)
    else:
        out_path = out_file

    return EmissionPlan(
        package=variant.label,
        out_path=out_path,
        types=types,
        source_imports=_source_imports(result, out_path),
        consumed=result.consumed,
        command=command,
    )
