"""locator.py - Load the package variants of a directory and find requested types in them.

A directory is seen as up to three package variants, searched in this order:

1. ``PACKAGE`` - the production modules;
2. ``PACKAGE_TESTS`` - the production modules plus the in-package test
   modules (``test_*.py``, ``*_test.py``, ``conftest.py``);
3. ``EXTERNAL_TESTS`` - the modules of the tests directory (``tests/`` by
   default), which may import types from the production modules.

Each requested name is resolved from the first variant (and the first module
within it) declaring it, so a type that exists both in production code and in
the tests is generated once, next to the production code.  The set of names
still unresolved is threaded from one variant to the next through
:class:`VariantResult`.
"""

from __future__ import annotations

import ast
import enum
import re
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from flagged.errors import InputError, ResolutionError
from flagged.resolver import (
    FieldCandidate,
    KindResolver,
    SourceModule,
    SymbolTable,
    find_declaration,
)
from flagged.sizing import MAX_FLAGS, minimal_width
from flagged.utils import is_generated

Trace = Callable[[str], None]

DEFAULT_TESTS_DIR = "tests"

# Leading-comment directive restricting a module to some build tags:
#   # flagged:build linux,!windows
_BUILD_DIRECTIVE_RE = re.compile(r"^#\s*flagged:build\s+(?P<expr>\S.*)$")


def _silent(msg: str) -> None:
    return None


class VariantKind(enum.Enum):
    PACKAGE = "package"
    PACKAGE_TESTS = "package with tests"
    EXTERNAL_TESTS = "external tests"


@dataclass(frozen=True)
class PackageVariant:
    """One form of a package that declarations are looked up in."""

    name: str
    kind: VariantKind
    directory: Path
    modules: tuple[SourceModule, ...]
    context: tuple[SourceModule, ...] = ()
    is_package: bool = False

    @property
    def has_test_files(self) -> bool:
        return any(m.is_test for m in self.modules)

    @property
    def label(self) -> str:
        return f"{self.name} ({self.kind.value})"

    def symbol_table(self) -> SymbolTable:
        return SymbolTable(self.modules, context=self.context)


@dataclass(frozen=True)
class ResolvedType:
    """A requested type with its flag fields and minimal bit width."""

    source_name: str
    module: SourceModule
    fields: tuple[FieldCandidate, ...]
    bit_width: int


@dataclass(frozen=True)
class VariantResult:
    """Outcome of searching one variant; ``remaining`` feeds the next variant."""

    variant: PackageVariant
    resolved: tuple[ResolvedType, ...]
    remaining: tuple[str, ...]

    @property
    def consumed(self) -> frozenset[str]:
        return frozenset(r.source_name for r in self.resolved)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def is_test_module(path: Path) -> bool:
    name = path.name
    return name == "conftest.py" or name.startswith("test_") or name.endswith("_test.py")


def build_tags_match(text: str, tags: Iterable[str]) -> bool:
    """Report whether a module's ``# flagged:build`` directive admits *tags*.

    The directive is looked for in the leading comment block.  Its expression
    is a comma-separated list of ``tag`` / ``!tag`` terms, any of which may
    hold.  Modules without a directive always match.
    """
    active = set(tags)
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if not stripped.startswith("#"):
            break
        m = _BUILD_DIRECTIVE_RE.match(stripped)
        if m is None:
            continue
        for term in m.group("expr").split(","):
            term = term.strip()
            if not term:
                continue
            if term.startswith("!"):
                if term[1:] not in active:
                    return True
            elif term in active:
                return True
        return False
    return True


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ResolutionError(f"failed to read {path}: {exc}") from exc


def load_module(path: Path, is_test: bool | None = None, text: str | None = None) -> SourceModule:
    """Parse *path* (or its already read *text*) into a :class:`SourceModule`."""
    if text is None:
        text = _read(path)
    try:
        tree = ast.parse(text, filename=str(path))
    except SyntaxError as exc:
        raise ResolutionError(f"failed to parse {path}: {exc}") from exc
    if is_test is None:
        is_test = is_test_module(path)
    return SourceModule(path=path, name=path.stem, tree=tree, is_test=is_test)


def _load_dir(
    directory: Path, tags: frozenset[str], trace: Trace, is_test: bool | None = None
) -> list[SourceModule]:
    modules: list[SourceModule] = []
    for path in sorted(directory.glob("*.py")):
        text = _read(path)
        if is_generated(text):
            trace(f"info: skipping generated module {path}")
            continue
        if not build_tags_match(text, tags):
            trace(f"info: skipping {path}; build tags do not match")
            continue
        modules.append(load_module(path, is_test=is_test, text=text))
    return modules


def _variants_from_modules(
    name: str, directory: Path, modules: Sequence[SourceModule]
) -> list[PackageVariant]:
    production = tuple(m for m in modules if not m.is_test)
    tests = tuple(m for m in modules if m.is_test)
    is_package = (directory / "__init__.py").exists()
    variants: list[PackageVariant] = []
    if production:
        variants.append(
            PackageVariant(name, VariantKind.PACKAGE, directory, production, is_package=is_package)
        )
    if tests:
        variants.append(
            PackageVariant(
                name,
                VariantKind.PACKAGE_TESTS,
                directory,
                production + tests,
                is_package=is_package,
            )
        )
    return variants


def load_variants(
    paths: Sequence[Path],
    tags: Iterable[str] = (),
    tests_dir: str = DEFAULT_TESTS_DIR,
    trace: Trace | None = None,
) -> list[PackageVariant]:
    """Load the package variants named by *paths*, in search order.

    *paths* is either a single directory or a list of ``.py`` files from one
    directory.  Tags only filter directory loads.
    """
    trace = trace or _silent
    tag_set = frozenset(tags)
    if not paths:
        raise InputError("no package directory or source files given")

    if len(paths) == 1 and paths[0].is_dir():
        directory = paths[0]
        name = directory.resolve().name
        modules = _load_dir(directory, tag_set, trace)
        variants = _variants_from_modules(name, directory, modules)

        external_dir = directory / tests_dir
        if external_dir.is_dir():
            external = _load_dir(external_dir, tag_set, trace, is_test=True)
            if external:
                production = tuple(m for m in modules if not m.is_test)
                variants.append(
                    PackageVariant(
                        f"{name}_test",
                        VariantKind.EXTERNAL_TESTS,
                        external_dir,
                        tuple(external),
                        context=production,
                        is_package=(external_dir / "__init__.py").exists(),
                    )
                )
    else:
        for path in paths:
            if not path.is_file():
                raise InputError(f"not a source file: {path}")
            if path.suffix != ".py":
                raise InputError(f"source files must be .py files: {path}")
        directories = {p.resolve().parent for p in paths}
        if len(directories) != 1:
            raise InputError("source files must belong to a single package directory")
        directory = paths[0].parent
        modules = []
        for path in sorted(set(paths)):
            text = _read(path)
            if is_generated(text):
                trace(f"info: skipping generated module {path}")
                continue
            modules.append(load_module(path, text=text))
        variants = _variants_from_modules(directory.resolve().name, directory, modules)

    if not variants:
        raise ResolutionError(
            "no packages matching " + " ".join(str(p) for p in paths)
        )
    for variant in variants:
        trace(f"info: loaded {variant.label} with {len(variant.modules)} modules")
    return variants


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def resolve_type(
    variant: PackageVariant,
    type_name: str,
    kinds: KindResolver,
    trim_prefix: str = "",
    trim_suffix: str = "",
    trace: Trace | None = None,
) -> ResolvedType | None:
    """Resolve *type_name* from the first module of *variant* declaring it."""
    trace = trace or _silent
    for module in variant.modules:
        decl = find_declaration(module, type_name, kinds, trim_prefix, trim_suffix, trace)
        if decl is None:
            continue
        if not decl.valid:
            raise ResolutionError(
                f"found unsupported type {type_name} ({decl.shape}) in package {variant.label}; "
                "supported types are classes with bool fields"
            )
        count = len(decl.fields)
        if count > MAX_FLAGS:
            raise ResolutionError(
                f"type {type_name} contains {count} bool fields which is more than "
                f"supported; maximum supported is {MAX_FLAGS}"
            )
        width = minimal_width(count)
        trace(f"info: type size is {width} for type {type_name} with total {count} flags")
        return ResolvedType(type_name, module, decl.fields, width)
    return None


def locate_in_variant(
    variant: PackageVariant,
    remaining: Sequence[str],
    kinds: KindResolver | None = None,
    trim_prefix: str = "",
    trim_suffix: str = "",
    trace: Trace | None = None,
) -> VariantResult:
    """Search *variant* for each name in *remaining*, in order."""
    trace = trace or _silent
    if kinds is None:
        kinds = variant.symbol_table()
    trace(f"info: processing package {variant.label} with {len(remaining)} remaining types")

    resolved: list[ResolvedType] = []
    still: list[str] = []
    for name in remaining:
        found = resolve_type(variant, name, kinds, trim_prefix, trim_suffix, trace)
        if found is None:
            still.append(name)
        else:
            resolved.append(found)

    if resolved:
        trace(f"info: {len(resolved)} matching types found in package {variant.label}")
    else:
        trace(f"info: no matching types found in package {variant.label}")
    return VariantResult(variant, tuple(resolved), tuple(still))


def walk_variants(
    variants: Sequence[PackageVariant],
    names: Sequence[str],
    trim_prefix: str = "",
    trim_suffix: str = "",
    trace: Trace | None = None,
) -> Iterator[VariantResult]:
    """Yield one :class:`VariantResult` per variant searched.

    Stops once every name is resolved.  The caller handles each result
    (planning and writing) before the next variant is searched.
    """
    remaining = tuple(names)
    for variant in variants:
        if not remaining:
            return
        result = locate_in_variant(
            variant, remaining, trim_prefix=trim_prefix, trim_suffix=trim_suffix, trace=trace
        )
        yield result
        remaining = result.remaining
