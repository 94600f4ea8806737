"""resolver.py - Find a requested class in a source module and pick its flag fields.

A *field candidate* is an annotated attribute declared directly in the class
body, with a plain name other than ``_``, whose annotation resolves to the
builtin ``bool``.  Resolution of annotations is delegated to a
:class:`KindResolver`; :class:`SymbolTable` is the implementation used by the
generator and unwraps module-level aliases across the modules of one package
variant, e.g.::

    Flag = bool                       # alias      -> bool
    Switch: TypeAlias = "Flag"        # alias      -> bool
    Mode = NewType("Mode", bool)      # named type -> excluded
    class Level(int): ...             # named type -> excluded

Fields typed with anything else are silently skipped (reported through the
optional trace callable only).
"""

from __future__ import annotations

import ast
import enum
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from flagged.naming import flag_name

Trace = Callable[[str], None]

# ``type X = ...`` statements (Python 3.12+).
_TYPE_ALIAS_STMT = getattr(ast, "TypeAlias", None)

# Subscripted wrappers that do not change the underlying type.
_TRANSPARENT_WRAPPERS = frozenset(
    {
        "typing.Annotated",
        "typing_extensions.Annotated",
        "typing.Final",
        "typing_extensions.Final",
    }
)

_BUILTIN_BOOL = "builtins.bool"


def _silent(msg: str) -> None:
    return None


class Kind(enum.Enum):
    """Underlying kind of an annotation after alias unwrapping."""

    BOOL = "bool"
    NAMED = "named"
    OTHER = "other"


@dataclass(frozen=True)
class SourceModule:
    """One parsed source file of a package variant."""

    path: Path
    name: str
    tree: ast.Module = field(compare=False, repr=False)
    is_test: bool = False


@dataclass(frozen=True)
class TypeRef:
    """An annotation expression together with the module it appears in."""

    module: str
    node: ast.expr


class KindResolver(Protocol):
    def resolve_underlying_kind(self, ref: TypeRef) -> Kind: ...


@dataclass(frozen=True)
class FieldCandidate:
    name: str
    flag_name: str


@dataclass(frozen=True)
class Declaration:
    """A top-level declaration matching a requested type name."""

    source_name: str
    module: SourceModule
    shape: str
    fields: tuple[FieldCandidate, ...] = ()
    is_struct: bool = False

    @property
    def valid(self) -> bool:
        """True when the declaration is a class with at least one bool field."""
        return self.is_struct and bool(self.fields)


# ---------------------------------------------------------------------------
# Symbol table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Binding:
    kind: str  # "alias", "named", "other", "import", "module"
    module: str
    node: ast.expr | None = None
    source: str = ""
    name: str = ""


def _is_newtype_call(node: ast.expr) -> bool:
    if not isinstance(node, ast.Call):
        return False
    func = node.func
    if isinstance(func, ast.Name):
        return func.id == "NewType"
    return isinstance(func, ast.Attribute) and func.attr == "NewType"


def _is_type_alias_annotation(node: ast.expr) -> bool:
    if isinstance(node, ast.Name):
        return node.id == "TypeAlias"
    return isinstance(node, ast.Attribute) and node.attr == "TypeAlias"


def _value_binding(module: str, value: ast.expr) -> _Binding:
    if _is_newtype_call(value):
        return _Binding("named", module)
    return _Binding("alias", module, node=value)


def _last_component(dotted: str | None) -> str:
    return (dotted or "").rsplit(".", 1)[-1]


def _module_bindings(module: SourceModule) -> dict[str, _Binding]:
    """Collect the top-level names bound in *module*; later bindings win."""
    bindings: dict[str, _Binding] = {}
    for stmt in module.tree.body:
        if isinstance(stmt, ast.ClassDef):
            bindings[stmt.name] = _Binding("named", module.name)
        elif isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
            bindings[stmt.name] = _Binding("other", module.name)
        elif _TYPE_ALIAS_STMT is not None and isinstance(stmt, _TYPE_ALIAS_STMT):
            bindings[stmt.name.id] = _Binding("alias", module.name, node=stmt.value)
        elif isinstance(stmt, ast.AnnAssign):
            if isinstance(stmt.target, ast.Name) and stmt.value is not None:
                bindings[stmt.target.id] = _value_binding(module.name, stmt.value)
        elif isinstance(stmt, ast.Assign):
            for target in stmt.targets:
                if isinstance(target, ast.Name):
                    bindings[target.id] = _value_binding(module.name, stmt.value)
        elif isinstance(stmt, ast.ImportFrom):
            for alias in stmt.names:
                if alias.name == "*":
                    continue
                bound = alias.asname or alias.name
                if stmt.module is None:
                    # from . import sibling
                    bindings[bound] = _Binding("module", module.name, source=alias.name)
                else:
                    bindings[bound] = _Binding(
                        "import", module.name, source=stmt.module, name=alias.name
                    )
        elif isinstance(stmt, ast.Import):
            for alias in stmt.names:
                if alias.asname:
                    bindings[alias.asname] = _Binding("module", module.name, source=alias.name)
                else:
                    head = alias.name.split(".", 1)[0]
                    bindings[head] = _Binding("module", module.name, source=head)
    return bindings


class SymbolTable:
    """Resolve annotations to their underlying :class:`Kind`.

    *modules* are the declaration sites of one package variant; *context*
    modules are only consulted for names imported from them (the production
    package seen from its external tests).
    """

    def __init__(
        self, modules: Iterable[SourceModule], context: Iterable[SourceModule] = ()
    ) -> None:
        self._bindings: dict[str, dict[str, _Binding]] = {}
        for module in (*context, *modules):
            self._bindings[module.name] = _module_bindings(module)

    def resolve_underlying_kind(self, ref: TypeRef) -> Kind:
        result = self._evaluate(ref.module, ref.node, frozenset())
        if isinstance(result, Kind):
            return result
        return Kind.BOOL if result == _BUILTIN_BOOL else Kind.OTHER

    def _known_module(self, dotted: str | None) -> str | None:
        name = _last_component(dotted)
        return name if name in self._bindings else None

    def _follow(self, module: str, name: str, seen: frozenset) -> Kind | str:
        """Follow *name* as bound in *module*.

        Returns a :class:`Kind`, or the dotted name of something defined
        outside the table (``"builtins.bool"``, ``"typing.Annotated"``).
        """
        key = (module, name)
        if key in seen:
            return Kind.OTHER
        seen = seen | {key}

        table = self._bindings.get(module)
        if table is None:
            return f"{module}.{name}"
        binding = table.get(name)
        if binding is None:
            return f"builtins.{name}"
        if binding.kind == "named":
            return Kind.NAMED
        if binding.kind == "alias":
            assert binding.node is not None
            return self._evaluate(module, binding.node, seen)
        if binding.kind == "import":
            target = self._known_module(binding.source)
            if target is not None:
                return self._follow(target, binding.name, seen)
            return f"{binding.source}.{binding.name}"
        return Kind.OTHER

    def _evaluate(self, module: str, node: ast.expr, seen: frozenset) -> Kind | str:
        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            try:
                parsed = ast.parse(node.value.strip(), mode="eval").body
            except SyntaxError:
                return Kind.OTHER
            return self._evaluate(module, parsed, seen)

        if isinstance(node, ast.Name):
            return self._follow(module, node.id, seen)

        if isinstance(node, ast.Attribute):
            if isinstance(node.value, ast.Name):
                binding = self._bindings.get(module, {}).get(node.value.id)
                if binding is not None and binding.kind == "module":
                    target = self._known_module(binding.source)
                    if target is not None:
                        return self._follow(target, node.attr, seen)
                    return f"{binding.source}.{node.attr}"
            return ast.unparse(node)

        if isinstance(node, ast.Subscript):
            head = self._evaluate(module, node.value, seen)
            if head in _TRANSPARENT_WRAPPERS:
                inner = node.slice
                if isinstance(inner, ast.Tuple):
                    if not inner.elts:
                        return Kind.OTHER
                    inner = inner.elts[0]
                return self._evaluate(module, inner, seen)
            return Kind.OTHER

        return Kind.OTHER


# ---------------------------------------------------------------------------
# Declaration lookup
# ---------------------------------------------------------------------------


_BUILTIN_TYPES = frozenset(
    {
        "bool",
        "bytearray",
        "bytes",
        "complex",
        "dict",
        "float",
        "frozenset",
        "int",
        "list",
        "object",
        "set",
        "str",
        "tuple",
        "type",
    }
)


def _is_type_expr(
    node: ast.expr, bindings: dict[str, _Binding], seen: frozenset = frozenset()
) -> bool:
    """Report whether *node* names a type rather than a value.

    Accepts builtin types, classes, ``NewType`` names, imported names,
    attributes of imported modules (``typing.Optional``), subscripts of
    those and aliases that are themselves type expressions.  Values such as
    ``cfg["k"]`` or ``Color.RED`` are rejected.
    """
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        try:
            parsed = ast.parse(node.value.strip(), mode="eval").body
        except SyntaxError:
            return False
        return _is_type_expr(parsed, bindings, seen)

    if isinstance(node, ast.Subscript):
        return _is_type_expr(node.value, bindings, seen)

    if isinstance(node, ast.Attribute):
        if not isinstance(node.value, ast.Name):
            return False
        binding = bindings.get(node.value.id)
        return binding is not None and binding.kind == "module"

    if isinstance(node, ast.Name):
        binding = bindings.get(node.id)
        if binding is None:
            return node.id in _BUILTIN_TYPES
        if binding.kind in ("named", "import"):
            return True
        if binding.kind == "alias" and node.id not in seen:
            assert binding.node is not None
            return _is_type_expr(binding.node, bindings, seen | {node.id})
        return False

    return False


def _type_declarations(
    stmt: ast.stmt, bindings: dict[str, _Binding]
) -> Iterator[tuple[str, str, ast.stmt]]:
    """Yield ``(name, shape, stmt)`` for each name bound by a top-level *stmt*.

    *shape* is empty for assignments of plain values, which rebind the name
    without declaring a type.
    """
    if isinstance(stmt, ast.ClassDef):
        yield stmt.name, "class", stmt
    elif _TYPE_ALIAS_STMT is not None and isinstance(stmt, _TYPE_ALIAS_STMT):
        yield stmt.name.id, "type alias", stmt
    elif isinstance(stmt, ast.AnnAssign):
        if (
            isinstance(stmt.target, ast.Name)
            and stmt.value is not None
            and _is_type_alias_annotation(stmt.annotation)
        ):
            yield stmt.target.id, "type alias", stmt
    elif isinstance(stmt, ast.Assign):
        if _is_newtype_call(stmt.value):
            shape = "NewType"
        elif _is_type_expr(stmt.value, bindings):
            shape = "type alias"
        else:
            shape = ""
        for target in stmt.targets:
            if isinstance(target, ast.Name):
                yield target.id, shape, stmt


def _bool_fields(
    cls: ast.ClassDef,
    module: SourceModule,
    kinds: KindResolver,
    trim_prefix: str,
    trim_suffix: str,
    trace: Trace,
) -> list[FieldCandidate]:
    # Re-annotating a name keeps its first position and takes the last annotation.
    annotations: dict[str, ast.expr] = {}
    for stmt in cls.body:
        if not isinstance(stmt, ast.AnnAssign):
            continue
        if not stmt.simple or not isinstance(stmt.target, ast.Name):
            trace(
                f"info: skipping non-simple annotation {ast.unparse(stmt.target)} "
                f"in type {cls.name}"
            )
            continue
        annotations[stmt.target.id] = stmt.annotation

    trace(f"info: processing {len(annotations)} field declarations for type {cls.name}")

    fields: list[FieldCandidate] = []
    for name, annotation in annotations.items():
        if name == "_":
            continue
        kind = kinds.resolve_underlying_kind(TypeRef(module.name, annotation))
        if kind is not Kind.BOOL:
            trace(
                f"info: found field {name} but with {kind.value} actual type "
                f"{ast.unparse(annotation)} in type {cls.name}"
            )
            continue
        candidate = FieldCandidate(name, flag_name(name, trim_prefix, trim_suffix))
        fields.append(candidate)
        trace(
            f"info: added flag {candidate.flag_name} for field {name} from type "
            f"{cls.name} with total {len(fields)} flags"
        )
    return fields


def find_declaration(
    module: SourceModule,
    type_name: str,
    kinds: KindResolver,
    trim_prefix: str = "",
    trim_suffix: str = "",
    trace: Trace | None = None,
) -> Declaration | None:
    """Look for a top-level type named *type_name* in *module*.

    Returns ``None`` when the module declares no such type.  A declaration
    that is not a class, or a class without bool fields, is still returned
    (with ``valid`` False) so the caller can stop searching and report it.
    """
    trace = trace or _silent
    bindings = _module_bindings(module)
    match: tuple[str, ast.stmt] | None = None
    for stmt in module.tree.body:
        for name, shape, decl in _type_declarations(stmt, bindings):
            if name == type_name:
                match = (shape, decl) if shape else None
    if match is None:
        return None

    shape, decl = match
    trace(f"info: found matching type {type_name} ({shape}) in {module.path.name}")
    if not isinstance(decl, ast.ClassDef):
        return Declaration(type_name, module, shape)

    fields = _bool_fields(decl, module, kinds, trim_prefix, trim_suffix, trace)
    return Declaration(type_name, module, shape, tuple(fields), is_struct=True)
