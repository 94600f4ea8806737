"""Tests for flagged.render: the generated module and its behaviour."""

import ast
import sys
import types
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from flagged import BitFlags, BitFlags8, BitFlags16
from flagged.locator import PackageVariant, ResolvedType, VariantKind, VariantResult
from flagged.planner import FlagPlan, plan_emission
from flagged.render import format_source, render, tuple_literal
from flagged.resolver import FieldCandidate, SourceModule


@dataclass
class Permissions:
    Read: bool = False
    Write: bool = False
    Exec: bool = False


@dataclass
class MixOptions:
    optFlagEnabled: bool = False
    readOnly: bool = False


@dataclass
class Mix:
    Flag1: bool
    Field2: int
    Flag2: bool


@dataclass
class Modes:
    ReadOnly: bool = False
    Read_only: bool = False


def _resolved(tmp_path: Path, name: str, *fields: str, module: str = "perm_models") -> ResolvedType:
    src = SourceModule(tmp_path / f"{module}.py", module, ast.parse(""))
    return ResolvedType(name, src, tuple(FieldCandidate(f, f) for f in fields), 8)


def _render_types(
    tmp_path: Path, *resolved: ResolvedType, out_types: dict[str, str | None] | None = None
) -> str:
    variant = PackageVariant("pkg", VariantKind.PACKAGE, tmp_path, (resolved[0].module,))
    return render(plan_emission(VariantResult(variant, resolved, ()), out_types))


def _result(tmp_path: Path, module: str) -> VariantResult:
    src = SourceModule(tmp_path / f"{module}.py", module, ast.parse(""))
    perms = ResolvedType(
        "Permissions",
        src,
        tuple(FieldCandidate(n, n) for n in ("Read", "Write", "Exec")),
        8,
    )
    mix = ResolvedType(
        "MixOptions",
        src,
        (FieldCandidate("optFlagEnabled", "Flag"), FieldCandidate("readOnly", "ReadOnly")),
        8,
    )
    variant = PackageVariant("pkg", VariantKind.PACKAGE, tmp_path, (src,))
    return VariantResult(variant, (perms, mix), ())


def _source_text(tmp_path: Path, module: str = "perm_models", size: int = 0) -> str:
    plan = plan_emission(
        _result(tmp_path, module),
        {"MixOptions": "MixFlags"},
        size=size,
        command="genflagged --type=Permissions,MixOptions",
    )
    return render(plan)


def _load(text: str, monkeypatch: pytest.MonkeyPatch, module: str = "perm_models") -> Any:
    source = types.ModuleType(module)
    source.Permissions = Permissions  # type: ignore[attr-defined]
    source.MixOptions = MixOptions  # type: ignore[attr-defined]
    source.Mix = Mix  # type: ignore[attr-defined]
    source.Modes = Modes  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, module, source)
    namespace: dict[str, Any] = {"__name__": "generated"}
    exec(compile(text, "generated.py", "exec"), namespace)
    return types.SimpleNamespace(**namespace)


# ---------------------------------------------------------------------------
# Source text
# ---------------------------------------------------------------------------


class TestRenderText:
    def test_header_is_first_line(self, tmp_path: Path) -> None:
        first = _source_text(tmp_path).splitlines()[0]
        assert first == (
            '# Code generated by "genflagged --type=Permissions,MixOptions"; DO NOT EDIT.'
        )

    def test_parses(self, tmp_path: Path) -> None:
        tree = ast.parse(_source_text(tmp_path))
        classes = [n.name for n in tree.body if isinstance(n, ast.ClassDef)]
        assert classes == ["PermissionsBitFlags", "MixFlags"]

    def test_imports(self, tmp_path: Path) -> None:
        text = _source_text(tmp_path)
        assert "from typing import Any, ClassVar\n" in text
        assert "import flagged\n" in text
        assert "from perm_models import Permissions, MixOptions\n" in text
        assert "flagged.BitFlags8(value)" in text

    def test_accessor_names(self, tmp_path: Path) -> None:
        tree = ast.parse(_source_text(tmp_path))
        mix = next(n for n in tree.body if isinstance(n, ast.ClassDef) and n.name == "MixFlags")
        methods = [n.name for n in mix.body if isinstance(n, ast.FunctionDef)]
        assert "is_flag" in methods
        assert "set_read_only_to" in methods
        assert "toggle_read_only" in methods

    def test_deterministic(self, tmp_path: Path) -> None:
        assert _source_text(tmp_path) == _source_text(tmp_path)

    def test_trailing_newline(self, tmp_path: Path) -> None:
        text = _source_text(tmp_path)
        assert text.endswith(")\n")
        assert not text.endswith("\n\n")

    def test_tuple_literal_single(self) -> None:
        assert tuple_literal([FlagPlan("a", "A", 0, "a")]) == '("a",)'

    def test_tuple_literal_many(self) -> None:
        flags = [FlagPlan("a", "A", 0, "a"), FlagPlan("b", "B", 1, "b")]
        assert tuple_literal(flags) == '("a", "b")'


class TestFormatSource:
    def test_valid_source_unchanged(self) -> None:
        warnings: list[str] = []
        assert format_source("x = 1\n", warn=warnings.append) == "x = 1\n"
        assert warnings == []

    def test_invalid_source_returned_with_warning(self) -> None:
        warnings: list[str] = []
        assert format_source("def (:\n", warn=warnings.append) == "def (:\n"
        assert len(warnings) == 2
        assert "invalid Python generated" in warnings[0]


# ---------------------------------------------------------------------------
# Generated behaviour
# ---------------------------------------------------------------------------


class TestGeneratedClass:
    def test_accessors(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        gen = _load(_source_text(tmp_path), monkeypatch)
        flags = gen.PermissionsBitFlags()
        assert flags.set_read() is False
        assert flags.is_read()
        assert flags.set_read() is True
        assert flags.set_exec_to(True) is False
        assert flags.value == 0b101
        assert flags.toggle_write() is True
        assert flags.reset_read() is True
        assert not flags.is_read()
        assert flags.value == 0b110

    def test_fields_in_bit_order(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        gen = _load(_source_text(tmp_path), monkeypatch)
        assert gen.PermissionsBitFlags.FIELDS == ("Read", "Write", "Exec")
        assert gen.MixFlags.FIELDS == ("optFlagEnabled", "readOnly")

    def test_typed_flags_round_trip(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        gen = _load(_source_text(tmp_path), monkeypatch)
        flags = gen.PermissionsBitFlags()
        flags.set_typed_flags(Permissions(Read=False, Write=True, Exec=True))
        assert flags.value == 0b110
        assert flags.typed_flags() == Permissions(Read=False, Write=True, Exec=True)

    def test_set_typed_flags_clears_bits(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        gen = _load(_source_text(tmp_path), monkeypatch)
        flags = gen.MixFlags(0b11)
        flags.set_typed_flags(MixOptions(optFlagEnabled=False, readOnly=True))
        assert not flags.is_flag()
        assert flags.is_read_only()

    def test_clone_is_independent(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        gen = _load(_source_text(tmp_path), monkeypatch)
        flags = gen.PermissionsBitFlags(0b1)
        copy = flags.clone()
        assert copy == flags
        copy.set_write()
        assert copy != flags
        assert flags.value == 0b1

    def test_bit_flags_is_shared_value(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        gen = _load(_source_text(tmp_path), monkeypatch)
        flags = gen.PermissionsBitFlags()
        inner = flags.bit_flags()
        assert isinstance(inner, BitFlags)
        assert isinstance(inner, BitFlags8)
        inner.set(2)
        assert flags.is_exec()
        assert inner.pretty_string() == "O|O|O|O|O|I|O|O"

    def test_repr(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        gen = _load(_source_text(tmp_path), monkeypatch)
        assert repr(gen.PermissionsBitFlags(0b11)) == "PermissionsBitFlags(0b00000011)"

    def test_wider_size(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        gen = _load(_source_text(tmp_path, size=16), monkeypatch)
        flags = gen.PermissionsBitFlags()
        assert isinstance(flags.bit_flags(), BitFlags16)
        assert str(flags.bit_flags()) == "0" * 16

    def test_value_range_checked(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        gen = _load(_source_text(tmp_path), monkeypatch)
        with pytest.raises(ValueError):
            gen.PermissionsBitFlags(256)

    def test_typed_flags_with_required_fields(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        text = _render_types(tmp_path, _resolved(tmp_path, "Mix", "Flag1", "Flag2"))
        gen = _load(text, monkeypatch)
        flags = gen.MixBitFlags()
        flags.set_flag2()
        assert flags.typed_flags(Field2=7) == Mix(Flag1=False, Field2=7, Flag2=True)
        with pytest.raises(TypeError):
            flags.typed_flags()

    def test_colliding_stems_reachable(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        text = _render_types(tmp_path, _resolved(tmp_path, "Modes", "ReadOnly", "Read_only"))
        gen = _load(text, monkeypatch)
        flags = gen.ModesBitFlags()
        assert flags.set_ReadOnly() is False
        assert flags.value == 0b01
        assert flags.toggle_Read_only() is False
        assert flags.value == 0b11
        assert flags.reset_ReadOnly() is True
        assert not flags.is_ReadOnly()
        assert flags.is_Read_only()

    def test_out_type_named_like_runtime_class(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        text = _render_types(
            tmp_path,
            _resolved(tmp_path, "Permissions", "Read", "Write", "Exec"),
            out_types={"Permissions": "BitFlags8"},
        )
        gen = _load(text, monkeypatch)
        flags = gen.BitFlags8()
        assert flags.set_read() is False
        assert flags.value == 0b1
        assert type(flags.bit_flags()) is BitFlags8
        assert flags.clone() == flags
