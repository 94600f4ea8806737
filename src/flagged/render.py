"""render.py - Render an :class:`~flagged.planner.EmissionPlan` to Python source.

Each planned type becomes a class wrapping one fixed-width ``BitFlags``
value, with five accessors per flag (``is_<f>``, ``set_<f>``, ``reset_<f>``,
``set_<f>_to``, ``toggle_<f>``) plus ``bit_flags``, ``clone``,
``typed_flags`` and ``set_typed_flags``.
"""

import ast
from collections.abc import Callable, Sequence

import jinja2

from flagged.planner import EmissionPlan, FlagPlan

_MODULE_TEMPLATE = jinja2.Template(
    '''\
# Code generated by "{{ command }}"; DO NOT EDIT.

from __future__ import annotations

from typing import Any, ClassVar

import {{ runtime }}
{% for imp in source_imports %}
from {{ imp.module }} import {{ imp.names|join(", ") }}
{% endfor %}
{% for t in types %}


class {{ t.out_type_name }}:
    """Bit flags for the bool fields of {{ t.source_name }}, backed by {{ t.base_class }}."""

    __slots__ = ("_flags",)

    FIELDS: ClassVar[tuple[str, ...]] = {{ tuple_literal(t.flags) }}

    def __init__(self, value: int = 0) -> None:
        self._flags = {{ runtime }}.{{ t.base_class }}(value)

    @property
    def value(self) -> int:
        return self._flags.value

    def __repr__(self) -> str:
        return f"{{ t.out_type_name }}(0b{self._flags})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, {{ t.out_type_name }}):
            return self._flags == other._flags
        return NotImplemented

    def bit_flags(self) -> {{ runtime }}.BitFlags:
        return self._flags

    def clone(self) -> {{ t.out_type_name }}:
        return {{ t.out_type_name }}(self._flags.value)

    def typed_flags(self, **others: Any) -> {{ t.source_name }}:
        """Build a {{ t.source_name }} from the flags; *others* supplies its remaining fields."""
        return {{ t.source_name }}(
            **others,
{% for f in t.flags %}
            {{ f.field }}=self._flags.is_set({{ f.index }}),
{% endfor %}
        )

    def set_typed_flags(self, value: {{ t.source_name }}) -> None:
{% for f in t.flags %}
        self._flags.set_to({{ f.index }}, value.{{ f.field }})
{% endfor %}
{% for f in t.flags %}

    def is_{{ f.stem }}(self) -> bool:
        return self._flags.is_set({{ f.index }})

    def set_{{ f.stem }}(self) -> bool:
        return self._flags.set({{ f.index }})

    def reset_{{ f.stem }}(self) -> bool:
        return self._flags.reset({{ f.index }})

    def set_{{ f.stem }}_to(self, new: bool) -> bool:
        return self._flags.set_to({{ f.index }}, new)

    def toggle_{{ f.stem }}(self) -> bool:
        return self._flags.toggle({{ f.index }})
{% endfor %}
{% endfor %}
''',
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
)


def tuple_literal(flags: Sequence[FlagPlan]) -> str:
    """Source literal for the tuple of field names, in bit order."""
    items = [f'"{f.field}"' for f in flags]
    if len(items) == 1:
        return f"({items[0]},)"
    return "(" + ", ".join(items) + ")"


def render(plan: EmissionPlan) -> str:
    """Return the source text of the module described by *plan*."""
    return _MODULE_TEMPLATE.render(
        command=plan.command,
        runtime=plan.runtime_module,
        source_imports=plan.source_imports,
        types=plan.types,
        tuple_literal=tuple_literal,
    )


def format_source(text: str, warn: Callable[[str], None] | None = None) -> str:
    """Check that *text* parses as Python.

    Invalid output is returned unchanged after a warning, so the user can
    import the written module and see the error.
    """
    try:
        ast.parse(text)
    except SyntaxError as exc:
        if warn is not None:
            warn(f"warning: internal error: invalid Python generated: {exc}")
            warn("warning: import the generated module to analyze the error")
    return text
