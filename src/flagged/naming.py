"""naming.py - Naming conventions shared by the generator stages.

Covers the default generated type name, the default output file name,
flag-name derivation from field names (affix trimming and capitalisation)
and the snake-case spelling of the generated accessor methods.
"""

import keyword
import re
from collections.abc import Sequence

from flagged.errors import ResolutionError

OUT_TYPE_SUFFIX = "BitFlags"
FILE_SUFFIX = "_flagged.py"
TEST_FILE_SUFFIX = "_flagged_test.py"

# Placeholder in --outType meaning "use the default name".
DEFAULT_NAME_PLACEHOLDER = "_"

# Module-level names bound by every generated module.
RESERVED_NAMES = frozenset({"flagged", "Any", "ClassVar"})

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")


def is_identifier(name: str) -> bool:
    """Return True if *name* can name a Python type (identifier, not a keyword)."""
    return name.isidentifier() and not keyword.iskeyword(name)


def default_out_type_name(source_type_name: str) -> str:
    return source_type_name + OUT_TYPE_SUFFIX


def default_file_name(source_type_name: str, has_test_files: bool) -> str:
    """File name for generated code placed next to *source_type_name*.

    Variants that contain test modules get a test-flavoured name so the
    output stays with the tests it serves.
    """
    suffix = TEST_FILE_SUFFIX if has_test_files else FILE_SUFFIX
    return source_type_name.lower() + suffix


def flag_name(field_name: str, trim_prefix: str = "", trim_suffix: str = "") -> str:
    """Derive the flag name for *field_name*.

    Strips *trim_prefix* then *trim_suffix* (each at most once, literal
    match) and upper-cases the first character of what is left.
    """
    name = field_name
    if trim_prefix:
        name = name.removeprefix(trim_prefix)
    if trim_suffix:
        name = name.removesuffix(trim_suffix)
    if not name:
        raise ResolutionError(
            f"field {field_name} has an empty flag name after trimming "
            f"prefix {trim_prefix!r} and suffix {trim_suffix!r}"
        )
    return name[0].upper() + name[1:]


def accessor_stem(flag: str) -> str:
    """Snake-case stem used in accessor method names.

    ``Read`` -> ``read``, ``ReadOnly`` -> ``read_only``,
    ``HTTPEnabled`` -> ``http_enabled``, ``Read_only`` -> ``read_only``.
    """
    stem = _ACRONYM_BOUNDARY.sub(r"\1_\2", flag)
    stem = _WORD_BOUNDARY.sub(r"\1_\2", stem)
    return stem.lower()


def accessor_stems(flags: Sequence[str]) -> list[str]:
    """Accessor stems for *flags*, one per flag, in order.

    Distinct flags whose snake-case stems coincide (``ReadOnly`` and
    ``Read_only``) keep their flag spelling instead, so every flag stays
    reachable by name: ``is_ReadOnly()`` and ``is_Read_only()``.
    """
    stems = [accessor_stem(f) for f in flags]
    owners: dict[str, set[str]] = {}
    for flag, stem in zip(flags, stems):
        owners.setdefault(stem, set()).add(flag)
    return [
        flag if len(owners[stem]) > 1 else stem for flag, stem in zip(flags, stems)
    ]
