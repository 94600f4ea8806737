"""sizing.py - Pick the integer width backing a generated flags type."""

from flagged.errors import SizingError

SUPPORTED_WIDTHS: tuple[int, ...] = (8, 16, 32, 64)
MAX_FLAGS = SUPPORTED_WIDTHS[-1]


def minimal_width(field_count: int) -> int:
    """Return the smallest supported width holding *field_count* flags."""
    if field_count > MAX_FLAGS:
        raise SizingError(
            f"{field_count} bool fields is more than supported; maximum supported is {MAX_FLAGS}"
        )
    if field_count < 1:
        raise SizingError(f"cannot size flags for {field_count} fields")
    for width in SUPPORTED_WIDTHS:
        if field_count <= width:
            return width
    raise AssertionError("unreachable")


def reconcile(type_name: str, minimal: int, override: int = 0) -> int:
    """Apply a caller-requested width, refusing one narrower than *minimal*.

    An *override* of 0 means "not requested" and keeps *minimal*.
    """
    if not override:
        return minimal
    if override not in SUPPORTED_WIDTHS:
        raise SizingError(
            f"invalid size {override} for type {type_name}; supported values are "
            + ",".join(str(w) for w in SUPPORTED_WIDTHS)
        )
    if override < minimal:
        raise SizingError(
            f"type {type_name} flags size is too small; "
            f"required at least {minimal}, requested {override}"
        )
    return override
