"""Shared file helpers for flagged."""

import contextlib
import os
import re
from pathlib import Path

# Standard marker for machine-written sources, e.g.
#   # Code generated by "genflagged --type=Permissions"; DO NOT EDIT.
GENERATED_RE = re.compile(r"^# Code generated .* DO NOT EDIT\.$")


def is_generated(text: str) -> bool:
    """Return True if *text* carries the generated-code marker in its leading comments."""
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if not stripped.startswith("#"):
            return False
        if GENERATED_RE.match(stripped):
            return True
    return False


def atomic_write_text(filepath: Path, text: str, encoding: str = "utf-8") -> None:
    """Write *text* next to *filepath* first, then move it into place."""
    tmp_path = filepath.with_suffix(filepath.suffix + ".tmp")
    try:
        tmp_path.write_text(text, encoding=encoding)
        os.replace(tmp_path, filepath)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise
