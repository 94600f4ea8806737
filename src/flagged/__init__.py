"""flagged: compact typed bit flags.

Fixed-width bit flags containers (``BitFlags8/16/32/64``) and ``genflagged``,
a generator that turns the bool fields of a class into a compact flags class
with one named accessor set per field.
"""

from flagged.bitflags import (
    BitFlags,
    BitFlags8,
    BitFlags16,
    BitFlags32,
    BitFlags64,
    BitIndex,
)

__version__ = "0.1.0"

__all__ = [
    "BitFlags",
    "BitFlags8",
    "BitFlags16",
    "BitFlags32",
    "BitFlags64",
    "BitIndex",
    "__version__",
]
