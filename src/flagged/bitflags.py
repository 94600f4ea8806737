"""bitflags.py - Fixed-width bit flags runtime.

Provides :class:`BitFlags8`, :class:`BitFlags16`, :class:`BitFlags32` and
:class:`BitFlags64`, compact containers that expose one boolean per bit
position.  Classes emitted by ``genflagged`` wrap one of these and add
named accessors on top of the index-based operations defined here.

Every index-taking operation validates its index against the container width
and raises :class:`IndexError` when it is out of ``[0, size() - 1]``.

Usage::

    from flagged import BitFlags8

    flags = BitFlags8()
    flags.set(0)
    flags.toggle(2)
    str(flags)             # "00000101"
    flags.pretty_string()  # "O|O|O|O|O|I|O|I"
"""

from __future__ import annotations

from typing import ClassVar

# Bit index passed to the BitFlags operations; valid range is [0, size() - 1].
BitIndex = int

# Indexes with at least this magnitude are left out of error messages.
_MAX_REPORTED_INDEX = 100


class BitFlags:
    """Base class for the fixed-width bit flags types.

    Not instantiable on its own; use one of the sized subclasses.  Generic
    flag-aware code can accept a ``BitFlags`` regardless of the width.
    """

    __slots__ = ("value",)

    SIZE: ClassVar[int] = 0

    def __init__(self, value: int = 0) -> None:
        if not self.SIZE:
            raise TypeError(
                f"{type(self).__name__} has no width; use BitFlags8, BitFlags16, "
                "BitFlags32 or BitFlags64"
            )
        value = int(value)
        if value < 0 or value > self._mask():
            raise ValueError(f"value {value} does not fit in {self.SIZE} bits")
        self.value = value

    @classmethod
    def _mask(cls) -> int:
        return (1 << cls.SIZE) - 1

    def _check(self, idx: BitIndex) -> None:
        if idx < 0 or idx >= self.SIZE:
            shown = f"{idx} " if -_MAX_REPORTED_INDEX < idx < _MAX_REPORTED_INDEX else ""
            raise IndexError(f"index {shown}out of range [0..{self.SIZE - 1}]")

    # ------------------------------------------------------------------
    # Single bit operations
    # ------------------------------------------------------------------

    def is_set(self, idx: BitIndex) -> bool:
        """Report whether the bit at *idx* is set."""
        self._check(idx)
        return bool(self.value & (1 << idx))

    def set(self, idx: BitIndex) -> bool:
        """Set the bit at *idx*, returning its old value."""
        return self.set_to(idx, True)

    def reset(self, idx: BitIndex) -> bool:
        """Clear the bit at *idx*, returning its old value."""
        return self.set_to(idx, False)

    def set_to(self, idx: BitIndex, new: bool) -> bool:
        """Set the bit at *idx* to *new*, returning its old value."""
        self._check(idx)
        bit = 1 << idx
        old = bool(self.value & bit)
        if new:
            self.value |= bit
        else:
            self.value &= ~bit
        return old

    def toggle(self, idx: BitIndex) -> bool:
        """Flip the bit at *idx*, returning its new value."""
        self._check(idx)
        bit = 1 << idx
        self.value ^= bit
        return bool(self.value & bit)

    # ------------------------------------------------------------------
    # Whole value operations
    # ------------------------------------------------------------------

    def set_all(self) -> None:
        self.value = self._mask()

    def reset_all(self) -> None:
        self.value = 0

    def any_set(self) -> bool:
        return self.value != 0

    def all_set(self) -> bool:
        return self.value == self._mask()

    def any_of(self, *idx: BitIndex) -> bool:
        """Report whether any of the bits at *idx* are set.

        With no indexes this is :meth:`any_set`.  All indexes are validated,
        even after a set bit has been seen.
        """
        if not idx:
            return self.any_set()
        found = False
        for bi in idx:
            self._check(bi)
            if self.value & (1 << bi):
                found = True
        return found

    def all_of(self, *idx: BitIndex) -> bool:
        """Report whether all of the bits at *idx* are set.

        With no indexes this is :meth:`all_set`.
        """
        if not idx:
            return self.all_set()
        found_unset = False
        for bi in idx:
            self._check(bi)
            if not self.value & (1 << bi):
                found_unset = True
        return not found_unset

    def size(self) -> int:
        """Number of bits held by this value: 8, 16, 32 or 64."""
        return self.SIZE

    # ------------------------------------------------------------------
    # Representations
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return format(self.value, f"0{self.SIZE}b")

    def pretty_string(self) -> str:
        """Binary form with ``I``/``O`` per bit, ``|`` between bits and ``_`` every 8 bits.

        ``"0000010001000100"`` becomes ``"O|O|O|O|O|I|O|O_O|I|O|O|O|I|O|O"``.
        """
        bits = str(self).replace("1", "I").replace("0", "O")
        groups = ["|".join(bits[i : i + 8]) for i in range(0, self.SIZE, 8)]
        return "_".join(groups)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(0b{self})"

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BitFlags):
            return self.SIZE == other.SIZE and self.value == other.value
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]


class BitFlags8(BitFlags):
    """Bit flags backed by an 8-bit value."""

    __slots__ = ()
    SIZE = 8


class BitFlags16(BitFlags):
    """Bit flags backed by a 16-bit value."""

    __slots__ = ()
    SIZE = 16


class BitFlags32(BitFlags):
    """Bit flags backed by a 32-bit value."""

    __slots__ = ()
    SIZE = 32


class BitFlags64(BitFlags):
    """Bit flags backed by a 64-bit value."""

    __slots__ = ()
    SIZE = 64


BITFLAGS_BY_WIDTH: dict[int, type[BitFlags]] = {
    8: BitFlags8,
    16: BitFlags16,
    32: BitFlags32,
    64: BitFlags64,
}


def for_width(width: int) -> type[BitFlags]:
    """Return the BitFlags class for *width* bits."""
    try:
        return BITFLAGS_BY_WIDTH[width]
    except KeyError:
        raise ValueError(f"unsupported width {width}; supported are 8, 16, 32, 64") from None
