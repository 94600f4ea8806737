"""errors.py - Fatal conditions raised by the generator.

Every error here aborts the whole ``genflagged`` run.  Core modules raise
them; the command layer turns them into a single ``error:`` line and a
non-zero exit status.
"""


class GenerateError(Exception):
    """Base class for all fatal generator conditions."""


class InputError(GenerateError):
    """Malformed command-line or config input, detected before loading sources."""


class ResolutionError(GenerateError):
    """A requested type is missing, unsupported, or has too many flags."""


class SizingError(GenerateError):
    """A field count or requested width cannot be represented."""


class OutputConflictError(GenerateError):
    """Generated code cannot be written where it was asked to go."""
