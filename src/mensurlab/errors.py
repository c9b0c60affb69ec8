"""
Exception family for mensurlab.

Every failure while reading, resolving or simulating a bore is raised as one of
these types. File access problems are left to the builtin OSError family.
"""


class MensurError(Exception):
    """Base class of all mensurlab errors."""


class MensurSyntaxError(MensurError):
    """A line of a bore file has a shape that cannot be recognised."""

    def __init__(self, message, line_number=None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class ExpressionError(MensurError):
    """A formula is malformed, names an unknown identifier or redefines a variable."""


class StructureError(MensurError):
    """The block/branch topology of a bore is invalid or a degenerate segment was found."""


class MensurValueError(MensurError, ValueError):
    """A physical quantity is out of range (negative radius, non-positive frequency, ...)."""


class SweepCancelled(MensurError):
    """A frequency sweep was cancelled before all points were evaluated."""
