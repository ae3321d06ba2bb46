"""
errors.py
~~~~~~~~~

Exception types shared by the network core and its collaborators.
"""

from typing import Optional


class DigitNetError(Exception):
    """Base class for all digitnet errors."""


class ShapeMismatch(DigitNetError, ValueError):
    """
    A vector length disagrees with the width it is applied to.

    Raised by the propagation engine before any weight is modified, so a
    rejected sample leaves the topology untouched.
    """

    def __init__(
        self,
        what: str,
        expected: int,
        actual: int,
        unit: str = 'values'
    ):
        self.what = what
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{what}: expected {expected} {unit}, got {actual}"
        )


class ConfigInvalid(DigitNetError, ValueError):
    """Malformed or out-of-range network configuration."""

    def __init__(
        self,
        message: str,
        line: Optional[str] = None,
        line_number: Optional[int] = None
    ):
        self.line = line
        self.line_number = line_number
        if line_number is not None:
            message = f"{message} [line {line_number}: {line!r}]"
        super().__init__(message)


class SampleUnavailable(DigitNetError):
    """A sample could not be built from its source data."""
