"""
Error kinds raised by the contextualization core.

Every error is raised at the point of detection and propagates unmodified
to the host; none is retried internally. Missing numeric values are not
errors: they are represented by ``UNDEFINED`` and flow through arithmetic.
"""

from __future__ import annotations

from typing import Optional


class ContextualizationError(Exception):
    """Base class for all errors raised by the core."""


class TypeMismatchError(ContextualizationError):
    """A declared input or output is not of the accepted numeric kind."""

    def __init__(self, variable: str, message: Optional[str] = None):
        self.variable = variable
        super().__init__(message or f"variable {variable!r} is not numeric")


class ConfigurationError(ContextualizationError):
    """A supplied parameter cannot be coerced to its expected type."""

    def __init__(self, parameter: str, message: Optional[str] = None):
        self.parameter = parameter
        super().__init__(message or f"invalid value for parameter {parameter!r}")


class StaleReadError(ContextualizationError):
    """A value was requested for a time that is not (or no longer) recorded."""


class OutOfRangeError(ContextualizationError, IndexError):
    """An offset, coordinate or transition index lies outside its extent."""


class LifecycleError(ContextualizationError):
    """A lifecycle call was made in a phase that does not accept it."""


class ReplayMismatchError(ContextualizationError):
    """A replayed draw does not match the draw it is standing in for."""
