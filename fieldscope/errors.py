"""Exception hierarchy shared across fieldscope modules."""
from __future__ import annotations

__all__ = [
    "FieldScopeError",
    "PersistenceError",
    "UnknownFieldTypeError",
]


class FieldScopeError(Exception):
    """Base class for errors raised by fieldscope."""


class PersistenceError(FieldScopeError):
    """Raised when the learning state cannot be read from or written to its store."""


class UnknownFieldTypeError(FieldScopeError, ValueError):
    """Raised when a field type name cannot be mapped onto :class:`FieldType`."""
