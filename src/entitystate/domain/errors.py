"""Error taxonomy for the state mutation and classification core."""

from __future__ import annotations


class EntityStateError(Exception):
    """Base class for every error raised by the core."""


class InvalidPathError(EntityStateError, ValueError):
    """Raised when a path expression is empty or malformed."""


class InvalidOperationError(EntityStateError, ValueError):
    """Raised when an operation has an unknown kind or misses required fields."""


class TypeMismatchError(EntityStateError, TypeError):
    """Raised when an operation meets a value of the wrong shape."""


class UnresolvableEntityError(EntityStateError, LookupError):
    """Raised when an entity id (or name) cannot be resolved in the registry."""


class MigrationError(EntityStateError):
    """Raised when a classification migration cannot be completed.

    The record handed to the migration is never modified when this is raised.
    """


class InvalidRegistryDocumentError(EntityStateError, ValueError):
    """Raised when a stored or imported registry document has the wrong structure."""
