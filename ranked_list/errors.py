"""Exception hierarchy for ranked lists.

Every error raised by the library derives from ``RankedListError`` so callers
can catch the whole family in one place.
"""

from __future__ import annotations


class RankedListError(Exception):
    """Base class for all ranked list errors."""


class ConfigurationError(RankedListError):
    """Raised at setup time when a ranked list cannot be bound to a model."""


class PersistenceError(RankedListError):
    """Raised when saving a rank or renumbering a partition fails.

    The failing write is rolled back to its savepoint before this is raised,
    so a rank mutation is either fully applied or not at all.
    """


class PartitionMismatchError(RankedListError, ValueError):
    """Raised when a record is moved relative to a record of another partition."""


__all__ = ["RankedListError", "ConfigurationError", "PersistenceError", "PartitionMismatchError"]
