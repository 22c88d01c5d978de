"""Database bootstrap utilities for ranked lists.

Convenience imports for engine and session construction. The DB layer is
intentionally minimal and does not leak ORM models into route handlers.
"""

from ranked_list.db.base import create_ranked_engine, get_engine, get_sessionmaker, session_dependency

__all__ = [
    "create_ranked_engine",
    "get_engine",
    "get_sessionmaker",
    "session_dependency",
]
