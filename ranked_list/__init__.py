"""Sparse-rank ordering for SQLAlchemy mapped models.

Bind a model with ``RankedList(Model, RankedListOptions(...))`` and use the
returned object to place, move and renumber records. The reference FastAPI
service is available from ``ranked_list.main.create_app``.
"""

from __future__ import annotations

from ranked_list.config import RankedListOptions, load_options
from ranked_list.errors import ConfigurationError, PartitionMismatchError, PersistenceError, RankedListError
from ranked_list.logic.context import avoid_collisions, skip_persistence
from ranked_list.logic.partition import PartitionFilter, PartitionResolver
from ranked_list.logic.service import RankedList
from ranked_list.models.placement import NewItemAt
from ranked_list.models.scopes import Equality, NamedGroup, Predicate, Relationship

__all__ = [
    "RankedList",
    "RankedListOptions",
    "load_options",
    "NewItemAt",
    "Equality",
    "NamedGroup",
    "Relationship",
    "Predicate",
    "PartitionFilter",
    "PartitionResolver",
    "skip_persistence",
    "avoid_collisions",
    "RankedListError",
    "ConfigurationError",
    "PersistenceError",
    "PartitionMismatchError",
]
