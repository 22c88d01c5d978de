"""Scope specifiers making up a partition definition.

A partition definition is an ordered tuple of these specifiers. Each kind is
resolved once when a ranked list is configured:

- ``Equality`` is a fixed filter and never depends on a record.
- ``NamedGroup`` groups records by their own value of a column and adds the
  column to the collection-wide sort key ahead of rank.
- ``Relationship`` groups records by a foreign key; ``None`` means ungrouped.
- ``Predicate`` wraps a callable returning a SQLAlchemy boolean clause for the
  mapped class; it is invoked on every resolve.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Union

from sqlalchemy.sql.elements import ColumnElement


@dataclass(frozen=True)
class Equality:
    column: str
    value: Any


@dataclass(frozen=True)
class NamedGroup:
    column: str


@dataclass(frozen=True)
class Relationship:
    column: str


@dataclass(frozen=True)
class Predicate:
    fn: Callable[[Any], ColumnElement[bool]]


Scope = Union[Equality, NamedGroup, Relationship, Predicate]


__all__ = ["Equality", "NamedGroup", "Relationship", "Predicate", "Scope"]
