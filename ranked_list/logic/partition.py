"""Partition key resolution.

Translates a partition definition plus a record (or explicit scope values)
into a ``PartitionFilter``: the WHERE clauses every neighbour search, count
and spread must carry, and the group columns that order a collection-wide
query ahead of rank.

Static parts (``Equality`` clauses and the ``Predicate`` callables) are built
once per configuration. Dynamic parts (``NamedGroup`` and ``Relationship``
values) are read from the record on every resolve.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Mapping, Optional, Tuple

from sqlalchemy import Column
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapper
from sqlalchemy.sql.elements import ColumnElement

from ranked_list.errors import ConfigurationError
from ranked_list.models.scopes import Equality, NamedGroup, Predicate, Relationship

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class PartitionFilter:
    """Filter selecting one partition (or a whole collection) of a model.

    ``group_columns`` lists the dynamic scope columns that were not pinned to
    a value; records sharing their values form one partition. A filter built
    from a record pins every dynamic column, so its ``group_columns`` is empty.
    """

    clauses: Tuple[ColumnElement[bool], ...]
    group_columns: Tuple[Column, ...]
    scope_values: Tuple[Tuple[str, Any], ...]

    def narrow(self, *clauses: ColumnElement[bool]) -> "PartitionFilter":
        return replace(self, clauses=self.clauses + tuple(clauses))

    @property
    def key(self) -> Tuple[Tuple[str, Any], ...]:
        return self.scope_values

    @property
    def is_single_partition(self) -> bool:
        return not self.group_columns


def resolve_column(mapper: Mapper, name: str) -> Tuple[str, Column]:
    """Return ``(attribute_key, column)`` for an attribute or column name."""
    if name in mapper.columns:
        return name, mapper.columns[name]
    table = mapper.local_table
    if name in table.c:
        column = table.c[name]
        return mapper.get_property_by_column(column).key, column
    raise ConfigurationError(f"{mapper.class_.__name__} has no column {name!r}")


def _resolve_relationship(mapper: Mapper, name: str) -> Tuple[str, Column]:
    if name in mapper.relationships:
        local = list(mapper.relationships[name].local_columns)
        if len(local) != 1:
            raise ConfigurationError(
                f"{mapper.class_.__name__}.{name} must join on exactly one column to scope a ranked list"
            )
        column = local[0]
        return mapper.get_property_by_column(column).key, column
    try:
        return resolve_column(mapper, name)
    except ConfigurationError:
        if name.endswith("_id"):
            raise
    return resolve_column(mapper, f"{name}_id")


class PartitionResolver:
    """Resolve partition filters for one mapped model and scope definition."""

    def __init__(self, model: type, scopes: Tuple[Any, ...] = ()) -> None:
        self.model = model
        self.mapper: Mapper = sa_inspect(model)
        static: List[ColumnElement[bool]] = []
        predicates: List[Callable[[Any], ColumnElement[bool]]] = []
        dynamic: List[Tuple[str, Column]] = []
        for scope in scopes:
            if isinstance(scope, Equality):
                _, column = resolve_column(self.mapper, scope.column)
                static.append(column.is_(None) if scope.value is None else column == scope.value)
            elif isinstance(scope, Predicate):
                predicates.append(scope.fn)
            elif isinstance(scope, NamedGroup):
                dynamic.append(resolve_column(self.mapper, scope.column))
            elif isinstance(scope, Relationship):
                dynamic.append(_resolve_relationship(self.mapper, scope.column))
            else:
                raise ConfigurationError(f"Unsupported scope specifier: {scope!r}")
        self._static_clauses = tuple(static)
        self._predicates = tuple(predicates)
        self._dynamic = tuple(dynamic)

    @property
    def dynamic_columns(self) -> Tuple[Column, ...]:
        return tuple(column for _, column in self._dynamic)

    def resolve(self, source: Optional[Any] = None) -> PartitionFilter:
        """Build the filter for a record, a mapping of scope values, or ``None``.

        ``None`` selects the whole collection. A mapping may pin only some of
        the dynamic columns, keyed by attribute key or column name.
        """
        clauses: List[ColumnElement[bool]] = list(self._static_clauses)
        clauses.extend(fn(self.model) for fn in self._predicates)
        groups: List[Column] = []
        values: List[Tuple[str, Any]] = []
        for attr_key, column in self._dynamic:
            value = self._scope_value(source, attr_key, column)
            if value is _MISSING:
                groups.append(column)
                continue
            clauses.append(column.is_(None) if value is None else column == value)
            values.append((column.name, value))
        logger.debug(
            "partition_resolved model=%s scope=%s groups=%s",
            self.model.__name__,
            values,
            [c.name for c in groups],
        )
        return PartitionFilter(tuple(clauses), tuple(groups), tuple(values))

    def scope_key(self, record: Any) -> Tuple[Any, ...]:
        """Values of the dynamic scope columns for ``record``, in declaration order."""
        return tuple(getattr(record, attr_key) for attr_key, _ in self._dynamic)

    @staticmethod
    def _scope_value(source: Optional[Any], attr_key: str, column: Column) -> Any:
        if source is None:
            return _MISSING
        if isinstance(source, Mapping):
            if attr_key in source:
                return source[attr_key]
            return source.get(column.name, _MISSING)
        return getattr(source, attr_key)


__all__ = ["PartitionFilter", "PartitionResolver", "resolve_column"]
