"""Rank data access helpers.

Encapsulates every query the ranking logic issues against the record store so
allocation, collision and spreading code stays free of SQL details. All reads
exclude unranked (NULL) records and are filtered through a ``PartitionFilter``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from fractions import Fraction
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple
import logging

from sqlalchemy import Column, Table, bindparam, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ranked_list.errors import PersistenceError
from ranked_list.logic.partition import PartitionFilter
from ranked_list.logic.rank_math import to_fraction

logger = logging.getLogger(__name__)

ASC = "ASC"
DESC = "DESC"


@dataclass(frozen=True)
class RankColumns:
    """Columns of a mapped model that take part in ranking."""

    model: type
    table: Table
    rank: Column
    rank_key: str
    pk: Column
    pk_key: str
    tiebreak: Optional[Column] = None
    tiebreak_key: Optional[str] = None


class RecordStore(Protocol):
    def query_ordered(self, partition: PartitionFilter, direction: str = ASC, limit: int = 0) -> List[Any]: ...

    def query_ranks(
        self, partition: PartitionFilter, direction: str = ASC, limit: int = 0, distinct: bool = False
    ) -> List[Fraction]: ...

    def count_with_rank(self, partition: PartitionFilter, rank: Any, exclude_id: Any = None) -> int: ...

    def bulk_renumber(
        self,
        partition: PartitionFilter,
        assignment: Sequence[Tuple[Any, Any]],
        touch: Optional[datetime] = None,
    ) -> int: ...

    def save(self, record: Any) -> None: ...


class RankRepository:
    """SQLAlchemy-backed record store for one ranked model, bound to a session."""

    def __init__(self, session: Session, columns: RankColumns) -> None:
        self.session = session
        self.columns = columns

    def _ordering(self, partition: PartitionFilter, direction: str) -> list:
        cols = self.columns
        keys: List[Column] = list(partition.group_columns) + [cols.rank]
        if cols.tiebreak is not None:
            keys.append(cols.tiebreak)
        keys.append(cols.pk)
        if direction == DESC:
            return [c.desc() for c in keys]
        return [c.asc() for c in keys]

    def query_ordered(self, partition: PartitionFilter, direction: str = ASC, limit: int = 0) -> List[Any]:
        """Ranked records of a partition ordered by rank, tiebreak, then id."""
        cols = self.columns
        stmt = (
            select(cols.model)
            .where(cols.rank.is_not(None), *partition.clauses)
            .order_by(*self._ordering(partition, direction))
        )
        if limit:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt))

    def query_ranks(
        self, partition: PartitionFilter, direction: str = ASC, limit: int = 0, distinct: bool = False
    ) -> List[Fraction]:
        """Rank values of a partition, nearest first for the given direction."""
        rank = self.columns.rank
        stmt = select(rank).where(rank.is_not(None), *partition.clauses)
        if distinct:
            stmt = stmt.distinct()
        stmt = stmt.order_by(rank.desc() if direction == DESC else rank.asc())
        if limit:
            stmt = stmt.limit(limit)
        return [to_fraction(value) for value in self.session.scalars(stmt)]

    def count_with_rank(self, partition: PartitionFilter, rank: Any, exclude_id: Any = None) -> int:
        cols = self.columns
        stmt = select(func.count()).select_from(cols.table).where(cols.rank == rank, *partition.clauses)
        if exclude_id is not None:
            stmt = stmt.where(cols.pk != exclude_id)
        return int(self.session.scalar(stmt) or 0)

    def bulk_renumber(
        self,
        partition: PartitionFilter,
        assignment: Sequence[Tuple[Any, Any]],
        touch: Optional[datetime] = None,
    ) -> int:
        """Apply ``(id, rank)`` pairs in one statement inside a savepoint.

        ``touch`` sets the tiebreak column on every renumbered row.
        """
        if not assignment:
            return 0
        cols = self.columns
        values: Dict[Column, Any] = {cols.rank: bindparam("ranked_value")}
        if touch is not None and cols.tiebreak is not None:
            values[cols.tiebreak] = touch
        stmt = (
            update(cols.table)
            .where(cols.pk == bindparam("ranked_pk"), *partition.clauses)
            .values(values)
        )
        params = [{"ranked_pk": pk, "ranked_value": value} for pk, value in assignment]
        try:
            with self.session.begin_nested():
                self.session.execute(stmt, params)
        except SQLAlchemyError as exc:
            logger.error(
                "bulk_renumber failed table=%s scope=%s rows=%s",
                cols.table.name,
                partition.key,
                len(params),
                exc_info=True,
            )
            raise PersistenceError(f"Renumbering {cols.table.name} failed") from exc
        self._expire_ranks(touched=touch is not None)
        return len(params)

    def save(self, record: Any) -> None:
        """Flush ``record`` inside a savepoint; failures roll back and raise."""
        try:
            with self.session.begin_nested():
                self.session.add(record)
                self.session.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "rank save failed table=%s id=%s",
                self.columns.table.name,
                getattr(record, self.columns.pk_key, None),
                exc_info=True,
            )
            raise PersistenceError(f"Saving {type(record).__name__} failed") from exc

    def _expire_ranks(self, touched: bool) -> None:
        cols = self.columns
        attrs = [cols.rank_key]
        if touched and cols.tiebreak_key is not None:
            attrs.append(cols.tiebreak_key)
        for obj in list(self.session.identity_map.values()):
            if isinstance(obj, cols.model):
                self.session.expire(obj, attrs)


__all__ = ["ASC", "DESC", "RankColumns", "RecordStore", "RankRepository"]
