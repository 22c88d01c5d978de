"""Partition renumbering ("spreading").

Every ranked record of a partition is ordered by group columns, rank,
tiebreak and id, and given ``position * step`` with positions starting at 1
in each partition. Unranked records are never read or written. The new ranks
are applied by the record store in a single savepoint, so readers never see a
half-renumbered partition.
"""

from __future__ import annotations

from datetime import datetime, timezone
from fractions import Fraction
from itertools import groupby
from typing import Any, List, Tuple
import logging

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.types import TypeEngine

from ranked_list.logic.partition import PartitionFilter
from ranked_list.logic.rank_math import spread_positions, to_column_value
from ranked_list.logic.repository_ranks import ASC, RankColumns, RecordStore

logger = logging.getLogger(__name__)


def ordered_assignment(
    records: List[Any],
    columns: RankColumns,
    partition: PartitionFilter,
    step: Fraction,
    column_type: TypeEngine,
) -> List[Tuple[Any, Any]]:
    """Return ``(id, new_rank)`` pairs for records already in spread order."""
    mapper = sa_inspect(columns.model)
    group_keys = [mapper.get_property_by_column(c).key for c in partition.group_columns]

    def _group(record: Any) -> Tuple[Any, ...]:
        return tuple(getattr(record, key) for key in group_keys)

    assignment: List[Tuple[Any, Any]] = []
    for _, members in groupby(records, key=_group):
        members = list(members)
        for record, rank in zip(members, spread_positions(len(members), step)):
            assignment.append((getattr(record, columns.pk_key), to_column_value(rank, column_type)))
    return assignment


def spread_ranks(
    store: RecordStore,
    columns: RankColumns,
    partition: PartitionFilter,
    step: Fraction,
    column_type: TypeEngine,
    touch: bool = False,
) -> List[Tuple[Any, Any]]:
    """Renumber ``partition`` and return the applied assignment."""
    records = store.query_ordered(partition, ASC)
    assignment = ordered_assignment(records, columns, partition, step, column_type)
    touched_at = datetime.now(timezone.utc) if touch and columns.tiebreak is not None else None
    store.bulk_renumber(partition, assignment, touch=touched_at)
    logger.info(
        "spread_ranks table=%s scope=%s rows=%s step=%s touch=%s",
        columns.table.name,
        partition.key,
        len(assignment),
        step,
        touched_at is not None,
    )
    return assignment


__all__ = ["ordered_assignment", "spread_ranks"]
