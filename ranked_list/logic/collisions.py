"""Rank collision detection.

A collision means another record of the same partition already holds exactly
the rank just written. It signals that the gaps around that rank are used
up, so the whole partition is renumbered rather than the two records alone.
"""

from __future__ import annotations

from typing import Any
import logging

from ranked_list.logic.partition import PartitionFilter
from ranked_list.logic.repository_ranks import RankColumns, RecordStore

logger = logging.getLogger(__name__)


def has_collision(store: RecordStore, columns: RankColumns, partition: PartitionFilter, record: Any) -> bool:
    rank = getattr(record, columns.rank_key)
    if rank is None:
        return False
    others = store.count_with_rank(partition, rank, exclude_id=getattr(record, columns.pk_key))
    logger.debug(
        "collision_check table=%s id=%s rank=%s others=%s",
        columns.table.name,
        getattr(record, columns.pk_key),
        rank,
        others,
    )
    return others > 0


__all__ = ["has_collision"]
