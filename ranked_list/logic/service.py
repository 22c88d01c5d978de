"""Ranked list binding for SQLAlchemy mapped models.

``RankedList`` composes the pieces of the ordering algorithm around one mapped
class: partition resolution, rank allocation, collision detection and
spreading. It never modifies the model class itself; every operation takes the
``Session`` to work in and the instances to act on.

Direction follows list order: the *highest* item is the first one, which is
the record with the smallest rank value. Moving a record "up" therefore
lowers its rank.

Concurrent writers may read the same neighbours and allocate the same rank.
That duplicate is not prevented; it is detected and spread by the next write
that observes it, so rank uniqueness is eventual rather than immediate.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from fractions import Fraction
from typing import Any, Iterator, List, Mapping, Optional, Tuple, Union

from sqlalchemy import DateTime, Integer, Numeric
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from ranked_list.config import RankedListOptions
from ranked_list.errors import ConfigurationError, PartitionMismatchError
from ranked_list.logic import context
from ranked_list.logic.collisions import has_collision
from ranked_list.logic.partition import PartitionFilter, PartitionResolver, resolve_column
from ranked_list.logic.rank_math import (
    midpoint,
    pad_ranks,
    rank_above_boundary,
    rank_below_boundary,
    rank_between,
    to_column_value,
    to_fraction,
)
from ranked_list.logic.repository_ranks import ASC, DESC, RankColumns, RankRepository, RecordStore
from ranked_list.logic.spreader import spread_ranks
from ranked_list.models.placement import NewItemAt

logger = logging.getLogger(__name__)

TIMESTAMP_COLUMNS = ("updated_at", "updated_on")

ScopeSource = Union[None, Mapping[str, Any], Any]


class RankedList:
    """Rank operations for one mapped model.

    Configuration problems (missing or non-numeric rank column, composite
    primary key, unknown scope or tiebreak columns) raise
    ``ConfigurationError`` here, before any instance can be ranked.
    """

    def __init__(self, model: type, options: Optional[RankedListOptions] = None, **overrides: Any) -> None:
        if options is None:
            options = RankedListOptions(**overrides)
        elif overrides:
            options = RankedListOptions(**{**dict(options), **overrides})
        self.model = model
        self.options = options
        self.step = to_fraction(options.step_increment)
        self.columns = self._bind_columns(model, options)
        if isinstance(self.columns.rank.type, Integer) and self.step.denominator != 1:
            raise ConfigurationError(
                f"{model.__name__}.{self.columns.rank.name} is an integer column; "
                f"step_increment must be a whole number, got {options.step_increment}"
            )
        self.resolver = PartitionResolver(model, options.scopes)
        tiebreak = self.columns.tiebreak
        self._touch = bool(
            options.touch_on_update and tiebreak is not None and isinstance(tiebreak.type, DateTime)
        )
        logger.info(
            "ranked_list_bound model=%s column=%s step=%s new_item_at=%s scopes=%s",
            model.__name__,
            self.columns.rank.name,
            self.step,
            options.new_item_at,
            len(options.scopes),
        )

    @staticmethod
    def _bind_columns(model: type, options: RankedListOptions) -> RankColumns:
        mapper = sa_inspect(model, raiseerr=False)
        if mapper is None:
            raise ConfigurationError(f"{model!r} is not a mapped class")
        rank_key, rank = resolve_column(mapper, options.column)
        if not isinstance(rank.type, (Integer, Numeric)):
            raise ConfigurationError(
                f"{model.__name__}.{options.column} must be numeric, got {rank.type!r}"
            )
        if len(mapper.primary_key) != 1:
            raise ConfigurationError(f"{model.__name__} must have a single-column primary key")
        pk = mapper.primary_key[0]
        pk_key = mapper.get_property_by_column(pk).key
        tiebreak_key = tiebreak = None
        if options.tiebreak_column:
            tiebreak_key, tiebreak = resolve_column(mapper, options.tiebreak_column)
        else:
            for name in TIMESTAMP_COLUMNS:
                if name in mapper.columns or name in mapper.local_table.c:
                    tiebreak_key, tiebreak = resolve_column(mapper, name)
                    break
        return RankColumns(
            model=model,
            table=mapper.local_table,
            rank=rank,
            rank_key=rank_key,
            pk=pk,
            pk_key=pk_key,
            tiebreak=tiebreak,
            tiebreak_key=tiebreak_key,
        )

    def store(self, session: Session) -> RecordStore:
        return RankRepository(session, self.columns)

    # -- record state -----------------------------------------------------

    def current_rank(self, record: Any) -> Any:
        return getattr(record, self.columns.rank_key)

    def is_ranked(self, record: Any) -> bool:
        return self.current_rank(record) is not None

    def set_rank(self, record: Any, value: Any) -> None:
        if isinstance(value, Fraction):
            value = to_column_value(value, self.columns.rank.type)
        setattr(record, self.columns.rank_key, value)

    def rank_changed(self, record: Any) -> bool:
        """True when the rank attribute holds an unflushed change."""
        history = sa_inspect(record).attrs[self.columns.rank_key].history
        return history.has_changes()

    # -- collection queries -----------------------------------------------

    def partition(self, scope: ScopeSource = None) -> PartitionFilter:
        return self.resolver.resolve(scope)

    def highest_items(self, session: Session, limit: int = 0, scope: ScopeSource = None) -> List[Any]:
        """Ranked records from the top of the list (smallest rank first)."""
        return self.store(session).query_ordered(self.partition(scope), ASC, limit)

    def lowest_items(self, session: Session, limit: int = 0, scope: ScopeSource = None) -> List[Any]:
        """Ranked records from the bottom of the list (largest rank first)."""
        return self.store(session).query_ordered(self.partition(scope), DESC, limit)

    def higher_items(
        self,
        session: Session,
        record: Any,
        limit: int = 0,
        direction: str = DESC,
        rank: Any = None,
        include_self_rank: bool = False,
    ) -> List[Any]:
        """Records above ``record`` in its partition, nearest first by default."""
        current = self.current_rank(record)
        if current is None:
            return []
        bound = current if rank is None else rank
        column = self.columns.rank
        clause = column <= bound if include_self_rank else column < bound
        return self.store(session).query_ordered(self.partition(record).narrow(clause), direction, limit)

    def lower_items(
        self,
        session: Session,
        record: Any,
        limit: int = 0,
        direction: str = ASC,
        rank: Any = None,
        include_self_rank: bool = False,
    ) -> List[Any]:
        """Records below ``record`` in its partition, nearest first by default."""
        current = self.current_rank(record)
        if current is None:
            return []
        bound = current if rank is None else rank
        column = self.columns.rank
        clause = column >= bound if include_self_rank else column > bound
        return self.store(session).query_ordered(self.partition(record).narrow(clause), direction, limit)

    def is_highest_item(self, session: Session, record: Any) -> bool:
        return self._is_first(self.highest_items(session, 1, scope=record), record)

    def is_lowest_item(self, session: Session, record: Any) -> bool:
        return self._is_first(self.lowest_items(session, 1, scope=record), record)

    def _is_first(self, items: List[Any], record: Any) -> bool:
        if not items or not self.is_ranked(record):
            return False
        pk_key = self.columns.pk_key
        return getattr(items[0], pk_key) == getattr(record, pk_key)

    # -- allocation -------------------------------------------------------

    def _require_same_partition(self, record: Any, *references: Any) -> None:
        """Relative moves only make sense between records of one partition."""
        key = self.resolver.scope_key(record)
        for reference in references:
            other = self.resolver.scope_key(reference)
            if other != key:
                raise PartitionMismatchError(
                    f"{self.model.__name__} {getattr(record, self.columns.pk_key, None)} is in partition "
                    f"{key!r} but reference {getattr(reference, self.columns.pk_key, None)} is in {other!r}"
                )

    def _neighbour_ranks(
        self,
        session: Session,
        anchor: Any,
        bound: Any,
        upward: bool,
        limit: int,
        inclusive: bool = False,
        distinct: bool = False,
    ) -> List[Fraction]:
        column = self.columns.rank
        if upward:
            clause = column <= bound if inclusive else column < bound
            direction = DESC
        else:
            clause = column >= bound if inclusive else column > bound
            direction = ASC
        partition = self.partition(anchor).narrow(clause)
        return self.store(session).query_ranks(partition, direction, limit, distinct=distinct)

    def new_item_rank(self, session: Session, record: Any) -> Optional[Fraction]:
        """Rank for a new record under the configured placement policy."""
        policy = self.options.new_item_at
        if policy == NewItemAt.UNRANKED:
            return None
        partition = self.partition(record)
        store = self.store(session)
        if policy == NewItemAt.HIGHEST:
            ranks = store.query_ranks(partition, ASC, 1)
            return rank_above_boundary(ranks[0] if ranks else None, self.step)
        ranks = store.query_ranks(partition, DESC, 1)
        return rank_below_boundary(ranks[0] if ranks else None, self.step)

    def set_rank_above(self, session: Session, record: Any, reference: Any) -> Any:
        """Place ``record`` directly above ``reference``; no-op if it is unranked."""
        self._require_same_partition(record, reference)
        reference_rank = self.current_rank(reference)
        if reference_rank is None:
            logger.debug("set_rank_above skipped; reference unranked model=%s", self.model.__name__)
            return None
        ranks = self._neighbour_ranks(
            session, reference, reference_rank, upward=True, limit=2, inclusive=True, distinct=True
        )
        new_rank = midpoint(pad_ranks(ranks, self.step, value=Fraction(0)))
        return self._apply(session, record, new_rank)

    def set_rank_below(self, session: Session, record: Any, reference: Any) -> Any:
        """Place ``record`` directly below ``reference``; no-op if it is unranked."""
        self._require_same_partition(record, reference)
        reference_rank = self.current_rank(reference)
        if reference_rank is None:
            logger.debug("set_rank_below skipped; reference unranked model=%s", self.model.__name__)
            return None
        ranks = self._neighbour_ranks(
            session, reference, reference_rank, upward=False, limit=2, inclusive=True, distinct=True
        )
        new_rank = midpoint(pad_ranks(ranks, self.step))
        return self._apply(session, record, new_rank)

    def set_rank_between(self, session: Session, record: Any, upper: Any, lower: Any) -> Any:
        """Place ``record`` between ``upper`` and ``lower``.

        With only one of them ranked this behaves like placing it next to the
        ranked one; with neither ranked it is a no-op.
        """
        self._require_same_partition(record, upper, lower)
        upper_rank = to_fraction(self.current_rank(upper))
        lower_rank = to_fraction(self.current_rank(lower))
        if upper_rank is None and lower_rank is None:
            return None
        if upper_rank is None:
            return self.set_rank_above(session, record, lower)
        if lower_rank is None:
            return self.set_rank_below(session, record, upper)
        return self._apply(session, record, rank_between(upper_rank, lower_rank, self.step))

    def increase_rank(self, session: Session, record: Any, count: int = 1) -> Any:
        """Move ``record`` up past ``count`` records; no-op at the top or when unranked."""
        if count < 1:
            raise ValueError("count must be a positive integer")
        current = self.current_rank(record)
        if current is None:
            return None
        ranks = self._neighbour_ranks(session, record, current, upward=True, limit=count + 1)
        if not ranks:
            return None
        boundary = min(count, len(ranks)) - 1
        new_rank = midpoint(pad_ranks(ranks[boundary:boundary + 2], self.step, value=Fraction(0)))
        return self._apply(session, record, new_rank)

    def decrease_rank(self, session: Session, record: Any, count: int = 1) -> Any:
        """Move ``record`` down past ``count`` records; no-op at the bottom or when unranked."""
        if count < 1:
            raise ValueError("count must be a positive integer")
        current = self.current_rank(record)
        if current is None:
            return None
        ranks = self._neighbour_ranks(session, record, current, upward=False, limit=count + 1)
        if not ranks:
            return None
        boundary = min(count, len(ranks)) - 1
        new_rank = midpoint(pad_ranks(ranks[boundary:boundary + 2], self.step))
        return self._apply(session, record, new_rank)

    def swap_rank_with(self, session: Session, record: Any, other: Any) -> None:
        self._require_same_partition(record, other)
        record_rank = self.current_rank(record)
        self.set_rank(record, self.current_rank(other))
        self.set_rank(other, record_rank)
        self._persist(session, [record, other])

    # -- lifecycle --------------------------------------------------------

    def add(self, session: Session, record: Any) -> Any:
        """Create lifecycle: place, persist and de-duplicate a new record.

        Under skip persistence the record is only added to the session.
        """
        if context.is_persistence_skipped(self.model):
            session.add(record)
            return record
        store = self.store(session)
        requested = self.current_rank(record)
        store.save(record)
        if requested is None:
            new_rank = self.new_item_rank(session, record)
            if new_rank is None:
                return record
            self.set_rank(record, new_rank)
            store.save(record)
        self._resolve_collision(session, store, record)
        return record

    def save(self, session: Session, record: Any) -> Any:
        """Update lifecycle: persist a record and de-duplicate a changed rank."""
        self._persist(session, [record])
        return record

    def _apply(self, session: Session, record: Any, new_rank: Fraction) -> Any:
        self.set_rank(record, new_rank)
        logger.debug(
            "rank_allocated model=%s id=%s rank=%s",
            self.model.__name__,
            getattr(record, self.columns.pk_key, None),
            self.current_rank(record),
        )
        self._persist(session, [record])
        return self.current_rank(record)

    def _persist(self, session: Session, records: List[Any]) -> None:
        if context.is_persistence_skipped(self.model):
            return
        changed = [record for record in records if self.rank_changed(record)]
        store = self.store(session)
        for record in records:
            store.save(record)
        for record in changed:
            self._resolve_collision(session, store, record)

    def _resolve_collision(self, session: Session, store: RecordStore, record: Any) -> bool:
        if not context.collisions_avoided(self.model, self.options.avoid_collisions):
            return False
        if not self.is_ranked(record):
            return False
        partition = self.partition(record)
        if not has_collision(store, self.columns, partition, record):
            return False
        with context.skip_persistence(self.model):
            spread_ranks(store, self.columns, partition, self.step, self.columns.rank.type, touch=self._touch)
        return True

    # -- collection operations --------------------------------------------

    def has_collision(self, session: Session, record: Any) -> bool:
        return has_collision(self.store(session), self.columns, self.partition(record), record)

    def spread_ranks(self, session: Session, scope: ScopeSource = None) -> List[Tuple[Any, Any]]:
        """Renumber one partition, or every partition of the collection for ``None``."""
        store = self.store(session)
        with context.skip_persistence(self.model):
            return spread_ranks(
                store, self.columns, self.partition(scope), self.step, self.columns.rank.type, touch=self._touch
            )

    @contextmanager
    def with_skip_persistence(self, *models: type) -> Iterator[None]:
        with context.skip_persistence(self.model, *models):
            yield

    @contextmanager
    def with_avoid_collisions(self, enabled: bool = True) -> Iterator[None]:
        with context.avoid_collisions(self.model, enabled):
            yield

    def collisions_avoided(self) -> bool:
        return context.collisions_avoided(self.model, self.options.avoid_collisions)

    def persistence_skipped(self) -> bool:
        return context.is_persistence_skipped(self.model)


__all__ = ["RankedList", "TIMESTAMP_COLUMNS"]
