"""Functional tests for renumbering ("spreading") partitions."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from ranked_list.logic.service import RankedList
from ranked_list.models.placement import NewItemAt

from ranked_models import Card, Slot

T0 = datetime(2024, 1, 1, 12, 0, 0)


def test_spread_orders_ties_by_tiebreak_column(session: Session, cards: RankedList) -> None:
    with cards.with_skip_persistence():
        # inserted newest first so the id order disagrees with the tiebreak
        created = [
            cards.add(session, Card(title=f"t{n}", rank=Decimal(42), updated_at=T0 + timedelta(minutes=n)))
            for n in (4, 3, 2, 1)
        ]
    assignment = cards.spread_ranks(session)
    by_title = {c.title: c.rank for c in created}
    assert by_title == {"t1": 1024, "t2": 2048, "t3": 3072, "t4": 4096}
    assert [value for _, value in assignment] == [1024, 2048, 3072, 4096]


def test_spread_is_idempotent(session: Session, cards: RankedList) -> None:
    for rank in (5, 17, 300):
        cards.add(session, Card(rank=Decimal(rank)))
    first = cards.spread_ranks(session)
    second = cards.spread_ranks(session)
    assert first == second


def test_spread_never_touches_unranked_records(session: Session) -> None:
    ranking = RankedList(Card, new_item_at=NewItemAt.UNRANKED)
    ranked = ranking.add(session, Card(rank=Decimal(77)))
    loose = ranking.add(session, Card(title="loose"))
    before = loose.updated_at
    assignment = ranking.spread_ranks(session)
    assert [pk for pk, _ in assignment] == [ranked.id]
    assert loose.rank is None
    assert loose.updated_at == before
    assert ranked.rank == 1024


def test_spread_touches_datetime_tiebreak(session: Session, cards: RankedList) -> None:
    card = cards.add(session, Card(rank=Decimal(3), updated_at=T0))
    cards.spread_ranks(session)
    assert card.updated_at > T0


def test_spread_without_touch_keeps_tiebreak(session: Session) -> None:
    ranking = RankedList(Card, touch_on_update=False)
    card = ranking.add(session, Card(rank=Decimal(3)))
    card.updated_at = T0
    session.flush()
    ranking.spread_ranks(session)
    assert card.rank == 1024
    assert card.updated_at == T0


def test_spread_uses_configured_step_and_column_type(session: Session) -> None:
    slots = RankedList(Slot, column="position", step_increment=10)
    created = [slots.add(session, Slot(position=p)) for p in (3, 1, 2)]
    slots.spread_ranks(session)
    assert [s.position for s in created] == [30, 10, 20]
    assert all(isinstance(s.position, int) for s in created)


def test_spread_of_empty_partition_is_a_no_op(session: Session, cards: RankedList) -> None:
    assert cards.spread_ranks(session) == []
