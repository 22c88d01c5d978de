"""Functional tests for collision detection, spreading triggers and save failures."""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ranked_list.errors import PersistenceError
from ranked_list.logic.service import RankedList

from ranked_models import Card, UniqueCard


def _rank_counts(session: Session) -> list:
    stmt = select(Card.rank, func.count()).where(Card.rank.is_not(None)).group_by(Card.rank)
    return [count for _, count in session.execute(stmt)]


def test_equal_explicit_ranks_are_spread_apart(session: Session, cards: RankedList) -> None:
    for _ in range(6):
        cards.add(session, Card(rank=Decimal("100.0")))
    counts = _rank_counts(session)
    assert len(counts) == 6
    assert set(counts) == {1}


def test_collisions_persist_when_avoidance_is_disabled(session: Session, cards: RankedList) -> None:
    with cards.with_avoid_collisions(False):
        assert not cards.collisions_avoided()
        for _ in range(6):
            cards.add(session, Card(rank=Decimal("100.0")))
    assert _rank_counts(session) == [6]
    assert cards.collisions_avoided()


def test_configured_off_can_be_forced_on_for_a_block(session: Session) -> None:
    ranking = RankedList(Card, avoid_collisions=False)
    first = ranking.add(session, Card(rank=Decimal(100)))
    second = ranking.add(session, Card(rank=Decimal(100)))
    assert ranking.has_collision(session, second)
    with ranking.with_avoid_collisions(True):
        third = ranking.add(session, Card(rank=Decimal(100)))
    assert sorted([first.rank, second.rank, third.rank]) == [1024, 2048, 3072]
    assert not ranking.has_collision(session, second)


def test_collision_on_move_spreads_partition(session: Session, cards: RankedList) -> None:
    top = cards.add(session, Card(rank=Decimal(100)))
    bottom = cards.add(session, Card(rank=Decimal(200)))
    bottom.rank = Decimal(100)
    cards.save(session, bottom)
    assert sorted([top.rank, bottom.rank]) == [1024, 2048]
    # the moved record loses the tie on its fresher timestamp
    assert cards.is_highest_item(session, top)


def test_unchanged_rank_does_not_trigger_spread(session: Session) -> None:
    ranking = RankedList(Card, avoid_collisions=False)
    first = ranking.add(session, Card(rank=Decimal(100)))
    second = ranking.add(session, Card(rank=Decimal(100)))
    with ranking.with_avoid_collisions(True):
        second.title = "renamed"
        ranking.save(session, second)
    assert (first.rank, second.rank) == (100, 100)


def test_record_does_not_collide_with_itself(session: Session, cards: RankedList) -> None:
    card = cards.add(session, Card(rank=Decimal(100)))
    assert not cards.has_collision(session, card)


def test_failed_save_raises_persistence_error_and_keeps_session_usable(session: Session) -> None:
    ranking = RankedList(UniqueCard)
    kept = ranking.add(session, UniqueCard(rank=Decimal(100)))
    with pytest.raises(PersistenceError):
        ranking.add(session, UniqueCard(rank=Decimal(100)))
    assert session.scalar(select(func.count()).select_from(UniqueCard)) == 1
    assert kept.rank == 100
