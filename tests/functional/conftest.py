"""Functional test bootstrap for ranked list tests.

Library tests get a fresh in-memory SQLite engine per test, created through
``create_ranked_engine`` so savepoints behave as they do in the service. The
HTTP tests point the reference app at its own shared in-memory database via
``TEST_DATABASE_URL`` before ``ranked_list.main`` builds an engine.
"""

from __future__ import annotations

import os
from typing import Iterator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

os.environ["TEST_DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ.setdefault("AUTO_CREATE_SCHEMA", "1")

from ranked_list.db.base import create_ranked_engine, get_sessionmaker  # noqa: E402
from ranked_list.logic.service import RankedList  # noqa: E402

from ranked_models import Card, ModelBase  # noqa: E402


@pytest.fixture()
def engine() -> Iterator[Engine]:
    eng = create_ranked_engine("sqlite+pysqlite:///:memory:")
    ModelBase.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session(engine: Engine) -> Iterator[Session]:
    factory = get_sessionmaker(engine)
    with factory() as s:
        yield s
        s.rollback()


@pytest.fixture()
def cards() -> RankedList:
    """Unscoped ranking over ``Card.rank`` with default options."""
    return RankedList(Card)
