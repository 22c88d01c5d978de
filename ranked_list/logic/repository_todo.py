"""To-do data access helpers for the reference service.

Keeps route handlers free of session and ranking details. Items are ranked
per list through a single ``RankedList`` bound to ``TodoItem``.
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from ranked_list.config import load_options
from ranked_list.logic.service import RankedList
from ranked_list.models.scopes import Relationship
from ranked_list.models.todo import TodoItem, TodoList

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_todo_ranking() -> RankedList:
    """Return the ranked list binding for to-do items, built once per process."""
    return RankedList(TodoItem, load_options(scopes=(Relationship("todo_list"),)))


def get_list(session: Session, list_id: int) -> Optional[TodoList]:
    return session.get(TodoList, list_id)


def get_item(session: Session, item_id: int) -> Optional[TodoItem]:
    return session.get(TodoItem, item_id)


def ensure_list(session: Session, list_id: int, title: str = "") -> TodoList:
    todo_list = get_list(session, list_id)
    if todo_list is None:
        todo_list = TodoList(id=list_id, title=title)
        session.add(todo_list)
        session.flush()
        logger.info("todo_list_created id=%s", list_id)
    return todo_list


def create_item(session: Session, list_id: int, title: str, rank: Optional[Decimal] = None) -> TodoItem:
    todo_list = ensure_list(session, list_id)
    item = TodoItem(title=title, rank=rank, todo_list_id=todo_list.id)
    get_todo_ranking().add(session, item)
    logger.info("todo_item_created id=%s list=%s rank=%s", item.id, list_id, item.rank)
    return item


def list_items(session: Session, list_id: int, limit: int = 0) -> List[TodoItem]:
    return get_todo_ranking().highest_items(session, limit, scope={"todo_list_id": list_id})


def spread_list(session: Session, list_id: int) -> int:
    return len(get_todo_ranking().spread_ranks(session, scope={"todo_list_id": list_id}))


__all__ = [
    "get_todo_ranking",
    "get_list",
    "get_item",
    "ensure_list",
    "create_item",
    "list_items",
    "spread_list",
]
