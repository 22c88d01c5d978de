"""To-do item ranking endpoints.

Implements:
- GET  /lists/{list_id}/items          ranked items, top of the list first
- POST /lists/{list_id}/items          create an item at the configured placement
- POST /items/{item_id}/move           place an item above or below another item
                                       of the same list (409 across lists)
- POST /items/{item_id}/increase       move an item up by ``count`` positions
- POST /items/{item_id}/decrease       move an item down by ``count`` positions
- POST /lists/{list_id}/spread         renumber a list to evenly spaced ranks
"""

from __future__ import annotations

import logging
from typing import Iterator

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ranked_list.db.base import session_dependency
from ranked_list.http.error_mapping import NOT_FOUND
from ranked_list.http.problem import problem
from ranked_list.logic.repository_todo import (
    create_item,
    get_item,
    get_todo_ranking,
    list_items,
    spread_list,
)
from ranked_list.models.items import ItemCreate, ItemList, ItemOut, MoveRequest, SpreadResult
from ranked_list.models.todo import TodoItem

router = APIRouter()
logger = logging.getLogger(__name__)


def get_session() -> Iterator[Session]:
    with session_dependency() as session:
        yield session


def _require_item(session: Session, item_id: int) -> TodoItem:
    item = get_item(session, item_id)
    if item is None:
        raise HTTPException(
            status_code=int(NOT_FOUND["status"]),
            detail=problem(int(NOT_FOUND["status"]), "Not Found", f"item {item_id} not found", str(NOT_FOUND["code"])),
        )
    return item


@router.get("/lists/{list_id}/items", response_model=ItemList, summary="List ranked items")
def get_list_items(
    list_id: int,
    limit: int = Query(default=0, ge=0),
    session: Session = Depends(get_session),
) -> ItemList:
    items = list_items(session, list_id, limit)
    return ItemList(items=[ItemOut.model_validate(item) for item in items])


@router.post("/lists/{list_id}/items", response_model=ItemOut, status_code=201, summary="Create item")
def post_list_item(list_id: int, body: ItemCreate, session: Session = Depends(get_session)) -> ItemOut:
    item = create_item(session, list_id, body.title, body.rank)
    return ItemOut.model_validate(item)


@router.post("/items/{item_id}/move", response_model=ItemOut, summary="Move item above or below another")
def post_move_item(item_id: int, body: MoveRequest, session: Session = Depends(get_session)) -> ItemOut:
    ranking = get_todo_ranking()
    item = _require_item(session, item_id)
    if body.above is not None:
        ranking.set_rank_above(session, item, _require_item(session, body.above))
    else:
        ranking.set_rank_below(session, item, _require_item(session, body.below))
    logger.info("todo_item_moved id=%s above=%s below=%s rank=%s", item_id, body.above, body.below, item.rank)
    return ItemOut.model_validate(item)


@router.post("/items/{item_id}/increase", response_model=ItemOut, summary="Move item up")
def post_increase_item(
    item_id: int,
    count: int = Query(default=1, ge=1),
    session: Session = Depends(get_session),
) -> ItemOut:
    item = _require_item(session, item_id)
    get_todo_ranking().increase_rank(session, item, count)
    return ItemOut.model_validate(item)


@router.post("/items/{item_id}/decrease", response_model=ItemOut, summary="Move item down")
def post_decrease_item(
    item_id: int,
    count: int = Query(default=1, ge=1),
    session: Session = Depends(get_session),
) -> ItemOut:
    item = _require_item(session, item_id)
    get_todo_ranking().decrease_rank(session, item, count)
    return ItemOut.model_validate(item)


@router.post("/lists/{list_id}/spread", response_model=SpreadResult, summary="Renumber list ranks")
def post_spread_list(list_id: int, session: Session = Depends(get_session)) -> SpreadResult:
    return SpreadResult(renumbered=spread_list(session, list_id))


__all__ = ["router", "get_session"]
