"""APIRouter registration for the ranked list reference service."""

from __future__ import annotations

from fastapi import APIRouter

from ranked_list.routes.items import router as items_router

api_router = APIRouter()
api_router.include_router(items_router, tags=["Items", "Ranking"])

__all__ = ["api_router"]
