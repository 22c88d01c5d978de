"""Request and response bodies for the to-do item endpoints."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ItemCreate(BaseModel):
    title: str = Field(default="", max_length=200)
    rank: Optional[Decimal] = None


class MoveRequest(BaseModel):
    above: Optional[int] = None
    below: Optional[int] = None

    @model_validator(mode="after")
    def exactly_one_target(self) -> "MoveRequest":
        if (self.above is None) == (self.below is None):
            raise ValueError("exactly one of 'above' or 'below' is required")
        return self


class ItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    rank: Optional[Decimal] = None
    todo_list_id: Optional[int] = None


class ItemList(BaseModel):
    items: List[ItemOut]


class SpreadResult(BaseModel):
    renumbered: int


__all__ = ["ItemCreate", "MoveRequest", "ItemOut", "ItemList", "SpreadResult"]
