"""Mapped models for the reference to-do service.

Items are ranked within their list; items without a list form their own
ungrouped partition.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class TodoList(Base):
    __tablename__ = "todo_lists"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(200), default="")
    items: Mapped[List["TodoItem"]] = relationship(back_populates="todo_list")


class TodoItem(Base):
    __tablename__ = "todo_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(200), default="")
    rank: Mapped[Optional[Decimal]] = mapped_column(Numeric(asdecimal=True), nullable=True)
    todo_list_id: Mapped[Optional[int]] = mapped_column(ForeignKey("todo_lists.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)

    todo_list: Mapped[Optional[TodoList]] = relationship(back_populates="items")


__all__ = ["Base", "TodoList", "TodoItem"]
