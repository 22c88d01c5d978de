"""Configuration for ranked lists.

Options are validated by a pydantic model. ``load_options`` layers values
with the following rules:
- Primary source: `ranked_list_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Explicit keyword overrides win over everything else.
"""

from __future__ import annotations

import json
import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from ranked_list.models.placement import NewItemAt
from ranked_list.models.scopes import Equality, NamedGroup, Predicate, Relationship


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("ranked_list_config.json")
logger = logging.getLogger(__name__)

_SCOPE_KINDS = (Equality, NamedGroup, Relationship, Predicate)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class RankedListOptions(BaseModel):
    """Settings supplied once when a model is bound to a ranked list."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    column: str = "rank"
    touch_on_update: bool = True
    step_increment: Decimal = Field(default=Decimal(1024), gt=0)
    avoid_collisions: bool = True
    new_item_at: str = NewItemAt.LOWEST
    scopes: Tuple[Any, ...] = ()
    tiebreak_column: Optional[str] = None

    @field_validator("column")
    @classmethod
    def column_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("column must be a non-empty string")
        return v

    @field_validator("new_item_at", mode="before")
    @classmethod
    def new_item_at_must_be_allowed(cls, v: Any) -> str:
        value = str(v).strip().lower()
        if value not in NewItemAt.ALL:
            raise ValueError(f"new_item_at must be one of {sorted(NewItemAt.ALL)}")
        return value

    @field_validator("scopes", mode="before")
    @classmethod
    def scopes_must_be_specifiers(cls, v: Any) -> Tuple[Any, ...]:
        if v is None:
            return ()
        if isinstance(v, _SCOPE_KINDS):
            v = (v,)
        items = tuple(v)
        for item in items:
            if not isinstance(item, _SCOPE_KINDS):
                raise ValueError(
                    "scopes must contain Equality, NamedGroup, Relationship or Predicate entries"
                )
        return items


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def _as_bool(text: str) -> bool:
    return str(text).strip().lower() in {"1", "true", "yes", "on"}


def load_options(**overrides: Any) -> RankedListOptions:
    """Load ranked list options with validation.

    Precedence (highest first):
    1) Keyword overrides
    2) Environment variables
    3) Text files in `config/` (optional)
    4) ranked_list_config.json at project root
    5) Model defaults
    """

    base = _read_json_file(ROOT_CONFIG)
    section = base.get("ranked_list", base) if isinstance(base, dict) else {}

    def _base(key: str) -> Optional[str]:
        if not isinstance(section, dict) or section.get(key) is None:
            return None
        return str(section[key])

    raw: dict[str, Any] = {}
    column = _env("RANKED_LIST_COLUMN") or _read_config_file("ranked_list.column") or _base("column")
    if column:
        raw["column"] = column.strip()
    step = _env("RANKED_LIST_STEP_INCREMENT") or _read_config_file("ranked_list.step_increment") or _base("step_increment")
    if step:
        raw["step_increment"] = step.strip()
    touch = _env("RANKED_LIST_TOUCH_ON_UPDATE") or _read_config_file("ranked_list.touch_on_update") or _base("touch_on_update")
    if touch:
        raw["touch_on_update"] = _as_bool(touch)
    avoid = _env("RANKED_LIST_AVOID_COLLISIONS") or _read_config_file("ranked_list.avoid_collisions") or _base("avoid_collisions")
    if avoid:
        raw["avoid_collisions"] = _as_bool(avoid)
    new_item_at = _env("RANKED_LIST_NEW_ITEM_AT") or _read_config_file("ranked_list.new_item_at") or _base("new_item_at")
    if new_item_at:
        raw["new_item_at"] = new_item_at
    tiebreak = _env("RANKED_LIST_TIEBREAK_COLUMN") or _read_config_file("ranked_list.tiebreak_column") or _base("tiebreak_column")
    if tiebreak:
        raw["tiebreak_column"] = tiebreak.strip()

    raw.update(overrides)
    try:
        return RankedListOptions(**raw)
    except PydanticValidationError as e:
        logger.error("Invalid ranked list configuration: %s", e)
        raise


__all__ = [
    "RankedListOptions",
    "load_options",
]
