"""Reentrant execution modes for ranked lists.

Two modes are tracked per mapped model class:

- skip persistence: rank mutations are applied to the instance only; nothing
  is flushed and no collision handling runs. Depth is reference counted so
  nested blocks do not deactivate the mode early. A model is affected when it
  or one of its base classes is active.
- avoid collisions: a stack of booleans per model; the innermost block wins
  and an empty stack falls back to the configured default.

State lives in ``contextvars`` so each thread and each asyncio task sees only
its own blocks. Values are replaced, never mutated in place, and every block
restores the previous value on exit, including exits through an exception.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from types import MappingProxyType
from typing import Iterator, Mapping, Tuple

_EMPTY: Mapping = MappingProxyType({})

_skip_persistence_depth: ContextVar[Mapping[type, int]] = ContextVar(
    "ranked_list_skip_persistence", default=_EMPTY
)
_avoid_collisions_stack: ContextVar[Mapping[type, Tuple[bool, ...]]] = ContextVar(
    "ranked_list_avoid_collisions", default=_EMPTY
)


@contextmanager
def skip_persistence(*models: type) -> Iterator[None]:
    """Suspend persistence of rank mutations for ``models`` inside the block."""
    if not models:
        raise ValueError("skip_persistence requires at least one model class")
    for model in models:
        if not isinstance(model, type):
            raise TypeError(f"skip_persistence expects model classes, got {model!r}")
    depth = dict(_skip_persistence_depth.get())
    for model in models:
        depth[model] = depth.get(model, 0) + 1
    token = _skip_persistence_depth.set(MappingProxyType(depth))
    try:
        yield
    finally:
        _skip_persistence_depth.reset(token)


def is_persistence_skipped(model: type) -> bool:
    depth = _skip_persistence_depth.get()
    return any(count > 0 and issubclass(model, active) for active, count in depth.items())


def skip_persistence_depth(model: type) -> int:
    return _skip_persistence_depth.get().get(model, 0)


@contextmanager
def avoid_collisions(model: type, enabled: bool = True) -> Iterator[None]:
    """Force collision avoidance on or off for ``model`` inside the block."""
    if not isinstance(model, type):
        raise TypeError(f"avoid_collisions expects a model class, got {model!r}")
    stacks = dict(_avoid_collisions_stack.get())
    stacks[model] = stacks.get(model, ()) + (bool(enabled),)
    token = _avoid_collisions_stack.set(MappingProxyType(stacks))
    try:
        yield
    finally:
        _avoid_collisions_stack.reset(token)


def collisions_avoided(model: type, default: bool) -> bool:
    stack = _avoid_collisions_stack.get().get(model)
    if stack:
        return stack[-1]
    return default


__all__ = [
    "skip_persistence",
    "is_persistence_skipped",
    "skip_persistence_depth",
    "avoid_collisions",
    "collisions_avoided",
]
