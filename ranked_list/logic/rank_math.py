"""Rank allocation arithmetic.

All midpoints are computed on ``fractions.Fraction`` so repeated halving never
loses precision inside the allocator. Precision is only lost when a value is
converted back to the rank column's type; an integer column floors, which
eventually produces a duplicate rank that the spreader then resolves.
"""

from __future__ import annotations

import math
from decimal import Decimal, localcontext
from fractions import Fraction
from typing import Any, Iterable, List, Optional

from sqlalchemy import Integer, Numeric
from sqlalchemy.types import TypeEngine

# Digits kept when a fraction is written to a Numeric column. Halving only
# ever adds binary denominators, so this covers long runs of midpoints.
DECIMAL_PRECISION = 60


def to_fraction(value: Any) -> Optional[Fraction]:
    if value is None:
        return None
    if isinstance(value, Fraction):
        return value
    if isinstance(value, str):
        return Fraction(Decimal(value))
    return Fraction(value)


def to_column_value(value: Optional[Fraction], column_type: TypeEngine) -> Any:
    """Convert an exact rank into the Python type the column stores."""
    if value is None:
        return None
    if isinstance(column_type, Integer):
        return math.floor(value)
    if isinstance(column_type, Numeric) and column_type.asdecimal:
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            return Decimal(value.numerator) / Decimal(value.denominator)
    return float(value)


def rank_between(lower: Optional[Fraction], upper: Optional[Fraction], step: Fraction) -> Fraction:
    """Midpoint of two neighbour ranks.

    A missing side is a list boundary: with only ``upper`` the rank goes above
    it, with only ``lower`` below it, and with neither it anchors at
    ``step / 2``.
    """
    if lower is None:
        return rank_above_boundary(upper, step)
    if upper is None:
        return rank_below_boundary(lower, step)
    return (lower + upper) / 2


def rank_above_boundary(nearest: Optional[Fraction], step: Fraction) -> Fraction:
    """Rank for a record placed above the current top of a partition."""
    if nearest is None:
        return step / 2
    return nearest / 2


def rank_below_boundary(nearest: Optional[Fraction], step: Fraction) -> Fraction:
    """Rank for a record placed below the current bottom of a partition."""
    if nearest is None:
        return step / 2
    return (nearest + nearest + step) / 2


def pad_ranks(
    ranks: Iterable[Fraction],
    step: Fraction,
    value: Optional[Fraction] = None,
    size: int = 2,
) -> List[Fraction]:
    """Pad neighbour ranks with a virtual boundary up to ``size`` entries.

    Without an explicit ``value`` the boundary sits one step past the nearest
    rank (or past ``step`` itself when there are no ranks at all).
    """
    padded = list(ranks)
    if value is None:
        nearest = padded[0] if padded else step
        value = nearest + step
    return padded + [value] * (size - len(padded))


def midpoint(ranks: Iterable[Fraction]) -> Fraction:
    first, second = list(ranks)[:2]
    return (first + second) / 2


def spread_positions(count: int, step: Fraction) -> List[Fraction]:
    """Evenly spaced ranks ``step, 2*step, ...`` for ``count`` records."""
    return [step * position for position in range(1, count + 1)]


__all__ = [
    "DECIMAL_PRECISION",
    "to_fraction",
    "to_column_value",
    "rank_between",
    "rank_above_boundary",
    "rank_below_boundary",
    "pad_ranks",
    "midpoint",
    "spread_positions",
]
