"""Numeric helpers shared by the CMA, benchmark and call-script engines."""

from __future__ import annotations

import math
from typing import Iterable, Sequence, Tuple, Union

Number = Union[int, float]


def median(values: Iterable[Number]) -> Number:
    """Median with the dashboard's rounding rule.

    Odd-length input returns the middle element untouched. Even-length input
    returns the mean of the two middle elements rounded to the nearest integer,
    halves rounding up. Empty input returns 0, which callers treat as
    "no data" rather than a zero-priced sale.
    """

    ordered = sorted(values)
    if not ordered:
        return 0
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return int(math.floor((ordered[mid - 1] + ordered[mid]) / 2 + 0.5))


def percent_delta(actual: Number, baseline: Number) -> float:
    """Percentage change of ``actual`` over ``baseline``; 0 when baseline is 0."""

    if not baseline:
        return 0.0
    return (actual - baseline) / baseline * 100


def price_range(values: Sequence[Number]) -> Tuple[Number, Number]:
    if not values:
        return 0, 0
    return min(values), max(values)


__all__ = ["median", "percent_delta", "price_range"]
