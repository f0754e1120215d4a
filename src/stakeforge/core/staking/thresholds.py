"""
Ascending threshold lookup shared by every tiered table.

Wear penalty, loyalty bonus, charge bonus, level multiplier and
anti-concentration tiers all resolve through ``resolve_threshold`` so they
break ties the same way: a query equal to a threshold meets that tier.
"""

from __future__ import annotations

from bisect import bisect_right
from typing import Sequence


def resolve_threshold(
    thresholds: Sequence[int],
    values: Sequence[int],
    query: int,
    default: int = 0,
) -> int:
    """
    Return the value of the highest threshold not exceeding ``query``.

    Args:
        thresholds: Strictly ascending thresholds
        values: Values parallel to ``thresholds``
        query: Value to look up
        default: Returned when ``query`` is below the first threshold

    Returns:
        ``values[i]`` for the last ``i`` with ``thresholds[i] <= query``

    Example:
        >>> resolve_threshold([20, 50, 80], [10, 30, 60], 50)
        30
        >>> resolve_threshold([20, 50, 80], [10, 30, 60], 19)
        0
    """
    if len(thresholds) != len(values):
        raise ValueError("thresholds and values must have the same length.")
    index = bisect_right(thresholds, query) - 1
    if index < 0:
        return default
    return values[index]

