"""
Unit tests for the shared threshold resolver.

Coverage targets:
- Greatest threshold <= query wins, exact matches meet the tier
- Queries below the first threshold return the default
- Queries past the last threshold keep the last value
"""

import pytest

from stakeforge.core.staking.thresholds import resolve_threshold


WEAR_THRESHOLDS = [20, 50, 80]
WEAR_PENALTIES = [10, 30, 60]


def test_exact_match_uses_that_tier():
    assert resolve_threshold(WEAR_THRESHOLDS, WEAR_PENALTIES, 50) == 30


def test_between_thresholds_uses_lower_tier():
    assert resolve_threshold(WEAR_THRESHOLDS, WEAR_PENALTIES, 49) == 10
    assert resolve_threshold(WEAR_THRESHOLDS, WEAR_PENALTIES, 79) == 30


def test_below_first_threshold_returns_default():
    assert resolve_threshold(WEAR_THRESHOLDS, WEAR_PENALTIES, 0) == 0
    assert resolve_threshold(WEAR_THRESHOLDS, WEAR_PENALTIES, 19) == 0
    assert resolve_threshold(WEAR_THRESHOLDS, WEAR_PENALTIES, 19, default=100) == 100


def test_at_or_above_last_threshold_returns_last_value():
    assert resolve_threshold(WEAR_THRESHOLDS, WEAR_PENALTIES, 80) == 60
    assert resolve_threshold(WEAR_THRESHOLDS, WEAR_PENALTIES, 100) == 60
    assert resolve_threshold(WEAR_THRESHOLDS, WEAR_PENALTIES, 10**9) == 60


@pytest.mark.parametrize("query", range(0, 101))
def test_matches_greatest_threshold_not_exceeding_query(query):
    thresholds = [0, 7, 33, 34, 90]
    values = [1, 2, 3, 4, 5]
    expected = 0
    for threshold, value in zip(thresholds, values):
        if threshold <= query:
            expected = value
    assert resolve_threshold(thresholds, values, query) == expected


def test_result_is_monotonic_for_non_decreasing_values():
    results = [resolve_threshold(WEAR_THRESHOLDS, WEAR_PENALTIES, wear) for wear in range(101)]
    assert results == sorted(results)


def test_length_mismatch_rejected():
    with pytest.raises(ValueError):
        resolve_threshold([1, 2], [1], 5)

