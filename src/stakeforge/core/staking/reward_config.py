"""
Reward configuration tables.

Every table is an immutable dataclass validated on construction, so a table
that exists is a table that satisfies its invariants:
- parallel arrays have the same length (fixed-size tables have their size)
- thresholds strictly ascend
- values never decrease as the threshold index increases
- every percentage stays under its cap

All percentages are whole percentage points; shares are basis points.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from stakeforge.core.exceptions import (
    ConfigValidationError,
    ConfigurationNotInitializedError,
    DecreasingValuesError,
    LengthMismatchError,
    NonAscendingThresholdsError,
    ValueExceedsCapError,
)

SECONDS_PER_DAY = 86400
BPS_DENOMINATOR = 10000

MAX_COMBINED_BONUS_CAP = 300
MAX_LEVEL_BONUS_CAP = 100
MAX_VARIANT_BONUS_CAP = 100
MAX_CHARGE_BONUS_CAP = 100
MAX_INFUSION_BONUS_CAP = 50
MAX_WEAR_PENALTY_CAP = 95
MAX_LOYALTY_BONUS_CAP = 50
MAX_TIME_BONUS_CAP = 50
MAX_LEVEL_MULTIPLIER = 500
MIN_DECAY_FLOOR = 10
MAX_DECAY_FLOOR = 95

CHARGE_TABLE_SIZE = 4
VARIANT_TABLE_SIZE = 4
INFUSION_TABLE_SIZE = 6
DECAY_TABLE_SIZE = 4


class CombinationMode(Enum):
    """How the individual modifiers are combined into one bonus."""
    ADDITIVE = "additive"
    MULTIPLICATIVE = "multiplicative"


# ==================== Validation helpers ====================


def _require_length(field_name: str, values: Sequence[int], expected: int) -> None:
    if len(values) != expected:
        raise LengthMismatchError(
            f"{field_name} must have exactly {expected} entries, got {len(values)}",
            field=field_name,
        )


def _require_matching(field_name: str, thresholds: Sequence[int], values: Sequence[int]) -> None:
    if len(thresholds) != len(values):
        raise LengthMismatchError(
            f"{field_name}: {len(thresholds)} thresholds but {len(values)} values",
            field=field_name,
        )
    if not thresholds:
        raise LengthMismatchError(f"{field_name} must not be empty", field=field_name)


def _require_ascending(field_name: str, thresholds: Sequence[int]) -> None:
    for previous, current in zip(thresholds, thresholds[1:]):
        if current <= previous:
            raise NonAscendingThresholdsError(
                f"{field_name} must be strictly ascending ({previous} then {current})",
                field=field_name,
            )


def _require_non_decreasing(field_name: str, values: Sequence[int]) -> None:
    for previous, current in zip(values, values[1:]):
        if current < previous:
            raise DecreasingValuesError(
                f"{field_name} must not decrease ({previous} then {current})",
                field=field_name,
            )


def _require_range(field_name: str, value: int, low: int, high: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueExceedsCapError(f"{field_name} must be an integer, got {value!r}", field=field_name)
    if value < low or value > high:
        raise ValueExceedsCapError(
            f"{field_name} must be within {low}..{high}, got {value}",
            field=field_name,
            details={"value": value, "low": low, "high": high},
        )


def _require_all_in_range(field_name: str, values: Sequence[int], low: int, high: int) -> None:
    for value in values:
        _require_range(field_name, value, low, high)


def _freeze(instance: object, *names: str) -> None:
    for name in names:
        object.__setattr__(instance, name, tuple(getattr(instance, name)))


# ==================== Tables ====================


@dataclass(frozen=True)
class RewardCalculationConfig:
    """Level, variant, charge and infusion bonus tables plus the combination rule."""

    level_bonus_numerator: int
    level_bonus_denominator: int
    max_level_bonus: int
    variant_bonuses: tuple[int, ...]  # Indexed by variant - 1
    max_variant_bonus: int
    charge_thresholds: tuple[int, ...]
    charge_bonuses: tuple[int, ...]
    infusion_bonuses: tuple[int, ...]  # Indexed by infusion level, index 0 unused
    combination_mode: CombinationMode = CombinationMode.ADDITIVE
    max_combined_bonus: int = 100

    def __post_init__(self) -> None:
        _freeze(self, "variant_bonuses", "charge_thresholds", "charge_bonuses", "infusion_bonuses")
        if not isinstance(self.combination_mode, CombinationMode):
            try:
                mode = CombinationMode(self.combination_mode)
            except ValueError as exc:
                raise ConfigValidationError(
                    f"Unknown combination mode {self.combination_mode!r}",
                    field="combination_mode",
                ) from exc
            object.__setattr__(self, "combination_mode", mode)

        _require_range("level_bonus_numerator", self.level_bonus_numerator, 0, 10**6)
        _require_range("level_bonus_denominator", self.level_bonus_denominator, 1, 10**6)
        _require_range("max_level_bonus", self.max_level_bonus, 0, MAX_LEVEL_BONUS_CAP)

        _require_length("variant_bonuses", self.variant_bonuses, VARIANT_TABLE_SIZE)
        _require_range("max_variant_bonus", self.max_variant_bonus, 0, MAX_VARIANT_BONUS_CAP)
        _require_all_in_range("variant_bonuses", self.variant_bonuses, 0, self.max_variant_bonus)

        _require_length("charge_thresholds", self.charge_thresholds, CHARGE_TABLE_SIZE)
        _require_matching("charge_bonuses", self.charge_thresholds, self.charge_bonuses)
        _require_ascending("charge_thresholds", self.charge_thresholds)
        _require_non_decreasing("charge_bonuses", self.charge_bonuses)
        _require_all_in_range("charge_thresholds", self.charge_thresholds, 0, 100)
        _require_all_in_range("charge_bonuses", self.charge_bonuses, 0, MAX_CHARGE_BONUS_CAP)

        _require_length("infusion_bonuses", self.infusion_bonuses, INFUSION_TABLE_SIZE)
        _require_range("infusion_bonuses[0]", self.infusion_bonuses[0], 0, 0)
        _require_non_decreasing("infusion_bonuses", self.infusion_bonuses)
        _require_all_in_range("infusion_bonuses", self.infusion_bonuses, 0, MAX_INFUSION_BONUS_CAP)

        _require_range("max_combined_bonus", self.max_combined_bonus, 0, MAX_COMBINED_BONUS_CAP)


@dataclass(frozen=True)
class BaseRewardConfig:
    """Per-period base reward: variant base rate scaled by a level multiplier tier."""

    base_rates: tuple[int, ...]  # Indexed by variant - 1
    level_thresholds: tuple[int, ...]
    level_multipliers: tuple[int, ...]  # Percent, 100 = unchanged
    infusion_rates: tuple[int, ...]  # Infusion stream base rate by infusion level

    def __post_init__(self) -> None:
        _freeze(self, "base_rates", "level_thresholds", "level_multipliers", "infusion_rates")

        _require_length("base_rates", self.base_rates, VARIANT_TABLE_SIZE)
        _require_all_in_range("base_rates", self.base_rates, 0, 10**30)

        _require_matching("level_multipliers", self.level_thresholds, self.level_multipliers)
        _require_ascending("level_thresholds", self.level_thresholds)
        _require_non_decreasing("level_multipliers", self.level_multipliers)
        _require_all_in_range("level_thresholds", self.level_thresholds, 0, 255)
        _require_all_in_range("level_multipliers", self.level_multipliers, 0, MAX_LEVEL_MULTIPLIER)

        _require_length("infusion_rates", self.infusion_rates, INFUSION_TABLE_SIZE)
        _require_range("infusion_rates[0]", self.infusion_rates[0], 0, 0)
        _require_non_decreasing("infusion_rates", self.infusion_rates)
        _require_all_in_range("infusion_rates", self.infusion_rates, 0, 10**30)


@dataclass(frozen=True)
class WearPenaltyConfig:
    """Wear penalty tiers and the local wear decay rate."""

    thresholds: tuple[int, ...]
    penalties: tuple[int, ...]
    max_penalty: int
    decay_per_day: int = 0  # Wear points per day, 0 disables local decay

    def __post_init__(self) -> None:
        _freeze(self, "thresholds", "penalties")
        _require_matching("penalties", self.thresholds, self.penalties)
        _require_ascending("thresholds", self.thresholds)
        _require_non_decreasing("penalties", self.penalties)
        _require_all_in_range("thresholds", self.thresholds, 0, 100)
        _require_range("max_penalty", self.max_penalty, 0, MAX_WEAR_PENALTY_CAP)
        _require_all_in_range("penalties", self.penalties, 0, self.max_penalty)
        _require_range("decay_per_day", self.decay_per_day, 0, 100)


@dataclass(frozen=True)
class LoyaltyBonusConfig:
    """Loyalty tiers keyed by time staked; thresholds are stored in seconds."""

    thresholds: tuple[int, ...]  # Seconds
    bonuses: tuple[int, ...]
    max_bonus: int

    def __post_init__(self) -> None:
        _freeze(self, "thresholds", "bonuses")
        _require_matching("bonuses", self.thresholds, self.bonuses)
        _require_ascending("thresholds", self.thresholds)
        _require_non_decreasing("bonuses", self.bonuses)
        _require_all_in_range("thresholds", self.thresholds, 0, 100 * 365 * SECONDS_PER_DAY)
        _require_range("max_bonus", self.max_bonus, 0, MAX_LOYALTY_BONUS_CAP)
        _require_all_in_range("bonuses", self.bonuses, 0, self.max_bonus)

    @classmethod
    def from_days(cls, days: Sequence[int], bonuses: Sequence[int], max_bonus: int) -> "LoyaltyBonusConfig":
        """Build the table from thresholds given in whole days."""
        days = tuple(days)
        _require_all_in_range("threshold_days", days, 0, 100 * 365)
        return cls(
            thresholds=tuple(day * SECONDS_PER_DAY for day in days),
            bonuses=tuple(bonuses),
            max_bonus=max_bonus,
        )

    @property
    def threshold_days(self) -> tuple[int, ...]:
        return tuple(seconds // SECONDS_PER_DAY for seconds in self.thresholds)


@dataclass(frozen=True)
class ProgressiveDecayConfig:
    """
    Anti-concentration decay.

    ``share_thresholds`` are holder shares of the pool in basis points,
    ``decay_percentages`` the reward reduction for each tier. Above the first
    threshold ``continuous_decay_rate`` removes that many more percentage
    points per 100% of share past it. The resulting multiplier never drops
    below ``min_multiplier``.
    """

    share_thresholds: tuple[int, ...]
    decay_percentages: tuple[int, ...]
    continuous_decay_rate: int = 0
    min_multiplier: int = 50

    def __post_init__(self) -> None:
        _freeze(self, "share_thresholds", "decay_percentages")
        _require_length("share_thresholds", self.share_thresholds, DECAY_TABLE_SIZE)
        _require_matching("decay_percentages", self.share_thresholds, self.decay_percentages)
        _require_ascending("share_thresholds", self.share_thresholds)
        _require_non_decreasing("decay_percentages", self.decay_percentages)
        _require_all_in_range("share_thresholds", self.share_thresholds, 0, BPS_DENOMINATOR)
        _require_all_in_range("decay_percentages", self.decay_percentages, 0, 100)
        _require_range("continuous_decay_rate", self.continuous_decay_rate, 0, 100)
        _require_range("min_multiplier", self.min_multiplier, MIN_DECAY_FLOOR, MAX_DECAY_FLOOR)


@dataclass(frozen=True)
class TimeBonusConfig:
    """Linear bonus ramp from 0 to ``max_bonus`` over ``period_seconds`` staked."""

    enabled: bool = False
    max_bonus: int = 0
    period_seconds: int = 30 * SECONDS_PER_DAY
    apply_to_infusion: bool = False

    def __post_init__(self) -> None:
        _require_range("max_bonus", self.max_bonus, 0, MAX_TIME_BONUS_CAP)
        _require_range("period_seconds", self.period_seconds, 1, 100 * 365 * SECONDS_PER_DAY)


@dataclass(frozen=True)
class EngineConfig:
    """Immutable, versioned snapshot handed to every calculation."""

    version: int = 0
    reward: RewardCalculationConfig | None = None
    base: BaseRewardConfig | None = None
    wear: WearPenaltyConfig | None = None
    loyalty: LoyaltyBonusConfig | None = None
    decay: ProgressiveDecayConfig | None = None
    time_bonus: TimeBonusConfig | None = None

    @property
    def initialized(self) -> bool:
        return self.version > 0

    def require_initialized(self) -> "EngineConfig":
        if not self.initialized:
            raise ConfigurationNotInitializedError(
                "Reward configuration has not been initialized."
            )
        return self


# ==================== Defaults ====================


def default_reward_config() -> RewardCalculationConfig:
    return RewardCalculationConfig(
        level_bonus_numerator=1,
        level_bonus_denominator=10,
        max_level_bonus=20,
        variant_bonuses=(0, 5, 10, 15),
        max_variant_bonus=20,
        charge_thresholds=(25, 50, 75, 100),
        charge_bonuses=(0, 5, 10, 15),
        infusion_bonuses=(0, 5, 10, 15, 20, 25),
        combination_mode=CombinationMode.ADDITIVE,
        max_combined_bonus=100,
    )


def default_base_config() -> BaseRewardConfig:
    return BaseRewardConfig(
        base_rates=(100, 120, 150, 200),
        level_thresholds=(0, 50, 100, 200),
        level_multipliers=(100, 110, 125, 150),
        infusion_rates=(0, 10, 20, 30, 40, 50),
    )


def default_wear_config() -> WearPenaltyConfig:
    return WearPenaltyConfig(
        thresholds=(20, 50, 80),
        penalties=(10, 30, 60),
        max_penalty=60,
        decay_per_day=0,
    )


def default_loyalty_config() -> LoyaltyBonusConfig:
    return LoyaltyBonusConfig.from_days((30, 90, 180), (5, 15, 25), max_bonus=25)


def default_decay_config() -> ProgressiveDecayConfig:
    return ProgressiveDecayConfig(
        share_thresholds=(1000, 2500, 5000, 7500),
        decay_percentages=(10, 25, 40, 50),
        continuous_decay_rate=0,
        min_multiplier=50,
    )


def default_time_bonus_config() -> TimeBonusConfig:
    return TimeBonusConfig(
        enabled=False,
        max_bonus=10,
        period_seconds=30 * SECONDS_PER_DAY,
        apply_to_infusion=False,
    )
