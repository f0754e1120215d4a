"""
Bonus calculators.

Each calculator is a pure function of asset state and one configuration
table, returning whole percentage points. The wear penalty is the only
negative modifier; it is returned as a positive number and subtracted by
the composer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from stakeforge.core.staking.assets import (
    StakedAsset,
    validate_infusion_level,
    validate_level,
    validate_variant,
)
from stakeforge.core.staking.providers import Accessory
from stakeforge.core.staking.reward_config import (
    SECONDS_PER_DAY,
    EngineConfig,
    LoyaltyBonusConfig,
    RewardCalculationConfig,
    TimeBonusConfig,
    WearPenaltyConfig,
)
from stakeforge.core.staking.thresholds import resolve_threshold

TRAIT_PACK_MATCH_BONUS = 15
RARE_ACCESSORY_BONUS = 10


class RewardStream(Enum):
    """Reward streams an asset accrues."""
    PRIMARY = "primary"
    INFUSION = "infusion"


@dataclass(frozen=True)
class BonusBreakdown:
    """Individual modifiers for one asset at one point in time."""

    level: int = 0
    specialization: int = 0
    charge: int = 0
    loyalty: int = 0
    infusion: int = 0
    time: int = 0
    accessory: int = 0
    wear_penalty: int = 0

    def bonuses(self) -> tuple[int, ...]:
        """Positive modifiers, in composition order."""
        return (
            self.level,
            self.specialization,
            self.charge,
            self.loyalty,
            self.infusion,
            self.time,
            self.accessory,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "level": self.level,
            "specialization": self.specialization,
            "charge": self.charge,
            "loyalty": self.loyalty,
            "infusion": self.infusion,
            "time": self.time,
            "accessory": self.accessory,
            "wear_penalty": self.wear_penalty,
        }


def level_bonus(level: int, config: RewardCalculationConfig) -> int:
    validate_level(level)
    raw = level * config.level_bonus_numerator // config.level_bonus_denominator
    return min(raw, config.max_level_bonus)


def specialization_bonus(variant: int, config: RewardCalculationConfig) -> int:
    validate_variant(variant)
    return min(config.variant_bonuses[variant - 1], config.max_variant_bonus)


def charge_bonus(charge: int, config: RewardCalculationConfig) -> int:
    return resolve_threshold(config.charge_thresholds, config.charge_bonuses, charge)


def wear_penalty(wear: int, config: WearPenaltyConfig) -> int:
    """Penalty for the highest wear tier reached; wear past the last tier keeps the last penalty."""
    return min(resolve_threshold(config.thresholds, config.penalties, wear), config.max_penalty)


def loyalty_bonus(staked_since: int, now: int, config: LoyaltyBonusConfig) -> int:
    """Loyalty tier for the whole days elapsed since ``staked_since``."""
    elapsed_days = max(0, now - staked_since) // SECONDS_PER_DAY
    bonus = resolve_threshold(config.threshold_days, config.bonuses, elapsed_days)
    return min(bonus, config.max_bonus)


def infusion_bonus(infusion_level: int, config: RewardCalculationConfig) -> int:
    validate_infusion_level(infusion_level)
    if infusion_level == 0:
        return 0
    return config.infusion_bonuses[infusion_level]


def time_bonus(
    staked_since: int,
    now: int,
    config: TimeBonusConfig,
    stream: RewardStream = RewardStream.PRIMARY,
) -> int:
    """Linear ramp from 0 to ``max_bonus`` over ``period_seconds``, truncated."""
    if not config.enabled:
        return 0
    if stream is RewardStream.INFUSION and not config.apply_to_infusion:
        return 0
    elapsed = min(max(0, now - staked_since), config.period_seconds)
    return config.max_bonus * elapsed // config.period_seconds


def accessory_bonus(accessories: Iterable[Accessory], specialization: int = 0) -> int:
    """
    Sum of equipped accessory contributions.

    Each accessory adds its XP boost, +15 when its trait pack matches the
    asset specialization and +10 when it is rare.
    """
    total = 0
    for accessory in accessories:
        total += accessory.xp_boost
        if accessory.trait_pack and accessory.trait_pack == specialization:
            total += TRAIT_PACK_MATCH_BONUS
        if accessory.rare:
            total += RARE_ACCESSORY_BONUS
    return total


def compute_bonuses(
    asset: StakedAsset,
    config: EngineConfig,
    now: int,
    accessory: int = 0,
    stream: RewardStream = RewardStream.PRIMARY,
) -> BonusBreakdown:
    """Evaluate every calculator for ``asset``. The infusion stream only carries the time bonus."""
    if stream is RewardStream.INFUSION:
        return BonusBreakdown(time=time_bonus(asset.staked_since, now, config.time_bonus, stream))

    return BonusBreakdown(
        level=level_bonus(asset.level, config.reward),
        specialization=specialization_bonus(asset.variant, config.reward),
        charge=charge_bonus(asset.charge, config.reward),
        loyalty=loyalty_bonus(asset.staked_since, now, config.loyalty),
        infusion=infusion_bonus(asset.infusion_level, config.reward),
        time=time_bonus(asset.staked_since, now, config.time_bonus, stream),
        accessory=max(0, accessory),
        wear_penalty=wear_penalty(asset.wear, config.wear),
    )
