"""
Reward composer.

Turns an asset, a configuration snapshot and the holder's pool share into a
reward amount:

1. Base reward: variant base rate scaled by the level multiplier tier.
2. Modifiers combined additively (sum minus wear) or multiplicatively
   (product of ``1 + bonus`` times ``1 - wear``), clamped to
   ``[0, max_combined_bonus]``.
3. Anti-concentration decay resolved from the holder's share, floored at
   ``min_multiplier``.
4. ``base * (100 + bonus) / 100 * decay``, truncated once at the end.

Everything here is read-only; quoting the same inputs twice gives the same
result and mutates nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from stakeforge.core.staking.assets import StakedAsset, validate_infusion_level, validate_variant
from stakeforge.core.staking.bonuses import BonusBreakdown, RewardStream, compute_bonuses
from stakeforge.core.staking.config_store import ConfigurationStore, require_config
from stakeforge.core.staking.reward_config import (
    BPS_DENOMINATOR,
    CombinationMode,
    EngineConfig,
    ProgressiveDecayConfig,
)
from stakeforge.core.staking.thresholds import resolve_threshold

logger = logging.getLogger(__name__)

PERCENT = 100


class HolderRegistry(Protocol):
    """Source of holder pool shares."""

    def holder_share_bps(self, holder: str) -> int:
        """Share of the total staked pool owned by ``holder``, in basis points."""
        ...


@dataclass(frozen=True)
class RewardQuote:
    """Breakdown of one reward calculation."""

    stream: RewardStream
    base_reward: int
    bonuses: BonusBreakdown
    total_bonus_bps: int
    decay_multiplier: int  # Percent
    amount: int
    config_version: int

    @property
    def total_bonus_pct(self) -> int:
        return self.total_bonus_bps // PERCENT

    def to_dict(self) -> dict:
        return {
            "stream": self.stream.value,
            "base_reward": self.base_reward,
            "bonuses": self.bonuses.to_dict(),
            "total_bonus_bps": self.total_bonus_bps,
            "decay_multiplier": self.decay_multiplier,
            "amount": self.amount,
            "config_version": self.config_version,
        }


def base_reward(asset: StakedAsset, config: EngineConfig, stream: RewardStream = RewardStream.PRIMARY) -> int:
    """Per-period base reward before modifiers."""
    if stream is RewardStream.INFUSION:
        validate_infusion_level(asset.infusion_level)
        return config.base.infusion_rates[asset.infusion_level]

    validate_variant(asset.variant)
    rate = config.base.base_rates[asset.variant - 1]
    multiplier = resolve_threshold(
        config.base.level_thresholds, config.base.level_multipliers, asset.level, default=PERCENT
    )
    return rate * multiplier // PERCENT


def combine_additive(bonuses: BonusBreakdown, max_combined_bonus: int) -> int:
    """Sum of bonuses minus the wear penalty, clamped, in basis points."""
    total = sum(bonuses.bonuses()) - bonuses.wear_penalty
    return min(max(total, 0), max_combined_bonus) * PERCENT


def combine_multiplicative(bonuses: BonusBreakdown, max_combined_bonus: int) -> int:
    """Bonus over 100% of the compounded multipliers, clamped, in basis points."""
    numerator = PERCENT - bonuses.wear_penalty
    denominator = PERCENT
    for bonus in bonuses.bonuses():
        numerator *= PERCENT + bonus
        denominator *= PERCENT
    multiplier_bps = numerator * BPS_DENOMINATOR // denominator
    over = multiplier_bps - BPS_DENOMINATOR
    return min(max(over, 0), max_combined_bonus * PERCENT)


def combine_bonuses(bonuses: BonusBreakdown, config: EngineConfig) -> int:
    if config.reward.combination_mode is CombinationMode.MULTIPLICATIVE:
        return combine_multiplicative(bonuses, config.reward.max_combined_bonus)
    return combine_additive(bonuses, config.reward.max_combined_bonus)


def decay_multiplier(share_bps: int, config: ProgressiveDecayConfig) -> int:
    """
    Reward multiplier (percent) for a holder owning ``share_bps`` of the pool.

    Never below ``config.min_multiplier``, even at 100% share.
    """
    share_bps = min(max(share_bps, 0), BPS_DENOMINATOR)
    tier_decay = resolve_threshold(config.share_thresholds, config.decay_percentages, share_bps)
    continuous = 0
    if share_bps >= config.share_thresholds[0]:
        continuous = (share_bps - config.share_thresholds[0]) * config.continuous_decay_rate // BPS_DENOMINATOR
    multiplier = PERCENT - tier_decay - continuous
    return max(multiplier, config.min_multiplier)


def quote_reward(
    asset: StakedAsset,
    config: EngineConfig | ConfigurationStore,
    now: int,
    holder_share_bps: int = 0,
    accessory: int = 0,
    stream: RewardStream = RewardStream.PRIMARY,
) -> RewardQuote:
    """
    Compute the per-period reward for ``asset`` with a full breakdown.

    Raises:
        ConfigurationNotInitializedError: The configuration was never initialized
        InvalidVariantError, InvalidLevelError, InvalidInfusionLevelError: Asset state out of range
    """
    snapshot = require_config(config)
    base = base_reward(asset, snapshot, stream)
    bonuses = compute_bonuses(asset, snapshot, now, accessory=accessory, stream=stream)
    bonus_bps = combine_bonuses(bonuses, snapshot)
    decay = decay_multiplier(holder_share_bps, snapshot.decay)
    amount = base * (BPS_DENOMINATOR + bonus_bps) * decay // (BPS_DENOMINATOR * PERCENT)

    return RewardQuote(
        stream=stream,
        base_reward=base,
        bonuses=bonuses,
        total_bonus_bps=bonus_bps,
        decay_multiplier=decay,
        amount=amount,
        config_version=snapshot.version,
    )


def calculate_reward(
    asset: StakedAsset,
    config: EngineConfig | ConfigurationStore,
    now: int,
    holder_share_bps: int = 0,
    accessory: int = 0,
    stream: RewardStream = RewardStream.PRIMARY,
) -> int:
    """Per-period reward amount for ``asset``. Pure; see ``quote_reward``."""
    return quote_reward(
        asset,
        config,
        now,
        holder_share_bps=holder_share_bps,
        accessory=accessory,
        stream=stream,
    ).amount


class RewardComposer:
    """
    Binds a configuration source and a holder registry for repeated quotes.

    Example usage:
        composer = RewardComposer(store, registry=pool)
        quote = composer.quote(asset, now=1_700_000_000)
    """

    def __init__(
        self,
        config: EngineConfig | ConfigurationStore,
        registry: HolderRegistry | None = None,
        accessory_source: Callable[[StakedAsset], int] | None = None,
    ):
        self.config = config
        self.registry = registry
        self.accessory_source = accessory_source

    def quote(
        self,
        asset: StakedAsset,
        now: int,
        stream: RewardStream = RewardStream.PRIMARY,
    ) -> RewardQuote:
        share = self.registry.holder_share_bps(asset.holder) if self.registry else 0
        accessory = 0
        if self.accessory_source is not None and stream is RewardStream.PRIMARY:
            accessory = self.accessory_source(asset)
        quote = quote_reward(
            asset,
            self.config,
            now,
            holder_share_bps=share,
            accessory=accessory,
            stream=stream,
        )
        logger.debug(
            "Reward quoted",
            extra={
                "event": "composer.quote",
                "asset_key": hex(asset.key),
                "stream": stream.value,
                "amount": quote.amount,
                "config_version": quote.config_version,
            },
        )
        return quote
