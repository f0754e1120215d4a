"""
Staking reward engine.

This package provides:
- Threshold Resolver: shared ascending-tier lookup
- Configuration Store: versioned reward tables validated on write
- Bonus Calculators: level, variant, charge, wear, loyalty, infusion, time, accessory
- Reward Composer: additive/multiplicative combination, caps, anti-concentration decay
- State Synchronizer: condition sync with per-item fault isolation
- Staking Pool: asset lifecycle and reward claims
"""

from .assets import (
    Condition,
    StakedAsset,
    SyncState,
    pack_asset_key,
    unpack_asset_key,
)
from .bonuses import BonusBreakdown, RewardStream, accessory_bonus, compute_bonuses
from .composer import (
    HolderRegistry,
    RewardComposer,
    RewardQuote,
    calculate_reward,
    decay_multiplier,
    quote_reward,
)
from .config_loader import load_engine_config
from .config_store import ConfigurationStore
from .pool import RewardClaim, StakingPool
from .providers import (
    Accessory,
    AccessoryProvider,
    ConditionGateway,
    ConditionProvider,
    ConditionSnapshot,
    FetchOutcome,
    HttpAccessoryProvider,
    HttpConditionProvider,
)
from .reward_config import (
    BaseRewardConfig,
    CombinationMode,
    EngineConfig,
    LoyaltyBonusConfig,
    ProgressiveDecayConfig,
    RewardCalculationConfig,
    TimeBonusConfig,
    WearPenaltyConfig,
)
from .sync import BatchSyncReport, StateSynchronizer, SyncResult
from .thresholds import resolve_threshold

__all__ = [
    # Assets
    "StakedAsset",
    "Condition",
    "SyncState",
    "pack_asset_key",
    "unpack_asset_key",
    # Configuration
    "ConfigurationStore",
    "EngineConfig",
    "RewardCalculationConfig",
    "BaseRewardConfig",
    "WearPenaltyConfig",
    "LoyaltyBonusConfig",
    "ProgressiveDecayConfig",
    "TimeBonusConfig",
    "CombinationMode",
    "load_engine_config",
    # Calculation
    "resolve_threshold",
    "BonusBreakdown",
    "RewardStream",
    "accessory_bonus",
    "compute_bonuses",
    "RewardComposer",
    "RewardQuote",
    "HolderRegistry",
    "calculate_reward",
    "quote_reward",
    "decay_multiplier",
    # Providers
    "ConditionProvider",
    "AccessoryProvider",
    "ConditionSnapshot",
    "Accessory",
    "ConditionGateway",
    "FetchOutcome",
    "HttpConditionProvider",
    "HttpAccessoryProvider",
    # Synchronization
    "StateSynchronizer",
    "SyncResult",
    "BatchSyncReport",
    # Pool
    "StakingPool",
    "RewardClaim",
]
