"""
Staking pool.

Owns the staked assets and runs their lifecycle around the reward engine:
stake (optionally seeded from a one-time condition snapshot), accrue,
claim, synchronize and unstake. The pool is also the default holder
registry for anti-concentration decay.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from stakeforge.core import metrics
from stakeforge.core.exceptions import (
    DuplicateAssetError,
    ProviderError,
    ProviderUnavailableError,
    UnknownAssetError,
    get_error_context,
)
from stakeforge.core.staking.assets import StakedAsset, SyncState, pack_asset_key
from stakeforge.core.staking.bonuses import RewardStream, accessory_bonus
from stakeforge.core.staking.composer import RewardComposer, RewardQuote
from stakeforge.core.staking.config_loader import load_engine_config
from stakeforge.core.staking.config_store import ConfigurationStore
from stakeforge.core.staking.providers import (
    AccessoryProvider,
    ConditionGateway,
    ConditionProvider,
    build_http_providers,
)
from stakeforge.core.staking.reward_config import BPS_DENOMINATOR, SECONDS_PER_DAY
from stakeforge.core.staking.sync import BatchSyncReport, StateSynchronizer, refresh_wear_penalty

logger = logging.getLogger(__name__)


class UnconfiguredConditionProvider:
    """Stand-in used when no condition provider is wired; every fetch fails."""

    def fetch_condition(self, collection_id: int, asset_id: int) -> Any:
        raise ProviderUnavailableError("No condition provider configured.")


@dataclass(frozen=True)
class RewardClaim:
    """Rewards realized by one claim."""

    collection_id: int
    asset_id: int
    periods: int
    primary: int
    infusion: int
    claimed_at: int

    @property
    def total(self) -> int:
        return self.primary + self.infusion

    def to_dict(self) -> dict[str, Any]:
        return {
            "collection_id": self.collection_id,
            "asset_id": self.asset_id,
            "periods": self.periods,
            "primary": self.primary,
            "infusion": self.infusion,
            "total": self.total,
            "claimed_at": self.claimed_at,
        }


class StakingPool:
    """
    Asset staking pool with per-period reward accrual.

    Example usage:
        store = ConfigurationStore()
        store.initialize()
        pool = StakingPool(store, condition_provider=provider)
        pool.stake("0xHolder", collection_id=7, asset_id=42, variant=2)
        claim = pool.claim_rewards(7, 42)
    """

    DEFAULT_REWARD_PERIOD_SECONDS = SECONDS_PER_DAY

    def __init__(
        self,
        config: ConfigurationStore,
        condition_provider: ConditionProvider | None = None,
        accessory_provider: AccessoryProvider | None = None,
        reward_period_seconds: int = DEFAULT_REWARD_PERIOD_SECONDS,
        provider_timeout: float | None = None,
        time_provider: Callable[[], int] | None = None,
    ):
        if not isinstance(reward_period_seconds, int) or reward_period_seconds <= 0:
            raise ValueError("Reward period must be a positive integer.")

        self.config = config
        self.reward_period_seconds = reward_period_seconds
        self.accessory_provider = accessory_provider
        self._time_provider = time_provider or (lambda: int(datetime.now(timezone.utc).timestamp()))

        self.assets: dict[int, StakedAsset] = {}
        self.holder_assets: dict[str, set[int]] = {}
        self.colonies: dict[int, set[int]] = {}

        self.gateway = ConditionGateway(
            condition_provider or UnconfiguredConditionProvider(),
            timeout_seconds=provider_timeout,
        )
        self.synchronizer = StateSynchronizer(
            self.assets, self.gateway, config, time_provider=self._current_timestamp
        )
        self.composer = RewardComposer(config, registry=self, accessory_source=self._accessory_bonus)

    @classmethod
    def from_settings(
        cls,
        store: ConfigurationStore | None = None,
        settings: Any = None,
        time_provider: Callable[[], int] | None = None,
    ) -> "StakingPool":
        """
        Build a pool from the environment-driven settings.

        Loads engine tables from ``ENGINE_CONFIG_PATH`` when set (otherwise
        seeds defaults), wires the HTTP providers and uses the configured
        reward period and provider timeout.
        """
        if settings is None:
            from stakeforge.core.config import Config as settings

        store = store or ConfigurationStore()
        if settings.ENGINE_CONFIG_PATH:
            load_engine_config(store, settings.ENGINE_CONFIG_PATH)
        else:
            store.initialize()

        condition_provider, accessory_provider = build_http_providers(settings)
        return cls(
            store,
            condition_provider=condition_provider,
            accessory_provider=accessory_provider,
            reward_period_seconds=settings.REWARD_PERIOD_SECONDS,
            provider_timeout=settings.PROVIDER_TIMEOUT_SECONDS,
            time_provider=time_provider,
        )

    # ==================== Lifecycle ====================

    def stake(
        self,
        holder: str,
        collection_id: int,
        asset_id: int,
        variant: int,
        level: int = 0,
        experience: int = 0,
        charge: int = 100,
        wear: int = 0,
        infusion_level: int = 0,
        specialization: int = 0,
        colony_id: int = 0,
        snapshot: bool = False,
    ) -> StakedAsset:
        """
        Register an asset under stake.

        With ``snapshot=True`` the condition is seeded once from the condition
        provider; if that fetch fails the given defaults are kept and the asset
        stays UNSYNCED.
        """
        if not isinstance(holder, str) or not holder:
            raise ValueError("Holder must be a non-empty string.")
        wear_config = self.config.require_snapshot().wear
        key = pack_asset_key(collection_id, asset_id)
        existing = self.assets.get(key)
        if existing is not None and existing.active:
            raise DuplicateAssetError(
                f"Asset {asset_id} of collection {collection_id} is already staked",
                details={"collection_id": collection_id, "asset_id": asset_id},
            )

        now = self._current_timestamp()
        asset = StakedAsset(
            collection_id=collection_id,
            asset_id=asset_id,
            holder=holder,
            variant=variant,
            level=level,
            experience=experience,
            charge=charge,
            wear=wear,
            infusion_level=infusion_level,
            specialization=specialization,
            staked_since=now,
            last_claim=now,
            last_wear_update=now,
            colony_id=colony_id,
        )

        if snapshot:
            outcome = self.gateway.fetch(collection_id, asset_id)
            if outcome.ok:
                condition = outcome.condition
                asset.charge = condition.charge
                asset.wear = condition.wear
                asset.experience = condition.experience
                asset.level = condition.level
                asset.bio_level = condition.bio_level
                asset.last_sync = now
                asset.sync_state = SyncState.SYNCED
            else:
                logger.warning(
                    "Condition snapshot failed, staking with defaults",
                    extra={
                        "event": "pool.snapshot_failed",
                        "collection_id": collection_id,
                        "asset_id": asset_id,
                        **get_error_context(outcome.error),
                    },
                )
        refresh_wear_penalty(asset, wear_config)

        self.assets[key] = asset
        self.holder_assets.setdefault(holder, set()).add(key)
        if colony_id:
            self.colonies.setdefault(colony_id, set()).add(key)
        metrics.update_staked_assets(self.total_staked)

        logger.info(
            "Asset staked",
            extra={
                "event": "pool.staked",
                "holder": holder,
                "collection_id": collection_id,
                "asset_id": asset_id,
                "variant": variant,
                "sync_state": asset.sync_state.value,
            },
        )
        return asset

    def unstake(self, collection_id: int, asset_id: int, claim: bool = True) -> RewardClaim | None:
        """Mark an asset inactive, claiming its pending rewards first unless ``claim`` is False."""
        asset = self.get_asset(collection_id, asset_id)
        receipt = self.claim_rewards(collection_id, asset_id) if claim else None

        asset.active = False
        self.holder_assets.get(asset.holder, set()).discard(asset.key)
        if not self.holder_assets.get(asset.holder):
            self.holder_assets.pop(asset.holder, None)
        if asset.colony_id:
            self._leave_colony(asset)
        metrics.update_staked_assets(self.total_staked)

        logger.info(
            "Asset unstaked",
            extra={
                "event": "pool.unstaked",
                "holder": asset.holder,
                "collection_id": collection_id,
                "asset_id": asset_id,
                "claimed": receipt.total if receipt else 0,
            },
        )
        return receipt

    def get_asset(self, collection_id: int, asset_id: int) -> StakedAsset:
        asset = self.assets.get(pack_asset_key(collection_id, asset_id))
        if asset is None or not asset.active:
            raise UnknownAssetError(
                f"Asset {asset_id} of collection {collection_id} is not staked",
                details={"collection_id": collection_id, "asset_id": asset_id},
            )
        return asset

    def assets_of(self, holder: str) -> list[StakedAsset]:
        return [self.assets[key] for key in sorted(self.holder_assets.get(holder, ()))]

    @property
    def total_staked(self) -> int:
        return sum(len(keys) for keys in self.holder_assets.values())

    # ==================== Holder registry ====================

    def holder_share_bps(self, holder: str) -> int:
        """Share of active staked assets held by ``holder``, in basis points."""
        total = self.total_staked
        if total == 0:
            return 0
        return len(self.holder_assets.get(holder, ())) * BPS_DENOMINATOR // total

    # ==================== Colonies ====================

    def set_colony(self, collection_id: int, asset_id: int, colony_id: int) -> StakedAsset:
        """Move an asset into ``colony_id`` (0 removes it from its colony)."""
        if not isinstance(colony_id, int) or colony_id < 0:
            raise ValueError("Colony id must be a non-negative integer.")
        asset = self.get_asset(collection_id, asset_id)
        if asset.colony_id:
            self._leave_colony(asset)
        asset.colony_id = colony_id
        if colony_id:
            self.colonies.setdefault(colony_id, set()).add(asset.key)
        return asset

    def colony_members(self, colony_id: int) -> list[StakedAsset]:
        return [self.assets[key] for key in sorted(self.colonies.get(colony_id, ()))]

    def _leave_colony(self, asset: StakedAsset) -> None:
        members = self.colonies.get(asset.colony_id)
        if members is not None:
            members.discard(asset.key)
            if not members:
                del self.colonies[asset.colony_id]

    # ==================== Rewards ====================

    def quote(
        self,
        collection_id: int,
        asset_id: int,
        stream: RewardStream = RewardStream.PRIMARY,
        now: int | None = None,
    ) -> RewardQuote:
        """Per-period reward breakdown for an asset. Read-only."""
        asset = self.get_asset(collection_id, asset_id)
        timestamp = now if now is not None else self._current_timestamp()
        return self.composer.quote(asset, timestamp, stream=stream)

    def pending_reward(self, collection_id: int, asset_id: int, now: int | None = None) -> int:
        """Primary-stream reward accrued since the last claim. Read-only."""
        return self._pending(collection_id, asset_id, RewardStream.PRIMARY, now)

    def pending_infusion_reward(self, collection_id: int, asset_id: int, now: int | None = None) -> int:
        """Infusion-stream reward accrued since the last claim. Read-only."""
        return self._pending(collection_id, asset_id, RewardStream.INFUSION, now)

    def claim_rewards(self, collection_id: int, asset_id: int, now: int | None = None) -> RewardClaim:
        """
        Realize accrued rewards for both streams and advance the claim timestamp
        by the whole periods paid out.

        Raises:
            UnknownAssetError: The asset is not staked
            ProviderError: Accessory data could not be fetched; nothing is claimed
        """
        asset = self.get_asset(collection_id, asset_id)
        timestamp = now if now is not None else self._current_timestamp()
        periods = self._elapsed_periods(asset, timestamp)

        primary = infusion = 0
        if periods:
            primary = self.composer.quote(asset, timestamp, RewardStream.PRIMARY).amount * periods
            infusion = self.composer.quote(asset, timestamp, RewardStream.INFUSION).amount * periods
            asset.last_claim += periods * self.reward_period_seconds

        metrics.record_reward_claim(RewardStream.PRIMARY.value, primary)
        metrics.record_reward_claim(RewardStream.INFUSION.value, infusion)
        receipt = RewardClaim(
            collection_id=collection_id,
            asset_id=asset_id,
            periods=periods,
            primary=primary,
            infusion=infusion,
            claimed_at=timestamp,
        )
        logger.info(
            "Rewards claimed",
            extra={"event": "pool.reward_claimed", "holder": asset.holder, **receipt.to_dict()},
        )
        return receipt

    def claim_all(self, holder: str, now: int | None = None) -> list[RewardClaim]:
        timestamp = now if now is not None else self._current_timestamp()
        return [
            self.claim_rewards(asset.collection_id, asset.asset_id, timestamp)
            for asset in self.assets_of(holder)
        ]

    def _pending(self, collection_id: int, asset_id: int, stream: RewardStream, now: int | None) -> int:
        asset = self.get_asset(collection_id, asset_id)
        timestamp = now if now is not None else self._current_timestamp()
        periods = self._elapsed_periods(asset, timestamp)
        if periods == 0:
            return 0
        return self.composer.quote(asset, timestamp, stream).amount * periods

    def _elapsed_periods(self, asset: StakedAsset, timestamp: int) -> int:
        return max(0, timestamp - asset.last_claim) // self.reward_period_seconds

    def _accessory_bonus(self, asset: StakedAsset) -> int:
        if self.accessory_provider is None:
            return 0
        try:
            accessories = self.accessory_provider.list_equipped_accessories(
                asset.collection_id, asset.asset_id
            )
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderUnavailableError(
                f"Accessory provider raised {type(exc).__name__}: {exc}"
            ) from exc
        return accessory_bonus(accessories, asset.specialization)

    # ==================== Synchronization ====================

    def sync_asset(self, collection_id: int, asset_id: int) -> bool:
        return self.synchronizer.sync_asset(collection_id, asset_id)

    def batch_sync_assets(self, collection_id: int, asset_ids: Iterable[int]) -> int:
        return self.synchronizer.batch_sync_assets(collection_id, asset_ids)

    def batch_sync(self, collection_id: int, asset_ids: Iterable[int]) -> BatchSyncReport:
        return self.synchronizer.batch_sync(collection_id, asset_ids)

    def apply_wear_decay(self, now: int | None = None) -> int:
        """Run one local wear decay tick over every staked asset."""
        return self.synchronizer.decay_all(now)

    def _current_timestamp(self) -> int:
        return int(self._time_provider())
