"""
Condition state synchronization.

Per-asset state machine::

    UNSYNCED --success--> SYNCED --failure--> STALE --success--> SYNCED

A successful pull overwrites charge, wear, experience and level. A failed
pull leaves the cached condition untouched, marks the asset STALE and emits
a failure signal; the asset keeps earning on its last known condition.
Batches attempt every item and report how many succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, Mapping

from stakeforge.core import metrics
from stakeforge.core.exceptions import StakingError, UnknownAssetError, get_error_context
from stakeforge.core.staking.assets import MAX_WEAR, StakedAsset, SyncState, pack_asset_key
from stakeforge.core.staking.bonuses import wear_penalty
from stakeforge.core.staking.config_store import ConfigurationStore, require_config
from stakeforge.core.staking.providers import ConditionGateway, FetchOutcome
from stakeforge.core.staking.reward_config import SECONDS_PER_DAY, EngineConfig, WearPenaltyConfig

logger = logging.getLogger(__name__)

FailureListener = Callable[[StakedAsset, StakingError], None]


@dataclass
class SyncResult:
    """Outcome of one asset synchronization attempt."""

    collection_id: int
    asset_id: int
    success: bool
    state: SyncState | None = None
    error: str = ""

    def to_dict(self) -> dict:
        return {
            "collection_id": self.collection_id,
            "asset_id": self.asset_id,
            "success": self.success,
            "state": self.state.value if self.state else None,
            "error": self.error,
        }


@dataclass
class BatchSyncReport:
    """Per-item outcomes of a batch synchronization."""

    collection_id: int
    results: list[SyncResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failure_count(self) -> int:
        return len(self.results) - self.success_count

    @property
    def failed_asset_ids(self) -> list[int]:
        return [result.asset_id for result in self.results if not result.success]


def refresh_wear_penalty(asset: StakedAsset, config: WearPenaltyConfig) -> int:
    """Recompute the cached wear penalty after a wear change."""
    asset.wear_penalty = wear_penalty(asset.wear, config)
    return asset.wear_penalty


class StateSynchronizer:
    """
    Pulls authoritative condition data into cached asset state.

    Example usage:
        synchronizer = StateSynchronizer(pool.assets, ConditionGateway(provider, 5.0), store)
        synchronizer.add_failure_listener(alerts.notify)
        ok = synchronizer.sync_asset(collection_id=7, asset_id=42)
        synced = synchronizer.batch_sync_assets(7, [42, 43, 44])
    """

    def __init__(
        self,
        assets: Mapping[int, StakedAsset],
        gateway: ConditionGateway,
        config: EngineConfig | ConfigurationStore,
        time_provider: Callable[[], int] | None = None,
    ):
        self.assets = assets
        self.gateway = gateway
        self.config = config
        self._failure_listeners: list[FailureListener] = []
        self._time_provider = time_provider or (lambda: int(datetime.now(timezone.utc).timestamp()))

    def add_failure_listener(self, listener: FailureListener) -> None:
        self._failure_listeners.append(listener)

    def remove_failure_listener(self, listener: FailureListener) -> None:
        if listener in self._failure_listeners:
            self._failure_listeners.remove(listener)

    # ==================== Sync ====================

    def sync_asset(self, collection_id: int, asset_id: int) -> bool:
        """
        Synchronize one asset.

        Returns:
            True when the cached condition was refreshed, False when the
            provider failed and the asset is now STALE

        Raises:
            UnknownAssetError: The asset is not staked
            ConfigurationNotInitializedError: No configuration to recompute wear penalty with
        """
        return self.sync(collection_id, asset_id).success

    def sync(self, collection_id: int, asset_id: int) -> SyncResult:
        asset = self._get_asset(collection_id, asset_id)
        snapshot = require_config(self.config)
        outcome = self.gateway.fetch(collection_id, asset_id)
        return self._apply_outcome(asset, outcome, snapshot)

    def batch_sync_assets(self, collection_id: int, asset_ids: Iterable[int]) -> int:
        """Synchronize several assets of one collection; returns the success count."""
        return self.batch_sync(collection_id, asset_ids).success_count

    def batch_sync(self, collection_id: int, asset_ids: Iterable[int]) -> BatchSyncReport:
        """
        Synchronize several assets, attempting every item.

        A failing item (provider failure or unknown asset) is recorded and the
        loop moves on; earlier successes are kept.
        """
        snapshot = require_config(self.config)
        report = BatchSyncReport(collection_id=collection_id)

        for asset_id in asset_ids:
            try:
                asset = self._get_asset(collection_id, asset_id)
            except StakingError as exc:
                logger.warning(
                    "Skipping asset in batch sync",
                    extra={
                        "event": "sync.batch_item_skipped",
                        "collection_id": collection_id,
                        "asset_id": asset_id,
                        **get_error_context(exc),
                    },
                )
                report.results.append(
                    SyncResult(collection_id, asset_id, success=False, error=str(exc))
                )
                continue

            outcome = self.gateway.fetch(collection_id, asset_id)
            report.results.append(self._apply_outcome(asset, outcome, snapshot))

        logger.info(
            "Batch sync finished",
            extra={
                "event": "sync.batch_finished",
                "collection_id": collection_id,
                "attempted": len(report.results),
                "succeeded": report.success_count,
                "failed": report.failure_count,
            },
        )
        return report

    # ==================== Wear decay ====================

    def apply_wear_decay(self, asset: StakedAsset, now: int | None = None) -> int:
        """
        Apply local wear decay to an asset that has never been synced.

        Wear grows by ``decay_per_day`` for every whole day since the last
        wear update, capped at 100; the penalty is recomputed immediately.

        Returns:
            Wear points added
        """
        snapshot = require_config(self.config)
        rate = snapshot.wear.decay_per_day
        if rate == 0 or asset.last_sync != 0 or not asset.active:
            return 0

        timestamp = now if now is not None else self._current_timestamp()
        elapsed_days = max(0, timestamp - asset.last_wear_update) // SECONDS_PER_DAY
        if elapsed_days == 0:
            return 0

        new_wear = min(MAX_WEAR, asset.wear + elapsed_days * rate)
        added = new_wear - asset.wear
        asset.wear = new_wear
        if new_wear == MAX_WEAR:
            asset.last_wear_update = timestamp
        else:
            asset.last_wear_update += elapsed_days * SECONDS_PER_DAY
        refresh_wear_penalty(asset, snapshot.wear)

        metrics.record_wear_decay(added)
        if added:
            logger.debug(
                "Wear decayed",
                extra={
                    "event": "sync.wear_decayed",
                    "asset_key": hex(asset.key),
                    "added": added,
                    "wear": asset.wear,
                    "wear_penalty": asset.wear_penalty,
                },
            )
        return added

    def decay_all(self, now: int | None = None) -> int:
        """Apply wear decay to every staked asset; returns how many changed."""
        timestamp = now if now is not None else self._current_timestamp()
        changed = 0
        for asset in list(self.assets.values()):
            if self.apply_wear_decay(asset, timestamp):
                changed += 1
        return changed

    # ==================== Internals ====================

    def _get_asset(self, collection_id: int, asset_id: int) -> StakedAsset:
        key = pack_asset_key(collection_id, asset_id)
        asset = self.assets.get(key)
        if asset is None or not asset.active:
            raise UnknownAssetError(
                f"Asset {asset_id} of collection {collection_id} is not staked",
                details={"collection_id": collection_id, "asset_id": asset_id},
            )
        return asset

    def _apply_outcome(self, asset: StakedAsset, outcome: FetchOutcome, snapshot: EngineConfig) -> SyncResult:
        if outcome.ok:
            condition = outcome.condition
            now = self._current_timestamp()
            asset.charge = condition.charge
            asset.wear = condition.wear
            asset.experience = condition.experience
            asset.level = condition.level
            asset.bio_level = condition.bio_level
            asset.last_sync = now
            asset.last_wear_update = now
            asset.sync_state = SyncState.SYNCED
            asset.last_sync_error = ""
            refresh_wear_penalty(asset, snapshot.wear)

            metrics.record_sync_outcome(True)
            logger.debug(
                "Asset condition synced",
                extra={
                    "event": "sync.asset_synced",
                    "asset_key": hex(asset.key),
                    "level": asset.level,
                    "wear": asset.wear,
                    "charge": asset.charge,
                },
            )
            return SyncResult(outcome.collection_id, outcome.asset_id, True, SyncState.SYNCED)

        error = outcome.error
        asset.sync_state = SyncState.STALE
        asset.last_sync_error = str(error)
        metrics.record_sync_outcome(False)
        logger.warning(
            "Asset condition sync failed, keeping last known condition",
            extra={
                "event": "sync.asset_stale",
                "asset_key": hex(asset.key),
                **get_error_context(error),
            },
        )
        self._emit_failure(asset, error)
        return SyncResult(outcome.collection_id, outcome.asset_id, False, SyncState.STALE, str(error))

    def _emit_failure(self, asset: StakedAsset, error: StakingError) -> None:
        for listener in list(self._failure_listeners):
            try:
                listener(asset, error)
            except Exception:
                logger.exception(
                    "Sync failure listener raised",
                    extra={"event": "sync.listener_error", "asset_key": hex(asset.key)},
                )

    def _current_timestamp(self) -> int:
        return int(self._time_provider())
