"""
Versioned configuration store for the reward engine.

Holds one validated table per section and hands out immutable
``EngineConfig`` snapshots. Writes replace a whole table; a rejected write
leaves the previous table and version in place. Every accepted write bumps
the version, and nothing can be calculated until ``initialize`` has seeded
the defaults.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from threading import Lock
from typing import Any, Callable, Sequence

from stakeforge.core import metrics
from stakeforge.core.exceptions import (
    ConfigValidationError,
    ConfigurationNotInitializedError,
    get_error_context,
)
from stakeforge.core.staking.reward_config import (
    BaseRewardConfig,
    CombinationMode,
    EngineConfig,
    LoyaltyBonusConfig,
    ProgressiveDecayConfig,
    RewardCalculationConfig,
    TimeBonusConfig,
    WearPenaltyConfig,
    default_base_config,
    default_decay_config,
    default_loyalty_config,
    default_reward_config,
    default_time_bonus_config,
    default_wear_config,
)

logger = logging.getLogger(__name__)

SECTIONS = ("reward", "base", "wear", "loyalty", "decay", "time_bonus")


class ConfigurationStore:
    """
    Owner of the engine configuration.

    Example usage:
        store = ConfigurationStore()
        store.initialize()
        store.set_wear_penalty_config(thresholds=[20, 50, 80], penalties=[10, 30, 60], max_penalty=60)
        config = store.snapshot()
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._snapshot = EngineConfig()

    @property
    def version(self) -> int:
        return self._snapshot.version

    @property
    def initialized(self) -> bool:
        return self._snapshot.initialized

    def snapshot(self) -> EngineConfig:
        """Return the current configuration (may be uninitialized)."""
        return self._snapshot

    def require_snapshot(self) -> EngineConfig:
        """Return the current configuration, raising if it was never initialized."""
        return self._snapshot.require_initialized()

    def initialize(self) -> EngineConfig:
        """Seed conservative defaults for every section. Safe to call more than once."""
        with self._lock:
            if self._snapshot.initialized:
                logger.info(
                    "Configuration already initialized",
                    extra={"event": "config.initialize_skipped", "version": self._snapshot.version},
                )
                return self._snapshot

            self._snapshot = EngineConfig(
                version=1,
                reward=default_reward_config(),
                base=default_base_config(),
                wear=default_wear_config(),
                loyalty=default_loyalty_config(),
                decay=default_decay_config(),
                time_bonus=default_time_bonus_config(),
            )
            metrics.record_config_version(1)
            logger.info(
                "Configuration initialized with defaults",
                extra={"event": "config.initialized", "version": 1},
            )
            return self._snapshot

    # ==================== Setters ====================

    def set_reward_config(self, **fields: Any) -> EngineConfig:
        """Replace the level/variant/charge/infusion table."""
        return self._write("reward", RewardCalculationConfig, fields)

    def set_combination_mode(
        self, mode: CombinationMode | str, max_combined_bonus: int | None = None
    ) -> EngineConfig:
        """Switch between additive and multiplicative combination, optionally changing the cap."""
        fields: dict[str, Any] = {"combination_mode": mode}
        if max_combined_bonus is not None:
            fields["max_combined_bonus"] = max_combined_bonus
        # Evaluated inside _write, under the lock
        return self._write("reward", lambda **kw: replace(self._snapshot.reward, **kw), fields)

    def set_base_reward_config(self, **fields: Any) -> EngineConfig:
        return self._write("base", BaseRewardConfig, fields)

    def set_wear_penalty_config(self, **fields: Any) -> EngineConfig:
        return self._write("wear", WearPenaltyConfig, fields)

    def set_loyalty_config(
        self, threshold_days: Sequence[int], bonuses: Sequence[int], max_bonus: int
    ) -> EngineConfig:
        """Replace the loyalty table; thresholds are given in days and stored in seconds."""
        fields = {"days": threshold_days, "bonuses": bonuses, "max_bonus": max_bonus}
        return self._write("loyalty", LoyaltyBonusConfig.from_days, fields)

    def set_decay_config(self, **fields: Any) -> EngineConfig:
        return self._write("decay", ProgressiveDecayConfig, fields)

    def set_time_bonus_config(self, **fields: Any) -> EngineConfig:
        return self._write("time_bonus", TimeBonusConfig, fields)

    def apply_sections(self, sections: dict[str, Any]) -> EngineConfig:
        """
        Replace several tables in one versioned write.

        All tables are built before any is applied, so one invalid section
        rejects the whole batch.
        """
        builders: dict[str, Callable[..., Any]] = {
            "reward": RewardCalculationConfig,
            "base": BaseRewardConfig,
            "wear": WearPenaltyConfig,
            "loyalty": LoyaltyBonusConfig.from_days,
            "decay": ProgressiveDecayConfig,
            "time_bonus": TimeBonusConfig,
        }
        unknown = set(sections) - set(builders)
        if unknown:
            raise ConfigValidationError(
                f"Unknown configuration sections: {sorted(unknown)}",
                field=",".join(sorted(unknown)),
            )

        with self._lock:
            self.require_snapshot()
            built: dict[str, Any] = {}
            for section, fields in sections.items():
                built[section] = self._build(section, builders[section], dict(fields))
            self._snapshot = replace(self._snapshot, version=self._snapshot.version + 1, **built)
            self._record_write(sorted(built))
            return self._snapshot

    # ==================== Internals ====================

    def _write(self, section: str, builder: Callable[..., Any], fields: dict[str, Any]) -> EngineConfig:
        with self._lock:
            self.require_snapshot()
            table = self._build(section, builder, fields)
            self._snapshot = replace(
                self._snapshot, version=self._snapshot.version + 1, **{section: table}
            )
            self._record_write([section])
            return self._snapshot

    def _build(self, section: str, builder: Callable[..., Any], fields: dict[str, Any]) -> Any:
        try:
            return builder(**fields)
        except ConfigValidationError as exc:
            metrics.record_config_rejection(section)
            logger.warning(
                "Configuration write rejected",
                extra={"event": "config.write_rejected", "section": section, **get_error_context(exc)},
            )
            raise
        except TypeError as exc:
            # Unknown or missing field names
            metrics.record_config_rejection(section)
            raise ConfigValidationError(f"Invalid fields for {section}: {exc}", field=section) from exc

    def _record_write(self, sections: list[str]) -> None:
        metrics.record_config_version(self._snapshot.version)
        logger.info(
            "Configuration updated",
            extra={
                "event": "config.updated",
                "sections": sections,
                "version": self._snapshot.version,
            },
        )


def require_config(config: EngineConfig | ConfigurationStore) -> EngineConfig:
    """Resolve a store or snapshot into an initialized snapshot."""
    if isinstance(config, ConfigurationStore):
        return config.require_snapshot()
    if not isinstance(config, EngineConfig):
        raise ConfigurationNotInitializedError(f"Expected an EngineConfig, got {type(config).__name__}")
    return config.require_initialized()
