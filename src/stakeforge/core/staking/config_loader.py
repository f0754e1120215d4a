"""
Load engine tables from a YAML file into a configuration store.

Example file::

    reward:
      level_bonus_numerator: 50
      level_bonus_denominator: 100
      max_level_bonus: 30
      variant_bonuses: [0, 5, 10, 15]
      max_variant_bonus: 20
      charge_thresholds: [25, 50, 80, 100]
      charge_bonuses: [0, 5, 10, 15]
      infusion_bonuses: [0, 5, 10, 15, 20, 25]
      combination_mode: additive
      max_combined_bonus: 150
    wear:
      thresholds: [20, 50, 80]
      penalties: [10, 30, 60]
      max_penalty: 60
      decay_per_day: 1
    loyalty:
      days: [30, 90, 180]
      bonuses: [5, 15, 25]
      max_bonus: 25

Sections left out keep their current tables. The whole file is applied as
one versioned write, so an invalid section rejects the file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from stakeforge.core.exceptions import ConfigValidationError
from stakeforge.core.staking.config_store import ConfigurationStore
from stakeforge.core.staking.reward_config import EngineConfig

logger = logging.getLogger(__name__)


def read_engine_config(path: str | Path) -> dict[str, Any]:
    """Parse a YAML engine config file into section mappings."""
    config_path = Path(path)
    with open(config_path, "r") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"Invalid YAML in {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigValidationError(f"{config_path} must contain a mapping of sections")
    for section, fields in data.items():
        if not isinstance(fields, dict):
            raise ConfigValidationError(f"Section {section!r} must be a mapping", field=str(section))
    return data


def load_engine_config(store: ConfigurationStore, path: str | Path) -> EngineConfig:
    """Initialize ``store`` if needed and apply every section found in ``path``."""
    sections = read_engine_config(path)
    store.initialize()
    if not sections:
        return store.snapshot()
    snapshot = store.apply_sections(sections)
    logger.info(
        "Engine configuration loaded",
        extra={
            "event": "config.loaded",
            "path": str(path),
            "sections": sorted(sections),
            "version": snapshot.version,
        },
    )
    return snapshot
