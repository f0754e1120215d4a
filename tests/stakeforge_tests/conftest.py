import sys
from pathlib import Path

import pytest

# Ensure the src directory is importable before collection runs.
project_root = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(project_root / "src"))

from stakeforge.core.staking.assets import StakedAsset
from stakeforge.core.staking.config_store import ConfigurationStore

NOW = 1_700_000_000
DAY = 86400


class Clock:
    """Deterministic time source for time_provider injection."""

    def __init__(self, start: int = NOW):
        self.current = start

    def now(self) -> int:
        return self.current

    def advance(self, seconds: int = 0, days: int = 0) -> int:
        self.current += seconds + days * DAY
        return self.current


class FakeConditionProvider:
    """Returns canned payloads per (collection, asset); exceptions are raised."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def fetch_condition(self, collection_id, asset_id):
        self.calls.append((collection_id, asset_id))
        response = self.responses.get((collection_id, asset_id))
        if response is None:
            raise ConnectionError(f"no route to condition for {collection_id}/{asset_id}")
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store():
    """Initialized store with the reference tables used across the unit tests."""
    store = ConfigurationStore()
    store.initialize()
    store.set_reward_config(
        level_bonus_numerator=50,
        level_bonus_denominator=100,
        max_level_bonus=30,
        variant_bonuses=[0, 0, 0, 0],
        max_variant_bonus=20,
        charge_thresholds=[25, 50, 75, 100],
        charge_bonuses=[0, 5, 10, 15],
        infusion_bonuses=[0, 5, 10, 15, 20, 25],
        combination_mode="additive",
        max_combined_bonus=100,
    )
    store.set_base_reward_config(
        base_rates=[100, 100, 100, 100],
        level_thresholds=[0, 50, 100, 200],
        level_multipliers=[100, 110, 125, 150],
        infusion_rates=[0, 10, 20, 30, 40, 50],
    )
    store.set_wear_penalty_config(
        thresholds=[20, 50, 80],
        penalties=[10, 30, 60],
        max_penalty=60,
    )
    store.set_loyalty_config([30, 90, 180], [5, 15, 25], max_bonus=25)
    return store


@pytest.fixture
def make_asset():
    def _make(**overrides):
        fields = {
            "collection_id": 7,
            "asset_id": 1,
            "holder": "0xHolder",
            "variant": 2,
            "level": 10,
            "charge": 80,
            "wear": 0,
            "staked_since": NOW,
            "last_claim": NOW,
            "last_wear_update": NOW,
        }
        fields.update(overrides)
        return StakedAsset(**fields)

    return _make


@pytest.fixture
def provider():
    return FakeConditionProvider()
