"""
Unit tests for reward composition.

Reference asset: variant 2, level 10, charge 80, no wear, base rate 100.
Level bonus 5 plus charge bonus 10 gives 15%, so one period pays 115.
"""

import pytest

from stakeforge.core.exceptions import ConfigurationNotInitializedError
from stakeforge.core.staking.bonuses import BonusBreakdown, RewardStream
from stakeforge.core.staking.composer import (
    RewardComposer,
    base_reward,
    calculate_reward,
    combine_additive,
    combine_multiplicative,
    decay_multiplier,
    quote_reward,
)
from stakeforge.core.staking.config_store import ConfigurationStore
from stakeforge.core.staking.reward_config import ProgressiveDecayConfig, default_decay_config

NOW = 1_700_000_000
DAY = 86400


class StaticRegistry:
    def __init__(self, share):
        self.share = share
        self.calls = []

    def holder_share_bps(self, holder):
        self.calls.append(holder)
        return self.share


class TestBaseReward:
    def test_level_multiplier_tiers(self, store, make_asset):
        config = store.snapshot()
        assert base_reward(make_asset(level=10), config) == 100
        assert base_reward(make_asset(level=50), config) == 110
        assert base_reward(make_asset(level=255), config) == 150

    def test_level_below_first_tier_is_unscaled(self, store, make_asset):
        store.set_base_reward_config(
            base_rates=[100, 100, 100, 100],
            level_thresholds=[20, 50],
            level_multipliers=[120, 150],
            infusion_rates=[0, 10, 20, 30, 40, 50],
        )
        assert base_reward(make_asset(level=10), store.snapshot()) == 100

    def test_infusion_stream_rate(self, store, make_asset):
        asset = make_asset(infusion_level=2)
        assert base_reward(asset, store.snapshot(), RewardStream.INFUSION) == 20


class TestCombination:
    def test_additive_clamps_at_zero(self):
        bonuses = BonusBreakdown(level=5, charge=10, wear_penalty=60)
        assert combine_additive(bonuses, 100) == 0

    def test_additive_cap(self):
        bonuses = BonusBreakdown(level=30, charge=15, loyalty=25, accessory=50)
        assert combine_additive(bonuses, 100) == 10000

    def test_multiplicative_compounds(self):
        bonuses = BonusBreakdown(level=5, charge=10)
        assert combine_multiplicative(bonuses, 100) == 1550

    def test_multiplicative_wear(self):
        bonuses = BonusBreakdown(level=10, wear_penalty=10)
        # 1.10 * 0.90 = 0.99
        assert combine_multiplicative(bonuses, 100) == 0

    def test_multiplicative_cap(self):
        # 1.30 * 1.15 * 1.25 * 1.50 = 2.803 before the cap
        bonuses = BonusBreakdown(level=30, charge=15, loyalty=25, accessory=50)
        assert combine_multiplicative(bonuses, 100) == 10000
        assert combine_multiplicative(bonuses, 300) == 18031

    @pytest.mark.parametrize("cap", [0, 10, 50, 100, 200, 300])
    @pytest.mark.parametrize(
        "bonuses",
        [
            BonusBreakdown(),
            BonusBreakdown(level=5, charge=10),
            BonusBreakdown(level=30, charge=15, loyalty=25, accessory=50),
            BonusBreakdown(level=100, specialization=100, charge=100, accessory=500),
            BonusBreakdown(level=20, time=50, wear_penalty=95),
        ],
    )
    def test_combined_never_exceeds_cap(self, bonuses, cap):
        for combine in (combine_additive, combine_multiplicative):
            combined = combine(bonuses, cap)
            assert 0 <= combined <= cap * 100

    def test_multiplicative_mode_capped_end_to_end(self, store, make_asset):
        store.set_combination_mode("multiplicative", max_combined_bonus=20)
        quote = quote_reward(make_asset(level=60, charge=100), store, NOW + 200 * DAY)
        assert quote.total_bonus_bps == 2000
        assert quote.amount == 132


class TestDecay:
    def test_below_first_tier(self):
        assert decay_multiplier(0, default_decay_config()) == 100
        assert decay_multiplier(999, default_decay_config()) == 100

    @pytest.mark.parametrize(
        "share,expected", [(1000, 90), (2499, 90), (2500, 75), (3000, 75), (5000, 60), (10000, 50)]
    )
    def test_tiers(self, share, expected):
        assert decay_multiplier(share, default_decay_config()) == expected

    def test_floor_holds_with_continuous_decay(self):
        config = ProgressiveDecayConfig(
            (1000, 2500, 5000, 7500), (10, 25, 40, 50), continuous_decay_rate=100, min_multiplier=50
        )
        assert decay_multiplier(10000, config) == 50
        # 10 tier points plus (2000 - 1000) * 100 / 10000 = 10 continuous points
        assert decay_multiplier(2000, config) == 80

    def test_monotonic_in_share(self):
        config = default_decay_config()
        multipliers = [decay_multiplier(share, config) for share in range(0, 10001, 50)]
        assert multipliers == sorted(multipliers, reverse=True)


class TestQuote:
    def test_reference_reward(self, store, make_asset):
        assert calculate_reward(make_asset(), store, NOW) == 115

    def test_multiplicative_mode(self, store, make_asset):
        store.set_combination_mode("multiplicative")
        quote = quote_reward(make_asset(), store, NOW)
        assert quote.total_bonus_bps == 1550
        assert quote.amount == 115

        store.set_base_reward_config(
            base_rates=[1000, 1000, 1000, 1000],
            level_thresholds=[0],
            level_multipliers=[100],
            infusion_rates=[0, 10, 20, 30, 40, 50],
        )
        assert calculate_reward(make_asset(), store, NOW) == 1155

    def test_wear_never_drops_below_base(self, store, make_asset):
        assert calculate_reward(make_asset(wear=100), store, NOW) == 100

    def test_combined_cap_applies(self, store, make_asset):
        store.set_combination_mode("additive", max_combined_bonus=10)
        assert calculate_reward(make_asset(), store, NOW) == 110

    def test_concentrated_holder_is_floored(self, store, make_asset):
        assert calculate_reward(make_asset(), store, NOW, holder_share_bps=10000) == 57
        assert calculate_reward(make_asset(), store, NOW, holder_share_bps=3000) == 86

    def test_loyalty_contributes(self, store, make_asset):
        quote = quote_reward(make_asset(), store, NOW + 95 * DAY)
        assert quote.bonuses.loyalty == 15
        assert quote.amount == 130

    def test_infusion_stream(self, store, make_asset):
        asset = make_asset(infusion_level=2)
        assert calculate_reward(asset, store, NOW + 30 * DAY, stream=RewardStream.INFUSION) == 20
        store.set_time_bonus_config(
            enabled=True, max_bonus=10, period_seconds=30 * DAY, apply_to_infusion=True
        )
        assert calculate_reward(asset, store, NOW + 30 * DAY, stream=RewardStream.INFUSION) == 22

    def test_quote_is_pure(self, store, make_asset):
        asset = make_asset()
        before = asset.to_dict()
        first = quote_reward(asset, store, NOW)
        second = quote_reward(asset, store, NOW)
        assert first == second
        assert asset.to_dict() == before

    def test_quote_records_config_version(self, store, make_asset):
        quote = quote_reward(make_asset(), store, NOW)
        assert quote.config_version == store.version
        assert quote.to_dict()["amount"] == 115

    def test_uninitialized_config(self, make_asset):
        with pytest.raises(ConfigurationNotInitializedError):
            calculate_reward(make_asset(), ConfigurationStore(), NOW)


class TestRewardComposer:
    def test_uses_registry_share(self, store, make_asset):
        registry = StaticRegistry(10000)
        composer = RewardComposer(store, registry=registry)
        assert composer.quote(make_asset(), NOW).amount == 57
        assert registry.calls == ["0xHolder"]

    def test_accessory_source_only_for_primary(self, store, make_asset):
        calls = []

        def accessories(asset):
            calls.append(asset.key)
            return 10

        composer = RewardComposer(store, accessory_source=accessories)
        assert composer.quote(make_asset(), NOW).amount == 125
        composer.quote(make_asset(infusion_level=1), NOW, stream=RewardStream.INFUSION)
        assert len(calls) == 1
