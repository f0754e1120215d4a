"""
Staking engine instrumentation.

Prometheus metrics for condition synchronization, reward claims and
configuration writes, with helpers that are safe to call from the
calculation and sync paths.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

condition_sync_counter = Counter(
    "stakeforge_condition_sync_total",
    "Condition synchronization attempts by outcome",
    ["outcome"],
)

wear_decay_counter = Counter(
    "stakeforge_wear_decay_points_total",
    "Wear points applied by local wear decay",
)

reward_claim_counter = Counter(
    "stakeforge_reward_claims_total",
    "Reward claims by stream",
    ["stream"],
)

reward_amount_counter = Counter(
    "stakeforge_reward_amount_total",
    "Total reward realized by claims",
    ["stream"],
)

config_version_gauge = Gauge(
    "stakeforge_config_version",
    "Current reward configuration version",
)

config_rejection_counter = Counter(
    "stakeforge_config_rejections_total",
    "Configuration writes rejected by validation",
    ["section"],
)

staked_assets_gauge = Gauge(
    "stakeforge_staked_assets",
    "Number of assets currently staked",
)


def record_sync_outcome(success: bool) -> None:
    """Increment the sync counter for one attempt."""
    condition_sync_counter.labels(outcome="success" if success else "failure").inc()


def record_wear_decay(points: int) -> None:
    if points <= 0:
        return
    wear_decay_counter.inc(points)


def record_reward_claim(stream: str, amount: int) -> None:
    """Record a realized reward; zero-amount claims still count as claims."""
    reward_claim_counter.labels(stream=stream).inc()
    if amount > 0:
        reward_amount_counter.labels(stream=stream).inc(amount)


def record_config_version(version: int) -> None:
    config_version_gauge.set(version)


def record_config_rejection(section: str) -> None:
    config_rejection_counter.labels(section=section).inc()


def update_staked_assets(count: int) -> None:
    staked_assets_gauge.set(count)
