"""
stakeforge - Staking Reward Engine

Computes periodic yield for staked assets and keeps their condition in step
with an external condition authority.

Main Components:
- Configuration Store: versioned, validated reward tables
- Bonus Calculators and Reward Composer: multi-factor reward formula
- State Synchronizer: fault-tolerant condition sync with an external provider
- Staking Pool: stake/claim/unstake lifecycle around the engine
"""

__version__ = "0.1.0"
__author__ = "stakeforge Development Team"

__all__ = []
