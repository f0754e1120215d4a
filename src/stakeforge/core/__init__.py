"""
stakeforge Core Module

Ambient infrastructure (settings, logging, exceptions, metrics) and the
staking engine package.
"""

__all__ = []
