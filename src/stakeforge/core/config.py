"""
Staking Engine Configuration

Process-level settings read from ``STAKEFORGE_*`` environment variables.
Reward tables (rates, thresholds, caps) are not configured here; they live
in the versioned configuration store, optionally loaded from YAML.
"""

from __future__ import annotations

import logging
import os
from enum import Enum

logger = logging.getLogger(__name__)


class EnvironmentType(Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _get_int(env_var: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{env_var} must be >= {minimum}, got {value}")
    return value


def _get_float(env_var: str, default: float) -> float:
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{env_var} must be positive, got {value}")
    return value


ENVIRONMENT = os.getenv("STAKEFORGE_ENVIRONMENT", "development")  # Default to development for safety

LOG_LEVEL = os.getenv("STAKEFORGE_LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("STAKEFORGE_LOG_FILE", "").strip()

# Condition provider
CONDITION_PROVIDER_URL = os.getenv("STAKEFORGE_CONDITION_PROVIDER_URL", "").strip().rstrip("/")
ACCESSORY_PROVIDER_URL = os.getenv("STAKEFORGE_ACCESSORY_PROVIDER_URL", "").strip().rstrip("/")
PROVIDER_API_KEY = os.getenv("STAKEFORGE_PROVIDER_API_KEY", "").strip()
PROVIDER_TIMEOUT_SECONDS = _get_float("STAKEFORGE_PROVIDER_TIMEOUT", 5.0)

# Reward accrual
REWARD_PERIOD_SECONDS = _get_int("STAKEFORGE_REWARD_PERIOD_SECONDS", 86400, minimum=1)

# Optional YAML file with engine tables
ENGINE_CONFIG_PATH = os.getenv("STAKEFORGE_ENGINE_CONFIG", "").strip()


class DevelopmentConfig:
    """Development configuration (local providers, verbose logging allowed)"""

    ENVIRONMENT_TYPE = EnvironmentType.DEVELOPMENT
    LOG_LEVEL = LOG_LEVEL
    LOG_FILE = LOG_FILE
    CONDITION_PROVIDER_URL = CONDITION_PROVIDER_URL or "http://localhost:8645"
    ACCESSORY_PROVIDER_URL = ACCESSORY_PROVIDER_URL or "http://localhost:8645"
    PROVIDER_API_KEY = PROVIDER_API_KEY
    PROVIDER_TIMEOUT_SECONDS = PROVIDER_TIMEOUT_SECONDS
    REWARD_PERIOD_SECONDS = REWARD_PERIOD_SECONDS
    ENGINE_CONFIG_PATH = ENGINE_CONFIG_PATH


class ProductionConfig:
    """Production configuration"""

    ENVIRONMENT_TYPE = EnvironmentType.PRODUCTION
    LOG_LEVEL = LOG_LEVEL
    LOG_FILE = LOG_FILE
    CONDITION_PROVIDER_URL = CONDITION_PROVIDER_URL
    ACCESSORY_PROVIDER_URL = ACCESSORY_PROVIDER_URL
    PROVIDER_API_KEY = PROVIDER_API_KEY
    PROVIDER_TIMEOUT_SECONDS = PROVIDER_TIMEOUT_SECONDS
    REWARD_PERIOD_SECONDS = REWARD_PERIOD_SECONDS
    ENGINE_CONFIG_PATH = ENGINE_CONFIG_PATH


# Select config based on environment
if ENVIRONMENT.lower() == EnvironmentType.PRODUCTION.value:
    Config = ProductionConfig
    if not CONDITION_PROVIDER_URL:
        raise ConfigurationError(
            "STAKEFORGE_CONDITION_PROVIDER_URL is required in production."
        )
else:
    Config = DevelopmentConfig
    if not CONDITION_PROVIDER_URL:
        logger.debug(
            "Condition provider URL not set, using %s",
            DevelopmentConfig.CONDITION_PROVIDER_URL,
            extra={"event": "config.provider_url_default"},
        )

__all__ = [
    "Config",
    "ConfigurationError",
    "DevelopmentConfig",
    "EnvironmentType",
    "ProductionConfig",
]
