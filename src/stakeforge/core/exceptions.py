"""
Staking engine exception hierarchy.

Provides typed exceptions for configuration writes, reward calculation
preconditions and condition provider failures so callers can tell a rejected
write from a missing precondition from a recoverable provider outage.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class StakingError(Exception):
    """Base exception for all staking engine errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


# ==================== Validation Errors ====================


class ConfigValidationError(StakingError):
    """Raised when a configuration write is rejected.

    The write is never partially applied; the store keeps the previous table.
    """

    def __init__(self, message: str, field: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.field = field


class LengthMismatchError(ConfigValidationError):
    """Raised when parallel arrays differ in length or a fixed-size table has the wrong size."""
    pass


class NonAscendingThresholdsError(ConfigValidationError):
    """Raised when thresholds are not strictly ascending."""
    pass


class DecreasingValuesError(ConfigValidationError):
    """Raised when values associated with ascending thresholds decrease."""
    pass


class ValueExceedsCapError(ConfigValidationError):
    """Raised when a percentage value is above its documented cap (or otherwise out of range)."""
    pass


# ==================== Precondition Errors ====================


class PreconditionError(StakingError):
    """Raised when a calculation cannot be attempted."""
    pass


class ConfigurationNotInitializedError(PreconditionError):
    """Raised when a calculation runs before the configuration store was initialized."""
    pass


class UnknownAssetError(PreconditionError):
    """Raised when an asset key is not registered in the pool."""
    pass


class DuplicateAssetError(PreconditionError):
    """Raised when staking an asset that is already staked."""
    pass


class InvalidAssetKeyError(PreconditionError):
    """Raised when a collection or asset id does not form a valid 256-bit key."""
    pass


class InvalidVariantError(PreconditionError):
    """Raised when a variant tag is outside 1-4."""
    pass


class InvalidLevelError(PreconditionError):
    """Raised when a level is outside 0-255."""
    pass


class InvalidInfusionLevelError(PreconditionError):
    """Raised when an infusion level is outside 0-5."""
    pass


# ==================== Provider Errors ====================


class ProviderError(StakingError):
    """Raised when an external condition or accessory provider fails."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class ProviderUnavailableError(ProviderError):
    """Raised when the provider cannot be reached or times out."""
    pass


class MalformedConditionError(ProviderError):
    """Raised when a provider response does not describe a valid condition."""
    pass


class ProviderRejectedError(ProviderError):
    """Raised when the provider reports an unrecoverable condition for the asset."""

    def __init__(self, message: str, reason: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.reason = reason


# ==================== Utility Functions ====================


def is_recoverable_error(exc: Exception) -> bool:
    """Check if an exception represents a recoverable error.

    Args:
        exc: The exception to check

    Returns:
        True if the error is recoverable and the operation can be retried
    """
    if isinstance(exc, StakingError):
        return exc.recoverable

    recoverable_types = (
        ConnectionError,
        TimeoutError,
        OSError,
    )
    return isinstance(exc, recoverable_types)


def get_error_context(exc: Exception) -> Dict[str, Any]:
    """Extract error context from an exception for logging.

    Args:
        exc: The exception to extract context from

    Returns:
        Dictionary containing error type, message, and any additional details
    """
    context: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    if isinstance(exc, StakingError):
        context["recoverable"] = exc.recoverable
        if exc.details:
            context["details"] = exc.details

    if isinstance(exc, ConfigValidationError) and exc.field:
        context["field"] = exc.field

    if isinstance(exc, ProviderRejectedError) and exc.reason:
        context["reject_reason"] = exc.reason

    return context
