"""
Staked asset model and 256-bit asset keys.

An asset is identified by a collection id and an asset id packed into one
256-bit integer: the high 128 bits hold the collection, the low 128 bits the
asset. A key with a zero collection component is invalid.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from stakeforge.core.exceptions import (
    InvalidAssetKeyError,
    InvalidInfusionLevelError,
    InvalidLevelError,
    InvalidVariantError,
)

ID_BITS = 128
ID_MASK = (1 << ID_BITS) - 1

MAX_LEVEL = 255
MAX_CHARGE = 100
MAX_WEAR = 100
MAX_INFUSION_LEVEL = 5
VARIANTS = (1, 2, 3, 4)


class SyncState(Enum):
    """Condition synchronization state of one asset."""
    UNSYNCED = "unsynced"
    SYNCED = "synced"
    STALE = "stale"


def pack_asset_key(collection_id: int, asset_id: int) -> int:
    """Combine a collection id and an asset id into one 256-bit key."""
    if not isinstance(collection_id, int) or not isinstance(asset_id, int):
        raise InvalidAssetKeyError("Collection and asset ids must be integers.")
    if collection_id <= 0 or collection_id > ID_MASK:
        raise InvalidAssetKeyError(
            f"Collection id must be in 1..2**128-1, got {collection_id}",
            details={"collection_id": collection_id},
        )
    if asset_id < 0 or asset_id > ID_MASK:
        raise InvalidAssetKeyError(
            f"Asset id must be in 0..2**128-1, got {asset_id}",
            details={"asset_id": asset_id},
        )
    return (collection_id << ID_BITS) | asset_id


def unpack_asset_key(key: int) -> tuple[int, int]:
    """Split a 256-bit key into ``(collection_id, asset_id)``."""
    if not isinstance(key, int) or key < 0 or key >> (2 * ID_BITS):
        raise InvalidAssetKeyError(f"Asset key must be a 256-bit unsigned integer, got {key!r}")
    collection_id = key >> ID_BITS
    if collection_id == 0:
        raise InvalidAssetKeyError("Asset key has a zero collection component.", details={"key": key})
    return collection_id, key & ID_MASK


def validate_variant(variant: int) -> int:
    if variant not in VARIANTS:
        raise InvalidVariantError(f"Variant must be one of {VARIANTS}, got {variant}")
    return variant


def validate_level(level: int) -> int:
    if not isinstance(level, int) or not 0 <= level <= MAX_LEVEL:
        raise InvalidLevelError(f"Level must be in 0..{MAX_LEVEL}, got {level}")
    return level


def validate_infusion_level(infusion_level: int) -> int:
    if not isinstance(infusion_level, int) or not 0 <= infusion_level <= MAX_INFUSION_LEVEL:
        raise InvalidInfusionLevelError(
            f"Infusion level must be in 0..{MAX_INFUSION_LEVEL}, got {infusion_level}"
        )
    return infusion_level


@dataclass
class Condition:
    """Authoritative condition fields pulled from the condition provider."""

    charge: int
    wear: int
    experience: int
    level: int
    bio_level: int = 0


@dataclass
class StakedAsset:
    """One asset under stake."""

    collection_id: int
    asset_id: int
    holder: str
    variant: int

    # Condition
    level: int = 0
    experience: int = 0
    charge: int = MAX_CHARGE
    wear: int = 0
    wear_penalty: int = 0  # Cached, recomputed on every wear change
    infusion_level: int = 0
    specialization: int = 0
    bio_level: int = 0

    # Timestamps (unix seconds)
    staked_since: int = 0
    last_claim: int = 0
    last_sync: int = 0
    last_wear_update: int = 0

    colony_id: int = 0  # 0 = none
    active: bool = True
    sync_state: SyncState = SyncState.UNSYNCED
    last_sync_error: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Raises on an invalid key
        self.key = pack_asset_key(self.collection_id, self.asset_id)
        validate_variant(self.variant)
        validate_level(self.level)
        validate_infusion_level(self.infusion_level)
        if not 0 <= self.charge <= MAX_CHARGE:
            raise ValueError(f"Charge must be in 0..{MAX_CHARGE}.")
        if not 0 <= self.wear <= MAX_WEAR:
            raise ValueError(f"Wear must be in 0..{MAX_WEAR}.")
        if self.experience < 0:
            raise ValueError("Experience cannot be negative.")

    @property
    def condition(self) -> Condition:
        return Condition(
            charge=self.charge,
            wear=self.wear,
            experience=self.experience,
            level=self.level,
            bio_level=self.bio_level,
        )

    def copy(self) -> "StakedAsset":
        return replace(self, metadata=dict(self.metadata))

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": hex(self.key),
            "collection_id": self.collection_id,
            "asset_id": self.asset_id,
            "holder": self.holder,
            "variant": self.variant,
            "level": self.level,
            "experience": self.experience,
            "charge": self.charge,
            "wear": self.wear,
            "wear_penalty": self.wear_penalty,
            "infusion_level": self.infusion_level,
            "specialization": self.specialization,
            "bio_level": self.bio_level,
            "staked_since": self.staked_since,
            "last_claim": self.last_claim,
            "last_sync": self.last_sync,
            "last_wear_update": self.last_wear_update,
            "colony_id": self.colony_id,
            "active": self.active,
            "sync_state": self.sync_state.value,
        }

    def __repr__(self) -> str:
        return (
            f"StakedAsset(collection={self.collection_id}, asset={self.asset_id}, "
            f"holder='{self.holder[:8]}...', level={self.level}, wear={self.wear}, "
            f"state='{self.sync_state.value}')"
        )
