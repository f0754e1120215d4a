"""
External provider boundary.

The condition provider is the source of truth for charge, wear, experience
and level; the accessory provider lists equipped accessories. Both are
replaceable and allowed to fail. ``ConditionGateway`` wraps any condition
provider so that timeouts, exceptions and malformed payloads come back as a
failed ``FetchOutcome`` instead of propagating.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

import requests
from pydantic import BaseModel, Field, ValidationError

from stakeforge.core.exceptions import (
    MalformedConditionError,
    ProviderError,
    ProviderRejectedError,
    ProviderUnavailableError,
)
from stakeforge.core.staking.assets import MAX_CHARGE, MAX_LEVEL, MAX_WEAR, Condition

logger = logging.getLogger(__name__)


class ConditionSnapshot(BaseModel):
    """Condition payload as reported by the provider."""

    charge: int = Field(ge=0, le=MAX_CHARGE)
    wear: int = Field(ge=0, le=MAX_WEAR)
    experience: int = Field(ge=0)
    level: int = Field(ge=0, le=MAX_LEVEL)
    bio_level: int = Field(default=0, ge=0)

    def to_condition(self) -> Condition:
        return Condition(
            charge=self.charge,
            wear=self.wear,
            experience=self.experience,
            level=self.level,
            bio_level=self.bio_level,
        )


class Accessory(BaseModel):
    """One equipped accessory; boosts are percentage points."""

    accessory_id: str
    xp_boost: int = Field(default=0, ge=0, le=100)
    trait_pack: int = Field(default=0, ge=0)
    rare: bool = False


class ConditionProvider(Protocol):
    """Interface that condition sources must implement."""

    def fetch_condition(self, collection_id: int, asset_id: int) -> ConditionSnapshot | Mapping[str, Any]:
        """Return the authoritative condition or raise."""
        ...


class AccessoryProvider(Protocol):
    """Interface that accessory sources must implement."""

    def list_equipped_accessories(self, collection_id: int, asset_id: int) -> list[Accessory]:
        ...


def parse_condition(payload: ConditionSnapshot | Mapping[str, Any] | Any) -> ConditionSnapshot:
    """
    Validate a provider payload.

    A mapping with ``"status": "error"`` is the provider reporting an
    unrecoverable condition for the asset.

    Raises:
        ProviderRejectedError: The provider reported a failure
        MalformedConditionError: The payload is not a valid condition
    """
    if isinstance(payload, ConditionSnapshot):
        return payload
    if isinstance(payload, Condition):
        payload = {
            "charge": payload.charge,
            "wear": payload.wear,
            "experience": payload.experience,
            "level": payload.level,
            "bio_level": payload.bio_level,
        }
    if not isinstance(payload, Mapping):
        raise MalformedConditionError(
            f"Condition payload must be a mapping, got {type(payload).__name__}"
        )
    if str(payload.get("status", "")).lower() == "error":
        reason = str(payload.get("reason") or payload.get("error") or "unspecified")
        raise ProviderRejectedError(f"Provider rejected condition request: {reason}", reason=reason)
    try:
        return ConditionSnapshot.model_validate(dict(payload))
    except ValidationError as exc:
        raise MalformedConditionError(
            f"Malformed condition payload: {exc.error_count()} validation error(s)",
            details={"errors": exc.errors(include_url=False)},
        ) from exc


@dataclass(frozen=True)
class FetchOutcome:
    """Either a validated condition or the provider error that prevented it."""

    collection_id: int
    asset_id: int
    condition: Condition | None = None
    error: ProviderError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.condition is not None

    @classmethod
    def success(cls, collection_id: int, asset_id: int, condition: Condition) -> "FetchOutcome":
        return cls(collection_id=collection_id, asset_id=asset_id, condition=condition)

    @classmethod
    def failure(cls, collection_id: int, asset_id: int, error: ProviderError) -> "FetchOutcome":
        return cls(collection_id=collection_id, asset_id=asset_id, error=error)


class ConditionGateway:
    """
    Calls a condition provider under a wall-clock timeout.

    Every failure mode (timeout, exception, malformed payload, provider
    rejection) is converted into a failed ``FetchOutcome``. With a timeout,
    each call runs on its own daemon thread; a call that never returns is
    abandoned and cannot hold up later fetches or interpreter exit.
    """

    def __init__(self, provider: ConditionProvider, timeout_seconds: float | None = None):
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError("Timeout must be positive.")
        self.provider = provider
        self.timeout_seconds = timeout_seconds

    def fetch(self, collection_id: int, asset_id: int) -> FetchOutcome:
        try:
            payload = self._call(collection_id, asset_id)
            snapshot = parse_condition(payload)
        except ProviderError as exc:
            return FetchOutcome.failure(collection_id, asset_id, exc)
        except Exception as exc:
            return FetchOutcome.failure(
                collection_id,
                asset_id,
                ProviderUnavailableError(
                    f"Condition provider raised {type(exc).__name__}: {exc}",
                    details={"error_type": type(exc).__name__},
                ),
            )
        return FetchOutcome.success(collection_id, asset_id, snapshot.to_condition())

    def _call(self, collection_id: int, asset_id: int) -> Any:
        if self.timeout_seconds is None:
            return self.provider.fetch_condition(collection_id, asset_id)

        result: dict[str, Any] = {}

        def run() -> None:
            try:
                result["payload"] = self.provider.fetch_condition(collection_id, asset_id)
            except Exception as exc:
                result["error"] = exc

        worker = threading.Thread(
            target=run,
            name=f"condition-provider-{collection_id}-{asset_id}",
            daemon=True,
        )
        worker.start()
        worker.join(self.timeout_seconds)
        if worker.is_alive():
            logger.warning(
                "Condition provider call abandoned after timeout",
                extra={
                    "event": "provider.call_timed_out",
                    "collection_id": collection_id,
                    "asset_id": asset_id,
                    "timeout_seconds": self.timeout_seconds,
                },
            )
            raise ProviderUnavailableError(
                f"Condition provider timed out after {self.timeout_seconds}s"
            )
        if "error" in result:
            raise result["error"]
        return result.get("payload")


class HttpConditionProvider:
    """
    Condition provider backed by an HTTP API.

    ``GET {base_url}/collections/{collection_id}/assets/{asset_id}/condition``
    returns the condition as JSON.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        api_key: str = "",
        session: requests.Session | None = None,
    ):
        if not base_url:
            raise ValueError("Provider base URL is required.")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers["Authorization"] = f"Bearer {api_key}"

    def fetch_condition(self, collection_id: int, asset_id: int) -> ConditionSnapshot:
        url = f"{self.base_url}/collections/{collection_id}/assets/{asset_id}/condition"
        data = _get_json(self.session, url, self.timeout)
        return parse_condition(data)


class HttpAccessoryProvider:
    """Accessory provider backed by an HTTP API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        api_key: str = "",
        session: requests.Session | None = None,
    ):
        if not base_url:
            raise ValueError("Provider base URL is required.")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers["Authorization"] = f"Bearer {api_key}"

    def list_equipped_accessories(self, collection_id: int, asset_id: int) -> list[Accessory]:
        url = f"{self.base_url}/collections/{collection_id}/assets/{asset_id}/accessories"
        data = _get_json(self.session, url, self.timeout)
        items = data.get("accessories", []) if isinstance(data, Mapping) else data
        if not isinstance(items, list):
            raise MalformedConditionError("Accessory payload must be a list.")
        try:
            return [Accessory.model_validate(item) for item in items]
        except ValidationError as exc:
            raise MalformedConditionError(
                f"Malformed accessory payload: {exc.error_count()} validation error(s)"
            ) from exc


def _get_json(session: requests.Session, url: str, timeout: float) -> Any:
    try:
        response = session.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.Timeout as exc:
        raise ProviderUnavailableError(f"Provider request timed out: {url}") from exc
    except requests.exceptions.RequestException as exc:
        raise ProviderUnavailableError(f"Provider request failed: {exc}") from exc
    try:
        return response.json()
    except ValueError as exc:
        raise MalformedConditionError(f"Provider returned invalid JSON from {url}") from exc


def build_http_providers(settings: Any = None) -> tuple[HttpConditionProvider, HttpAccessoryProvider]:
    """Create HTTP providers from the environment-driven settings."""
    if settings is None:
        from stakeforge.core.config import Config as settings

    condition = HttpConditionProvider(
        settings.CONDITION_PROVIDER_URL,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        api_key=settings.PROVIDER_API_KEY,
    )
    accessories = HttpAccessoryProvider(
        settings.ACCESSORY_PROVIDER_URL or settings.CONDITION_PROVIDER_URL,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        api_key=settings.PROVIDER_API_KEY,
    )
    logger.info(
        "HTTP providers configured",
        extra={"event": "providers.configured", "condition_url": condition.base_url},
    )
    return condition, accessories
