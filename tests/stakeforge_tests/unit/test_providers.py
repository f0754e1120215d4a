"""
Unit tests for provider payload validation and the HTTP providers.
"""

import pytest
import requests

from stakeforge.core.exceptions import (
    MalformedConditionError,
    ProviderRejectedError,
    ProviderUnavailableError,
    is_recoverable_error,
)
from stakeforge.core.staking.assets import Condition
from stakeforge.core.staking.providers import (
    ConditionSnapshot,
    HttpAccessoryProvider,
    HttpConditionProvider,
    build_http_providers,
    parse_condition,
)


class FakeResponse:
    def __init__(self, payload=None, status_code=200, invalid_json=False):
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value")
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.headers = {}
        self.requests = []

    def get(self, url, timeout=None):
        self.requests.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response


class TestParseCondition:
    def test_mapping(self):
        snapshot = parse_condition({"charge": 50, "wear": 10, "experience": 300, "level": 4})
        assert snapshot.to_condition() == Condition(charge=50, wear=10, experience=300, level=4)

    def test_condition_passthrough(self):
        condition = Condition(charge=1, wear=2, experience=3, level=4, bio_level=5)
        assert parse_condition(condition).to_condition() == condition

    def test_snapshot_passthrough(self):
        snapshot = ConditionSnapshot(charge=1, wear=2, experience=3, level=4)
        assert parse_condition(snapshot) is snapshot

    @pytest.mark.parametrize(
        "payload",
        [
            {"charge": 101, "wear": 0, "experience": 0, "level": 0},
            {"charge": 50, "wear": -1, "experience": 0, "level": 0},
            {"charge": 50, "wear": 0, "experience": 0, "level": 256},
            {"charge": 50, "wear": 0, "level": 1},
            ["not", "a", "mapping"],
            None,
        ],
    )
    def test_malformed(self, payload):
        with pytest.raises(MalformedConditionError):
            parse_condition(payload)

    def test_error_status_is_rejection(self):
        with pytest.raises(ProviderRejectedError) as exc_info:
            parse_condition({"status": "error", "reason": "asset burned"})
        assert exc_info.value.reason == "asset burned"

    def test_provider_errors_recoverable(self):
        assert is_recoverable_error(ProviderUnavailableError("down"))


class TestHttpConditionProvider:
    def test_fetch(self):
        session = FakeSession(FakeResponse({"charge": 70, "wear": 20, "experience": 5, "level": 3}))
        provider = HttpConditionProvider("http://conditions.local/", timeout=2.5, api_key="k", session=session)

        snapshot = provider.fetch_condition(7, 42)

        assert snapshot.charge == 70
        assert session.requests == [("http://conditions.local/collections/7/assets/42/condition", 2.5)]
        assert session.headers["Authorization"] == "Bearer k"

    def test_timeout(self):
        session = FakeSession(error=requests.exceptions.Timeout("slow"))
        provider = HttpConditionProvider("http://conditions.local", session=session)
        with pytest.raises(ProviderUnavailableError):
            provider.fetch_condition(7, 42)

    def test_http_error(self):
        session = FakeSession(FakeResponse(status_code=503))
        provider = HttpConditionProvider("http://conditions.local", session=session)
        with pytest.raises(ProviderUnavailableError):
            provider.fetch_condition(7, 42)

    def test_invalid_json(self):
        session = FakeSession(FakeResponse(invalid_json=True))
        provider = HttpConditionProvider("http://conditions.local", session=session)
        with pytest.raises(MalformedConditionError):
            provider.fetch_condition(7, 42)

    def test_base_url_required(self):
        with pytest.raises(ValueError):
            HttpConditionProvider("")


class TestHttpAccessoryProvider:
    def test_wrapped_list(self):
        payload = {"accessories": [{"accessory_id": "visor", "xp_boost": 5, "trait_pack": 2, "rare": True}]}
        provider = HttpAccessoryProvider("http://acc.local", session=FakeSession(FakeResponse(payload)))
        accessories = provider.list_equipped_accessories(7, 42)
        assert len(accessories) == 1
        assert accessories[0].rare is True

    def test_bare_list(self):
        payload = [{"accessory_id": "visor"}, {"accessory_id": "halo", "xp_boost": 3}]
        provider = HttpAccessoryProvider("http://acc.local", session=FakeSession(FakeResponse(payload)))
        assert [a.xp_boost for a in provider.list_equipped_accessories(7, 42)] == [0, 3]

    def test_malformed(self):
        payload = [{"accessory_id": "visor", "xp_boost": 500}]
        provider = HttpAccessoryProvider("http://acc.local", session=FakeSession(FakeResponse(payload)))
        with pytest.raises(MalformedConditionError):
            provider.list_equipped_accessories(7, 42)


class TestBuildProviders:
    def test_accessory_url_falls_back(self):
        class Settings:
            CONDITION_PROVIDER_URL = "http://conditions.local"
            ACCESSORY_PROVIDER_URL = ""
            PROVIDER_TIMEOUT_SECONDS = 3.0
            PROVIDER_API_KEY = ""

        condition, accessories = build_http_providers(Settings)
        assert condition.base_url == "http://conditions.local"
        assert accessories.base_url == "http://conditions.local"
        assert accessories.timeout == 3.0
