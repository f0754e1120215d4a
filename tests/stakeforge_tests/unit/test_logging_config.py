"""
Unit tests for structured logging and environment settings.
"""

import json
import logging
import sys

import pytest

from stakeforge.core import config as settings_module
from stakeforge.core.config import ConfigurationError, EnvironmentType, _get_float, _get_int
from stakeforge.core.exceptions import UnknownAssetError, get_error_context
from stakeforge.core.logging_config import EngineJsonFormatter, setup_engine_logging, setup_logging


def make_record(message="Asset staked", **extra):
    record = logging.LogRecord(
        name="stakeforge.core.staking.pool",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def test_event_lifted_into_envelope(self):
        formatter = EngineJsonFormatter(environment="development")
        payload = json.loads(formatter.format(make_record(event="pool.staked", asset_id=42)))

        assert payload["event"] == "pool.staked"
        assert payload["message"] == "Asset staked"
        assert payload["logger"] == "stakeforge.core.staking.pool"
        assert payload["level"] == "info"
        assert payload["service"] == "stakeforge"
        assert payload["environment"] == "development"
        assert payload["timestamp"]
        assert payload["context"] == {"asset_id": 42}

    def test_plain_record_gets_default_event(self):
        payload = json.loads(EngineJsonFormatter().format(make_record()))
        assert payload["event"] == "log"
        assert "context" not in payload

    def test_error_context_is_nested(self):
        exc = UnknownAssetError("not staked", details={"asset_id": 3})
        formatter = EngineJsonFormatter()
        record = make_record(event="sync.batch_item_skipped", **get_error_context(exc))
        context = json.loads(formatter.format(record))["context"]
        assert context["error_type"] == "UnknownAssetError"
        assert context["details"] == {"asset_id": 3}
        assert context["recoverable"] is False

    def test_exception_kept_out_of_context(self):
        try:
            raise RuntimeError("listener failed")
        except RuntimeError:
            record = make_record(event="sync.listener_error")
            record.exc_info = sys.exc_info()
        payload = json.loads(EngineJsonFormatter().format(record))
        assert "RuntimeError: listener failed" in payload["exc_info"]
        assert "context" not in payload


class TestSetupLogging:
    def test_console_only(self):
        logger = setup_logging(name="stakeforge.test_console", level="DEBUG")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_rotating_file(self, tmp_path):
        log_file = tmp_path / "logs" / "engine.json"
        logger = setup_logging(
            name="stakeforge.test_file", log_file=str(log_file), enable_console=False
        )
        logger.info("Configuration updated", extra={"event": "config.updated", "version": 2})
        for handler in logger.handlers:
            handler.flush()

        line = log_file.read_text().strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "config.updated"
        assert payload["context"] == {"version": 2}

    def test_from_settings(self):
        class Settings:
            LOG_FILE = ""
            LOG_LEVEL = "WARNING"
            ENVIRONMENT_TYPE = EnvironmentType.DEVELOPMENT

        logger = setup_engine_logging(Settings)
        assert logger.name == "stakeforge"
        assert logger.level == logging.WARNING


class TestEnvironmentSettings:
    def test_defaults(self):
        assert settings_module.DevelopmentConfig.CONDITION_PROVIDER_URL
        assert settings_module.Config.REWARD_PERIOD_SECONDS >= 1

    def test_int_parsing(self, monkeypatch):
        monkeypatch.setenv("STAKEFORGE_TEST_INT", "3600")
        assert _get_int("STAKEFORGE_TEST_INT", 86400) == 3600
        monkeypatch.setenv("STAKEFORGE_TEST_INT", "soon")
        with pytest.raises(ConfigurationError):
            _get_int("STAKEFORGE_TEST_INT", 86400)
        monkeypatch.setenv("STAKEFORGE_TEST_INT", "0")
        with pytest.raises(ConfigurationError):
            _get_int("STAKEFORGE_TEST_INT", 86400, minimum=1)

    def test_float_parsing(self, monkeypatch):
        monkeypatch.delenv("STAKEFORGE_TEST_FLOAT", raising=False)
        assert _get_float("STAKEFORGE_TEST_FLOAT", 5.0) == 5.0
        monkeypatch.setenv("STAKEFORGE_TEST_FLOAT", "-1")
        with pytest.raises(ConfigurationError):
            _get_float("STAKEFORGE_TEST_FLOAT", 5.0)
