"""
Structured logging for the staking engine.

Every engine log call carries ``extra={"event": "<module>.<action>", ...}``.
``EngineJsonFormatter`` turns such a record into one JSON line with a fixed
envelope (timestamp, level, logger, event, message, service, environment)
and everything else the call passed in grouped under ``context``::

    {"timestamp": "...", "level": "info", "logger": "stakeforge.core.staking.pool",
     "event": "pool.reward_claimed", "message": "Rewards claimed",
     "service": "stakeforge", "environment": "production",
     "context": {"asset_id": 42, "primary": 115, ...}}

Usage:
    from stakeforge.core.logging_config import setup_logging

    setup_logging(log_file="/var/log/stakeforge/engine.json", level="INFO")
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

DEFAULT_EVENT = "log"

# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "event"}


class EngineJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that lifts ``event`` into the envelope and nests the rest under ``context``."""

    def __init__(self, environment: str = "production", service_name: str = "stakeforge"):
        super().__init__(fmt="%(message)s")
        self.environment = environment
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        }
        context.update(
            (key, value) for key, value in message_dict.items() if key not in ("exc_info", "stack_info")
        )

        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["level"] = record.levelname.lower()
        log_record["logger"] = record.name
        log_record["event"] = getattr(record, "event", None) or DEFAULT_EVENT
        log_record["message"] = record.getMessage()
        log_record["service"] = self.service_name
        log_record["environment"] = self.environment
        if context:
            log_record["context"] = context
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


def setup_logging(
    name: str = "stakeforge",
    log_file: Optional[str] = None,
    level: str = "INFO",
    environment: str = "production",
    enable_console: bool = True,
    max_bytes: int = 50 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Attach JSON handlers to the ``name`` logger, replacing any it already had.

    Engine modules log through ``logging.getLogger(__name__)`` under the
    ``stakeforge`` namespace, so configuring the package logger covers them.
    A log file that cannot be opened is reported and skipped.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper())
    logger.handlers = []

    formatter = EngineJsonFormatter(environment=environment, service_name=name.split(".")[0])

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
        except OSError as exc:
            logger.warning(
                "Could not open engine log file",
                extra={"event": "logging.file_unavailable", "log_file": log_file, "error": str(exc)},
            )
        else:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


def setup_engine_logging(settings: Any = None) -> logging.Logger:
    """Configure the ``stakeforge`` logger from the environment-driven settings."""
    if settings is None:
        from stakeforge.core.config import Config as settings

    return setup_logging(
        name="stakeforge",
        log_file=settings.LOG_FILE or None,
        level=settings.LOG_LEVEL,
        environment=settings.ENVIRONMENT_TYPE.value,
    )
