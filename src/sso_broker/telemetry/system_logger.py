"""System logger for broker events.

One process-wide logger records what the broker does: services attaching,
users logging in and out, requests failing. Events are dicts with an
"event" key and a human-readable "message":

    get_system_logger().info({"event": "service_attached", "service_id": "server1",
                              "message": "Service server1 attached"})

Handlers:
- stderr: INFO and above (DEBUG with log_level=DEBUG), "LEVEL: message"
- <log_dir>/system.jsonl: WARNING and above, JSONL, added by
  configure_system_logger_file() once the config is loaded
"""

from __future__ import annotations

__all__ = [
    "ConsoleFormatter",
    "configure_system_logger_file",
    "get_system_logger",
    "set_system_log_level",
]

import logging
import sys
from pathlib import Path

from sso_broker.constants import APP_NAME
from sso_broker.utils.file_helpers import set_secure_permissions
from sso_broker.utils.logging.iso_formatter import ISO8601Formatter

LOGGER_NAME = f"{APP_NAME}.system"


class ConsoleFormatter(logging.Formatter):
    """Renders dict events as "LEVEL: <message or event>"."""

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            text = record.msg.get("message") or record.msg.get("event", "")
        else:
            text = record.getMessage()
        return f"{record.levelname}: {text}"


_system_logger: logging.Logger | None = None
_file_handler_configured: bool = False


def get_system_logger() -> logging.Logger:
    """Return the system logger, creating it with a stderr handler on first use."""
    global _system_logger

    if _system_logger is None:
        logger = logging.getLogger(LOGGER_NAME)
        logger.setLevel(logging.INFO)
        logger.propagate = False

        # Drop handlers left over from an earlier initialisation
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        console = logging.StreamHandler(sys.stderr)
        console.setLevel(logging.INFO)
        console.setFormatter(ConsoleFormatter())
        logger.addHandler(console)

        _system_logger = logger

    return _system_logger


def set_system_log_level(level: str) -> None:
    """Apply the configured level ("DEBUG" or "INFO") to the logger and its console handler."""
    logger = get_system_logger()
    numeric = logging.getLevelName(level.upper())
    logger.setLevel(numeric)
    for handler in logger.handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(numeric)


def configure_system_logger_file(log_path: Path) -> None:
    """Add the WARNING+ JSONL file handler. Later calls are ignored.

    Args:
        log_path: Path to system.jsonl. Its directory is created owner-only.
    """
    global _file_handler_configured

    if _file_handler_configured:
        return

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        set_secure_permissions(log_path.parent, is_directory=True)
    except OSError:
        pass  # FileHandler below reports the real problem

    file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(ISO8601Formatter())
    get_system_logger().addHandler(file_handler)

    _file_handler_configured = True
