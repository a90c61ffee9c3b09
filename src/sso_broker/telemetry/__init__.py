"""Operational logging for sso-broker.

The system logger records broker events (attachments, logins, failures) as
structured dicts. Console output is human-readable; the optional file
handler writes JSONL with ISO 8601 timestamps.
"""

from sso_broker.telemetry.system_logger import (
    ConsoleFormatter,
    configure_system_logger_file,
    get_system_logger,
    set_system_log_level,
)

__all__ = [
    "ConsoleFormatter",
    "configure_system_logger_file",
    "get_system_logger",
    "set_system_log_level",
]
