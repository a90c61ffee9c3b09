"""Logging utilities (formatters and logger setup)."""

from sso_broker.utils.logging.iso_formatter import ISO8601Formatter

__all__ = ["ISO8601Formatter"]
