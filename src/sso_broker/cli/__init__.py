"""Command-line interface for sso-broker.

Provides commands for initializing configuration, running the broker and
working with service session ids.
"""

from .main import cli, main

__all__ = ["cli", "main"]
