"""Serve command for sso-broker CLI.

Loads the config, sets up logging and runs the broker under uvicorn.
"""

from __future__ import annotations

__all__ = ["serve"]

import sys
from pathlib import Path

import click
import uvicorn

from sso_broker import __version__
from sso_broker.api.server import create_app
from sso_broker.config import get_system_log_path, load_config
from sso_broker.exceptions import ConfigurationError
from sso_broker.telemetry.system_logger import (
    configure_system_logger_file,
    get_system_logger,
    set_system_log_level,
)

from ..styling import style_error, style_warning


@click.command()
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: OS config directory)",
)
@click.option("--host", help="Bind address (overrides config)")
@click.option("--port", type=int, help="Port (overrides config)")
def serve(config_file: Path | None, host: str | None, port: int | None) -> None:
    """Run the broker HTTP server."""
    try:
        config = load_config(config_file)
    except ConfigurationError as e:
        click.echo(style_error(f"Error: {e}"), err=True)
        sys.exit(e.exit_code)

    set_system_log_level(config.logging.log_level)
    log_path = get_system_log_path(config)
    if log_path is not None:
        configure_system_logger_file(log_path)

    if not config.services:
        click.echo(style_warning("No services configured; every attach will fail."), err=True)

    bind_host = host or config.server.host
    bind_port = port or config.server.port

    get_system_logger().info(
        {
            "event": "broker_started",
            "version": __version__,
            "host": bind_host,
            "port": bind_port,
            "cache_backend": config.broker.cache_backend,
            "services": len(config.services),
            "message": f"sso-broker {__version__} listening on {bind_host}:{bind_port}",
        }
    )

    uvicorn.run(create_app(config), host=bind_host, port=bind_port, log_level="warning")
