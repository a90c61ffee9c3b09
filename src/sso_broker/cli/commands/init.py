"""Init command for sso-broker CLI.

Writes the configuration file, optionally with the demo services and users.
"""

from __future__ import annotations

__all__ = ["init"]

import sys
from pathlib import Path
from typing import Literal, cast

import click
from pydantic import ValidationError

from sso_broker.config import (
    AppConfig,
    BrokerConfig,
    LoggingConfig,
    ServerConfig,
    get_config_path,
)
from sso_broker.constants import (
    DEFAULT_CACHE_DIRECTORY,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_HOST,
    DEFAULT_PORT,
)
from sso_broker.providers.demo import DEMO_SERVICES, DEMO_USERS

from ..styling import style_dim, style_error, style_label, style_success


@click.command()
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file to write (default: OS config directory)",
)
@click.option("--demo", is_flag=True, help="Include the demo services and users")
@click.option(
    "--cache-backend",
    type=click.Choice(["file", "memory"], case_sensitive=False),
    default="file",
    help="Where bindings and sessions live (default: file)",
)
@click.option(
    "--cache-directory",
    default=DEFAULT_CACHE_DIRECTORY,
    help=f"Directory of the file cache (default: {DEFAULT_CACHE_DIRECTORY})",
)
@click.option(
    "--cache-ttl",
    type=int,
    default=DEFAULT_CACHE_TTL_SECONDS,
    help=f"Binding lifetime in seconds (default: {DEFAULT_CACHE_TTL_SECONDS})",
)
@click.option(
    "--fail-exception",
    is_flag=True,
    help="Answer protocol failures as structured errors instead of negotiated responses",
)
@click.option("--log-dir", help="Directory for system.jsonl (default: stderr only)")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO"], case_sensitive=False),
    default="INFO",
    help="Logging verbosity (default: INFO)",
)
@click.option("--host", default=DEFAULT_HOST, help=f"Bind address (default: {DEFAULT_HOST})")
@click.option("--port", type=int, default=DEFAULT_PORT, help=f"Port (default: {DEFAULT_PORT})")
@click.option("--force", is_flag=True, help="Overwrite existing config")
def init(
    config_file: Path | None,
    demo: bool,
    cache_backend: str,
    cache_directory: str,
    cache_ttl: int,
    fail_exception: bool,
    log_dir: str | None,
    log_level: str,
    host: str,
    port: int,
    force: bool,
) -> None:
    """Initialize broker configuration.

    Creates configuration at the OS-appropriate location unless --config
    is given:
    - macOS: ~/Library/Application Support/sso-broker/
    - Linux: ~/.config/sso-broker/
    - Windows: C:\\Users\\<user>\\AppData\\Roaming\\sso-broker/

    Services and users are edited in the config file afterwards; use
    'sso-broker hash-password' to produce password hashes.
    """
    config_path = config_file or get_config_path()

    if config_path.exists() and not force:
        click.echo(style_error("Error: Config already exists. Use --force to overwrite."), err=True)
        sys.exit(1)

    try:
        config = AppConfig(
            broker=BrokerConfig(
                cache_directory=cache_directory,
                cache_ttl=cache_ttl,
                fail_exception=fail_exception,
                cache_backend=cast(Literal["file", "memory"], cache_backend.lower()),
            ),
            logging=LoggingConfig(
                log_dir=log_dir,
                log_level=cast(Literal["DEBUG", "INFO"], log_level.upper()),
            ),
            server=ServerConfig(host=host, port=port),
            services=dict(DEMO_SERVICES) if demo else {},
            users={name: dict(user) for name, user in DEMO_USERS.items()} if demo else {},
        )
    except ValidationError as e:
        click.echo(style_error(f"Error: Invalid option: {e.errors()[0]['msg']}"), err=True)
        sys.exit(1)

    try:
        config.save_to_file(config_path)
    except OSError as e:
        click.echo(style_error(f"Error: Cannot write config: {e}"), err=True)
        sys.exit(1)

    click.echo(style_success(f"Config saved to {config_path}"))
    click.echo(f"{style_label('Services')} {len(config.services)}")
    click.echo(f"{style_label('Users')} {len(config.users)}")
    if not demo:
        click.echo(style_dim("Add services and users to the config file before serving."))
