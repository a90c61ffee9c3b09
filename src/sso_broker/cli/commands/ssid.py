"""SSID and checksum commands for sso-broker CLI.

Helpers for service developers: compute what a service must send and check
what it did send.

Commands:
    ssid build SERVICE TOKEN   Print the service session id
    ssid check SSID            Verify an SSID, print its service
    checksum SERVICE TOKEN     Print the attach checksum

Secrets come from --secret or from the services in the config file.
"""

from __future__ import annotations

__all__ = ["checksum", "ssid"]

import sys
from pathlib import Path
from typing import NoReturn

import click

from sso_broker.codec import TokenCodec
from sso_broker.config import load_config
from sso_broker.exceptions import BrokerError, ConfigurationError
from sso_broker.providers.static import StaticServiceRegistry

from ..styling import style_error, style_label, style_success

_config_option = click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file holding the service secrets (default: OS config directory)",
)
_secret_option = click.option("--secret", help="Service secret (skips the config file)")


def _build_codec(service_id: str, secret: str | None, config_file: Path | None) -> TokenCodec:
    """Codec over --secret for service_id, or over the configured services.

    Raises:
        SystemExit: If the config cannot be loaded.
    """
    if secret is not None:
        return TokenCodec(StaticServiceRegistry({service_id: secret}))

    try:
        config = load_config(config_file)
    except ConfigurationError as e:
        click.echo(style_error(f"Error: {e}"), err=True)
        click.echo("Pass --secret to work without a config file.", err=True)
        sys.exit(e.exit_code)
    return TokenCodec(StaticServiceRegistry(config.services))


def _unknown_service(service_id: str) -> NoReturn:
    click.echo(style_error(f"Error: Unknown service '{service_id}'"), err=True)
    sys.exit(1)


@click.group()
def ssid() -> None:
    """Build and check service session ids."""


@ssid.command("build")
@click.argument("service_id")
@click.argument("token")
@_secret_option
@_config_option
def build(service_id: str, token: str, secret: str | None, config_file: Path | None) -> None:
    """Print the SSID a service derives from TOKEN."""
    sid = _build_codec(service_id, secret, config_file).build_ssid(service_id, token)
    if sid is None:
        _unknown_service(service_id)
    click.echo(sid)


@ssid.command("check")
@click.argument("sid")
@_secret_option
@_config_option
def check(sid: str, secret: str | None, config_file: Path | None) -> None:
    """Verify SID and print the service it belongs to."""
    try:
        parsed = TokenCodec.parse_ssid(sid)
        service_id = _build_codec(parsed.service_id, secret, config_file).validate_ssid(sid)
    except BrokerError as e:
        click.echo(style_error(f"Error: {e.message}"), err=True)
        sys.exit(1)

    click.echo(style_success("Valid session id"))
    click.echo(f"{style_label('Service')} {service_id}")
    click.echo(f"{style_label('Token')} {parsed.token}")


@click.command()
@click.argument("service_id")
@click.argument("token")
@_secret_option
@_config_option
def checksum(service_id: str, token: str, secret: str | None, config_file: Path | None) -> None:
    """Print the attach checksum for SERVICE_ID and TOKEN."""
    value = _build_codec(service_id, secret, config_file).attach_checksum(service_id, token)
    if value is None:
        _unknown_service(service_id)
    click.echo(value)
