"""hash-password command for sso-broker CLI."""

from __future__ import annotations

__all__ = ["hash_password_command"]

import click

from sso_broker.providers.static import hash_password


@click.command("hash-password")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Password to hash (prompted if omitted)",
)
@click.option(
    "--rounds",
    type=click.IntRange(4, 31),
    default=12,
    show_default=True,
    help="bcrypt cost factor",
)
def hash_password_command(password: str, rounds: int) -> None:
    """Print a bcrypt hash for a user's "password" field in the config."""
    click.echo(hash_password(password, rounds=rounds))
