"""Main CLI entry point for sso-broker.

Defines the CLI group and registers all subcommands.

Commands:
    init           - Write the broker configuration
    serve          - Run the broker HTTP server
    ssid           - Build and check service session ids (build, check)
    checksum       - Attach checksum for a service and token
    hash-password  - bcrypt hash for the user table

Subcommand help:
    sso-broker COMMAND -h      Show help for a specific command
"""

from __future__ import annotations

__all__ = ["cli"]

import sys

import click

from sso_broker import __version__

from .commands.init import init
from .commands.password import hash_password_command
from .commands.serve import serve
from .commands.ssid import checksum, ssid


class ReorderedGroup(click.Group):
    """Custom group that shows commands before custom help text."""

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        """Add extra help after commands section."""
        formatter.write(
            """
Quick Start:
  sso-broker init --demo           Config with demo services and users
  sso-broker serve                 Run the broker on 127.0.0.1:8765

Service developers:
  sso-broker checksum server1 <token>      Attach checksum
  sso-broker ssid build server1 <token>    Session id sent as Bearer token
  sso-broker ssid check <ssid>             Verify a session id
"""
        )


@click.group(
    cls=ReorderedGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """sso-broker: Single sign-on broker for cooperating web services."""
    if version:
        click.echo(f"sso-broker {__version__}")
        sys.exit(0)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Register commands
cli.add_command(checksum)
cli.add_command(hash_password_command)
cli.add_command(init)
cli.add_command(serve)
cli.add_command(ssid)


def main() -> None:
    """CLI entry point."""
    cli()
