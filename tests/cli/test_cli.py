"""Unit tests for CLI commands.

Tests CLI behavior using Click's CliRunner for isolated, fast testing.
Tests use the AAA pattern (Arrange-Act-Assert) for clarity.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from sso_broker.cli import cli
from sso_broker.codec import compute_attach_checksum, format_ssid
from sso_broker.config import AppConfig
from sso_broker.providers.demo import DEMO_SERVICES
from sso_broker.providers.static import verify_password

SERVICE_ID = "server1"
SECRET = DEMO_SERVICES[SERVICE_ID]
TOKEN = "tok123"


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner for testing."""
    return CliRunner()


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "config.json"


@pytest.fixture
def demo_config(runner: CliRunner, config_path: Path) -> Path:
    """Config file written by `init --demo`."""
    result = runner.invoke(cli, ["init", "--config", str(config_path), "--demo"])
    assert result.exit_code == 0, result.output
    return config_path


class TestVersionAndHelp:
    def test_version_flag_shows_version(self, runner: CliRunner) -> None:
        """Given --version flag, returns version string."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "sso-broker" in result.output

    def test_root_help_shows_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("init", "serve", "ssid", "checksum", "hash-password"):
            assert command in result.output


class TestInit:
    """Tests for init command."""

    def test_init_writes_config(self, runner: CliRunner, config_path: Path) -> None:
        """Given init with options, writes a loadable config."""
        # Act
        result = runner.invoke(
            cli,
            [
                "init",
                "--config",
                str(config_path),
                "--cache-backend",
                "memory",
                "--cache-ttl",
                "120",
                "--port",
                "9000",
            ],
        )

        # Assert
        assert result.exit_code == 0, result.output
        config = AppConfig.load_from_files(config_path)
        assert config.broker.cache_backend == "memory"
        assert config.broker.cache_ttl == 120
        assert config.server.port == 9000
        assert config.services == {}

    def test_init_demo_includes_services_and_users(self, demo_config: Path) -> None:
        config = AppConfig.load_from_files(demo_config)

        assert config.services == DEMO_SERVICES
        assert set(config.users) == {"max", "max2"}

    def test_init_refuses_to_overwrite(self, runner: CliRunner, demo_config: Path) -> None:
        """Given an existing config, init without --force fails."""
        result = runner.invoke(cli, ["init", "--config", str(demo_config)])

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_init_force_overwrites(self, runner: CliRunner, demo_config: Path) -> None:
        result = runner.invoke(cli, ["init", "--config", str(demo_config), "--force"])

        assert result.exit_code == 0
        assert AppConfig.load_from_files(demo_config).services == {}

    def test_init_rejects_invalid_ttl(self, runner: CliRunner, config_path: Path) -> None:
        result = runner.invoke(cli, ["init", "--config", str(config_path), "--cache-ttl", "0"])

        assert result.exit_code == 1
        assert not config_path.exists()


class TestSsidCommands:
    """Tests for ssid build/check and checksum."""

    def test_build_with_secret(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["ssid", "build", SERVICE_ID, TOKEN, "--secret", SECRET])

        assert result.exit_code == 0
        assert result.output.strip() == format_ssid(SERVICE_ID, TOKEN, SECRET)

    def test_build_from_config(self, runner: CliRunner, demo_config: Path) -> None:
        result = runner.invoke(cli, ["ssid", "build", SERVICE_ID, TOKEN, "--config", str(demo_config)])

        assert result.exit_code == 0
        assert result.output.strip() == format_ssid(SERVICE_ID, TOKEN, SECRET)

    def test_build_unknown_service(self, runner: CliRunner, demo_config: Path) -> None:
        result = runner.invoke(cli, ["ssid", "build", "ghost", TOKEN, "--config", str(demo_config)])

        assert result.exit_code == 1
        assert "Unknown service" in result.output

    def test_build_without_config(self, runner: CliRunner, config_path: Path) -> None:
        """Given no --secret and a missing config file, exits with the config error code."""
        result = runner.invoke(cli, ["ssid", "build", SERVICE_ID, TOKEN, "--config", str(config_path)])

        assert result.exit_code == 16

    def test_check_valid(self, runner: CliRunner, demo_config: Path) -> None:
        sid = format_ssid(SERVICE_ID, TOKEN, SECRET)

        result = runner.invoke(cli, ["ssid", "check", sid, "--config", str(demo_config)])

        assert result.exit_code == 0
        assert "Valid session id" in result.output
        assert SERVICE_ID in result.output

    def test_check_forged(self, runner: CliRunner, demo_config: Path) -> None:
        sid = format_ssid(SERVICE_ID, TOKEN, "wrong")

        result = runner.invoke(cli, ["ssid", "check", sid, "--config", str(demo_config)])

        assert result.exit_code == 1
        assert "Checksum failed" in result.output

    def test_check_malformed(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["ssid", "check", "garbage", "--secret", SECRET])

        assert result.exit_code == 1
        assert "Invalid session id" in result.output

    def test_checksum(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["checksum", SERVICE_ID, TOKEN, "--secret", SECRET])

        assert result.exit_code == 0
        assert result.output.strip() == compute_attach_checksum(TOKEN, SECRET)


class TestHashPassword:
    def test_hash_password_option(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["hash-password", "--password", "s3cret", "--rounds", "4"])

        assert result.exit_code == 0
        assert verify_password("s3cret", result.output.strip())

    def test_hash_password_prompt(self, runner: CliRunner) -> None:
        """Given no --password, prompts twice (with confirmation)."""
        result = runner.invoke(cli, ["hash-password", "--rounds", "4"], input="s3cret\ns3cret\n")

        assert result.exit_code == 0
        assert verify_password("s3cret", result.output.strip().splitlines()[-1])


class TestServe:
    """Tests for serve command (uvicorn mocked)."""

    def test_serve_runs_uvicorn_with_config(self, runner: CliRunner, demo_config: Path) -> None:
        with patch("sso_broker.cli.commands.serve.uvicorn.run") as run:
            result = runner.invoke(cli, ["serve", "--config", str(demo_config), "--port", "9999"])

        assert result.exit_code == 0, result.output
        run.assert_called_once()
        assert run.call_args.kwargs["host"] == "127.0.0.1"
        assert run.call_args.kwargs["port"] == 9999

    def test_serve_without_config(self, runner: CliRunner, config_path: Path) -> None:
        """Given a missing config, serve exits with the configuration error code."""
        with patch("sso_broker.cli.commands.serve.uvicorn.run") as run:
            result = runner.invoke(cli, ["serve", "--config", str(config_path)])

        assert result.exit_code == 16
        assert "sso-broker init" in result.output
        run.assert_not_called()

    def test_serve_invalid_config(self, runner: CliRunner, config_path: Path) -> None:
        config_path.write_text(json.dumps({"broker": {"cache_ttl": -1}}))

        with patch("sso_broker.cli.commands.serve.uvicorn.run") as run:
            result = runner.invoke(cli, ["serve", "--config", str(config_path)])

        assert result.exit_code == 16
        run.assert_not_called()
