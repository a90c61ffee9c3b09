"""Application configuration for sso-broker.

Defines configuration models for the broker protocol, logging, the HTTP
server and the static service/user tables. The config is created with
`sso-broker init` and stored as JSON at the OS-appropriate location
(via click.get_app_dir).

Example usage:
    # Load from config file
    config = AppConfig.load_from_files(config_path)

    # Save new configuration
    config.save_to_file(config_path)
"""

from __future__ import annotations

__all__ = [
    "AppConfig",
    "BrokerConfig",
    "LoggingConfig",
    "ServerConfig",
    "get_config_path",
    "get_system_log_path",
    "load_config",
]

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from sso_broker.constants import (
    DEFAULT_CACHE_DIRECTORY,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SESSION_COOKIE,
    DEFAULT_SESSION_TTL_SECONDS,
)
from sso_broker.exceptions import ConfigurationError
from sso_broker.utils.file_helpers import (
    get_app_dir,
    load_validated_json,
    require_file_exists,
    set_secure_permissions,
    write_json_atomic,
)

CONFIG_FILENAME = "config.json"


# =============================================================================
# Broker Configuration
# =============================================================================


class BrokerConfig(BaseModel):
    """Protocol settings.

    Attributes:
        cache_directory: Where the file cache keeps bindings and user sessions.
        cache_ttl: Lifetime of a binding (service session -> user session) in seconds.
        fail_exception: If True, protocol failures are raised to the embedding
            caller instead of being rendered as HTTP responses.
        cache_backend: "file" (persistent, shared between processes) or
            "memory" (single process).
        session_cookie: Cookie carrying the broker's own user session id.
        session_ttl: Lifetime of an idle user session in seconds.
        cookie_samesite: SameSite policy of the session cookie. Image and
            JSONP attach from another site need "none" (cookie is then Secure).
    """

    cache_directory: str = Field(default=DEFAULT_CACHE_DIRECTORY, min_length=1)
    cache_ttl: int = Field(default=DEFAULT_CACHE_TTL_SECONDS, ge=1)
    fail_exception: bool = False
    cache_backend: Literal["file", "memory"] = "file"
    session_cookie: str = Field(default=DEFAULT_SESSION_COOKIE, pattern=r"^[A-Za-z0-9_\-]+$")
    session_ttl: int = Field(default=DEFAULT_SESSION_TTL_SECONDS, ge=1)
    cookie_samesite: Literal["lax", "strict", "none"] = "lax"


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging configuration settings.

    Attributes:
        log_dir: Directory for system.jsonl. None logs to stderr only.
        log_level: Console logging level (DEBUG or INFO).
    """

    log_dir: str | None = None
    log_level: Literal["DEBUG", "INFO"] = "INFO"


# =============================================================================
# Server Configuration
# =============================================================================


class ServerConfig(BaseModel):
    """HTTP server settings for `sso-broker serve`."""

    host: str = Field(default=DEFAULT_HOST, min_length=1)
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Main application configuration.

    Attributes:
        broker: Protocol and cache settings.
        logging: Logging settings.
        server: HTTP server settings.
        services: Registered services (service id -> shared secret).
        users: User table (username -> profile fields plus bcrypt "password").
    """

    broker: BrokerConfig = Field(default_factory=BrokerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    services: dict[str, str] = Field(default_factory=dict)
    users: dict[str, dict[str, Any]] = Field(default_factory=dict)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to JSON file.

        Creates parent directories if they don't exist. The file holds
        service secrets, so it is written owner-only (0o600).

        Args:
            config_path: Path where the config JSON file should be saved.
        """
        config_path.parent.mkdir(parents=True, exist_ok=True)
        set_secure_permissions(config_path.parent, is_directory=True)

        write_json_atomic(config_path, self.model_dump(), indent=2)

    @classmethod
    def load_from_files(cls, config_path: Path) -> "AppConfig":
        """Load configuration from JSON file.

        Args:
            config_path: Path to the config JSON file.

        Returns:
            AppConfig instance with loaded configuration.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValueError: If config file is invalid or missing required fields.
        """
        require_file_exists(config_path, file_type="configuration")
        return load_validated_json(
            config_path,
            cls,
            file_type="config",
            recovery_hint="Run 'sso-broker init --force' to reconfigure.",
        )


def get_config_path() -> Path:
    """Default config file location."""
    return get_app_dir() / CONFIG_FILENAME


def get_system_log_path(config: AppConfig) -> Path | None:
    """Path of system.jsonl, or None when file logging is disabled."""
    if not config.logging.log_dir:
        return None
    return Path(config.logging.log_dir).expanduser() / "system.jsonl"


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load the config, converting file errors into ConfigurationError.

    Args:
        config_path: Explicit path, or None for the default location.

    Raises:
        ConfigurationError: If the file is missing or invalid.
    """
    path = config_path or get_config_path()
    try:
        return AppConfig.load_from_files(path)
    except (FileNotFoundError, ValueError) as e:
        raise ConfigurationError(str(e)) from e
