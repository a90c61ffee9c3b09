"""Application-wide constants for sso-broker.

Constants that define protocol behavior.
For user-configurable settings per deployment, see config.py.
"""

import base64
import tempfile
from pathlib import Path

__all__ = [
    # Application identity
    "APP_NAME",
    # Service session ids
    "SSID_PREFIX",
    "SSID_PATTERN",
    "ATTACH_CHECKSUM_PREFIX",
    "SESSION_CHECKSUM_PREFIX",
    # Cache / sessions
    "DEFAULT_CACHE_DIRECTORY",
    "DEFAULT_CACHE_TTL_SECONDS",
    "DEFAULT_SESSION_TTL_SECONDS",
    "DEFAULT_SESSION_COOKIE",
    "SESSION_ID_BYTES",
    "USER_SESSION_KEY",
    # Request surface
    "BEARER_PREFIX",
    "SESSION_ID_PARAMS",
    # Response surface
    "JSON_CONTENT_TYPE",
    "JSONP_CONTENT_TYPE",
    "HTML_CONTENT_TYPE",
    "TRANSPARENT_PIXEL_PNG",
    "SECRET_USER_FIELDS",
    # HTTP server
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    # Service client
    "DEFAULT_HTTP_TIMEOUT_SECONDS",
    "SERVICE_TOKEN_BYTES",
]

APP_NAME = "sso-broker"

# =============================================================================
# Service session ids
# =============================================================================

SSID_PREFIX = "SSO"

# SSO-<service>-<token>-<checksum>; \w is ASCII-only so ids stay URL-safe
SSID_PATTERN = r"^SSO-(\w*)-(\w*)-([a-z0-9]*)$"

# Distinct hash prefixes keep attach proofs and session ids from being
# replayed as each other
ATTACH_CHECKSUM_PREFIX = "attach"
SESSION_CHECKSUM_PREFIX = "session"

# =============================================================================
# Cache / sessions
# =============================================================================

DEFAULT_CACHE_DIRECTORY = str(Path(tempfile.gettempdir()) / APP_NAME)

# Binding lifetime (10 hours)
DEFAULT_CACHE_TTL_SECONDS = 36000

# Broker-side user session lifetime
DEFAULT_SESSION_TTL_SECONDS = 36000

DEFAULT_SESSION_COOKIE = "sso_broker_session"

# 256 bits via secrets.token_urlsafe
SESSION_ID_BYTES = 32

# Key of the authenticated username inside a user session
USER_SESSION_KEY = "sso_user"

# =============================================================================
# Request surface
# =============================================================================

BEARER_PREFIX = "Bearer "

# Checked after the Authorization header, in order: (source, name)
SESSION_ID_PARAMS: tuple[tuple[str, str], ...] = (
    ("query", "access_token"),
    ("form", "access_token"),
    ("query", "sso_session"),
)

# =============================================================================
# Response surface
# =============================================================================

JSON_CONTENT_TYPE = "application/json; charset=UTF-8"
JSONP_CONTENT_TYPE = "application/javascript; charset=UTF-8"
HTML_CONTENT_TYPE = "text/html; charset=UTF-8"

TRANSPARENT_PIXEL_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABAQ"
    "MAAAAl21bKAAAAA1BMVEUAAACnej3aAAAAAXRSTlMAQObYZg"
    "AAAApJREFUCNdjYAAAAAIAAeIhvDMAAAAASUVORK5CYII="
)

# Never part of a user-info response
SECRET_USER_FIELDS = frozenset({"password", "password_hash", "secret"})

# =============================================================================
# HTTP server
# =============================================================================

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765

# =============================================================================
# Service client
# =============================================================================

DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0

# Tokens are hex so they match the \w token group of an SSID
SERVICE_TOKEN_BYTES = 16
