"""External collaborators of the broker.

Protocols:
- ServiceRegistry: service id -> ServiceInfo (secret)
- Authenticator: credentials -> AuthResult
- UserDirectory: username -> public record

Implementations:
- StaticServiceRegistry / StaticUserTable: in-memory tables (config, demo, tests)
"""

from sso_broker.providers.protocol import (
    Authenticator,
    AuthResult,
    ServiceInfo,
    ServiceRegistry,
    UserDirectory,
)
from sso_broker.providers.static import (
    StaticServiceRegistry,
    StaticUserTable,
    hash_password,
    verify_password,
)

__all__ = [
    "AuthResult",
    "Authenticator",
    "ServiceInfo",
    "ServiceRegistry",
    "StaticServiceRegistry",
    "StaticUserTable",
    "UserDirectory",
    "hash_password",
    "verify_password",
]
