"""Demo services and users.

Used by ``sso-broker init --demo`` and for local experiments. Normally the
service and user tables come from a database rather than from code.
"""

from __future__ import annotations

__all__ = [
    "DEMO_SERVICES",
    "DEMO_USERS",
]

DEMO_SERVICES: dict[str, str] = {
    "server1": "8iwzik1bwd",
    "server2": "7pypoox2pc",
    "server3": "129889asfbjasbf",
}

DEMO_USERS: dict[str, dict[str, str]] = {
    "max": {
        "fullname": "Max Admaykin",
        "email": "max.admaykin@example.com",
        "password": "$2y$10$lVUeiphXLAm4pz6l7lF9i.6IelAqRxV4gCBu8GBGhCpaRb6o0qzUO",  # jackie123
    },
    "max2": {
        "fullname": "Max Admaykin 2",
        "email": "max2@example.com",
        "password": "$2y$10$RU85KDMhbh8pDhpvzL6C5.kD3qWpzXARZBzJ5oJ2mFoW7Ren.apC2",  # john123
    },
}
