"""HTTP layer of the broker (FastAPI)."""

from sso_broker.api.server import create_app

__all__ = ["create_app"]
