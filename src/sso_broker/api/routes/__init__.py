"""API route modules.

Route organization:
- broker: attach, login, logout, userinfo and the command dispatcher
"""

from . import broker

__all__ = ["broker"]
