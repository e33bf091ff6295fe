"""Authentication module for Stream Auth.

Usage:
    from stream_auth.auth import SessionManager

    manager = SessionManager.from_settings(settings, agent=agent)
    manager.bootstrap()
    profile = await manager.sign_in()
"""

from .manager import SessionManager
from .profile import ProfileFetcher

__all__ = [
    "SessionManager",
    "ProfileFetcher",
]
