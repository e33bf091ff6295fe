"""Stream Auth - OAuth implicit-grant session management for Twitch clients."""

__version__ = "0.1.0"
