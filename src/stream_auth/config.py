"""Stream Auth configuration via pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import BaseSettings

from .errors import ConfigError


TWITCH_AUTH_URL = "https://id.twitch.tv/oauth2/authorize"
TWITCH_REVOKE_URL = "https://id.twitch.tv/oauth2/revoke"
TWITCH_API_BASE = "https://api.twitch.tv/helix"

DEFAULT_SCOPES = "openid user:read:email user:read:follows"


class AuthSettings(BaseSettings):
    client_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("CLIENT_ID", "STREAM_AUTH_CLIENT_ID", "client_id"),
    )

    authorization_url: str = TWITCH_AUTH_URL
    revocation_url: str = TWITCH_REVOKE_URL
    api_base_url: str = TWITCH_API_BASE
    scopes: str = DEFAULT_SCOPES
    force_verify: bool = True

    # Loopback redirect agent
    callback_host: str = "localhost"
    callback_port: int = 3000
    callback_timeout_seconds: float = 300.0

    config_dir: str = "~/.stream-auth"
    http_timeout_seconds: float = 30.0

    model_config = {
        "env_prefix": "STREAM_AUTH_",
        "env_file": ".env",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @property
    def scope_list(self) -> list[str]:
        return [scope for scope in self.scopes.split() if scope]

    @property
    def config_path(self) -> Path:
        return Path(self.config_dir).expanduser()

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.callback_host}:{self.callback_port}/callback"


@lru_cache
def load_settings() -> AuthSettings:
    """Read settings once per process.

    Raises:
        ConfigError: If the client identifier is missing or a value is invalid
    """
    try:
        return AuthSettings()
    except ValidationError as e:
        missing = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        raise ConfigError(
            "Invalid configuration. Set CLIENT_ID in the environment or .env "
            f"(problem fields: {', '.join(missing)})"
        ) from e
