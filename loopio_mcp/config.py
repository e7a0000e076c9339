"""Configuration for the Loopio MCP Server"""
import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

# Loopio API Configuration
DEFAULT_API_BASE_URL = "https://api.loopio.com/data/v2"
TOKEN_URL = "https://api.loopio.com/oauth2/access_token"
TOKEN_SCOPE = (
    "library:read library:write project:read project:write "
    "file:read file:write customProjectField:read customProjectField:write "
    "customer:read"
)

# Client-credentials tokens live for 60 minutes; refresh one minute early
TOKEN_REFRESH_INTERVAL_SECONDS = 59 * 60

JSON_CONTENT_TYPE = "application/json"
JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"

# Logging
LOG_TOKEN_EVENTS = os.getenv("LOG_TOKEN_EVENTS", "true").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


class LoopioConfig(BaseModel):
    """Immutable connection settings for the Loopio API."""
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
    )

    api_base_url: str = Field(default=DEFAULT_API_BASE_URL, min_length=1, description="Loopio data API base URL")
    client_id: str = Field(..., min_length=1, description="OAuth2 client identifier")
    client_secret: str = Field(..., min_length=1, description="OAuth2 client secret")
    token_url: str = Field(default=TOKEN_URL, min_length=1, description="OAuth2 token endpoint")
    token_scope: str = Field(default=TOKEN_SCOPE, description="Space separated OAuth2 scopes")
    token_refresh_interval_seconds: float = Field(
        default=TOKEN_REFRESH_INTERVAL_SECONDS,
        description="Seconds between proactive token refreshes",
        gt=0,
    )
    request_timeout_seconds: Optional[float] = Field(
        default=None,
        description="HTTP timeout for API calls (unset uses the transport default)",
        gt=0,
    )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LoopioConfig":
        """Build the configuration from environment variables.

        Raises:
            ConfigurationError: If the client id or secret is missing, or a
                numeric setting cannot be parsed.
        """
        env = os.environ if environ is None else environ

        client_id = env.get("LOOPIO_CLIENT_ID", "").strip()
        client_secret = env.get("LOOPIO_CLIENT_SECRET", "").strip()
        if not client_id or not client_secret:
            raise ConfigurationError(
                "LOOPIO_CLIENT_ID and LOOPIO_CLIENT_SECRET must be set in the environment"
            )

        settings = {
            "api_base_url": env.get("LOOPIO_API_BASE_URL", "").strip() or DEFAULT_API_BASE_URL,
            "client_id": client_id,
            "client_secret": client_secret,
            "token_url": env.get("LOOPIO_TOKEN_URL", "").strip() or TOKEN_URL,
            "token_scope": env.get("LOOPIO_TOKEN_SCOPE", "").strip() or TOKEN_SCOPE,
        }

        for key, var in (
            ("token_refresh_interval_seconds", "LOOPIO_TOKEN_REFRESH_SECONDS"),
            ("request_timeout_seconds", "LOOPIO_REQUEST_TIMEOUT_SECONDS"),
        ):
            raw = env.get(var, "").strip()
            if not raw:
                continue
            try:
                value = float(raw)
            except ValueError:
                raise ConfigurationError(f"{var} must be a number, got {raw!r}")
            if value <= 0:
                raise ConfigurationError(f"{var} must be positive, got {raw!r}")
            settings[key] = value

        return cls(**settings)
