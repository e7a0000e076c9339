import pytest
from pydantic import ValidationError

from loopio_mcp.config import (
    ConfigurationError,
    DEFAULT_API_BASE_URL,
    LoopioConfig,
    TOKEN_REFRESH_INTERVAL_SECONDS,
    TOKEN_URL,
)

CREDENTIALS = {"LOOPIO_CLIENT_ID": "my-client", "LOOPIO_CLIENT_SECRET": "my-secret"}


def test_from_env_uses_defaults():
    config = LoopioConfig.from_env(CREDENTIALS)

    assert config.client_id == "my-client"
    assert config.client_secret == "my-secret"
    assert config.api_base_url == DEFAULT_API_BASE_URL
    assert config.token_url == TOKEN_URL
    assert config.token_refresh_interval_seconds == TOKEN_REFRESH_INTERVAL_SECONDS == 3540
    assert config.request_timeout_seconds is None


def test_from_env_overrides():
    config = LoopioConfig.from_env({
        **CREDENTIALS,
        "LOOPIO_API_BASE_URL": "https://api.loopio.ca/data/v2",
        "LOOPIO_TOKEN_URL": "https://api.loopio.ca/oauth2/access_token",
        "LOOPIO_TOKEN_SCOPE": "library:read",
        "LOOPIO_TOKEN_REFRESH_SECONDS": "60",
        "LOOPIO_REQUEST_TIMEOUT_SECONDS": "12.5",
    })

    assert config.api_base_url == "https://api.loopio.ca/data/v2"
    assert config.token_url == "https://api.loopio.ca/oauth2/access_token"
    assert config.token_scope == "library:read"
    assert config.token_refresh_interval_seconds == 60
    assert config.request_timeout_seconds == 12.5


def test_from_env_blank_overrides_use_defaults():
    config = LoopioConfig.from_env({
        **CREDENTIALS,
        "LOOPIO_API_BASE_URL": "   ",
        "LOOPIO_TOKEN_URL": "",
        "LOOPIO_TOKEN_SCOPE": " ",
        "LOOPIO_TOKEN_REFRESH_SECONDS": "  ",
    })

    assert config.api_base_url == DEFAULT_API_BASE_URL
    assert config.token_url == TOKEN_URL
    assert config.token_refresh_interval_seconds == TOKEN_REFRESH_INTERVAL_SECONDS


def test_empty_base_url_is_rejected():
    with pytest.raises(ValidationError):
        LoopioConfig(api_base_url="  ", client_id="my-client", client_secret="my-secret")


@pytest.mark.parametrize(
    "environ",
    [
        {},
        {"LOOPIO_CLIENT_ID": "my-client"},
        {"LOOPIO_CLIENT_SECRET": "my-secret"},
        {"LOOPIO_CLIENT_ID": "   ", "LOOPIO_CLIENT_SECRET": "my-secret"},
    ],
)
def test_from_env_requires_credentials(environ):
    with pytest.raises(ConfigurationError, match="LOOPIO_CLIENT_ID"):
        LoopioConfig.from_env(environ)


@pytest.mark.parametrize("value", ["soon", "0", "-5"])
def test_from_env_rejects_bad_refresh_interval(value):
    with pytest.raises(ConfigurationError, match="LOOPIO_TOKEN_REFRESH_SECONDS"):
        LoopioConfig.from_env({**CREDENTIALS, "LOOPIO_TOKEN_REFRESH_SECONDS": value})


def test_config_is_frozen():
    config = LoopioConfig.from_env(CREDENTIALS)

    with pytest.raises(ValidationError):
        config.client_id = "someone-else"
