import asyncio
import json

import httpx
import pytest

from loopio_mcp.token_manager import TokenAcquisitionError, TokenManager

from .conftest import form_fields


def test_no_token_before_first_acquisition(token_manager):
    assert token_manager.current_token == ""
    assert token_manager.has_token is False
    assert token_manager.status()["acquire_count"] == 0


def test_acquire_token_sends_client_credentials(config, loopio, token_manager):
    loopio.tokens = ["abc123"]

    token = asyncio.run(token_manager.acquire_token())

    assert token == "abc123"
    assert token_manager.current_token == "abc123"

    [request] = loopio.token_requests
    assert request.method == "POST"
    assert request.headers["content-type"] == "application/x-www-form-urlencoded"
    assert form_fields(request) == {
        "grant_type": "client_credentials",
        "scope": config.token_scope,
        "client_id": "client-id",
        "client_secret": "client-secret",
    }


def test_acquire_token_replaces_previous_token(loopio, token_manager):
    loopio.tokens = ["first", "second"]

    async def scenario():
        await token_manager.acquire_token()
        await token_manager.acquire_token()

    asyncio.run(scenario())

    assert token_manager.current_token == "second"
    assert token_manager.status()["acquire_count"] == 2


def test_rejected_request_keeps_previous_token(loopio, token_manager):
    loopio.tokens = ["good-token"]
    loopio.token_failure = httpx.Response(401, text="invalid_client")

    async def scenario():
        await token_manager.acquire_token()
        await token_manager.acquire_token()

    with pytest.raises(TokenAcquisitionError) as exc_info:
        asyncio.run(scenario())

    assert exc_info.value.status_code == 401
    assert "401" in str(exc_info.value)
    assert "invalid_client" in str(exc_info.value)
    assert token_manager.current_token == "good-token"


def test_network_error_raises_token_acquisition_error(config):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    token_manager = TokenManager(config, http_client=client)

    with pytest.raises(TokenAcquisitionError, match="network error"):
        asyncio.run(token_manager.acquire_token())

    assert token_manager.has_token is False


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"token_type": "Bearer"}),
        httpx.Response(200, json={"access_token": ""}),
        httpx.Response(200, text="<html>not json</html>"),
    ],
)
def test_malformed_token_response_is_rejected(config, response):
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: response))
    token_manager = TokenManager(config, http_client=client)

    with pytest.raises(TokenAcquisitionError):
        asyncio.run(token_manager.acquire_token())

    assert token_manager.current_token == ""


@pytest.mark.parametrize("expires_in", [1e20, -1, "3600", float("inf")])
def test_invalid_expires_in_keeps_previous_token(loopio, token_manager, expires_in):
    loopio.tokens = ["good-token"]

    async def scenario():
        await token_manager.acquire_token()
        loopio.tokens = []
        loopio.token_failure = httpx.Response(
            200,
            content=json.dumps({"access_token": "bad-token", "expires_in": expires_in}).encode(),
            headers={"content-type": "application/json"},
        )
        await token_manager.acquire_token()

    with pytest.raises(TokenAcquisitionError, match="expires_in"):
        asyncio.run(scenario())

    assert token_manager.current_token == "good-token"
    assert token_manager.status()["acquire_count"] == 1


def test_invalid_expires_in_during_refresh_keeps_timer(loopio, token_manager):
    loopio.tokens = ["good-token"]
    loopio.token_failure = httpx.Response(
        200,
        content=b'{"access_token": "bad-token", "expires_in": 1e20}',
        headers={"content-type": "application/json"},
    )

    async def scenario():
        await token_manager.acquire_token()
        token_manager.start_auto_refresh(interval=0.01)
        await asyncio.sleep(0.1)
        status = token_manager.status()
        await token_manager.stop_auto_refresh()
        return status

    status = asyncio.run(scenario())

    assert status["auto_refresh_running"] is True
    assert status["consecutive_refresh_failures"] >= 2
    assert token_manager.current_token == "good-token"


def test_unexpected_refresh_error_keeps_timer(token_manager):
    attempts = []

    async def acquire_token():
        attempts.append("acquire_token")
        raise RuntimeError("unexpected")

    token_manager.acquire_token = acquire_token

    async def scenario():
        token_manager.start_auto_refresh(interval=0.01)
        await asyncio.sleep(0.1)
        running = token_manager.is_refreshing
        await token_manager.stop_auto_refresh()
        return running

    assert asyncio.run(scenario()) is True
    assert len(attempts) >= 2
    assert token_manager.status()["consecutive_refresh_failures"] == len(attempts)


@pytest.mark.parametrize("interval", [0, -1])
def test_non_positive_refresh_interval_is_rejected(token_manager, interval):
    async def scenario():
        token_manager.start_auto_refresh(interval=interval)

    with pytest.raises(ValueError, match="positive"):
        asyncio.run(scenario())

    assert token_manager.is_refreshing is False


def test_auto_refresh_replaces_token(loopio, token_manager):
    loopio.tokens = [f"token-{n}" for n in range(1, 100)]

    async def scenario():
        await token_manager.acquire_token()
        token_manager.start_auto_refresh(interval=0.01)
        await asyncio.sleep(0.1)
        running = token_manager.is_refreshing
        await token_manager.stop_auto_refresh()
        return running

    assert asyncio.run(scenario()) is True

    assert token_manager.is_refreshing is False
    assert token_manager.current_token != "token-1"
    assert token_manager.status()["acquire_count"] >= 2


def test_failed_refresh_keeps_token_and_timer(loopio, token_manager):
    loopio.tokens = ["only-token"]
    loopio.token_failure = httpx.Response(503, text="maintenance")

    async def scenario():
        await token_manager.acquire_token()
        token_manager.start_auto_refresh(interval=0.01)
        await asyncio.sleep(0.1)
        status = token_manager.status()
        await token_manager.stop_auto_refresh()
        return status

    status = asyncio.run(scenario())

    assert token_manager.current_token == "only-token"
    assert status["auto_refresh_running"] is True
    assert status["consecutive_refresh_failures"] >= 2
    assert len(loopio.token_requests) >= 3


def test_start_auto_refresh_twice_keeps_one_timer(token_manager):
    async def scenario():
        token_manager.start_auto_refresh(interval=60)
        first = token_manager._refresh_task
        token_manager.start_auto_refresh(interval=60)
        second = token_manager._refresh_task
        await token_manager.stop_auto_refresh()
        return first, second

    first, second = asyncio.run(scenario())

    assert first is second


def test_stop_auto_refresh_is_idempotent(token_manager):
    async def scenario():
        await token_manager.stop_auto_refresh()
        token_manager.start_auto_refresh(interval=60)
        await token_manager.stop_auto_refresh()
        await token_manager.stop_auto_refresh()

    asyncio.run(scenario())

    assert token_manager.is_refreshing is False


def test_context_manager_stops_refresh(config, http_client):
    async def scenario():
        async with TokenManager(config, http_client=http_client) as token_manager:
            token_manager.start_auto_refresh(interval=60)
            assert token_manager.is_refreshing
        return token_manager

    token_manager = asyncio.run(scenario())

    assert token_manager.is_refreshing is False
    # Injected clients belong to the caller
    assert http_client.is_closed is False


def test_status_never_exposes_token(loopio, token_manager):
    loopio.tokens = ["super-secret-token"]

    asyncio.run(token_manager.acquire_token())
    status = token_manager.status()

    assert status["has_token"] is True
    assert status["acquire_count"] == 1
    assert status["last_acquired_at"] is not None
    assert 0 < status["expires_in_seconds"] <= 3600
    assert "super-secret-token" not in json.dumps(status)
