import json
from typing import Any, Callable, Optional
from urllib.parse import parse_qs

import httpx
import pytest

from loopio_mcp.api_client import LoopioAPIClient
from loopio_mcp.config import LoopioConfig
from loopio_mcp.token_manager import TokenManager

BASE_URL = "https://api.loopio.test/data/v2"
TOKEN_URL = "https://api.loopio.test/oauth2/access_token"


class FakeLoopio:
    """In-memory stand-in for the Loopio token endpoint and data API.

    ``tokens`` are handed out in order by the token endpoint; once exhausted,
    ``token_failure`` (if set) is returned instead. Data API responses come from
    ``routes`` keyed by (method, path relative to the base URL).
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.tokens: list[str] = ["token-1"]
        self.token_failure: Optional[httpx.Response] = None
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def route(self, method: str, path: str, status: int = 200, json_body: Any = None, text: str = "") -> None:
        def _respond(_request: httpx.Request) -> httpx.Response:
            if json_body is not None:
                return httpx.Response(status, json=json_body)
            return httpx.Response(status, text=text)

        self.routes[(method, path)] = _respond

    @property
    def token_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == TOKEN_URL]

    @property
    def api_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) != TOKEN_URL]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if str(request.url) == TOKEN_URL:
            if self.tokens:
                return httpx.Response(200, json={"access_token": self.tokens.pop(0), "expires_in": 3600})
            if self.token_failure is not None:
                failure = self.token_failure
                return httpx.Response(failure.status_code, headers=failure.headers, content=failure.content)
            return httpx.Response(401, text="invalid_client")

        path = request.url.path[len("/data/v2"):]
        handler = self.routes.get((request.method, path))
        if handler is None:
            return httpx.Response(404, text=f"no route for {request.method} {path}")
        return handler(request)


def form_fields(request: httpx.Request) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


def json_body(request: httpx.Request) -> Any:
    return json.loads(request.content)


@pytest.fixture(name="config")
def _config() -> LoopioConfig:
    return LoopioConfig(
        api_base_url=BASE_URL,
        client_id="client-id",
        client_secret="client-secret",
        token_url=TOKEN_URL,
    )


@pytest.fixture(name="loopio")
def _loopio() -> FakeLoopio:
    return FakeLoopio()


@pytest.fixture(name="http_client")
def _http_client(loopio: FakeLoopio) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(loopio))


@pytest.fixture(name="token_manager")
def _token_manager(config: LoopioConfig, http_client: httpx.AsyncClient) -> TokenManager:
    return TokenManager(config, http_client=http_client)


@pytest.fixture(name="api_client")
def _api_client(config: LoopioConfig, token_manager: TokenManager, http_client: httpx.AsyncClient) -> LoopioAPIClient:
    return LoopioAPIClient(config, token_manager, http_client=http_client)
