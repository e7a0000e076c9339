"""API Client for the Loopio data API.

Every request reads the current access token from the TokenManager at call
time and sends it in the Authorization header. Endpoints are described
declaratively in ``endpoints.py`` and executed through one generic method.
"""
import httpx
import json
from typing import Any, Mapping, Optional
import logging

from .config import LoopioConfig, JSON_CONTENT_TYPE
from .endpoints import Endpoint
from .token_manager import TokenManager

logger = logging.getLogger(__name__)


class ApiRequestError(Exception):
    """Raised when the Loopio API answers with a non-2xx status."""
    def __init__(self, status_code: int, status_text: str, body: str):
        super().__init__(f"Loopio API request failed: {status_code} {status_text} - {body}")
        self.status_code = status_code
        self.status_text = status_text
        self.body = body


class TransportError(Exception):
    """Raised when a request to the Loopio API fails at the network level."""
    pass


def _encode_query_value(value: Any) -> Any:
    """Lists become repeated keys; objects are sent as compact JSON."""
    if isinstance(value, dict):
        return json.dumps(value, separators=(",", ":"))
    if isinstance(value, (list, tuple)):
        return [_encode_query_value(v) for v in value]
    return value


class LoopioAPIClient:
    """Client for the Loopio data API.

    This client:
    - Attaches the TokenManager's current bearer token to every request
    - Serializes request bodies as JSON (or JSON Patch)
    - Normalizes responses: 204 -> None, other 2xx -> parsed JSON,
      anything else -> ApiRequestError
    """

    def __init__(
        self,
        config: LoopioConfig,
        token_manager: TokenManager,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the API client.

        Args:
            config: Loopio connection settings
            token_manager: Source of the current access token
            http_client: Optional client to send requests with. When omitted,
                one is created on first use and closed by ``close()``.
        """
        self._config = config
        self._token_manager = token_manager
        self._http_client = http_client
        self._owns_http_client = http_client is None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            if self._config.request_timeout_seconds is not None:
                self._http_client = httpx.AsyncClient(timeout=self._config.request_timeout_seconds)
            else:
                self._http_client = httpx.AsyncClient()
            self._owns_http_client = True
        return self._http_client

    async def close(self):
        """Close the HTTP client."""
        if self._owns_http_client and self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def request(
        self,
        endpoint_path: str,
        method: str = "GET",
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Make one authenticated request to the API.

        Args:
            endpoint_path: Path appended verbatim to the API base URL
            method: HTTP method (GET, POST, PUT, PATCH, DELETE)
            params: Query parameters
            body: JSON-serializable request body
            headers: Header overrides (e.g. a JSON Patch Content-Type)

        Returns:
            Parsed JSON response, or None for 204 No Content

        Raises:
            ApiRequestError: If the API returns a non-2xx status
            TransportError: If the request fails at the network level
        """
        url = f"{self._config.api_base_url}{endpoint_path}"
        request_headers = {
            "Authorization": f"Bearer {self._token_manager.current_token}",
            "Content-Type": JSON_CONTENT_TYPE,
        }
        if headers:
            request_headers.update(headers)

        content = json.dumps(body) if body is not None else None

        client = await self._get_http_client()

        logger.debug(f"[APIClient] {method.upper()} {endpoint_path}")

        try:
            response = await client.request(
                method.upper(),
                url,
                params=params,
                content=content,
                headers=request_headers,
            )
        except httpx.RequestError as e:
            logger.error(f"[APIClient] Network error: {e}")
            raise TransportError(f"Loopio API request failed: network error: {e}") from e

        if not response.is_success:
            raise ApiRequestError(response.status_code, response.reason_phrase, response.text)

        if response.status_code == 204:
            return None

        return response.json()

    async def call(
        self,
        endpoint: Endpoint,
        arguments: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        """Render a declared endpoint with the given arguments and execute it.

        Path placeholders are filled from ``arguments``; declared query
        parameters are included when their argument is present and not None.

        Raises:
            ValueError: If a path placeholder has no matching argument
            ApiRequestError: If the API returns a non-2xx status
            TransportError: If the request fails at the network level
        """
        arguments = arguments or {}

        try:
            path = endpoint.path.format(**arguments)
        except KeyError as e:
            raise ValueError(f"Missing path argument {e} for {endpoint.method} {endpoint.path}") from None

        params = {}
        for param in endpoint.query:
            value = arguments.get(param.source)
            if value is None or value == []:
                continue
            params[param.name] = _encode_query_value(value)

        headers = {"Content-Type": endpoint.content_type} if endpoint.content_type else None

        return await self.request(
            path,
            method=endpoint.method,
            params=params or None,
            body=body,
            headers=headers,
        )
