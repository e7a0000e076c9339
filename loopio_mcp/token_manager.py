"""OAuth2 Token Manager for the Loopio MCP Server.

This module handles:
- Acquiring an access token with the client-credentials grant
- Holding the current token for the API client to read at request time
- Proactively refreshing the token on a fixed interval in the background
- Tracking refresh statistics for diagnostics
"""
import asyncio
import math
import httpx
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from .config import LoopioConfig, LOG_TOKEN_EVENTS

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def _expiry(now: datetime, expires_in) -> Optional[datetime]:
    """Absolute expiry for a provider-declared lifetime in seconds (None if undeclared)."""
    if expires_in is None:
        return None
    if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)):
        raise ValueError(f"expected a number of seconds, got {expires_in!r}")
    if not math.isfinite(expires_in) or expires_in < 0:
        raise ValueError(f"expected a finite, non-negative number of seconds, got {expires_in!r}")
    return now + timedelta(seconds=expires_in)


class TokenAcquisitionError(Exception):
    """Raised when the token endpoint cannot issue an access token."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TokenManager:
    """Owns the Loopio access token and its refresh timer.

    Only this class writes the token. Readers get the current value through
    ``current_token``; a refresh swaps it in a single assignment, so a reader
    sees either the previous token or the new one.

    Use as an async context manager so the refresh timer and the HTTP client
    are released on every exit path::

        async with TokenManager(config) as token_manager:
            await token_manager.acquire_token()
            token_manager.start_auto_refresh()
            ...
    """

    def __init__(self, config: LoopioConfig, http_client: Optional[httpx.AsyncClient] = None):
        """Initialize the token manager.

        Args:
            config: Loopio connection settings
            http_client: Optional client to use for the token endpoint. When
                omitted, one is created on first use and closed by ``close()``.
        """
        self._config = config
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._access_token: str = ""
        self._expires_at: Optional[datetime] = None
        self._last_acquired_at: Optional[datetime] = None
        self._acquire_count = 0
        self._consecutive_failures = 0
        self._refresh_task: Optional[asyncio.Task] = None

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
        """Stop the refresh timer and close the HTTP client."""
        await self.stop_auto_refresh()
        if self._owns_http_client and self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def __aenter__(self) -> "TokenManager":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # ==========================================================================
    # Token Access
    # ==========================================================================

    @property
    def current_token(self) -> str:
        """The most recently acquired token, or an empty string before the first one."""
        return self._access_token

    @property
    def has_token(self) -> bool:
        return bool(self._access_token)

    async def acquire_token(self) -> str:
        """Fetch a new access token with the client-credentials grant.

        On success the new token replaces the previous one. On failure the
        previous token (if any) is left in place.

        Returns:
            The newly issued access token

        Raises:
            TokenAcquisitionError: If the token endpoint is unreachable, answers
                with a non-2xx status, or returns a body without an access token
        """
        client = await self._get_http_client()

        try:
            response = await client.post(
                self._config.token_url,
                data={
                    "grant_type": "client_credentials",
                    "scope": self._config.token_scope,
                    "client_id": self._config.client_id,
                    "client_secret": self._config.client_secret,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.RequestError as e:
            if LOG_TOKEN_EVENTS:
                logger.error(f"[TokenManager] Network error fetching access token: {e}")
            raise TokenAcquisitionError(f"Token request failed due to network error: {e}") from e

        if not response.is_success:
            error_detail = response.text
            if LOG_TOKEN_EVENTS:
                logger.error(
                    f"[TokenManager] Token request failed: "
                    f"{response.status_code} {response.reason_phrase} - {error_detail}"
                )
            raise TokenAcquisitionError(
                f"Token request failed: {response.status_code} {response.reason_phrase} - {error_detail}",
                status_code=response.status_code,
            )

        try:
            token_data = response.json()
        except ValueError as e:
            raise TokenAcquisitionError(
                f"Token endpoint returned invalid JSON: {e}",
                status_code=response.status_code,
            ) from e

        access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
        if not access_token or not isinstance(access_token, str):
            raise TokenAcquisitionError(
                "Token endpoint response did not contain an access_token",
                status_code=response.status_code,
            )

        now = utc_now()
        expires_in = token_data.get("expires_in")

        try:
            expires_at = _expiry(now, expires_in)
        except (OverflowError, ValueError) as e:
            raise TokenAcquisitionError(
                f"Token endpoint returned an invalid expires_in: {e}",
                status_code=response.status_code,
            ) from e

        self._access_token = access_token
        self._last_acquired_at = now
        self._expires_at = expires_at
        self._acquire_count += 1

        if LOG_TOKEN_EVENTS:
            logger.info(
                f"[TokenManager] Access token acquired (#{self._acquire_count})"
                + (f", expires in {expires_in}s" if self._expires_at else "")
            )

        return access_token

    # ==========================================================================
    # Background Refresh
    # ==========================================================================

    @property
    def is_refreshing(self) -> bool:
        """Whether the refresh timer is armed."""
        return self._refresh_task is not None and not self._refresh_task.done()

    def start_auto_refresh(self, interval: Optional[float] = None) -> None:
        """Arm the background refresh timer.

        Must be called from a running event loop. Does nothing if the timer is
        already armed.

        Args:
            interval: Seconds between refreshes (defaults to the configured
                interval, 59 minutes)

        Raises:
            ValueError: If the interval is not positive
        """
        if self.is_refreshing:
            logger.debug("[TokenManager] Auto refresh already running")
            return

        if interval is None:
            interval = self._config.token_refresh_interval_seconds
        if interval <= 0:
            raise ValueError(f"Refresh interval must be positive, got {interval!r}")
        self._refresh_task = asyncio.create_task(self._refresh_loop(interval))

        if LOG_TOKEN_EVENTS:
            logger.info(f"[TokenManager] Auto refresh started (interval: {interval}s)")

    async def stop_auto_refresh(self) -> None:
        """Cancel the background refresh timer. Safe to call when none is armed."""
        task, self._refresh_task = self._refresh_task, None
        if task is None or task.done():
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _refresh_loop(self, interval: float) -> None:
        """Refresh the token every ``interval`` seconds until cancelled.

        A failed refresh is logged and the previous token is kept; the next
        attempt still runs on schedule.
        """
        try:
            while True:
                await asyncio.sleep(interval)

                try:
                    await self.acquire_token()
                    self._consecutive_failures = 0
                except TokenAcquisitionError as e:
                    self._consecutive_failures += 1
                    logger.warning(
                        f"[TokenManager] Scheduled refresh failed "
                        f"({self._consecutive_failures} in a row), keeping previous token: {e}"
                    )
                except Exception as e:
                    # Don't let an unexpected error end the refresh loop
                    self._consecutive_failures += 1
                    logger.exception(
                        f"[TokenManager] Unexpected error during scheduled refresh "
                        f"({self._consecutive_failures} in a row), keeping previous token: {e}"
                    )

        except asyncio.CancelledError:
            if LOG_TOKEN_EVENTS:
                logger.info("[TokenManager] Auto refresh stopped")
            raise

    # ==========================================================================
    # Debug Utilities
    # ==========================================================================

    def status(self) -> dict:
        """Get token statistics for diagnostics. Never includes the token itself."""
        now = utc_now()
        return {
            "has_token": self.has_token,
            "acquire_count": self._acquire_count,
            "consecutive_refresh_failures": self._consecutive_failures,
            "last_acquired_at": (
                self._last_acquired_at.isoformat() if self._last_acquired_at else None
            ),
            "expires_in_seconds": (
                max(0.0, (self._expires_at - now).total_seconds()) if self._expires_at else None
            ),
            "refresh_interval_seconds": self._config.token_refresh_interval_seconds,
            "auto_refresh_running": self.is_refreshing,
        }
