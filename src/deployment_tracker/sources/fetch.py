"""Resilient HTTP fetch client with timeout, retry, and exponential backoff.

Every external data source (chain analytics, block explorer, JSON-RPC node)
goes through this client. A request is attempted up to ``max_attempts`` times:

- HTTP 429 / 5xx: capped backoff ``min(1s * 2**attempt, 10s)`` then retry
- other non-2xx: the attempt fails with the status captured, then retry
- timeouts, transport failures, malformed JSON: backoff ``1s * 2**attempt``

After the budget is spent the last error is raised as a FetchError.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_MAX_ATTEMPTS = 3
BACKOFF_BASE_SECONDS = 1.0
THROTTLE_BACKOFF_CAP_SECONDS = 10.0

SleepFunc = Callable[[float], Awaitable[None]]


class FetchError(Exception):
    """Raised when a request fails after all attempts."""

    def __init__(self, message: str, *, url: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


def _is_throttled(status: int) -> bool:
    return status == 429 or status >= 500


def throttle_backoff(attempt: int) -> float:
    """Backoff in seconds after a 429/5xx response."""
    return min(BACKOFF_BASE_SECONDS * (2**attempt), THROTTLE_BACKOFF_CAP_SECONDS)


def failure_backoff(attempt: int) -> float:
    """Backoff in seconds after a transport failure or a failed attempt."""
    return BACKOFF_BASE_SECONDS * (2**attempt)


class FetchClient:
    """JSON-over-HTTP client shared by all source adapters.

    Example:
        ```python
        client = FetchClient(timeout_seconds=15.0)
        stats = await client.fetch_json("https://explorer.example/api/v2/stats")
        await client.aclose()
        ```
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        session: aiohttp.ClientSession | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the fetch client.

        Args:
            timeout_seconds: Total timeout of a single attempt.
            max_attempts: Default attempt budget per request.
            session: Optional externally owned aiohttp session.
            sleep: Coroutine used for backoff delays.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._max_attempts = max_attempts
        self._session = session
        self._owns_session = session is None
        self._sleep = sleep

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def fetch_json(
        self,
        url: str,
        *,
        method: str = "GET",
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        max_attempts: int | None = None,
    ) -> Any:
        """Execute a request and decode the JSON response body.

        Args:
            url: Absolute request URL.
            method: HTTP method.
            json_body: Optional JSON payload (sent with a JSON content type).
            headers: Optional extra request headers.
            max_attempts: Attempt budget override for this call.

        Returns:
            The decoded JSON document.

        Raises:
            FetchError: If every attempt failed.
        """
        attempts = max_attempts or self._max_attempts
        session = self._get_session()
        last_error: FetchError | None = None

        for attempt in range(attempts):
            is_last = attempt == attempts - 1
            try:
                async with session.request(
                    method,
                    url,
                    json=json_body,
                    headers=headers,
                    timeout=self._timeout,
                ) as response:
                    status = response.status
                    if _is_throttled(status):
                        last_error = FetchError(
                            f"HTTP {status}: {response.reason} for {url}",
                            url=url,
                            status=status,
                        )
                        logger.warning(
                            "Throttled/server error %d for %s (attempt %d/%d)",
                            status,
                            url,
                            attempt + 1,
                            attempts,
                        )
                        if not is_last:
                            await self._sleep(throttle_backoff(attempt))
                        continue
                    if not 200 <= status < 300:
                        text = await response.text()
                        raise FetchError(
                            f"HTTP {status}: {response.reason} for {url}: {text[:200]}",
                            url=url,
                            status=status,
                        )
                    return await response.json(content_type=None)
            except FetchError as e:
                last_error = e
            except TimeoutError as e:
                last_error = FetchError(f"Request timed out for {url}", url=url)
                last_error.__cause__ = e
            except (aiohttp.ClientError, ValueError) as e:
                last_error = FetchError(f"Request failed for {url}: {e}", url=url)
                last_error.__cause__ = e

            logger.warning(
                "Fetch attempt %d/%d failed: %s",
                attempt + 1,
                attempts,
                last_error,
            )
            if not is_last:
                await self._sleep(failure_backoff(attempt))

        assert last_error is not None
        raise last_error

    async def aclose(self) -> None:
        """Close the underlying HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> FetchClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
