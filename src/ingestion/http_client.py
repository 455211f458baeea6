"""
HTTP infrastructure for scraping listing pages politely.

Provides:
- IdentityRotator: Round-robin rotation over a pool of User-Agent strings
- RequestThrottle: Single in-flight request token plus a randomized delay
- ScraperClient: Async HTTP client that applies both to every request

There is deliberately no retry here. A failed request fails its source
for the current cycle and the next scheduled cycle is the retry.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

import httpx

from src.ingestion.config import FetcherConfig

logger = logging.getLogger(__name__)


@dataclass
class IdentityRotator:
    """
    Round-robin rotation over outbound identity strings.

    Example:
        rotator = IdentityRotator(["UA-1", "UA-2"])
        await rotator.next()  # "UA-1"
        await rotator.next()  # "UA-2"
    """

    identities: list[str]
    _current_index: int = field(default=0, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def __post_init__(self) -> None:
        if not self.identities:
            raise ValueError("IdentityRotator needs at least one identity")

    async def next(self) -> str:
        """Return the next identity in rotation."""
        async with self._lock:
            identity = self.identities[self._current_index]
            self._current_index = (self._current_index + 1) % len(self.identities)
            return identity

    @property
    def size(self) -> int:
        return len(self.identities)


class RequestThrottle:
    """
    Process-wide request token.

    Holding the throttle means owning the only in-flight request. On
    entry a random delay in ``[min_delay, max_delay]`` is slept while the
    token is held, so consecutive requests are always spaced apart.

    Usage:
        async with throttle:
            response = await client.post(...)
    """

    def __init__(
        self,
        min_delay: float = 0.3,
        max_delay: float = 0.9,
        rng: random.Random | None = None,
    ) -> None:
        if max_delay < min_delay:
            raise ValueError("max_delay must be >= min_delay")
        self._min_delay = min_delay
        self._max_delay = max_delay
        self._rng = rng or random.Random()
        self._lock = asyncio.Lock()

    def next_delay(self) -> float:
        return self._rng.uniform(self._min_delay, self._max_delay)

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    async def __aenter__(self) -> "RequestThrottle":
        await self._lock.acquire()
        try:
            delay = self.next_delay()
            if delay > 0:
                await asyncio.sleep(delay)
        except BaseException:
            self._lock.release()
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self._lock.release()


class HTTPClientError(Exception):
    """Raised when a listing request fails (transport error, timeout or HTTP >= 400)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class ScraperClient:
    """
    Async HTTP client shared by every source's fetcher.

    Each request waits for the throttle token, sleeps the randomized
    delay, picks the next identity and carries the per-request timeout.

    Example:
        async with ScraperClient(FetcherConfig()) as client:
            html = await client.post_form(url, data={...}, headers={...})
    """

    def __init__(
        self,
        config: FetcherConfig | None = None,
        throttle: RequestThrottle | None = None,
        identities: IdentityRotator | None = None,
    ):
        self.config = config or FetcherConfig()
        self.throttle = throttle or RequestThrottle(
            min_delay=self.config.min_delay_seconds,
            max_delay=self.config.max_delay_seconds,
        )
        if identities is None:
            identities = IdentityRotator(list(self.config.user_agents))
        self.identities = identities
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "ScraperClient":
        self._client = httpx.AsyncClient(
            timeout=self.config.request_timeout_seconds,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def post_form(
        self,
        url: str,
        data: dict[str, str],
        headers: dict[str, str] | None = None,
    ) -> str:
        """
        POST a form and return the response body.

        Args:
            url: Request URL
            data: Form fields (sent as application/x-www-form-urlencoded)
            headers: Extra headers; User-Agent is always set from the pool

        Returns:
            Response text

        Raises:
            HTTPClientError: On timeout, connection failure or HTTP status >= 400
        """
        if not self._client:
            raise RuntimeError("ScraperClient must be used as async context manager")

        async with self.throttle:
            request_headers = dict(headers) if headers else {}
            request_headers["User-Agent"] = await self.identities.next()

            try:
                response = await self._client.post(
                    url, data=data, headers=request_headers
                )
            except httpx.TimeoutException as e:
                raise HTTPClientError(f"Request to {url} timed out") from e
            except httpx.HTTPError as e:
                raise HTTPClientError(
                    f"Request to {url} failed: {type(e).__name__}: {e}"
                ) from e

        if response.status_code >= 400:
            raise HTTPClientError(
                f"Request to {url} failed with status {response.status_code}",
                status_code=response.status_code,
                response_body=response.text,
            )

        logger.debug("POST %s -> %d (%d bytes)", url, response.status_code, len(response.content))
        return response.text
