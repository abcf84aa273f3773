"""Base property source interface."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod

import httpx

from dealflow.config import BuyboxConfig, ListingApiConfig
from dealflow.errors import RateLimitExceeded
from dealflow.models import Property


class PropertySource(ABC):
    """Abstract base class for listing API clients.

    Keeps a client-side request budget of ``rate_limit`` requests per
    ``rate_window`` seconds. Spending past it raises RateLimitExceeded
    rather than waiting.
    """

    SOURCE_NAME: str = "unknown"

    def __init__(
        self,
        config: ListingApiConfig,
        api_key: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.api_key = api_key
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.request_count = 0
        self._window_start = time.monotonic()

    def _headers(self) -> dict[str, str]:
        return {}

    def _base_url(self) -> str:
        return ""

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url(),
                headers=self._headers(),
                timeout=self.config.timeout,
                transport=self._transport,
            )
        return self._client

    def _check_rate_limit(self) -> None:
        elapsed = time.monotonic() - self._window_start
        if elapsed >= self.config.rate_window:
            self.request_count = 0
            self._window_start = time.monotonic()
            return
        if self.request_count >= self.config.rate_limit:
            raise RateLimitExceeded(self.config.rate_window - elapsed)

    @property
    def remaining_requests(self) -> int:
        if time.monotonic() - self._window_start >= self.config.rate_window:
            return self.config.rate_limit
        return max(0, self.config.rate_limit - self.request_count)

    @property
    def time_until_reset(self) -> float:
        """Seconds until the request budget refills."""
        elapsed = time.monotonic() - self._window_start
        return max(0.0, self.config.rate_window - elapsed)

    @abstractmethod
    async def fetch_buybox(self, buybox: BuyboxConfig) -> list[Property]:
        """Fetch every for-sale property matching a buybox. Must be implemented by subclasses."""
        ...

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
