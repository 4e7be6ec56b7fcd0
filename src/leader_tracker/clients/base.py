"""
Base client class for API interactions.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from ..models import MarketInfo, Trade

logger = logging.getLogger(__name__)


class RateLimiter:
    """Simple rate limiter for API requests."""

    def __init__(self, requests_per_second: int):
        self.requests_per_second = requests_per_second
        self.min_interval = 1.0 / requests_per_second if requests_per_second > 0 else 0.0
        self.last_request_time = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until we can make another request."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            time_since_last = loop.time() - self.last_request_time
            if time_since_last < self.min_interval:
                await asyncio.sleep(self.min_interval - time_since_last)
            self.last_request_time = loop.time()


class BaseClient(ABC):
    """Base class for trade data API clients."""

    def __init__(
        self,
        base_url: str,
        requests_per_second: int = 5,
        timeout: float = 30.0,
        user_agent: str = "LeaderTracker/0.1.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.user_agent = user_agent
        self.rate_limiter = RateLimiter(requests_per_second)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "BaseClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _make_client(self, base_url: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=base_url,
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )

    async def connect(self) -> None:
        """Initialize the HTTP client."""
        self._client = self._make_client(self.base_url)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        client: Optional[httpx.AsyncClient] = None,
        as_text: bool = False,
    ) -> Any:
        """Make a rate-limited HTTP request, returning parsed JSON or the raw body."""
        client = client or self._client
        if not client:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")

        await self.rate_limiter.acquire()

        try:
            response = await client.request(method=method, url=path, params=params)
            response.raise_for_status()
            return response.text if as_text else response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error {e.response.status_code}: {e.response.text}")
            raise
        except Exception as e:
            logger.error(f"Request failed: {e}")
            raise

    async def get(self, path: str, params: Optional[dict] = None) -> Any:
        """Make a GET request."""
        return await self._request("GET", path, params=params)

    # Abstract methods to be implemented by subclasses

    @abstractmethod
    async def get_trader_activity(
        self,
        address: str,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict]:
        """Fetch raw trade activity records of a trader."""
        pass

    @abstractmethod
    async def get_market_trades(self, condition_id: str, limit: int = 100) -> list[Trade]:
        """Fetch recent trades of a market."""
        pass

    @abstractmethod
    async def find_market(self, identifier: str) -> Optional[MarketInfo]:
        """Look up market metadata by condition ID or slug."""
        pass
