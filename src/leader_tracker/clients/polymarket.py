"""
Polymarket API client.

Three public sources are used:
- Data API: user activity, positions and per-market trades
- Gamma API: market and event metadata
- polymarket.com: the public leaderboard page, scraped for trader addresses

Fetch methods never raise on upstream failures; they log and return what
they have, so a degraded fetch just means fewer records.
"""

import asyncio
import logging
import re
from datetime import datetime, timedelta
from typing import Optional

import httpx

from ..analysis.normalizer import normalize_trades, to_float
from ..config import PolymarketConfig, get_config
from ..models import MarketInfo, Trade, TraderHistory
from ..storage.cache import Cache
from .base import BaseClient

logger = logging.getLogger(__name__)

PROFILE_LINK = re.compile(r'href="/profile/(0x[a-fA-F0-9]{40})"')


def _items(data) -> list:
    """Unwrap list payloads that may come bare or under a data key."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return data.get("data", data.get("trades", [])) or []
    return []


def extract_profile_addresses(html: str, limit: Optional[int] = None) -> list[str]:
    """Lower-cased trader addresses linked from a page, in order, without repeats."""
    addresses = list(dict.fromkeys(m.lower() for m in PROFILE_LINK.findall(html or "")))
    return addresses if limit is None else addresses[:limit]


class PolymarketClient(BaseClient):
    """Client for the Polymarket Data and Gamma APIs."""

    def __init__(
        self,
        config: Optional[PolymarketConfig] = None,
        cache: Optional[Cache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or get_config().polymarket
        super().__init__(
            base_url=self.config.data_api_url,
            requests_per_second=self.config.requests_per_second,
            timeout=self.config.timeout_seconds,
            user_agent=self.config.user_agent,
            transport=transport,
        )
        self.cache = cache or Cache()
        self._gamma_client: Optional[httpx.AsyncClient] = None
        self._site_client: Optional[httpx.AsyncClient] = None

    async def connect(self) -> None:
        """Initialize HTTP clients."""
        await super().connect()
        self._gamma_client = self._make_client(self.config.gamma_api_url)
        self._site_client = self._make_client(self.config.site_url)

    async def close(self) -> None:
        """Close HTTP clients."""
        await super().close()
        if self._gamma_client:
            await self._gamma_client.aclose()
            self._gamma_client = None
        if self._site_client:
            await self._site_client.aclose()
            self._site_client = None

    async def _gamma_get(self, path: str, params: Optional[dict] = None):
        """Make a request to the Gamma API."""
        if not self._gamma_client:
            raise RuntimeError("Client not connected")
        return await self._request("GET", path, params=params, client=self._gamma_client)

    def _parse_market(self, data: dict, fallback_slug: str = "", fallback_title: str = "") -> MarketInfo:
        """Parse market metadata from a Gamma API record."""
        return MarketInfo(
            condition_id=data.get("conditionId") or data.get("condition_id") or "",
            question=data.get("question") or fallback_title or "",
            slug=data.get("slug") or fallback_slug or "",
            volume=to_float(data.get("volume") or data.get("volumeNum")),
            liquidity=to_float(data.get("liquidity") or data.get("liquidityNum")),
            active=bool(data.get("active", True)) and not data.get("closed", False),
        )

    # Trader activity

    async def get_trader_activity(
        self,
        address: str,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict]:
        """Fetch one page of a trader's TRADE activity, newest first."""
        params = {
            "user": address,
            "type": "TRADE",
            "limit": limit,
            "offset": offset,
        }
        try:
            data = await self.get("/activity", params=params)
            return _items(data)
        except Exception as e:
            logger.warning(f"Failed to fetch activity for {address} at offset {offset}: {e}")
            return []

    async def get_positions(self, address: str) -> list[dict]:
        """Fetch a trader's current positions above the configured size threshold."""
        params = {"user": address, "sizeThreshold": self.config.position_size_threshold}
        try:
            data = await self.get("/positions", params=params)
            return _items(data)
        except Exception as e:
            logger.warning(f"Failed to fetch positions for {address}: {e}")
            return []

    async def _fetch_page(
        self,
        address: str,
        offset: int,
        since: Optional[int],
    ) -> list[Trade]:
        records = await self.get_trader_activity(address, limit=self.config.page_size, offset=offset)
        trades = normalize_trades(records, trader_address=address)
        if since is not None:
            trades = [t for t in trades if t.timestamp >= since]
        return trades

    async def fetch_trader_history(
        self,
        address: str,
        since: Optional[int] = None,
        history_days: Optional[int] = None,
    ) -> TraderHistory:
        """Fetch a trader's trades, paginating with a small parallel fan-out.

        Activity comes back newest first, so a page cut short (by the end of
        the data or by the ``since`` horizon) ends the scan. At most
        ``max_trades`` trades are kept.
        """
        address = address.lower()
        if since is None and history_days is not None:
            since = int((datetime.now() - timedelta(days=history_days)).timestamp())

        page_size = self.config.page_size
        max_trades = self.config.max_trades

        first_page = await self._fetch_page(address, 0, since)
        trades: list[Trade] = list(first_page)

        if len(first_page) == page_size:
            offset = page_size
            has_more = True

            while has_more and len(trades) < max_trades:
                pages = await asyncio.gather(*(
                    self._fetch_page(address, offset + i * page_size, since)
                    for i in range(self.config.max_parallel_pages)
                ))

                added = 0
                for page in pages:
                    trades.extend(page)
                    added += len(page)
                    if len(page) < page_size:
                        has_more = False
                        break

                if added == 0:
                    has_more = False

                offset += self.config.max_parallel_pages * page_size

        if len(trades) > max_trades:
            trades = trades[:max_trades]

        logger.info(f"Fetched {len(trades)} trades for {address}")
        return TraderHistory.from_trades(address, trades)

    # Market data

    async def get_market_trades(self, condition_id: str, limit: int = 100) -> list[Trade]:
        """Fetch recent trades of a market, attributed by proxy wallet."""
        params = {"market": condition_id, "limit": limit}
        try:
            data = await self.get("/trades", params=params)
            return normalize_trades(_items(data), market_id=condition_id)
        except Exception as e:
            logger.error(f"Failed to fetch trades for market {condition_id}: {e}")
            return []

    async def get_active_markets(
        self,
        min_volume: float = 0.0,
        max_markets: int = 100,
        event_limit: int = 200,
    ) -> list[MarketInfo]:
        """Fetch active markets above a volume floor, largest first."""
        params = {"limit": event_limit, "active": "true", "closed": "false"}
        try:
            events = await self._gamma_get("/events", params=params)
        except Exception as e:
            logger.error(f"Failed to fetch markets: {e}")
            return []

        markets = []
        for event in _items(events):
            for item in event.get("markets") or []:
                try:
                    market = self._parse_market(
                        item,
                        fallback_slug=event.get("slug", ""),
                        fallback_title=event.get("title", ""),
                    )
                except Exception as e:
                    logger.warning(f"Failed to parse market: {e}")
                    continue
                if market.condition_id and market.active and market.volume >= min_volume:
                    markets.append(market)

        markets.sort(key=lambda m: m.volume, reverse=True)
        logger.info(f"Found {len(markets)} active markets with volume >= {min_volume:,.0f}")
        return markets[:max_markets]

    async def _lookup_market(self, identifier: str) -> Optional[MarketInfo]:
        key = "conditionId" if identifier.startswith("0x") else "slug"
        try:
            data = await self._gamma_get("/markets", params={key: identifier})
        except Exception as e:
            logger.error(f"Failed to look up market {identifier}: {e}")
            return None

        items = _items(data)
        if not items:
            return None
        return self._parse_market(items[0])

    async def find_market(self, identifier: str) -> Optional[MarketInfo]:
        """Look up a market by condition ID (0x...) or slug."""
        return await self.cache.get_or_set(
            f"market:{identifier}",
            lambda: self._lookup_market(identifier),
        )

    # Leaderboard

    async def get_leaderboard_traders(self, limit: Optional[int] = None) -> list[str]:
        """Scrape trader addresses from the public leaderboard page, top first."""
        if not self._site_client:
            raise RuntimeError("Client not connected")
        try:
            html = await self._request("GET", "/leaderboard", client=self._site_client, as_text=True)
        except Exception as e:
            logger.error(f"Failed to fetch leaderboard: {e}")
            return []

        addresses = extract_profile_addresses(html, limit)
        logger.info(f"Found {len(addresses)} traders on the leaderboard")
        return addresses
