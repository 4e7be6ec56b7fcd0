"""
Time-limited in-memory cache for market metadata lookups.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional, Union

from ..config import get_config

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached value and the moment it stops being valid."""
    value: Any
    expires_at: datetime
    hits: int = 0

    def expired(self, now: datetime) -> bool:
        return now > self.expires_at


class Cache:
    """Async-safe TTL cache.

    When full, expired entries are dropped first, then the least-read ones.
    """

    def __init__(
        self,
        default_ttl: Optional[int] = None,
        max_size: Optional[int] = None,
    ):
        storage = get_config().storage
        self.default_ttl = storage.cache_ttl_seconds if default_ttl is None else default_ttl
        self.max_size = storage.max_cached_markets if max_size is None else max_size

        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        """Cached value for ``key``, or None when missing or expired."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(datetime.now()):
                del self._entries[key]
                return None
            entry.hits += 1
            return entry.value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        now = datetime.now()
        ttl = self.default_ttl if ttl is None else ttl

        async with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_size:
                self._make_room(now)
            self._entries[key] = CacheEntry(value=value, expires_at=now + timedelta(seconds=ttl))

    def _make_room(self, now: datetime) -> None:
        for key in [k for k, entry in self._entries.items() if entry.expired(now)]:
            del self._entries[key]

        overflow = len(self._entries) - self.max_size + 1
        if overflow > 0:
            coldest = sorted(self._entries, key=lambda k: self._entries[k].hits)[:overflow]
            for key in coldest:
                del self._entries[key]
            logger.debug(f"Cache full, evicted {len(coldest)} entries")

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Union[Any, Awaitable[Any]]],
        ttl: Optional[int] = None,
    ) -> Any:
        """Return the cached value, or compute, store and return it.

        ``factory`` may be sync or return an awaitable. None results are not
        cached, so a failed lookup is retried next time.
        """
        value = await self.get(key)
        if value is not None:
            return value

        value = factory()
        if inspect.isawaitable(value):
            value = await value

        if value is not None:
            await self.set(key, value, ttl)
        return value
