from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=24)


class CategorySource(Protocol):
    async def list_categories(self, region_code: str) -> list[dict[str, Any]]: ...


@dataclass(frozen=True)
class CategoryCacheEntry:
    categories: tuple[str, ...]
    fetched_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CategoryCache:
    """Assignable video categories per region, refreshed after ``ttl``.

    A failed refresh never raises: the previous entry is served even when
    stale, or an empty list when the region was never fetched.
    """

    def __init__(
        self,
        source: CategorySource,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._source = source
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, CategoryCacheEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get_entry(self, region_code: str) -> Optional[CategoryCacheEntry]:
        return self._entries.get(region_code)

    def invalidate(self, region_code: Optional[str] = None) -> None:
        if region_code is None:
            self._entries.clear()
        else:
            self._entries.pop(region_code, None)

    def _is_fresh(self, entry: CategoryCacheEntry, now: datetime) -> bool:
        return now - entry.fetched_at < self._ttl

    async def categories_for(self, region_code: str) -> list[str]:
        lock = self._locks.setdefault(region_code, asyncio.Lock())
        async with lock:
            now = self._clock()
            cached = self._entries.get(region_code)
            if cached and self._is_fresh(cached, now):
                return list(cached.categories)

            try:
                categories = await self._source.list_categories(region_code)
            except Exception as exc:
                logger.warning("Failed to fetch categories for %s: %s", region_code, exc)
                return list(cached.categories) if cached else []

            ids = tuple(c["id"] for c in categories if c.get("id") and c.get("assignable"))
            self._entries[region_code] = CategoryCacheEntry(categories=ids, fetched_at=now)
            logger.info("Cached %d assignable categories for %s", len(ids), region_code)
            return list(ids)
