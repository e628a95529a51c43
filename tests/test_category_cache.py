from datetime import datetime, timedelta, timezone

import pytest

from trending_collector.category_cache import CategoryCache
from trending_collector.youtube_client import YouTubeAPIError


class FakeCategorySource:
    def __init__(self, categories=None):
        self.categories = categories or []
        self.fail = False
        self.calls = []

    async def list_categories(self, region_code):
        self.calls.append(region_code)
        if self.fail:
            raise YouTubeAPIError("quota exceeded", 403)
        return list(self.categories)


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


CATEGORIES = [
    {"id": "10", "title": "Music", "assignable": True},
    {"id": "18", "title": "Short Movies", "assignable": False},
    {"id": "20", "title": "Gaming", "assignable": True},
]


@pytest.mark.asyncio
async def test_keeps_only_assignable_categories_in_source_order():
    cache = CategoryCache(FakeCategorySource(CATEGORIES), clock=FakeClock())
    assert await cache.categories_for("US") == ["10", "20"]


@pytest.mark.asyncio
async def test_fresh_entry_is_served_without_refetch():
    source = FakeCategorySource(CATEGORIES)
    clock = FakeClock()
    cache = CategoryCache(source, clock=clock)
    await cache.categories_for("US")
    clock.advance(hours=23, minutes=59)
    assert await cache.categories_for("US") == ["10", "20"]
    assert source.calls == ["US"]


@pytest.mark.asyncio
async def test_expired_entry_is_refreshed():
    source = FakeCategorySource(CATEGORIES)
    clock = FakeClock()
    cache = CategoryCache(source, clock=clock)
    await cache.categories_for("US")
    source.categories = [{"id": "1", "assignable": True}]
    clock.advance(hours=24)
    assert await cache.categories_for("US") == ["1"]
    assert cache.get_entry("US").fetched_at == clock.now
    assert source.calls == ["US", "US"]


@pytest.mark.asyncio
async def test_failure_without_prior_entry_returns_empty():
    source = FakeCategorySource(CATEGORIES)
    source.fail = True
    cache = CategoryCache(source, clock=FakeClock())
    assert await cache.categories_for("GB") == []
    assert cache.get_entry("GB") is None


@pytest.mark.asyncio
async def test_failure_with_stale_entry_returns_stale_value():
    source = FakeCategorySource(CATEGORIES)
    clock = FakeClock()
    cache = CategoryCache(source, clock=clock)
    await cache.categories_for("DE")
    fetched_at = cache.get_entry("DE").fetched_at

    clock.advance(hours=30)
    source.fail = True
    assert await cache.categories_for("DE") == ["10", "20"]
    # The stale entry is kept as-is for the next attempt
    assert cache.get_entry("DE").fetched_at == fetched_at


@pytest.mark.asyncio
async def test_regions_are_cached_independently():
    source = FakeCategorySource(CATEGORIES)
    cache = CategoryCache(source, clock=FakeClock())
    await cache.categories_for("US")
    await cache.categories_for("CA")
    await cache.categories_for("US")
    assert source.calls == ["US", "CA"]

    cache.invalidate("US")
    await cache.categories_for("US")
    assert source.calls == ["US", "CA", "US"]
