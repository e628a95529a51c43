from datetime import datetime, timezone

import httpx
import pytest

from trending_collector.collector import ALL_CATEGORIES, Collector, PairStatus
from trending_collector.crud import AppendOutcome
from trending_collector.models import RUN_ERROR, RUN_OK, RUN_RUNNING
from trending_collector.run_ledger import RunLedger
from trending_collector.store import PersistenceError
from trending_collector.youtube_client import YouTubeAPIError

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeSource:
    def __init__(self, charts):
        # (region, category or None) -> list of items, or an exception to raise
        self.charts = charts
        self.calls = []

    async def list_most_popular(self, region_code, category_id=None, max_results=50):
        self.calls.append((region_code, category_id, max_results))
        result = self.charts.get((region_code, category_id), [])
        if isinstance(result, Exception):
            raise result
        return result


class FakeCategories:
    def __init__(self, by_region):
        self.by_region = by_region

    async def categories_for(self, region_code):
        return list(self.by_region.get(region_code, []))


class FakeStore:
    def __init__(self, fail_on_append=False):
        self.videos = {}
        self.feed_hits = {}
        self.fail_on_append = fail_on_append
        self.runs = {}

    async def upsert_video(self, video, seen_at):
        existing = self.videos.get(video.video_id)
        if existing is None:
            self.videos[video.video_id] = {"video": video, "first_seen_at": seen_at, "last_seen_at": seen_at}
        else:
            existing.update(video=video, last_seen_at=seen_at)

    async def append_feed_hit(self, *, run_id, video_id, region_code, category_id, views_per_hour, bucket, niche_tags, seen_at):
        if self.fail_on_append:
            raise PersistenceError("disk full")
        key = (run_id, video_id, region_code, category_id)
        if key in self.feed_hits:
            return AppendOutcome.DUPLICATE
        self.feed_hits[key] = {"views_per_hour": views_per_hour, "bucket": bucket, "niche_tags": list(niche_tags)}
        return AppendOutcome.INSERTED

    async def create_run(self):
        run_id = f"run-{len(self.runs) + 1}"
        self.runs[run_id] = {"status": RUN_RUNNING, "finished_at": None}
        return run_id

    async def update_run_status(self, run_id, status, fields):
        run = self.runs[run_id]
        if run["status"] != RUN_RUNNING:
            return False
        run.update(status=status, **fields)
        return True


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def make_collector(source, store, categories, thresholds, regions=("US",), sleep=None):
    return Collector(
        source=source,
        store=store,
        categories=categories,
        regions=regions,
        thresholds=thresholds,
        sleep=sleep or SleepRecorder(),
        clock=lambda: NOW,
    )


@pytest.mark.asyncio
async def test_run_walks_all_pull_then_each_category(raw_video, thresholds):
    source = FakeSource(
        {
            ("US", None): [raw_video("a"), raw_video("b")],
            ("US", "10"): [raw_video("a")],
            ("CA", None): [raw_video("c")],
        }
    )
    store = FakeStore()
    sleep = SleepRecorder()
    collector = make_collector(
        source, store, FakeCategories({"US": ["10", "20"], "CA": []}), thresholds, regions=("US", "CA"), sleep=sleep
    )

    stats = await collector.run("run-1")

    assert source.calls == [("US", None, 50), ("US", "10", 50), ("US", "20", 50), ("CA", None, 50)]
    assert stats.videos_processed == 4
    assert stats.feed_hits_created == 4
    assert stats.pairs_ok == 4 and stats.pairs_failed == 0
    assert set(store.videos) == {"a", "b", "c"}
    assert ("run-1", "a", "US", ALL_CATEGORIES) in store.feed_hits
    assert ("run-1", "a", "US", "10") in store.feed_hits
    # One delay after every (region, category) pair
    assert sleep.delays == [0.1] * 4


@pytest.mark.asyncio
async def test_duplicate_observation_in_one_pull_is_not_counted(raw_video, thresholds):
    source = FakeSource({("US", None): [raw_video("a"), raw_video("a")]})
    store = FakeStore()
    stats = await make_collector(source, store, FakeCategories({}), thresholds).run("run-1")

    assert stats.videos_processed == 2
    assert stats.feed_hits_created == 1
    assert len(store.feed_hits) == 1


@pytest.mark.asyncio
async def test_invalid_items_are_skipped(raw_video, thresholds):
    broken = raw_video("broken")
    del broken["statistics"]["viewCount"]
    source = FakeSource({("US", None): [broken, raw_video("ok")]})
    store = FakeStore()
    stats = await make_collector(source, store, FakeCategories({}), thresholds).run("run-1")

    assert stats.videos_processed == 1
    assert set(store.videos) == {"ok"}


@pytest.mark.asyncio
async def test_one_failing_category_does_not_stop_the_run(raw_video, thresholds):
    source = FakeSource(
        {
            ("US", None): [raw_video("a")],
            ("US", "10"): YouTubeAPIError("quota exceeded", 403),
            ("US", "20"): [raw_video("b")],
            ("US", "30"): httpx.ReadTimeout("timed out"),
        }
    )
    store = FakeStore()
    collector = make_collector(source, store, FakeCategories({"US": ["10", "20", "30"]}), thresholds)

    stats = await collector.run("run-1")

    assert stats.pairs_failed == 2
    assert stats.pairs_ok == 2
    assert set(key[3] for key in store.feed_hits) == {ALL_CATEGORIES, "20"}


@pytest.mark.asyncio
async def test_pair_results_are_tagged(raw_video, thresholds):
    source = FakeSource({("US", "10"): YouTubeAPIError("boom")})
    collector = make_collector(source, FakeStore(), FakeCategories({"US": ["10"]}), thresholds)

    ok = await collector._collect_pair("run-1", "US", ALL_CATEGORIES)
    failed = await collector._collect_pair("run-1", "US", "10")

    assert ok.status is PairStatus.OK
    assert failed.status is PairStatus.FAILED
    assert failed.error == "boom"


@pytest.mark.asyncio
async def test_persistence_error_aborts_the_run(raw_video, thresholds):
    source = FakeSource({("US", None): [raw_video("a")], ("US", "10"): [raw_video("b")]})
    collector = make_collector(source, FakeStore(fail_on_append=True), FakeCategories({"US": ["10"]}), thresholds)

    with pytest.raises(PersistenceError):
        await collector.run("run-1")
    assert source.calls == [("US", None, 50)]


@pytest.mark.asyncio
async def test_ledger_marks_partial_failure_run_ok(raw_video, thresholds):
    source = FakeSource({("US", None): [raw_video("a")], ("US", "10"): YouTubeAPIError("down")})
    store = FakeStore()
    collector = make_collector(source, store, FakeCategories({"US": ["10"]}), thresholds)

    report = await RunLedger(store).execute(collector.run)

    assert report.success is True
    assert report.stats.feed_hits_created == 1
    run = store.runs[report.run_id]
    assert run["status"] == RUN_OK
    assert run["finished_at"] is not None
    assert run["feed_hits_created"] == 1


@pytest.mark.asyncio
async def test_ledger_records_persistence_failure_as_error(raw_video, thresholds):
    source = FakeSource({("US", None): [raw_video("a")]})
    store = FakeStore(fail_on_append=True)
    collector = make_collector(source, store, FakeCategories({}), thresholds)

    report = await RunLedger(store).execute(collector.run)

    assert report.success is False
    assert report.error == "disk full"
    run = store.runs[report.run_id]
    assert run["status"] == RUN_ERROR
    assert run["error"] == "disk full"
    assert run["finished_at"] is not None
    assert report.as_dict() == {"success": False, "run_id": report.run_id, "error": "disk full"}
