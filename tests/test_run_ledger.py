import asyncio

import pytest

from trending_collector.collector import CollectionStats
from trending_collector.models import RUN_ERROR, RUN_OK, RUN_RUNNING
from trending_collector.run_ledger import RunLedger


class FakeRunStore:
    def __init__(self):
        self.runs = {}

    async def create_run(self):
        run_id = f"run-{len(self.runs) + 1}"
        self.runs[run_id] = {"status": RUN_RUNNING}
        return run_id

    async def update_run_status(self, run_id, status, fields):
        if self.runs[run_id]["status"] != RUN_RUNNING:
            return False
        self.runs[run_id].update(status=status, **fields)
        return True


@pytest.mark.asyncio
async def test_start_creates_running_run():
    store = FakeRunStore()
    run_id = await RunLedger(store).start()
    assert store.runs[run_id]["status"] == RUN_RUNNING


@pytest.mark.asyncio
async def test_successful_run_records_stats():
    store = FakeRunStore()

    async def collect(run_id):
        return CollectionStats(videos_processed=7, feed_hits_created=5, pairs_ok=3)

    report = await RunLedger(store).execute(collect)

    assert report.success
    run = store.runs[report.run_id]
    assert run["status"] == RUN_OK
    assert run["videos_processed"] == 7
    assert run["feed_hits_created"] == 5
    assert run["finished_at"] is not None
    assert report.as_dict()["stats"] == {
        "videos_processed": 7,
        "feed_hits_created": 5,
        "pairs_ok": 3,
        "pairs_failed": 0,
    }


@pytest.mark.asyncio
async def test_exception_without_message_uses_class_name():
    store = FakeRunStore()

    async def collect(run_id):
        raise KeyError()

    report = await RunLedger(store).execute(collect)

    assert not report.success
    assert report.error == "KeyError"
    assert store.runs[report.run_id]["status"] == RUN_ERROR


@pytest.mark.asyncio
async def test_cancelled_run_is_finalized_before_propagating():
    store = FakeRunStore()
    started = asyncio.Event()

    async def collect(run_id):
        started.set()
        await asyncio.sleep(60)

    task = asyncio.create_task(RunLedger(store).execute(collect))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    (run,) = store.runs.values()
    assert run["status"] == RUN_ERROR
    assert run["error"] == "run cancelled"


@pytest.mark.asyncio
async def test_finish_is_applied_once():
    store = FakeRunStore()
    ledger = RunLedger(store)
    run_id = await ledger.start()
    await ledger.finish(run_id, ok=False, error="boom")
    await ledger.finish(run_id, ok=True, stats=CollectionStats())
    assert store.runs[run_id]["status"] == RUN_ERROR
    assert store.runs[run_id]["error"] == "boom"
