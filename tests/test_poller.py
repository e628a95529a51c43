import asyncio

import pytest

from trending_collector.poller import BackgroundPoller
from trending_collector.run_ledger import RunReport


class StubService:
    def __init__(self, missing=None, fail_first=False):
        self.missing = missing or []
        self.fail_first = fail_first
        self.calls = 0
        self.ran_twice = asyncio.Event()

    def missing_configuration(self):
        return list(self.missing)

    async def collect(self):
        self.calls += 1
        if self.calls >= 2:
            self.ran_twice.set()
        if self.fail_first and self.calls == 1:
            raise RuntimeError("database unavailable")
        return RunReport(success=True, run_id=f"run-{self.calls}")


@pytest.mark.asyncio
async def test_poller_keeps_running_after_a_failed_collection():
    service = StubService(fail_first=True)
    poller = BackgroundPoller(service, interval=0)
    await poller.start()
    try:
        await asyncio.wait_for(service.ran_twice.wait(), timeout=5)
    finally:
        await poller.stop()
    assert service.calls >= 2
    assert poller.running is False


@pytest.mark.asyncio
async def test_poller_does_not_start_without_configuration():
    service = StubService(missing=["YOUTUBE_API_KEYS"])
    poller = BackgroundPoller(service, interval=0)
    await poller.start()
    assert poller.running is False
    await poller.stop()
    assert service.calls == 0
