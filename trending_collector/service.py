from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from .category_cache import CategoryCache
from .collector import Collector
from .config import Settings, get_settings
from .run_ledger import RunLedger, RunReport
from .store import DatabaseStore
from .youtube_client import YouTubeClient

logger = logging.getLogger(__name__)


class CollectorService:
    """Process-owned wiring of the collection pipeline.

    The category cache lives as long as this object, so one instance is
    shared by the HTTP trigger and the background poller.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[YouTubeClient] = None,
        store: Optional[DatabaseStore] = None,
    ):
        self.settings = settings or get_settings()
        self.client = client or YouTubeClient(self.settings)
        self.store = store or DatabaseStore()
        self.category_cache = CategoryCache(self.client, ttl=timedelta(hours=self.settings.category_ttl_hours))
        self.ledger = RunLedger(self.store)

    def missing_configuration(self) -> list[str]:
        missing = []
        if not self.settings.youtube_api_keys:
            missing.append("YOUTUBE_API_KEYS")
        if not self.settings.database_url:
            missing.append("DATABASE_URL")
        return missing

    def build_collector(self) -> Collector:
        return Collector(
            source=self.client,
            store=self.store,
            categories=self.category_cache,
            regions=self.settings.regions,
            thresholds=self.settings.thresholds,
            page_size=self.settings.page_size,
            request_delay=self.settings.request_delay,
        )

    async def collect(self) -> RunReport:
        collector = self.build_collector()
        return await self.ledger.execute(collector.run)

    async def close(self) -> None:
        await self.client.close()
