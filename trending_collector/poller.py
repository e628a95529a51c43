from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .service import CollectorService

logger = logging.getLogger(__name__)


class BackgroundPoller:
    def __init__(self, service: CollectorService, interval: Optional[int] = None):
        self._task: Optional[asyncio.Task] = None
        self._service = service
        self._interval = interval if interval is not None else service.settings.collect_interval
        self._running = False

    @property
    def running(self) -> bool:
        return self._task is not None

    async def start(self):
        if self._task is None:
            missing = self._service.missing_configuration()
            if missing:
                logger.warning("Background poller disabled, missing configuration: %s", ", ".join(missing))
                return
            self._running = True
            self._task = asyncio.create_task(self._run())

    async def stop(self):
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _run(self):
        while self._running:
            try:
                report = await self._service.collect()
                if not report.success:
                    logger.error("Scheduled run %s failed: %s", report.run_id, report.error)
            except Exception:
                # Keep the loop alive; the next interval retries
                logger.exception("Scheduled collection raised")
            await asyncio.sleep(self._interval)
