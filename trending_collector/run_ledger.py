from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Protocol

from .collector import CollectionStats
from .models import RUN_ERROR, RUN_OK

logger = logging.getLogger(__name__)


class RunPersistence(Protocol):
    async def create_run(self) -> str: ...

    async def update_run_status(self, run_id: str, status: str, fields: dict[str, Any]) -> bool: ...


@dataclass(frozen=True)
class RunReport:
    success: bool
    run_id: str
    stats: Optional[CollectionStats] = None
    error: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "run_id": self.run_id, "stats": self.stats.as_dict() if self.stats else None}
        return {"success": False, "run_id": self.run_id, "error": self.error}


def _error_text(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class RunLedger:
    """Lifecycle of collector runs: running -> ok | error, exactly once."""

    def __init__(self, store: RunPersistence):
        self.store = store

    async def start(self) -> str:
        run_id = await self.store.create_run()
        logger.info("Starting collector run %s", run_id)
        return run_id

    async def finish(
        self,
        run_id: str,
        ok: bool,
        stats: Optional[CollectionStats] = None,
        error: Optional[str] = None,
    ) -> None:
        fields: dict[str, Any] = {"finished_at": datetime.now(timezone.utc)}
        if ok:
            if stats is not None:
                fields["videos_processed"] = stats.videos_processed
                fields["feed_hits_created"] = stats.feed_hits_created
            await self.store.update_run_status(run_id, RUN_OK, fields)
            logger.info("Collector run %s completed successfully", run_id)
        else:
            fields["error"] = error or "unknown error"
            await self.store.update_run_status(run_id, RUN_ERROR, fields)
            logger.error("Collector run %s failed: %s", run_id, fields["error"])

    async def execute(self, collect: Callable[[str], Awaitable[CollectionStats]]) -> RunReport:
        """Run ``collect`` inside a ledger entry and always finalize it."""
        run_id = await self.start()
        try:
            stats = await collect(run_id)
        except asyncio.CancelledError:
            await self.finish(run_id, ok=False, error="run cancelled")
            raise
        except Exception as exc:
            logger.exception("Collector run %s raised", run_id)
            message = _error_text(exc)
            await self.finish(run_id, ok=False, error=message)
            return RunReport(success=False, run_id=run_id, error=message)

        await self.finish(run_id, ok=True, stats=stats)
        return RunReport(success=True, run_id=run_id, stats=stats)
