"""Collection loop over every (region, category) pair.

For each configured region the loop pulls the overall "most popular" chart
first, then one chart per assignable category. Each pair is processed in
isolation: a failing fetch is recorded as a failed pair and the loop moves
on. Storage failures other than duplicate feed hits abort the whole run.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence

from .classifier import ClassifiedVideo, classify_video
from .config import Thresholds
from .crud import AppendOutcome
from .store import PersistenceError

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"
DEFAULT_PAGE_SIZE = 50
DEFAULT_REQUEST_DELAY = 0.1


class VideoSource(Protocol):
    async def list_most_popular(
        self, region_code: str, category_id: Optional[str] = None, max_results: int = DEFAULT_PAGE_SIZE
    ) -> list[dict[str, Any]]: ...


class VideoStore(Protocol):
    async def upsert_video(self, video: ClassifiedVideo, seen_at: datetime) -> None: ...

    async def append_feed_hit(
        self,
        *,
        run_id: str,
        video_id: str,
        region_code: str,
        category_id: str,
        views_per_hour: float,
        bucket: str,
        niche_tags: Sequence[str],
        seen_at: datetime,
    ) -> AppendOutcome: ...


class CategoryProvider(Protocol):
    async def categories_for(self, region_code: str) -> list[str]: ...


class PairStatus(str, enum.Enum):
    OK = "ok"
    FAILED = "failed"


@dataclass(frozen=True)
class PairResult:
    region_code: str
    category_id: str
    status: PairStatus
    videos_processed: int = 0
    feed_hits_created: int = 0
    skipped: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class CollectionStats:
    videos_processed: int = 0
    feed_hits_created: int = 0
    pairs_ok: int = 0
    pairs_failed: int = 0

    @classmethod
    def from_results(cls, results: Sequence[PairResult]) -> "CollectionStats":
        return cls(
            videos_processed=sum(r.videos_processed for r in results),
            feed_hits_created=sum(r.feed_hits_created for r in results),
            pairs_ok=sum(1 for r in results if r.status is PairStatus.OK),
            pairs_failed=sum(1 for r in results if r.status is PairStatus.FAILED),
        )

    def as_dict(self) -> dict[str, int]:
        return {
            "videos_processed": self.videos_processed,
            "feed_hits_created": self.feed_hits_created,
            "pairs_ok": self.pairs_ok,
            "pairs_failed": self.pairs_failed,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Collector:
    def __init__(
        self,
        source: VideoSource,
        store: VideoStore,
        categories: CategoryProvider,
        regions: Sequence[str],
        thresholds: Thresholds,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        request_delay: float = DEFAULT_REQUEST_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.source = source
        self.store = store
        self.categories = categories
        self.regions = list(regions)
        self.thresholds = thresholds
        self.page_size = page_size
        self.request_delay = request_delay
        self._sleep = sleep
        self._clock = clock

    async def run(self, run_id: str) -> CollectionStats:
        results: list[PairResult] = []
        for region_code in self.regions:
            logger.info("Processing region %s", region_code)
            category_ids = await self.categories.categories_for(region_code)
            for category_id in [ALL_CATEGORIES, *category_ids]:
                results.append(await self._collect_pair(run_id, region_code, category_id))
                # Bound the outbound call rate to the video source
                await self._sleep(self.request_delay)

        stats = CollectionStats.from_results(results)
        logger.info(
            "Run %s collected %d videos, %d new feed hits (%d pairs ok, %d failed)",
            run_id,
            stats.videos_processed,
            stats.feed_hits_created,
            stats.pairs_ok,
            stats.pairs_failed,
        )
        return stats

    async def _collect_pair(self, run_id: str, region_code: str, category_id: str) -> PairResult:
        try:
            return await self._process_pair(run_id, region_code, category_id)
        except PersistenceError:
            raise
        except Exception as exc:
            logger.error("Error processing %s/%s: %s", region_code, category_id, exc, exc_info=True)
            return PairResult(
                region_code=region_code,
                category_id=category_id,
                status=PairStatus.FAILED,
                error=str(exc) or type(exc).__name__,
            )

    async def _process_pair(self, run_id: str, region_code: str, category_id: str) -> PairResult:
        logger.info("Fetching videos for %s/%s", region_code, category_id)
        items = await self.source.list_most_popular(
            region_code,
            None if category_id == ALL_CATEGORIES else category_id,
            self.page_size,
        )
        logger.debug("Retrieved %d videos for %s/%s", len(items), region_code, category_id)

        now = self._clock()
        processed = created = skipped = 0
        for item in items:
            video = classify_video(item, self.thresholds, now=now)
            if video is None:
                skipped += 1
                continue

            await self.store.upsert_video(video, now)
            processed += 1

            outcome = await self.store.append_feed_hit(
                run_id=run_id,
                video_id=video.video_id,
                region_code=region_code,
                category_id=category_id,
                views_per_hour=video.views_per_hour,
                bucket=video.bucket.value,
                niche_tags=video.niche_tags,
                seen_at=now,
            )
            if outcome is AppendOutcome.INSERTED:
                created += 1

        return PairResult(
            region_code=region_code,
            category_id=category_id,
            status=PairStatus.OK,
            videos_processed=processed,
            feed_hits_created=created,
            skipped=skipped,
        )
