from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter

from .. import crud
from ..db import get_session
from ..schemas import BucketCounts, LastRun, OverviewStats, WindowStats

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("/overview", response_model=OverviewStats)
async def overview():
    now = datetime.now(timezone.utc)
    last_24h = now - timedelta(hours=24)
    last_7d = now - timedelta(days=7)

    async with get_session() as session:
        buckets_24h = await crud.bucket_counts(session, last_24h)
        buckets_7d = await crud.bucket_counts(session, last_7d)
        unique_24h = await crud.unique_videos(session, last_24h)
        unique_7d = await crud.unique_videos(session, last_7d)
        shorts_24h = await crud.hit_count_by_format(session, last_24h, is_short=True)
        long_form_24h = await crud.hit_count_by_format(session, last_24h, is_short=False)
        run = await crud.last_successful_run(session)

    return OverviewStats(
        last_24h=WindowStats(
            total_hits=sum(buckets_24h.values()),
            unique_videos=unique_24h,
            by_bucket=BucketCounts(**buckets_24h),
            shorts=shorts_24h,
            long_form=long_form_24h,
        ),
        last_7d=WindowStats(
            total_hits=sum(buckets_7d.values()),
            unique_videos=unique_7d,
            by_bucket=BucketCounts(**buckets_7d),
        ),
        last_run=(
            LastRun(
                run_id=run.run_id,
                status=run.status,
                finished_at=run.finished_at,
                videos_processed=run.videos_processed,
                feed_hits_created=run.feed_hits_created,
            )
            if run
            else None
        ),
    )
