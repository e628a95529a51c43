from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from .classifier import Bucket, ClassifiedVideo
from .models import RUN_OK, RUN_RUNNING, CollectorRun, FeedHit, Video

FEED_HIT_KEY = ("run_id", "video_id", "region_code", "category_id")


class AppendOutcome(str, enum.Enum):
    INSERTED = "inserted"
    DUPLICATE = "duplicate"


def _insert_for(session: AsyncSession):
    dialect_name = session.bind.dialect.name if session.bind is not None else ""
    return pg_insert if dialect_name == "postgresql" else sqlite_insert


async def upsert_video(session: AsyncSession, video: ClassifiedVideo, seen_at: datetime) -> None:
    """Create the video row, or refresh its counters and last_seen_at.

    Descriptive fields and first_seen_at are only written on creation.
    """
    insert = _insert_for(session)
    stmt = insert(Video.__table__).values(
        video_id=video.video_id,
        title=video.title,
        channel_id=video.channel_id,
        channel_title=video.channel_title,
        published_at=video.published_at,
        duration_seconds=video.duration_seconds,
        is_short=video.is_short,
        thumbnail_url=video.thumbnail_url,
        view_count=video.view_count,
        like_count=video.like_count,
        comment_count=video.comment_count,
        first_seen_at=seen_at,
        last_seen_at=seen_at,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[Video.video_id],
        set_={
            "view_count": stmt.excluded.view_count,
            "like_count": stmt.excluded.like_count,
            "comment_count": stmt.excluded.comment_count,
            "last_seen_at": stmt.excluded.last_seen_at,
        },
    )
    await session.execute(stmt)


async def append_feed_hit(
    session: AsyncSession,
    *,
    run_id: str,
    video_id: str,
    region_code: str,
    category_id: str,
    views_per_hour: float,
    bucket: str,
    niche_tags: Sequence[str],
    seen_at: datetime,
) -> AppendOutcome:
    insert = _insert_for(session)
    stmt = (
        insert(FeedHit.__table__)
        .values(
            run_id=run_id,
            video_id=video_id,
            region_code=region_code,
            category_id=category_id,
            views_per_hour=views_per_hour,
            bucket=bucket,
            niche_tags=list(niche_tags),
            seen_at=seen_at,
        )
        .on_conflict_do_nothing(index_elements=list(FEED_HIT_KEY))
    )
    result = await session.execute(stmt)
    return AppendOutcome.INSERTED if result.rowcount == 1 else AppendOutcome.DUPLICATE


async def create_run(session: AsyncSession, started_at: Optional[datetime] = None) -> str:
    run = CollectorRun(status=RUN_RUNNING, started_at=started_at or datetime.now(timezone.utc))
    session.add(run)
    await session.flush()
    return run.run_id


async def update_run_status(session: AsyncSession, run_id: str, status: str, fields: dict[str, Any]) -> bool:
    """Move a running run to its final status.

    Returns False when the run does not exist or was already finalized.
    """
    result = await session.execute(
        update(CollectorRun)
        .where(CollectorRun.run_id == run_id, CollectorRun.status == RUN_RUNNING)
        .values(status=status, **fields)
    )
    return result.rowcount == 1


async def get_run(session: AsyncSession, run_id: str) -> Optional[CollectorRun]:
    return await session.get(CollectorRun, run_id)


async def get_video(session: AsyncSession, video_id: str) -> Optional[Video]:
    return await session.get(Video, video_id)


async def list_trending(
    session: AsyncSession,
    *,
    since: datetime,
    limit: int,
    offset: int = 0,
    region: str | None = None,
    niche: str | None = None,
    bucket: str | None = None,
    is_short: bool | None = None,
    category: str | None = None,
) -> tuple[int, list[tuple[FeedHit, Video]]]:
    """Feed hits seen since ``since``, best views-per-hour per video first."""
    stmt = (
        select(FeedHit, Video)
        .join(Video, Video.video_id == FeedHit.video_id)
        .where(FeedHit.seen_at >= since)
    )
    if region:
        stmt = stmt.where(FeedHit.region_code == region)
    if bucket:
        stmt = stmt.where(FeedHit.bucket == bucket)
    if category:
        stmt = stmt.where(FeedHit.category_id == category)
    if is_short is not None:
        stmt = stmt.where(Video.is_short.is_(is_short))
    stmt = stmt.order_by(FeedHit.views_per_hour.desc(), FeedHit.id)

    rows = (await session.execute(stmt)).all()
    # JSON containment differs per dialect, so the niche filter runs here
    best: dict[str, tuple[FeedHit, Video]] = {}
    for hit, video in rows:
        if niche and niche not in (hit.niche_tags or []):
            continue
        best.setdefault(hit.video_id, (hit, video))
    items = list(best.values())
    return len(items), items[offset:offset + limit]


async def get_video_detail(
    session: AsyncSession, video_id: str, appearances_limit: int = 100
) -> Optional[tuple[Video, Sequence[FeedHit]]]:
    video = await get_video(session, video_id)
    if video is None:
        return None
    hits = (
        await session.execute(
            select(FeedHit)
            .where(FeedHit.video_id == video_id)
            .order_by(FeedHit.seen_at.desc(), FeedHit.id.desc())
            .limit(appearances_limit)
        )
    ).scalars().all()
    return video, hits


async def bucket_counts(session: AsyncSession, since: datetime) -> dict[str, int]:
    rows = (
        await session.execute(
            select(FeedHit.bucket, func.count())
            .where(FeedHit.seen_at >= since)
            .group_by(FeedHit.bucket)
        )
    ).all()
    counts = {b.value: 0 for b in Bucket}
    for name, n in rows:
        if name in counts:
            counts[name] = int(n)
    return counts


async def unique_videos(session: AsyncSession, since: datetime) -> int:
    total = await session.scalar(
        select(func.count(func.distinct(FeedHit.video_id))).where(FeedHit.seen_at >= since)
    )
    return int(total or 0)


async def hit_count_by_format(session: AsyncSession, since: datetime, is_short: bool) -> int:
    total = await session.scalar(
        select(func.count())
        .select_from(FeedHit)
        .join(Video, Video.video_id == FeedHit.video_id)
        .where(FeedHit.seen_at >= since, Video.is_short.is_(is_short))
    )
    return int(total or 0)


async def last_successful_run(session: AsyncSession) -> Optional[CollectorRun]:
    return (
        await session.execute(
            select(CollectorRun)
            .where(CollectorRun.status == RUN_OK)
            .order_by(CollectorRun.finished_at.desc())
            .limit(1)
        )
    ).scalar_one_or_none()
