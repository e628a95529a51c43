from __future__ import annotations

from fastapi import APIRouter, HTTPException

from ..crud import get_video_detail
from ..db import get_session
from ..schemas import Appearance, AppearanceStats, BucketCounts, VideoDetail

router = APIRouter(prefix="/api/video", tags=["videos"])

APPEARANCES_LIMIT = 100


def _count_str(value: int | None) -> str | None:
    return None if value is None else str(value)


@router.get("/{video_id}", response_model=VideoDetail)
async def get_video(video_id: str):
    async with get_session() as session:
        found = await get_video_detail(session, video_id, appearances_limit=APPEARANCES_LIMIT)
    if found is None:
        raise HTTPException(status_code=404, detail="Video not found")
    video, hits = found

    buckets = BucketCounts()
    for hit in hits:
        if hit.bucket in BucketCounts.model_fields:
            setattr(buckets, hit.bucket, getattr(buckets, hit.bucket) + 1)
    regions = list(dict.fromkeys(hit.region_code for hit in hits))

    return VideoDetail(
        video_id=video.video_id,
        title=video.title,
        channel_id=video.channel_id,
        channel_title=video.channel_title,
        published_at=video.published_at,
        duration_seconds=video.duration_seconds,
        is_short=video.is_short,
        thumbnail_url=video.thumbnail_url,
        view_count=str(video.view_count),
        like_count=_count_str(video.like_count),
        comment_count=_count_str(video.comment_count),
        first_seen_at=video.first_seen_at,
        last_seen_at=video.last_seen_at,
        appearances=[
            Appearance(
                region_code=hit.region_code,
                category_id=hit.category_id,
                seen_at=hit.seen_at,
                views_per_hour=hit.views_per_hour,
                bucket=hit.bucket,
                niche_tags=list(hit.niche_tags or []),
            )
            for hit in hits
        ],
        stats=AppearanceStats(total_appearances=len(hits), regions=regions, buckets=buckets),
    )
