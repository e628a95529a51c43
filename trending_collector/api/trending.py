from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from ..classifier import Bucket
from ..config import get_settings, is_valid_region_code
from ..crud import list_trending
from ..db import get_session
from ..schemas import Pagination, TrendingItem, TrendingPage

router = APIRouter(prefix="/api/trending", tags=["trending"])


async def _pagination_params(
    limit: int = Query(None, ge=1),
    offset: int = Query(0, ge=0),
):
    settings = get_settings()
    if limit is None:
        limit = settings.trending_limit_default
    limit = min(limit, settings.trending_limit_max)
    return limit, offset


@router.get("", response_model=TrendingPage)
async def get_trending(
    qp = Depends(_pagination_params),
    region: str | None = Query(None, description="Two-letter region code"),
    niche: str | None = Query(None, description="Exact niche name"),
    bucket: Bucket | None = Query(None),
    shorts: bool | None = Query(None, description="true for shorts, false for long-form"),
    category: str | None = Query(None, description="Category id, or 'all' for the unfiltered chart"),
    hours: int = Query(24, ge=1, le=24 * 90, description="Look-back window in hours"),
):
    limit, offset = qp
    if region is not None:
        region = region.upper()
        if not is_valid_region_code(region):
            raise HTTPException(status_code=400, detail="region must be a two-letter code")

    since = datetime.now(timezone.utc) - timedelta(hours=hours)
    async with get_session() as session:
        total, rows = await list_trending(
            session,
            since=since,
            limit=limit,
            offset=offset,
            region=region,
            niche=niche,
            bucket=bucket.value if bucket else None,
            is_short=shorts,
            category=category,
        )

    return TrendingPage(
        results=[
            TrendingItem(
                video_id=hit.video_id,
                title=video.title,
                channel_title=video.channel_title,
                thumbnail_url=video.thumbnail_url,
                published_at=video.published_at,
                is_short=video.is_short,
                view_count=str(video.view_count),
                views_per_hour=hit.views_per_hour,
                bucket=hit.bucket,
                niche_tags=list(hit.niche_tags or []),
                region_code=hit.region_code,
                category_id=hit.category_id,
                seen_at=hit.seen_at,
            )
            for hit, video in rows
        ],
        pagination=Pagination(total=total, limit=limit, offset=offset, has_more=offset + limit < total),
    )
