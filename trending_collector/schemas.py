from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RunStats(BaseModel):
    videos_processed: int
    feed_hits_created: int
    pairs_ok: int = 0
    pairs_failed: int = 0


class CollectResponse(BaseModel):
    success: bool
    run_id: str
    stats: Optional[RunStats] = None
    error: Optional[str] = None


class TrendingItem(BaseModel):
    video_id: str
    title: str
    channel_title: str
    thumbnail_url: str
    published_at: datetime
    is_short: bool
    # Serialized as strings so large counters survive JSON clients
    view_count: str
    views_per_hour: float
    bucket: str
    niche_tags: list[str]
    region_code: str
    category_id: str
    seen_at: datetime


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class TrendingPage(BaseModel):
    results: list[TrendingItem]
    pagination: Pagination


class Appearance(BaseModel):
    region_code: str
    category_id: str
    seen_at: datetime
    views_per_hour: float
    bucket: str
    niche_tags: list[str]


class BucketCounts(BaseModel):
    viral: int = 0
    stable: int = 0
    low: int = 0


class AppearanceStats(BaseModel):
    total_appearances: int
    regions: list[str]
    buckets: BucketCounts


class VideoDetail(BaseModel):
    video_id: str
    title: str
    channel_id: str
    channel_title: str
    published_at: datetime
    duration_seconds: int
    is_short: bool
    thumbnail_url: str
    view_count: str
    like_count: Optional[str] = None
    comment_count: Optional[str] = None
    first_seen_at: datetime
    last_seen_at: datetime
    appearances: list[Appearance]
    stats: AppearanceStats


class WindowStats(BaseModel):
    total_hits: int
    unique_videos: int
    by_bucket: BucketCounts
    shorts: Optional[int] = None
    long_form: Optional[int] = None


class LastRun(BaseModel):
    run_id: str
    status: str
    finished_at: Optional[datetime] = None
    videos_processed: Optional[int] = None
    feed_hits_created: Optional[int] = None


class OverviewStats(BaseModel):
    last_24h: WindowStats
    last_7d: WindowStats
    last_run: Optional[LastRun] = None
