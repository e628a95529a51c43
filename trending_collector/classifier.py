from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .config import Thresholds
from .niches import classify_niches

logger = logging.getLogger(__name__)

SHORTS_MAX_SECONDS = 60
THUMBNAIL_PREFERENCE = ("maxres", "standard", "high", "medium", "default")

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


class Bucket(str, Enum):
    VIRAL = "viral"
    STABLE = "stable"
    LOW = "low"


@dataclass(frozen=True)
class ClassifiedVideo:
    video_id: str
    title: str
    channel_id: str
    channel_title: str
    published_at: datetime
    duration_seconds: int
    is_short: bool
    thumbnail_url: str
    view_count: int
    like_count: Optional[int]
    comment_count: Optional[int]
    views_per_hour: float
    bucket: Bucket
    niche_tags: tuple[str, ...] = field(default_factory=tuple)


def parse_duration(iso_duration: str) -> int:
    """Convert an ISO 8601 duration such as ``PT1H2M10S`` into seconds.

    Unparseable input yields 0.
    """
    match = _DURATION_RE.search(iso_duration or "")
    if not match:
        return 0
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    return hours * 3600 + minutes * 60 + seconds


def parse_published_at(value: str) -> datetime:
    published = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return published


def calculate_views_per_hour(view_count: int, published_at: datetime, now: Optional[datetime] = None) -> float:
    now = now or datetime.now(timezone.utc)
    age_hours = max(1.0, (now - published_at).total_seconds() / 3600)
    return view_count / age_hours


def determine_bucket(views_per_hour: float, is_short: bool, thresholds: Thresholds) -> Bucket:
    floors = thresholds.for_format(is_short)
    if views_per_hour >= floors.viral:
        return Bucket.VIRAL
    if views_per_hour >= floors.stable:
        return Bucket.STABLE
    return Bucket.LOW


def pick_thumbnail(thumbnails: Optional[dict[str, Any]]) -> str:
    thumbnails = thumbnails or {}
    for size in THUMBNAIL_PREFERENCE:
        url = (thumbnails.get(size) or {}).get("url")
        if url:
            return url
    return ""


def _optional_count(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    return int(value)


def classify_video(video: dict[str, Any], thresholds: Thresholds, now: Optional[datetime] = None) -> Optional[ClassifiedVideo]:
    """Classify a raw ``videos.list`` item.

    Returns None when a required field is missing so the caller can skip
    the item without failing the run.
    """
    snippet = video.get("snippet") or {}
    details = video.get("contentDetails") or {}
    stats = video.get("statistics") or {}

    required = (
        video.get("id"),
        snippet.get("title"),
        snippet.get("channelId"),
        snippet.get("channelTitle"),
        snippet.get("publishedAt"),
        details.get("duration"),
        stats.get("viewCount"),
    )
    if not all(required):
        logger.debug("Skipping video with missing required fields: %s", video.get("id"))
        return None

    try:
        published_at = parse_published_at(snippet["publishedAt"])
        view_count = int(stats["viewCount"])
        like_count = _optional_count(stats.get("likeCount"))
        comment_count = _optional_count(stats.get("commentCount"))
    except ValueError:
        logger.debug("Skipping video with malformed fields: %s", video.get("id"))
        return None

    duration_seconds = parse_duration(details["duration"])
    is_short = duration_seconds <= SHORTS_MAX_SECONDS
    views_per_hour = calculate_views_per_hour(view_count, published_at, now)

    return ClassifiedVideo(
        video_id=video["id"],
        title=snippet["title"],
        channel_id=snippet["channelId"],
        channel_title=snippet["channelTitle"],
        published_at=published_at,
        duration_seconds=duration_seconds,
        is_short=is_short,
        thumbnail_url=pick_thumbnail(snippet.get("thumbnails")),
        view_count=view_count,
        like_count=like_count,
        comment_count=comment_count,
        views_per_hour=views_per_hour,
        bucket=determine_bucket(views_per_hour, is_short, thresholds),
        niche_tags=tuple(classify_niches(snippet["title"], snippet["channelTitle"])),
    )
