import os
import sys
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

# Ensure repository root is on sys.path so `from trending_collector ...` works
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# Settings read the environment at import time, so configure it BEFORE importing the package
os.environ["DISABLE_POLLER"] = os.environ.get("DISABLE_POLLER", "1")
os.environ["BOOTSTRAP_DB"] = "0"
os.environ["DATABASE_URL"] = os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ["YOUTUBE_API_KEYS"] = "test-key"
os.environ["CRON_SECRET"] = "test-secret"
os.environ["REGIONS"] = "US"
os.environ["REQUEST_DELAY"] = "0"

from trending_collector.config import BucketThresholds, Thresholds
from trending_collector.db import create_all_for_testing, drop_all_for_testing, Base
import trending_collector.models  # noqa: F401  register tables


@pytest_asyncio.fixture
async def db():
    # Fresh schema per test keeps row counts independent of test order
    await drop_all_for_testing(Base.metadata)
    await create_all_for_testing(Base.metadata)
    yield
    await drop_all_for_testing(Base.metadata)


@pytest.fixture
def thresholds():
    return Thresholds(
        short=BucketThresholds(viral=100000, stable=25000),
        long=BucketThresholds(viral=50000, stable=10000),
    )


def make_raw_video(
    video_id="vid-1",
    title="Plain title",
    channel_title="Someone",
    duration="PT5M",
    view_count="1000",
    published_at=None,
    **overrides,
):
    """Build a YouTube ``videos.list`` item."""
    published_at = published_at or (datetime.now(timezone.utc) - timedelta(hours=10))
    item = {
        "id": video_id,
        "snippet": {
            "title": title,
            "channelId": "UC-" + video_id,
            "channelTitle": channel_title,
            "publishedAt": published_at.isoformat().replace("+00:00", "Z"),
            "thumbnails": {
                "default": {"url": f"https://i.ytimg.com/vi/{video_id}/default.jpg"},
                "high": {"url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"},
            },
        },
        "contentDetails": {"duration": duration},
        "statistics": {"viewCount": view_count, "likeCount": "10", "commentCount": "2"},
    }
    for section, values in overrides.items():
        item[section] = {**item.get(section, {}), **values} if isinstance(values, dict) else values
    return item


@pytest.fixture
def raw_video():
    return make_raw_video
