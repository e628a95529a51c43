from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, TIMESTAMP, BigInteger, Boolean, Float, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base

RUN_RUNNING = "running"
RUN_OK = "ok"
RUN_ERROR = "error"


def _new_run_id() -> str:
    return str(uuid.uuid4())


class Video(Base):
    __tablename__ = "videos"

    video_id: Mapped[str] = mapped_column(Text, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    channel_id: Mapped[str] = mapped_column(Text, nullable=False)
    channel_title: Mapped[str] = mapped_column(Text, nullable=False)
    published_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    is_short: Mapped[bool] = mapped_column(Boolean, nullable=False, index=True)
    thumbnail_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # View counts on popular videos exceed 32-bit range
    view_count: Mapped[int] = mapped_column(BigInteger, nullable=False)
    like_count: Mapped[int | None] = mapped_column(BigInteger)
    comment_count: Mapped[int | None] = mapped_column(BigInteger)
    first_seen_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=func.now())
    last_seen_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=func.now())


class FeedHit(Base):
    __tablename__ = "feed_hits"

    # Integer PK to support SQLite AUTOINCREMENT semantics
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[str] = mapped_column(String(36), nullable=False)
    # Logical reference to videos.video_id, no FK
    video_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    region_code: Mapped[str] = mapped_column(String(2), nullable=False, index=True)
    category_id: Mapped[str] = mapped_column(String(16), nullable=False)
    views_per_hour: Mapped[float] = mapped_column(Float, nullable=False)
    bucket: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    niche_tags: Mapped[list[str]] = mapped_column(JSON().with_variant(JSONB, "postgresql"), default=list)
    seen_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=func.now(), index=True)

    __table_args__ = (
        UniqueConstraint("run_id", "video_id", "region_code", "category_id", name="uq_feed_hits_run_video_region_category"),
        Index("idx_feed_hits_vph", "views_per_hour"),
        {"sqlite_autoincrement": True},
    )


class CollectorRun(Base):
    __tablename__ = "collector_runs"

    run_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_run_id)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RUN_RUNNING, index=True)
    started_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=func.now())
    finished_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True))
    error: Mapped[str | None] = mapped_column(Text)
    videos_processed: Mapped[int | None] = mapped_column(Integer)
    feed_hits_created: Mapped[int | None] = mapped_column(Integer)
