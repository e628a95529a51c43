from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from . import crud
from .classifier import ClassifiedVideo
from .crud import AppendOutcome
from .db import get_session
from .models import Video

logger = logging.getLogger(__name__)

__all__ = ["AppendOutcome", "DatabaseStore", "PersistenceError"]


class PersistenceError(Exception):
    """A storage operation failed for a reason other than a duplicate key."""


class DatabaseStore:
    """Video store, feed log and run persistence on the configured database.

    Every call runs in its own transaction.
    """

    async def upsert_video(self, video: ClassifiedVideo, seen_at: datetime) -> None:
        try:
            async with get_session() as session:
                await crud.upsert_video(session, video, seen_at)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"upsert of video {video.video_id} failed: {exc}") from exc

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
    ) -> AppendOutcome:
        try:
            async with get_session() as session:
                return await crud.append_feed_hit(
                    session,
                    run_id=run_id,
                    video_id=video_id,
                    region_code=region_code,
                    category_id=category_id,
                    views_per_hour=views_per_hour,
                    bucket=bucket,
                    niche_tags=niche_tags,
                    seen_at=seen_at,
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"feed hit for {video_id} in {region_code}/{category_id} failed: {exc}") from exc

    async def read_video(self, video_id: str) -> Optional[Video]:
        try:
            async with get_session() as session:
                return await crud.get_video(session, video_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"read of video {video_id} failed: {exc}") from exc

    async def create_run(self) -> str:
        try:
            async with get_session() as session:
                return await crud.create_run(session, datetime.now(timezone.utc))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not create collector run: {exc}") from exc

    async def update_run_status(self, run_id: str, status: str, fields: dict[str, Any]) -> bool:
        try:
            async with get_session() as session:
                updated = await crud.update_run_status(session, run_id, status, fields)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not update run {run_id}: {exc}") from exc
        if not updated:
            logger.warning("Run %s was not in running state; status %s not applied", run_id, status)
        return updated
