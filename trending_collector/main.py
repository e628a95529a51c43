from __future__ import annotations

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.cron import router as cron_router
from .api.stats import router as stats_router
from .api.trending import router as trending_router
from .api.videos import router as videos_router
from .config import configure_logging
from .db import Base, create_all_for_testing
from .poller import BackgroundPoller
from .service import CollectorService
import trending_collector.models  # ensure models are registered on Base.metadata

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Trending Collector", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

service = CollectorService()
app.state.collector_service = service
poller = BackgroundPoller(service)


@app.on_event("startup")
async def startup_event():
    if os.getenv("BOOTSTRAP_DB", "1") == "1":
        # Convenience for local SQLite; production schemas come from Alembic
        try:
            await create_all_for_testing(Base.metadata)
        except Exception:
            logger.exception("Schema bootstrap failed")
    if os.getenv("DISABLE_POLLER", "0") != "1":
        await poller.start()


@app.on_event("shutdown")
async def shutdown_event():
    await poller.stop()
    await service.close()


app.include_router(cron_router)
app.include_router(trending_router)
app.include_router(videos_router)
app.include_router(stats_router)
