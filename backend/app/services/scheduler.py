from __future__ import annotations

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from backend.app.core.logging import get_logger
from backend.app.core.settings import settings
from backend.app.services.pipeline import run_stage
from backend.app.services.stats import IngestStats

logger = get_logger(__name__)


async def run_scheduled_stage(stage: str) -> IngestStats:
    stats = IngestStats()
    try:
        await run_stage(stage, stats)
    except Exception:
        logger.exception("Scheduled %s ingestion failed: %s", stage, stats.as_dict())
        return stats
    logger.info("Scheduled %s ingestion finished: %s", stage, stats.as_dict())
    return stats


def build_scheduler(
    catalog_hours: Optional[int] = None,
    listings_hours: Optional[int] = None,
) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_scheduled_stage,
        "interval",
        hours=catalog_hours or settings.catalog_interval_hours,
        args=["catalog"],
        id="ingest-catalog",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        run_scheduled_stage,
        "interval",
        hours=listings_hours or settings.listings_interval_hours,
        args=["listings"],
        id="ingest-listings",
        max_instances=1,
        coalesce=True,
    )
    return scheduler
