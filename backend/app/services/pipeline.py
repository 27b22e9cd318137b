from __future__ import annotations

from typing import Optional

from backend.app.core.logging import get_logger
from backend.app.services.catalog_ingest import CatalogIngestor
from backend.app.services.listings_ingest import ListingsIngestor
from backend.app.services.stats import IngestStats

logger = get_logger(__name__)

STAGES = ("catalog", "listings")


class UnknownStageError(ValueError):
    def __init__(self, stage: str):
        super().__init__(f"Invalid stage. Use '{STAGES[0]}' or '{STAGES[1]}'")
        self.stage = stage


async def run_stage(
    stage: str,
    stats: IngestStats,
    *,
    catalog: Optional[CatalogIngestor] = None,
    listings: Optional[ListingsIngestor] = None,
) -> IngestStats:
    """Run one ingestion stage, accumulating into ``stats``.

    ``stats`` is mutated in place so a caller still holds the partial counters
    when the stage raises.
    """
    if stage not in STAGES:
        raise UnknownStageError(stage)

    logger.info("Starting %s ingestion", stage)
    if stage == "catalog":
        ingestor = catalog or CatalogIngestor()
        try:
            await ingestor.run(stats)
        finally:
            await ingestor.aclose()
    else:
        ingestor = listings or ListingsIngestor()
        try:
            await ingestor.run(stats)
        finally:
            await ingestor.aclose()
    return stats
