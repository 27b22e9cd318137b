from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from backend.app.core.logging import get_logger
from backend.app.services import pipeline
from backend.app.services.stats import IngestStats

logger = get_logger(__name__)

router = APIRouter()


@router.get("")
async def trigger_ingest(stage: str = "catalog"):
    if stage not in pipeline.STAGES:
        return JSONResponse(
            status_code=400,
            content={"ok": False, "error": str(pipeline.UnknownStageError(stage))},
        )

    stats = IngestStats()
    try:
        await pipeline.run_stage(stage, stats)
    except Exception as exc:
        logger.exception("Ingestion stage %s failed", stage)
        return JSONResponse(
            status_code=500,
            content={
                "ok": False,
                "stage": stage,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "error": str(exc) or exc.__class__.__name__,
                "stats": stats.as_dict(),
            },
        )

    return {
        "ok": True,
        "stage": stage,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "stats": stats.as_dict(),
    }
