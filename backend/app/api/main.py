from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.app.core.logging import get_logger
from backend.app.core.settings import settings
from backend.app.db.session import init_db
from backend.app.services.scheduler import build_scheduler
from .routes import cars, ingest

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    scheduler = None
    if settings.scheduler_enabled:
        scheduler = build_scheduler()
        scheduler.start()
        logger.info("Ingestion scheduler started")
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)


app = FastAPI(title="Sports Car Catalog API", version="0.1.0", lifespan=lifespan)

app.include_router(ingest.router, prefix="/ingest", tags=["ingest"])
app.include_router(cars.router, prefix="/cars", tags=["cars"])
