"""FastAPI application entrypoint (authoritative progress store)."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from src.api.health import router as health_router
from src.api.progress import router as progress_router
from src.config import settings
from src.core.logging import get_logger, setup_logging
from src.db.database import init_db

setup_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Creating database tables...")
    init_db()
    logger.info("Database tables created.")

    yield

    logger.info("Shutting down...")


app = FastAPI(title="Map Progression Server", lifespan=lifespan)

app.include_router(health_router)
app.include_router(progress_router)
