"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api import refresh
from database import init_db
from logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Ensure tables exist on startup."""
    try:
        init_db()
    except Exception:
        logger.warning("Database initialization failed on startup", exc_info=True)
    yield


app = FastAPI(
    title="Net Worth Sync",
    description="Background sync and aggregation jobs for net worth tracking",
    version="0.1.0",
    lifespan=lifespan,
)

# Include API routers
app.include_router(refresh.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
