"""FastAPI application entrypoint."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from finrecon.config import settings
from finrecon.logger import configure_logging, get_logger
from finrecon.routers import reconciliation_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    logger.info("Application starting", environment=settings.environment)
    yield
    logger.info("Application stopping")


app = FastAPI(
    title="finrecon",
    description="Transaction/document reconciliation engine",
    lifespan=lifespan,
)

app.include_router(reconciliation_router)


@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness check."""
    return {"status": "healthy"}
