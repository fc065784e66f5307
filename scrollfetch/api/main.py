"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scrollfetch import __version__
from scrollfetch.api.routes import router
from scrollfetch.config import settings
from scrollfetch.utils.logging import AccessLogMiddleware, get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown events."""
    logger.info(
        "Starting scrollfetch API",
        version=__version__,
        port=settings.api_port,
        browser=settings.browser_ws_endpoint,
    )
    yield
    logger.info("Shutdown complete")


app = FastAPI(
    title="scrollfetch",
    description="Fully render infinite-scroll pages in a remote browser",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(AccessLogMiddleware)

app.include_router(router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Liveness probe. Does not touch the remote browser."""
    return {"status": "healthy", "version": __version__}
