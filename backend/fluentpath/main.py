"""
FluentPath API application.

Wires the learner API together:
- logging configured from LOG_LEVEL
- error handling middleware (structured error responses)
- health and learner routers
- database tables created on startup (use Alembic in production)

Run with:
    uvicorn fluentpath.main:app --reload
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from fluentpath.config import settings
from fluentpath.db.base import init_db
from fluentpath.middleware import setup_error_handling
from fluentpath.routers import health_router, learner_router

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the API process."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    logger.info(f"Starting {settings.APP_NAME}...")
    await init_db()

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")


def create_app(debug: bool | None = None, with_lifespan: bool = True) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        debug: Include error details in responses (defaults to settings.DEBUG)
        with_lifespan: Run database initialization on startup
    """
    debug = settings.DEBUG if debug is None else debug

    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="Learner API for spaced repetition, lessons and course progress.",
        version="0.1.0",
        lifespan=lifespan if with_lifespan else None,
    )

    setup_error_handling(app, debug=debug)

    app.include_router(health_router.router)
    app.include_router(learner_router.router)

    return app


configure_logging()
app = create_app()
