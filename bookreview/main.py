import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from bookreview.core.config import settings
from bookreview.core.exception_handler import register_exception_handlers
from bookreview.core.logging_config import configure_logging
from bookreview.core.middleware import register_middlewares
from bookreview.db.session import db  # Import the database instance
from bookreview.db.redis_conn import redis_client
from bookreview.schemas.common_schema import success_response

from bookreview.db import base  # noqa: F401

# Routers
from bookreview.api.v1.endpoints import review, comment, book, user

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handles application startup and shutdown events.
    """
    configure_logging()
    await db.connect()
    logger.info(f"{settings.PROJECT_NAME} started", extra={"env": settings.ENVIRONMENT})

    yield

    await db.disconnect()
    await redis_client.aclose()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        lifespan=lifespan,
    )

    register_middlewares(app)
    register_exception_handlers(app)

    app.include_router(review.router)
    app.include_router(comment.router)
    app.include_router(book.router)
    app.include_router(user.router)

    return app


app = create_application()


@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    return success_response({"status": "healthy", "version": settings.VERSION}, request)
