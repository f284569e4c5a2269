# bookreview/db/session.py
"""
Database engine, session factory and the unit-of-work helper.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession

from bookreview.core.config import settings

logger = logging.getLogger(__name__)


class Database:
    """Owns the async engine and session factory for the application."""

    def __init__(self, url: str):
        self.url = url
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    async def connect(self) -> None:
        if self.engine is not None:
            return

        engine_kwargs = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
        if not self.url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_recycle=settings.DB_POOL_RECYCLE,
                pool_timeout=settings.DB_POOL_TIMEOUT,
            )

        self.engine = create_async_engine(self.url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info("Database engine created")

    async def disconnect(self) -> None:
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self.session_factory = None
        logger.info("Database engine disposed")


db = Database(settings.DATABASE_URL)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    if db.session_factory is None:
        await db.connect()
    async with db.session_factory() as session:
        yield session


@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Run a block of reads and writes as one transaction.

    Commits when the block finishes, rolls back and re-raises on any
    exception. Repositories only flush; this is the single commit point.
    """
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
