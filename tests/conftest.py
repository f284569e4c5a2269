import os

# Settings are read at import time; configure the environment first.
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["CACHE_ENABLED"] = "false"

from typing import AsyncGenerator, Dict  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402
from sqlmodel.ext.asyncio.session import AsyncSession  # noqa: E402

from bookreview.core.security import token_manager  # noqa: E402
from bookreview.crud.book_crud import book_repository  # noqa: E402
from bookreview.crud.user_crud import user_repository  # noqa: E402
from bookreview.db import base  # noqa: E402,F401
from bookreview.db.session import get_session  # noqa: E402
from bookreview.main import app  # noqa: E402
from bookreview.models.book_model import Book  # noqa: E402
from bookreview.models.user_model import User  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# --- Pytest Fixtures ---
@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    A fresh in-memory database and session for each test function.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Provides an HTTP client for API testing, overriding the DB dependency.
    """

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()


async def create_user(db: AsyncSession, username: str, is_active: bool = True) -> User:
    user = await user_repository.create(
        db=db,
        obj_in=User(
            username=username,
            display_name=username.title(),
            email=f"{username}@example.com",
            is_active=is_active,
        ),
    )
    await db.commit()
    return user


@pytest_asyncio.fixture
async def reader(db_session: AsyncSession) -> User:
    return await create_user(db_session, "reader")


@pytest_asyncio.fixture
async def other_reader(db_session: AsyncSession) -> User:
    return await create_user(db_session, "critic")


@pytest_asyncio.fixture
async def book(db_session: AsyncSession) -> Book:
    new_book = await book_repository.create(
        db=db_session,
        obj_in=Book(
            isbn="9780743273565",
            title="The Great Gatsby",
            authors=["F. Scott Fitzgerald"],
        ),
    )
    await db_session.commit()
    return new_book


@pytest_asyncio.fixture
async def second_book(db_session: AsyncSession) -> Book:
    new_book = await book_repository.create(
        db=db_session,
        obj_in=Book(isbn="0306406152", title="Dune", authors=["Frank Herbert"]),
    )
    await db_session.commit()
    return new_book


def auth_headers_for(user_id: int) -> Dict[str, str]:
    token = token_manager.create_token(subject=str(user_id))
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def reader_headers(reader: User) -> Dict[str, str]:
    return auth_headers_for(reader.id)


@pytest_asyncio.fixture
async def other_reader_headers(other_reader: User) -> Dict[str, str]:
    return auth_headers_for(other_reader.id)


@pytest_asyncio.fixture
async def user_factory(db_session: AsyncSession):
    async def _create(username: str, is_active: bool = True) -> User:
        return await create_user(db_session, username, is_active=is_active)

    return _create


@pytest_asyncio.fixture
async def auth_headers():
    return auth_headers_for
