"""Shared fixtures — async SQLite database, seeded rows, FastAPI test clients.

Invariants:
    - Every test gets a fresh in-memory SQLite database with FK enforcement on
    - get_db is overridden so generated routers use the test database
    - make_client builds a fresh FastAPI app per call; clients closed on teardown

Design Decisions:
    - StaticPool: one shared connection, otherwise each aiosqlite connection
      would see its own empty :memory: database
    - PRAGMA foreign_keys=ON: SQLite ignores FK constraints without it
"""

import os

# Settings must not pick up a developer's .env / environment
os.environ.setdefault("MODELREST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("MODELREST_LOG_FORMAT", "text")

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool

from modelrest.config import get_settings
from modelrest.infrastructure.database import get_db
from tests.models import Author, Base, Comment, Post


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def seed(test_db):
    """Two authors, three posts (two by author 1), one comment on post 1."""
    test_db.add_all([
        Author(id=1, name="Bud"),
        Author(id=2, name="Frank"),
    ])
    await test_db.flush()
    test_db.add_all([
        Post(id=1, author_id=1, title="One Title", slug="one"),
        Post(id=2, author_id=1, title="Two Titles", slug="two"),
        Post(id=3, author_id=2, title="Three Titles", slug="three"),
    ])
    await test_db.flush()
    test_db.add(Comment(id=1, post_id=1, body="First!"))
    await test_db.commit()
    test_db.expunge_all()


@pytest.fixture
async def make_client(test_session_factory):
    """Factory: make_client(*routers, app=None) -> AsyncClient over a fresh app."""
    clients: list[AsyncClient] = []

    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    def _make(*routers, app: FastAPI | None = None) -> AsyncClient:
        app = app or FastAPI()
        for router in routers:
            app.include_router(router)
        app.dependency_overrides[get_db] = override_get_db
        client = AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test",
        )
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()
