"""Database Session Manager — engine setup, rollback, get_db."""

import pytest
from sqlalchemy import text

from modelrest.infrastructure import database
from modelrest.infrastructure.database import DatabaseSessionManager, get_db, init_db

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def manager():
    manager = DatabaseSessionManager(MEMORY_URL)
    yield manager
    await manager.close()


async def test_session_rolls_back_and_reraises(manager):
    with pytest.raises(RuntimeError, match="inside session"):
        async with manager.session() as session:
            await session.execute(text("SELECT 1"))
            raise RuntimeError("inside session")


async def test_get_db_requires_init(monkeypatch):
    monkeypatch.setattr(database, "db_manager", None)
    with pytest.raises(RuntimeError, match="not initialized"):
        await get_db().__anext__()


async def test_init_db_uses_settings(monkeypatch):
    monkeypatch.setattr(database, "db_manager", None)
    monkeypatch.setenv("MODELREST_DATABASE_URL", MEMORY_URL)
    manager = init_db()
    try:
        assert database.db_manager is manager
        assert manager.engine.url.get_backend_name() == "sqlite"
        sessions = get_db()
        session = await sessions.__anext__()
        assert (await session.execute(text("SELECT 1"))).scalar() == 1
        await sessions.aclose()
    finally:
        await manager.close()
