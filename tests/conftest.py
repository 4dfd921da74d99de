"""Shared test fixtures for the LeafWiki history backend."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from backend.config import Settings
from backend.database import create_tables
from backend.main import create_app
from backend.services.history_store import FileHistoryStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path


@asynccontextmanager
async def create_test_client(settings: Settings) -> AsyncGenerator[AsyncClient]:
    """Create an HTTP test client with a fully initialized app.

    Manually performs the work of the application lifespan (DB, store,
    scheduler) because ASGITransport does not trigger it. The scheduler is
    created but not started so tests control when passes run.
    """
    from backend.database import create_engine as create_db_engine
    from backend.services.history_scheduler import HistoryScheduler

    app = create_app(settings)

    engine, session_factory = create_db_engine(settings)
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.settings = settings

    await create_tables(engine)

    store = FileHistoryStore(session_factory)
    app.state.history_store = store
    app.state.history_scheduler = HistoryScheduler(
        store,
        settings.content_dir,
        interval_seconds=settings.history_scan_interval_seconds,
        suffix=settings.history_suffix,
        scan_on_startup=False,
    )

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    await app.state.history_scheduler.stop()
    store.close()
    await engine.dispose()


@pytest.fixture
def tmp_content_dir(tmp_path: Path) -> Path:
    """Create an empty tracked data directory."""
    content = tmp_path / "root"
    content.mkdir()
    return content


@pytest.fixture
def test_settings(tmp_content_dir: Path, tmp_path: Path) -> Settings:
    """Create test settings with temporary paths."""
    db_path = tmp_path / "test.db"
    return Settings(
        _env_file=None,
        debug=True,
        database_url=f"sqlite+aiosqlite:///{db_path}",
        content_dir=tmp_content_dir,
    )


@pytest.fixture
async def db_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine]:
    """Create a test database engine with the schema in place."""
    engine = create_async_engine(
        test_settings.database_url,
        echo=False,
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def history_store(session_factory: async_sessionmaker[AsyncSession]) -> FileHistoryStore:
    """History store over the test database."""
    return FileHistoryStore(session_factory)


def write_file(root: Path, rel_path: str, content: str) -> Path:
    """Write ``content`` to ``root/rel_path``, creating parent directories."""
    target = root / rel_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    return target
