"""Shared API dependencies: DB session, settings, history services."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import Settings
from backend.services.history_scheduler import HistoryScheduler
from backend.services.history_store import FileHistoryStore


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


async def get_session(request: Request) -> AsyncGenerator[AsyncSession]:
    """Get a database session."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


def get_history_store(request: Request) -> FileHistoryStore:
    """Get the file history store from app state."""
    store: FileHistoryStore = request.app.state.history_store
    return store


def get_history_scheduler(request: Request) -> HistoryScheduler:
    """Get the history scan scheduler from app state."""
    scheduler: HistoryScheduler = request.app.state.history_scheduler
    return scheduler
