"""Snapshot store: append-only file history log backed by SQLite."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select

from backend.exceptions import HistoryStoreUnavailableError
from backend.models.history import FileHistory
from backend.services.datetime_service import format_datetime, now_utc, parse_recorded_at

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


class HistoryStatus(StrEnum):
    """Classification of one recorded change."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"


@dataclass(frozen=True)
class FileHistoryEntry:
    """Immutable view of one ``file_history`` row."""

    id: int
    path: str
    hash: str
    content: str
    status: HistoryStatus
    previous_path: str | None
    recorded_at: datetime

    @classmethod
    def from_row(cls, row: FileHistory) -> FileHistoryEntry:
        return cls(
            id=row.id,
            path=row.path,
            hash=row.hash,
            content=row.content,
            status=HistoryStatus(row.status),
            previous_path=row.previous_path,
            recorded_at=parse_recorded_at(row.recorded_at),
        )


class HistoryTransaction:
    """Store operations bound to one session while the store lock is held."""

    def __init__(self, store: FileHistoryStore, session: AsyncSession) -> None:
        self._store = store
        self._session = session

    async def latest_snapshots(self) -> dict[str, FileHistoryEntry]:
        """Return the most recent entry for every path ever recorded."""
        latest_ids = (
            select(func.max(FileHistory.id).label("id"))
            .group_by(FileHistory.path)
            .subquery()
        )
        result = await self._session.execute(
            select(FileHistory).join(latest_ids, FileHistory.id == latest_ids.c.id)
        )
        return {row.path: FileHistoryEntry.from_row(row) for row in result.scalars().all()}

    async def latest_moves(self) -> dict[str, int]:
        """Return ``source path -> id of the newest moved entry leaving it``."""
        result = await self._session.execute(
            select(FileHistory.previous_path, func.max(FileHistory.id))
            .where(FileHistory.previous_path.is_not(None))
            .group_by(FileHistory.previous_path)
        )
        return {source: move_id for source, move_id in result.all()}

    async def append(
        self,
        path: str,
        content_hash: str,
        content: str,
        status: HistoryStatus,
        previous_path: str | None = None,
    ) -> FileHistoryEntry:
        """Insert and commit one new log row."""
        row = FileHistory(
            path=path,
            hash=content_hash,
            content=content,
            status=str(status),
            previous_path=previous_path,
            recorded_at=self._store._next_recorded_at(),
        )
        self._session.add(row)
        await self._session.flush()
        entry = FileHistoryEntry.from_row(row)
        await self._session.commit()
        return entry

    async def entries_touching(self, path: str) -> list[FileHistoryEntry]:
        """Return rows recorded at ``path`` or moved away from it."""
        result = await self._session.execute(
            select(FileHistory)
            .where(or_(FileHistory.path == path, FileHistory.previous_path == path))
            .order_by(FileHistory.id.desc())
        )
        return [FileHistoryEntry.from_row(row) for row in result.scalars().all()]


class FileHistoryStore:
    """Append-only history log for one tracked root.

    Every read and write goes through ``transaction()``, which holds a single
    ``asyncio.Lock`` for its whole duration. A reconciliation pass therefore
    sees no interleaved writes between reading the latest state and
    appending its changes.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._lock = asyncio.Lock()
        self._closed = False
        self._last_recorded_at: datetime | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Mark the store unavailable. Later operations raise."""
        self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            raise HistoryStoreUnavailableError("File history store is closed")

    def _next_recorded_at(self) -> str:
        # Never hand out a timestamp older than the previous one.
        now = self._clock()
        if self._last_recorded_at is not None and now < self._last_recorded_at:
            now = self._last_recorded_at
        self._last_recorded_at = now
        return format_datetime(now)

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[HistoryTransaction]:
        """Hold the store lock and one session for a sequence of operations."""
        self._ensure_open()
        async with self._lock:
            self._ensure_open()
            async with self._session_factory() as session:
                yield HistoryTransaction(self, session)

    async def latest_snapshots(self) -> dict[str, FileHistoryEntry]:
        async with self.transaction() as txn:
            return await txn.latest_snapshots()

    async def latest_moves(self) -> dict[str, int]:
        async with self.transaction() as txn:
            return await txn.latest_moves()

    async def append(
        self,
        path: str,
        content_hash: str,
        content: str,
        status: HistoryStatus,
        previous_path: str | None = None,
    ) -> FileHistoryEntry:
        async with self.transaction() as txn:
            return await txn.append(path, content_hash, content, status, previous_path)

    async def entries_touching(self, path: str) -> list[FileHistoryEntry]:
        async with self.transaction() as txn:
            return await txn.entries_touching(path)
