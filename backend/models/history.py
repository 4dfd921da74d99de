"""File history log model."""

from __future__ import annotations

from sqlalchemy import Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from backend.models.base import Base


class FileHistory(Base):
    """Append-only log row describing one observed change of a tracked file.

    Rows are never updated or deleted. The row with the highest ``id`` for a
    path is the current believed state of that path.
    """

    __tablename__ = "file_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    previous_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Stored as text; older rows may carry SQLite's CURRENT_TIMESTAMP layout.
    recorded_at: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        Index("idx_file_history_path", "path"),
        Index("idx_file_history_previous_path", "previous_path"),
    )
