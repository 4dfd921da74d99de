"""File history schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

HistoryStatusLiteral = Literal["created", "modified", "deleted", "moved"]


class HistoryEntryResponse(BaseModel):
    """One recorded change of a tracked file."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    path: str
    hash: str
    content: str
    status: HistoryStatusLiteral
    previous_path: str | None = Field(default=None, alias="previousPath")
    recorded_at: datetime = Field(alias="recordedAt")


class PageHistoryResponse(BaseModel):
    """History of a page, newest first."""

    model_config = ConfigDict(populate_by_name=True)

    history: list[HistoryEntryResponse] = Field(default_factory=list)
    current_hash: str = Field(default="", alias="currentHash")


class ScanRequestResponse(BaseModel):
    """Acknowledgement of an on-demand scan request."""

    status: str


class CaptureResponse(BaseModel):
    """Counts of changes recorded by one synchronous pass."""

    created: int = Field(default=0, ge=0)
    modified: int = Field(default=0, ge=0)
    deleted: int = Field(default=0, ge=0)
    moved: int = Field(default=0, ge=0)
