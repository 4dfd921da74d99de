"""File history API endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from backend.api.deps import get_history_scheduler, get_history_store, get_settings
from backend.config import Settings
from backend.schemas.history import (
    CaptureResponse,
    HistoryEntryResponse,
    PageHistoryResponse,
    ScanRequestResponse,
)
from backend.services.history_scheduler import HistoryScheduler
from backend.services.history_service import (
    capture_file_history,
    current_hash,
    get_history_for_path,
)
from backend.services.history_store import FileHistoryStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get(
    "",
    response_model=PageHistoryResponse,
    response_model_exclude_none=True,
)
async def page_history(
    store: Annotated[FileHistoryStore, Depends(get_history_store)],
    settings: Annotated[Settings, Depends(get_settings)],
    path: Annotated[str | None, Query(max_length=1024)] = None,
) -> PageHistoryResponse:
    """Get the history of a page, following moves, newest first."""
    if path is None or not path.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="missing path")

    entries = await get_history_for_path(store, path, settings.history_suffix)
    return PageHistoryResponse(
        history=[
            HistoryEntryResponse(
                id=entry.id,
                path=entry.path,
                hash=entry.hash,
                content=entry.content,
                status=entry.status.value,
                previous_path=entry.previous_path,
                recorded_at=entry.recorded_at,
            )
            for entry in entries
        ],
        current_hash=current_hash(entries),
    )


@router.post(
    "/scan",
    response_model=ScanRequestResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_history_scan(
    scheduler: Annotated[HistoryScheduler, Depends(get_history_scheduler)],
) -> ScanRequestResponse:
    """Schedule a history pass. Concurrent requests collapse into one."""
    scheduler.request_scan()
    return ScanRequestResponse(status="scheduled")


@router.post("/capture", response_model=CaptureResponse)
async def capture_history_now(
    store: Annotated[FileHistoryStore, Depends(get_history_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CaptureResponse:
    """Run one history pass now and report what it recorded."""
    result = await capture_file_history(store, settings.content_dir, settings.history_suffix)
    counts = result.counts()
    logger.info("Manual history capture: %s", counts)
    return CaptureResponse(**counts)
