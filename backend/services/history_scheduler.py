"""History scan scheduler.

Drives reconciliation passes for one tracked root from a single background
task: once at startup, on a fixed interval, and on demand. On-demand
requests share one pending slot, so a burst of filesystem changes results in
one extra pass rather than one pass per change.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from backend.filesystem.markdown_scanner import MARKDOWN_SUFFIX
from backend.services import history_service

if TYPE_CHECKING:
    from pathlib import Path

    from backend.services.history_service import CaptureResult
    from backend.services.history_store import FileHistoryStore

logger = logging.getLogger(__name__)


class HistoryScheduler:
    """Runs ``capture_file_history`` passes; never two at once.

    Args:
        store: History store for the tracked root.
        content_dir: Directory scanned on every pass.
        interval_seconds: Time between timer-driven passes.
        suffix: Tracked file extension.
        scan_on_startup: Run a pass as soon as the loop starts.
    """

    def __init__(
        self,
        store: FileHistoryStore,
        content_dir: Path,
        interval_seconds: float = 300.0,
        suffix: str = MARKDOWN_SUFFIX,
        scan_on_startup: bool = True,
    ) -> None:
        if interval_seconds <= 0:
            msg = f"interval_seconds must be > 0, got {interval_seconds}"
            raise ValueError(msg)
        self._store = store
        self._content_dir = content_dir
        self._interval = interval_seconds
        self._suffix = suffix
        self._scan_on_startup = scan_on_startup
        self._requested = asyncio.Event()
        self._stopping = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.passes = 0
        self.last_result: CaptureResult | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background loop. Idempotent."""
        if self.is_running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._run(), name="history-scheduler")
        logger.info(
            "History scheduler started for %s (interval=%.0fs)",
            self._content_dir,
            self._interval,
        )

    async def stop(self) -> None:
        """Signal the loop to exit and wait for it. An in-flight pass completes."""
        self._stopping.set()
        task, self._task = self._task, None
        if task is None:
            return
        await task
        logger.info("History scheduler stopped")

    def request_scan(self) -> None:
        """Ask for a pass soon. Never blocks; repeated requests coalesce."""
        if self._stopping.is_set() or not self.is_running:
            return
        self._requested.set()

    async def _run(self) -> None:
        if self._scan_on_startup:
            await self._capture("initial")
        while await self._wait_for_trigger():
            reason = "requested" if self._requested.is_set() else "interval"
            # Requests made while this pass runs schedule one more pass.
            self._requested.clear()
            await self._capture(reason)

    async def _wait_for_trigger(self) -> bool:
        """Block until a request, the interval, or stop. False means stop."""
        if self._stopping.is_set():
            return False
        request = asyncio.ensure_future(self._requested.wait())
        stopping = asyncio.ensure_future(self._stopping.wait())
        try:
            await asyncio.wait(
                {request, stopping},
                timeout=self._interval,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            request.cancel()
            stopping.cancel()
            await asyncio.gather(request, stopping, return_exceptions=True)
        return not self._stopping.is_set()

    async def _capture(self, reason: str) -> None:
        try:
            result = await history_service.capture_file_history(
                self._store, self._content_dir, self._suffix
            )
        except Exception as exc:
            # History stays stale until the next trigger retries.
            logger.error("History %s snapshot failed: %s", reason, exc, exc_info=True)
            return
        finally:
            self.passes += 1
        self.last_result = result
        if result.changes:
            logger.info("History %s snapshot recorded %d changes", reason, len(result.changes))
