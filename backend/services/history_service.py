"""File history service: reconciliation passes and rename-aware history queries."""

from __future__ import annotations

import asyncio
import logging
import posixpath
from collections import Counter, defaultdict, deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from backend.filesystem.markdown_scanner import MARKDOWN_SUFFIX, scan_markdown_files
from backend.services.history_store import HistoryStatus

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    from backend.filesystem.markdown_scanner import ScannedFile
    from backend.services.history_store import FileHistoryEntry, FileHistoryStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryChange:
    """A log entry to be appended by a reconciliation pass."""

    path: str
    hash: str
    content: str
    status: HistoryStatus
    previous_path: str | None = None


@dataclass
class CaptureResult:
    """Outcome of one reconciliation pass."""

    changes: list[HistoryChange] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        """Number of recorded changes per status, zeros included."""
        tally = Counter(change.status for change in self.changes)
        return {str(status): tally.get(status, 0) for status in HistoryStatus}


def movement_key(content_hash: str, path: str) -> str:
    """Key correlating a vanished file with a newly seen one."""
    return f"{content_hash}|{posixpath.basename(path)}"


def alias_paths(
    latest: Mapping[str, FileHistoryEntry],
    moved_away: Mapping[str, int] | None = None,
) -> set[str]:
    """Paths whose file moved elsewhere after their own latest entry.

    ``moved_away`` maps a source path to the id of the newest moved entry
    leaving it. Without it only the moves visible in ``latest`` are known.
    """
    if moved_away is None:
        moved_away = {}
        for entry in latest.values():
            if entry.previous_path is not None:
                moved_away[entry.previous_path] = max(
                    entry.id, moved_away.get(entry.previous_path, 0)
                )
    return {
        source
        for source, move_id in moved_away.items()
        if source in latest and move_id > latest[source].id
    }


def plan_history_changes(
    current: Mapping[str, ScannedFile],
    latest: Mapping[str, FileHistoryEntry],
    moved_away: Mapping[str, int] | None = None,
) -> list[HistoryChange]:
    """Classify the differences between a scan and the latest logged state.

    Alias paths (see ``alias_paths``) already handed their history to a move:
    they are never reported as deleted, and a file reappearing at one is
    treated like a file at a path the log has never seen, even when its hash
    equals the alias path's own latest entry. That entry predates the move
    away, so comparing against it would hide the return. Such a file is a
    move when a vanished file has the same content and basename, otherwise
    it is created; among several candidates the one with the lowest entry
    id is used first.
    """
    aliases = alias_paths(latest, moved_away)

    missing: dict[str, FileHistoryEntry] = {}
    move_candidates: dict[str, deque[FileHistoryEntry]] = defaultdict(deque)
    for entry in sorted(latest.values(), key=lambda e: e.id):
        if entry.path in aliases or entry.path in current:
            continue
        missing[entry.path] = entry
        if entry.status is not HistoryStatus.DELETED:
            move_candidates[movement_key(entry.hash, entry.path)].append(entry)

    changes: list[HistoryChange] = []
    for path in sorted(current):
        scanned = current[path]
        known = latest.get(path)
        if known is not None and path not in aliases:
            if known.status is HistoryStatus.DELETED:
                # Reappearing path starts a new incarnation.
                changes.append(
                    HistoryChange(path, scanned.hash, scanned.content, HistoryStatus.CREATED)
                )
            elif known.hash != scanned.hash:
                changes.append(
                    HistoryChange(path, scanned.hash, scanned.content, HistoryStatus.MODIFIED)
                )
            continue

        candidates = move_candidates.get(movement_key(scanned.hash, path))
        if candidates:
            source = candidates.popleft()
            del missing[source.path]
            changes.append(
                HistoryChange(
                    path,
                    scanned.hash,
                    scanned.content,
                    HistoryStatus.MOVED,
                    previous_path=source.path,
                )
            )
            continue

        changes.append(HistoryChange(path, scanned.hash, scanned.content, HistoryStatus.CREATED))

    for entry in missing.values():
        if entry.status is HistoryStatus.DELETED:
            continue
        changes.append(HistoryChange(entry.path, entry.hash, entry.content, HistoryStatus.DELETED))

    return changes


async def capture_file_history(
    store: FileHistoryStore,
    root_dir: Path,
    suffix: str = MARKDOWN_SUFFIX,
) -> CaptureResult:
    """Run one reconciliation pass over ``root_dir``.

    The scan runs while the store lock is held, so concurrent passes over the
    same store serialize and none plans against a stale snapshot.

    Store errors abort the pass and propagate; entries appended before the
    failure stay in the log and the next pass continues from them.
    """
    result = CaptureResult()
    async with store.transaction() as txn:
        current = await asyncio.to_thread(scan_markdown_files, root_dir, suffix)
        latest = await txn.latest_snapshots()
        moved_away = await txn.latest_moves()
        for change in plan_history_changes(current, latest, moved_away):
            await txn.append(
                change.path,
                change.hash,
                change.content,
                change.status,
                change.previous_path,
            )
            result.changes.append(change)
            if change.status is HistoryStatus.MOVED:
                logger.info(
                    "History recorded moved from %s to %s", change.previous_path, change.path
                )
            else:
                logger.info("History recorded %s for %s", change.status, change.path)

    logger.debug(
        "History pass over %s: %d files scanned, %d changes",
        root_dir,
        len(current),
        len(result.changes),
    )
    return result


def normalize_history_path(path: str) -> str:
    """Normalize a queried path to the slash-separated form stored in the log.

    Raises ValueError for paths that cannot name a tracked file.
    """
    normalized = path.strip().replace("\\", "/").strip("/")
    if "\x00" in normalized or ".." in normalized.split("/"):
        raise ValueError(f"Invalid history path: {path!r}")
    return normalized


def seed_history_paths(path: str, suffix: str = MARKDOWN_SUFFIX) -> list[str]:
    """Return the stored paths a query may refer to.

    A route-style path without an extension also matches ``<path><suffix>``
    and ``<path>/index<suffix>``.
    """
    normalized = normalize_history_path(path)
    if not normalized:
        return []
    seeds = [normalized]
    if not posixpath.splitext(normalized)[1]:
        seeds.append(normalized + suffix)
        seeds.append(posixpath.join(normalized, "index" + suffix))
    return list(dict.fromkeys(seeds))


async def get_history_for_path(
    store: FileHistoryStore,
    path: str,
    suffix: str = MARKDOWN_SUFFIX,
) -> list[FileHistoryEntry]:
    """Return the history of the file at ``path``, newest first.

    Moves are followed backward: every ``previous_path`` found is queried
    too, so the result includes entries recorded before each rename.
    """
    queue = deque(seed_history_paths(path, suffix))
    if not queue:
        return []

    visited: set[str] = set()
    collected: dict[int, FileHistoryEntry] = {}
    async with store.transaction() as txn:
        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            for entry in await txn.entries_touching(current):
                if entry.previous_path is not None and entry.previous_path not in visited:
                    queue.append(entry.previous_path)
                collected.setdefault(entry.id, entry)

    return sorted(collected.values(), key=lambda e: (e.recorded_at, e.id), reverse=True)


def current_hash(entries: list[FileHistoryEntry]) -> str:
    """Hash of the newest non-deleted entry, or "" when there is none.

    ``entries`` must be ordered newest first, as returned by
    ``get_history_for_path``.
    """
    return next(
        (entry.hash for entry in entries if entry.status is not HistoryStatus.DELETED),
        "",
    )
