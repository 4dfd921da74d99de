"""Property-based tests for reconciliation planning invariants."""

from __future__ import annotations

from datetime import datetime, timezone

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from backend.filesystem.markdown_scanner import ScannedFile, hash_content
from backend.services.history_service import (
    HistoryChange,
    alias_paths,
    movement_key,
    plan_history_changes,
)
from backend.services.history_store import FileHistoryEntry, HistoryStatus

PROPERTY_SETTINGS = settings(
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

_T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)

# Few names and contents so moves, collisions and reappearances are common.
_PATH = st.builds(
    lambda folder, name: f"{folder}{name}.md",
    st.sampled_from(["", "docs/", "docs/old/", "archive/"]),
    st.sampled_from(["a", "b", "index"]),
)
_CONTENT = st.sampled_from(["alpha", "beta", "gamma"])
_SNAPSHOT = st.dictionaries(keys=_PATH, values=_CONTENT, max_size=6)
_SNAPSHOTS = st.lists(_SNAPSHOT, min_size=1, max_size=6)


def _scan(snapshot: dict[str, str]) -> dict[str, ScannedFile]:
    return {
        path: ScannedFile(hash=hash_content(content), content=content)
        for path, content in snapshot.items()
    }


class _Log:
    """In-memory stand-in for the store: latest entry per path and move sources."""

    def __init__(self) -> None:
        self.latest: dict[str, FileHistoryEntry] = {}
        self.moved_away: dict[str, int] = {}
        self.next_id = 1

    def plan(self, current: dict[str, ScannedFile]) -> list[HistoryChange]:
        return plan_history_changes(current, self.latest, self.moved_away)

    def apply(self, changes: list[HistoryChange]) -> None:
        for change in changes:
            if change.previous_path is not None:
                self.moved_away[change.previous_path] = self.next_id
            self.latest[change.path] = FileHistoryEntry(
                id=self.next_id,
                path=change.path,
                hash=change.hash,
                content=change.content,
                status=change.status,
                previous_path=change.previous_path,
                recorded_at=_T0,
            )
            self.next_id += 1


class TestPlanProperties:
    @PROPERTY_SETTINGS
    @given(snapshots=_SNAPSHOTS)
    def test_second_pass_without_changes_is_empty(self, snapshots: list[dict[str, str]]) -> None:
        log = _Log()
        for snapshot in snapshots:
            current = _scan(snapshot)
            log.apply(log.plan(current))
            assert log.plan(current) == []

    @PROPERTY_SETTINGS
    @given(snapshots=_SNAPSHOTS)
    def test_every_present_file_ends_up_current(self, snapshots: list[dict[str, str]]) -> None:
        log = _Log()
        for snapshot in snapshots:
            current = _scan(snapshot)
            log.apply(log.plan(current))
            for path, scanned in current.items():
                entry = log.latest[path]
                assert entry.status is not HistoryStatus.DELETED
                assert entry.hash == scanned.hash

    @PROPERTY_SETTINGS
    @given(snapshots=_SNAPSHOTS)
    def test_at_most_one_change_per_path(self, snapshots: list[dict[str, str]]) -> None:
        log = _Log()
        for snapshot in snapshots:
            changes = log.plan(_scan(snapshot))
            paths = [change.path for change in changes]
            assert len(paths) == len(set(paths))
            log.apply(changes)

    @PROPERTY_SETTINGS
    @given(snapshots=_SNAPSHOTS)
    def test_moves_consume_their_source(self, snapshots: list[dict[str, str]]) -> None:
        log = _Log()
        for snapshot in snapshots:
            current = _scan(snapshot)
            before = dict(log.latest)
            aliases = alias_paths(before, log.moved_away)
            changes = log.plan(current)
            deleted = {c.path for c in changes if c.status is HistoryStatus.DELETED}
            sources = [c.previous_path for c in changes if c.status is HistoryStatus.MOVED]
            assert len(sources) == len(set(sources))
            for change in changes:
                if change.status is not HistoryStatus.MOVED:
                    assert change.previous_path is None
                    continue
                source = before[change.previous_path]  # type: ignore[index]
                assert change.path not in before or change.path in aliases
                assert source.path not in aliases
                assert source.path not in current
                assert source.path not in deleted
                assert source.status is not HistoryStatus.DELETED
                assert movement_key(source.hash, source.path) == movement_key(
                    change.hash, change.path
                )
            log.apply(changes)

    @PROPERTY_SETTINGS
    @given(snapshots=_SNAPSHOTS)
    def test_deletions_only_for_absent_known_files(self, snapshots: list[dict[str, str]]) -> None:
        log = _Log()
        for snapshot in snapshots:
            current = _scan(snapshot)
            changes = log.plan(current)
            for change in changes:
                if change.status is HistoryStatus.DELETED:
                    assert change.path not in current
                    assert log.latest[change.path].status is not HistoryStatus.DELETED
                    assert change.hash == log.latest[change.path].hash
            log.apply(changes)

    @PROPERTY_SETTINGS
    @given(snapshot=_SNAPSHOT)
    def test_plan_is_deterministic(self, snapshot: dict[str, str]) -> None:
        log = _Log()
        log.apply(log.plan(_scan(snapshot)))
        shuffled_latest = dict(reversed(list(log.latest.items())))
        assert plan_history_changes({}, log.latest) == plan_history_changes({}, shuffled_latest)
