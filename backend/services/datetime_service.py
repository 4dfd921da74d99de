"""Datetime parsing: lax input -> strict output."""

from __future__ import annotations

from datetime import datetime, timezone

import pendulum

# Strict output format: YYYY-MM-DD HH:MM:SS.ffffff±HHMM
STRICT_FORMAT = "%Y-%m-%d %H:%M:%S.%f%z"

# Layouts found in the history log: ISO 8601 with fractional seconds and
# offset, space-separated with offset, and SQLite's CURRENT_TIMESTAMP.
RECORDED_AT_LAYOUTS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%d %H:%M:%S.%f%z",
    "%Y-%m-%d %H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S",
)

EPOCH_MIN = datetime.min.replace(tzinfo=timezone.utc)


def parse_datetime(value: str | datetime, default_tz: str = "UTC") -> datetime:
    """Parse a lax datetime string into a strict timezone-aware datetime.

    Accepts various formats:
    - 2026-02-02 22:21:29.975359+00
    - 2026-02-02 22:21:29+00
    - 2026-02-02 22:21
    - 2026-02-02
    - ISO 8601 variants with T separator

    Missing timezone defaults to default_tz.
    Missing time components default to zeros.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            tz = pendulum.timezone(default_tz)
            value = value.replace(tzinfo=tz)  # type: ignore[arg-type]
        return value

    value_str = value.strip()

    parsed = pendulum.parse(value_str, tz=default_tz, strict=False)
    if not isinstance(parsed, pendulum.DateTime):
        # pendulum.parse returns Date for date-only strings
        parsed = pendulum.datetime(
            parsed.year, parsed.month, parsed.day, tz=default_tz  # type: ignore[union-attr]
        )
    return parsed  # type: ignore[return-value]


def parse_recorded_at(value: str | None) -> datetime:
    """Parse a stored ``recorded_at`` value.

    Known layouts are tried first; anything else falls back to the lax
    parser. Empty or unparseable values map to ``EPOCH_MIN`` so such rows
    sort as the oldest.
    """
    if not value:
        return EPOCH_MIN
    value_str = value.strip()
    for layout in RECORDED_AT_LAYOUTS:
        try:
            parsed = datetime.strptime(value_str, layout)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    try:
        return parse_datetime(value_str)
    except (ValueError, TypeError):
        return EPOCH_MIN


def format_datetime(dt: datetime) -> str:
    """Format a datetime to the strict output format.

    Output: YYYY-MM-DD HH:MM:SS.ffffff+HHMM
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.strftime(STRICT_FORMAT)


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)
