"""Content scanner: hashes every tracked Markdown file under a data directory."""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


@dataclass(frozen=True)
class ScannedFile:
    """Content of one tracked file at scan time."""

    hash: str
    content: str


def hash_content(content: str | bytes) -> str:
    """Compute SHA-256 hash of content."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def _log_walk_error(exc: OSError) -> None:
    logger.warning("History scan walk error for %s: %s", exc.filename, exc)


def scan_markdown_files(root: Path, suffix: str = MARKDOWN_SUFFIX) -> dict[str, ScannedFile]:
    """Scan ``root`` recursively and return ``relative path -> ScannedFile``.

    Paths are POSIX-style and relative to ``root``. Unreadable files and
    directories are logged and skipped. A missing root yields an empty
    mapping.
    """
    snapshot: dict[str, ScannedFile] = {}
    if not root.is_dir():
        return snapshot

    for dirpath, _dirs, files in os.walk(root, onerror=_log_walk_error):
        for filename in files:
            if not filename.endswith(suffix):
                continue
            full = Path(dirpath) / filename
            if not full.is_file():
                continue
            rel = full.relative_to(root).as_posix()
            try:
                raw = full.read_bytes()
                content = raw.decode("utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("History scan skipped %s: %s", rel, exc)
                continue
            snapshot[rel] = ScannedFile(hash=hash_content(raw), content=content)
    return snapshot
