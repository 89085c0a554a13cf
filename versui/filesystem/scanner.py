"""Site directory scanning and file fingerprinting."""

from __future__ import annotations

import fnmatch
import hashlib
import logging
import mimetypes
import os
import unicodedata
from pathlib import Path

from versui.services.delta_service import FileFingerprint

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def hash_file(path: Path) -> str:
    """Compute SHA-256 hash of a file."""
    sha = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha.update(chunk)
    return sha.hexdigest()


def content_type_for(path: Path) -> str:
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type or DEFAULT_CONTENT_TYPE


def to_resource_path(site_dir: Path, file_path: Path) -> str:
    """Return the absolute, forward-slash, NFC-normalized resource path."""
    rel = file_path.relative_to(site_dir).as_posix()
    return "/" + unicodedata.normalize("NFC", rel)


def read_ignore_patterns(ignore_file: Path) -> list[str]:
    """Read glob patterns from an ignore file, one per line.

    Blank lines and ``#`` comments are skipped. Patterns that reach outside
    the site with ``..`` are dropped.
    """
    if not ignore_file.exists():
        return []

    patterns: list[str] = []
    for line in ignore_file.read_text(encoding="utf-8").splitlines():
        pattern = line.strip()
        if not pattern or pattern.startswith("#"):
            continue
        if "../" in pattern or "..\\" in pattern:
            logger.warning("Ignoring unsafe pattern in %s: %s", ignore_file, pattern)
            continue
        patterns.append(pattern)
    return patterns


def is_ignored(rel_path: str, patterns: list[str]) -> bool:
    """Match a site-relative POSIX path (no leading slash) against ``patterns``."""
    return any(fnmatch.fnmatchcase(rel_path, pattern) for pattern in patterns)


def scan_site(
    site_dir: Path,
    ignore_patterns: list[str] | None = None,
) -> dict[str, FileFingerprint]:
    """Fingerprint every file under ``site_dir``.

    Directories and files matching ``ignore_patterns`` are skipped. The
    returned mapping is ordered by resource path so repeated scans of the
    same tree produce identical output.
    """
    patterns = ignore_patterns or []
    site_dir = site_dir.resolve()
    entries: dict[str, FileFingerprint] = {}

    for root, dirs, files in os.walk(site_dir):
        root_path = Path(root)
        rel_root = root_path.relative_to(site_dir)
        dirs[:] = sorted(d for d in dirs if not is_ignored((rel_root / d).as_posix(), patterns))
        for filename in sorted(files):
            full = root_path / filename
            if is_ignored(full.relative_to(site_dir).as_posix(), patterns):
                continue
            if not full.is_file():
                continue
            resource_path = to_resource_path(site_dir, full)
            entries[resource_path] = FileFingerprint(
                path=resource_path,
                content_hash=hash_file(full),
                size=full.stat().st_size,
                content_type=content_type_for(full),
            )

    logger.debug("Scanned %d file(s) under %s", len(entries), site_dir)
    return dict(sorted(entries.items()))
