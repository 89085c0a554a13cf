"""Delta reconciliation: compare scanned files against the last manifest."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from versui.schemas.manifest import Manifest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileFingerprint:
    """A locally scanned file.

    ``path`` is absolute within the site (``/`` prefixed), forward-slash
    separated and NFC-normalized.
    """

    path: str
    content_hash: str
    size: int
    content_type: str


@dataclass
class DeltaResult:
    """Partition of current and previously published paths."""

    added: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.modified or self.removed)

    @property
    def changed(self) -> list[str]:
        """Paths whose content must be uploaded (added, then modified)."""
        return [*self.added, *self.modified]


def compute_delta(
    current: Mapping[str, FileFingerprint],
    previous: Manifest | None,
) -> DeltaResult:
    """Classify every path in ``current`` and ``previous.resources``.

    With no previous manifest every current path is added. Otherwise a path
    is modified only when its content hash differs; size or content type
    drift under an equal hash still counts as unchanged. Output order follows
    ``current`` iteration order, then manifest order for removals.
    """
    result = DeltaResult()

    if previous is None:
        result.added = list(current)
        return result

    resources = previous.resources
    for path, fingerprint in current.items():
        resource = resources.get(path)
        if resource is None:
            result.added.append(path)
        elif fingerprint.content_hash != resource.blob_hash:
            result.modified.append(path)
        else:
            result.unchanged.append(path)

    result.removed = [path for path in resources if path not in current]

    logger.debug(
        "Delta: %d added, %d modified, %d removed, %d unchanged",
        len(result.added),
        len(result.modified),
        len(result.removed),
        len(result.unchanged),
    )
    return result


def metadata_drift(
    current: Mapping[str, FileFingerprint],
    previous: Manifest | None,
) -> list[str]:
    """Return paths whose hash matches the manifest but size or type does not.

    ``compute_delta`` treats these as unchanged; callers can surface them.
    """
    if previous is None:
        return []
    drifted: list[str] = []
    for path, fingerprint in current.items():
        resource = previous.resources.get(path)
        if resource is None or fingerprint.content_hash != resource.blob_hash:
            continue
        if fingerprint.size != resource.size or fingerprint.content_type != resource.content_type:
            drifted.append(path)
    return drifted
