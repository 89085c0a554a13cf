"""Shared test fixtures for the Versui deploy core."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from versui.config import Settings
from versui.ledger.base import SubmissionResult
from versui.walrus.publisher import StoredBlob

if TYPE_CHECKING:
    from pathlib import Path

    from versui.services.batch_service import MutationBatch

SITE_ID = "0x" + "5c" * 32


class RecordingLedger:
    """Ledger double that commits every batch except those listed in ``fail_at``."""

    def __init__(self, fail_at: set[int] | None = None, error: str = "MoveAbort") -> None:
        self.fail_at = fail_at or set()
        self.error = error
        self.submitted: list[MutationBatch] = []

    def submit(self, batch: MutationBatch) -> SubmissionResult:
        index = len(self.submitted)
        self.submitted.append(batch)
        if index in self.fail_at:
            return SubmissionResult(success=False, error=self.error)
        return SubmissionResult(success=True, digest=f"digest-{index}")


class RecordingBlobStore:
    """Blob store double that derives blob IDs from content order."""

    def __init__(self) -> None:
        self.stored: list[tuple[bytes, int]] = []

    def store(self, content: bytes, epochs: int) -> StoredBlob:
        self.stored.append((content, epochs))
        return StoredBlob(blob_id=f"blob-{len(self.stored)}", object_id=None, size=len(content))


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        epochs=3,
        batch_cardinality_ceiling=2,
        gas_floor=10,
        gas_base=1,
        gas_per_item=4,
    )


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """A project directory holding a small built site under ``dist/``."""
    dist = tmp_path / "project" / "dist"
    (dist / "assets").mkdir(parents=True)
    (dist / "index.html").write_text("<html>home</html>", encoding="utf-8")
    (dist / "assets" / "app.js").write_text("console.log('hi')", encoding="utf-8")
    (dist / "assets" / "style.css").write_text("body {}", encoding="utf-8")
    return dist


@pytest.fixture
def ledger() -> RecordingLedger:
    return RecordingLedger()


@pytest.fixture
def blob_store() -> RecordingBlobStore:
    return RecordingBlobStore()
