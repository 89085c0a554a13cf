"""JSON reader/writer for the local deployment manifest."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from versui.exceptions import ManifestCorruptError
from versui.schemas.manifest import Manifest

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class ManifestStore:
    """Loads and atomically saves the manifest kept next to a site directory.

    There is no locking: the deploying process owns the file from ``load``
    until ``save``, and concurrent writers are not supported.
    """

    def __init__(self, manifest_path: Path) -> None:
        self.manifest_path = manifest_path

    def load(self) -> Manifest | None:
        """Return the stored manifest, or None if the site was never deployed.

        Raises ``ManifestCorruptError`` when the file exists but cannot be
        parsed or misses a required field.
        """
        if not self.manifest_path.exists():
            return None

        try:
            data = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ManifestCorruptError(str(self.manifest_path), str(exc)) from exc

        try:
            manifest = Manifest.model_validate(data)
        except PydanticValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
                for error in exc.errors()
            )
            raise ManifestCorruptError(str(self.manifest_path), details) from exc
        except (AttributeError, TypeError, ValueError) as exc:
            raise ManifestCorruptError(str(self.manifest_path), str(exc)) from exc

        logger.debug(
            "Loaded manifest v%d with %d resource(s) from %s",
            manifest.version,
            len(manifest.resources),
            self.manifest_path,
        )
        return manifest

    def save(self, manifest: Manifest) -> None:
        """Write ``manifest`` so that readers see either the old or the new file."""
        payload = json.dumps(manifest.model_dump(mode="json"), indent=2, ensure_ascii=False)
        directory = self.manifest_path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=directory, prefix=f".{self.manifest_path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload + "\n")
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.manifest_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.info(
            "Saved manifest v%d (%d resource(s)) to %s",
            manifest.version,
            len(manifest.resources),
            self.manifest_path,
        )
