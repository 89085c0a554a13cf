"""Deploy orchestration: scan, reconcile, upload, submit, record."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from versui.exceptions import VersuiError
from versui.filesystem.scanner import read_ignore_patterns, scan_site
from versui.schemas.manifest import Manifest, ResourceDescriptor
from versui.services.batch_service import conflicting_paths, plan_delta, submit_batches
from versui.services.delta_service import compute_delta, metadata_drift
from versui.services.identifier_service import canonical_hex, is_valid_object_id, site_address
from versui.services.path_service import validate_resource_key

if TYPE_CHECKING:
    from pathlib import Path

    from versui.config import Settings
    from versui.filesystem.manifest_manager import ManifestStore
    from versui.ledger.base import Ledger
    from versui.services.batch_service import MutationBatch
    from versui.services.delta_service import DeltaResult, FileFingerprint
    from versui.walrus.publisher import BlobStore

logger = logging.getLogger(__name__)


@dataclass
class DeployPlan:
    """Everything known about a deploy before anything is uploaded."""

    site_dir: Path
    previous: Manifest | None
    current: dict[str, FileFingerprint]
    delta: DeltaResult
    drift: list[str] = field(default_factory=list)


@dataclass
class DeployReport:
    """Outcome of a completed deploy."""

    delta: DeltaResult
    batches: list[MutationBatch]
    committed_ops: int
    manifest: Manifest
    address: str


class DeployService:
    """Brings a published site in line with a local directory.

    The manifest store is treated as a scoped resource: it is loaded once
    in ``plan`` and rewritten only after every batch has committed.
    """

    def __init__(
        self,
        settings: Settings,
        blob_store: BlobStore,
        ledger: Ledger,
        manifest_store: ManifestStore,
    ) -> None:
        self.settings = settings
        self.blob_store = blob_store
        self.ledger = ledger
        self.manifest_store = manifest_store

    def plan(self, site_dir: Path) -> DeployPlan:
        """Scan ``site_dir`` and reconcile it with the stored manifest.

        Raises ``ManifestCorruptError`` for an unreadable manifest and
        ``ValidationError`` for the first unsafe file path, before any
        upload or ledger mutation.
        """
        previous = self.manifest_store.load()
        patterns = read_ignore_patterns(site_dir.parent / self.settings.ignore_file)
        current = scan_site(site_dir, patterns)

        for path in current:
            validate_resource_key(path, self.settings.max_path_length)

        delta = compute_delta(current, previous)
        drift = metadata_drift(current, previous)
        for path in drift:
            logger.warning("Metadata changed without a content change, not redeploying: %s", path)

        return DeployPlan(
            site_dir=site_dir,
            previous=previous,
            current=current,
            delta=delta,
            drift=drift,
        )

    def upload(self, plan: DeployPlan) -> dict[str, ResourceDescriptor]:
        """Store every added or modified file and return its new descriptor."""
        uploaded: dict[str, ResourceDescriptor] = {}
        for path in plan.delta.changed:
            fingerprint = plan.current[path]
            content = (plan.site_dir / path.lstrip("/")).read_bytes()
            stored = self.blob_store.store(content, self.settings.epochs)
            uploaded[path] = ResourceDescriptor(
                path=path,
                blob_id=stored.blob_id,
                blob_hash=fingerprint.content_hash,
                content_type=fingerprint.content_type,
                size=fingerprint.size,
            )
            logger.info("Uploaded %s -> %s", path, stored.blob_id)
        return uploaded

    def deploy(
        self,
        site_dir: Path,
        site_id: str | None = None,
        start_index: int = 0,
    ) -> DeployReport:
        """Publish ``site_dir`` and rewrite the manifest once all batches commit.

        ``site_id`` is required on first deploy and must match the manifest
        afterwards. ``start_index`` resumes submission after a
        ``BatchSubmissionError`` reported an earlier failure.
        """
        plan = self.plan(site_dir)
        resolved_site_id = self._resolve_site_id(plan.previous, site_id)

        uploaded = self.upload(plan)
        batches = plan_delta(plan.delta, uploaded, self.settings.batch_limits())
        overlap = conflicting_paths(batches)
        if overlap:
            raise VersuiError(f"Paths scheduled in more than one batch: {sorted(overlap)}")

        # Built before submission so a schema failure cannot follow committed batches.
        manifest = self._next_manifest(plan, resolved_site_id, uploaded)
        committed = submit_batches(batches, self.ledger, start_index=start_index)
        self.manifest_store.save(manifest)

        address = site_address(resolved_site_id, self.settings.site_domain)
        logger.info("Deployed %s (manifest v%d)", address, manifest.version)
        return DeployReport(
            delta=plan.delta,
            batches=batches,
            committed_ops=committed,
            manifest=manifest,
            address=address,
        )

    @staticmethod
    def _next_manifest(
        plan: DeployPlan,
        site_id: str,
        uploaded: dict[str, ResourceDescriptor],
    ) -> Manifest:
        resources: dict[str, ResourceDescriptor] = {}
        for path in plan.current:
            if path in uploaded:
                resources[path] = uploaded[path]
            elif plan.previous is not None:
                resources[path] = plan.previous.resources[path]

        try:
            if plan.previous is None:
                return Manifest.initial(site_id, resources)
            return plan.previous.next_version(resources)
        except PydanticValidationError as exc:
            raise VersuiError(f"Cannot build the next manifest: {exc}") from exc

    @staticmethod
    def _resolve_site_id(previous: Manifest | None, site_id: str | None) -> str:
        if site_id is not None and not is_valid_object_id(site_id):
            raise VersuiError(f"Invalid site ID {site_id!r}: expected 0x followed by 64 hex digits")
        if previous is None:
            if site_id is None:
                raise VersuiError("A site ID is required for the first deploy")
            return canonical_hex(site_id)
        if site_id is not None and canonical_hex(site_id) != previous.site_id:
            raise VersuiError(
                f"Site ID {site_id} does not match the manifest's site {previous.site_id}"
            )
        return previous.site_id
