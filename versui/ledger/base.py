"""Ledger protocol and data classes for resource mutations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from versui.services.batch_service import MutationBatch


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of submitting one mutation batch."""

    success: bool
    digest: str | None = None
    error: str | None = None


@runtime_checkable
class Ledger(Protocol):
    """Submits mutation batches to a site's on-chain resource table.

    Implementations guarantee that each batch commits fully or not at all.
    """

    def submit(self, batch: MutationBatch) -> SubmissionResult:
        """Submit one batch and report whether it committed."""
        ...
