"""Mutation batch planning and ordered submission.

A site update is split into batches that each fit in one ledger transaction.
Batches are submitted in the order they are planned. Each batch is atomic on
the ledger, but there is no atomicity across batches: on the first failure
submission stops and reports how far it got, so the caller can resume.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from versui.exceptions import BatchSubmissionError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from versui.ledger.base import Ledger
    from versui.schemas.manifest import ResourceDescriptor
    from versui.services.delta_service import DeltaResult

logger = logging.getLogger(__name__)


class Operation(StrEnum):
    """Kind of resource mutation carried by a batch."""

    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class BatchLimits:
    """Size and gas limits for one mutation batch.

    Gas amounts are in MIST. The budget for a batch of ``n`` paths is
    ``max(gas_floor, gas_base + gas_per_item * n)``.
    """

    cardinality_ceiling: int
    gas_floor: int
    gas_base: int
    gas_per_item: int

    def __post_init__(self) -> None:
        if self.cardinality_ceiling < 1:
            msg = f"cardinality_ceiling must be >= 1, got {self.cardinality_ceiling}"
            raise ValueError(msg)
        for field_name in ("gas_floor", "gas_base", "gas_per_item"):
            if getattr(self, field_name) < 0:
                msg = f"{field_name} must be >= 0, got {getattr(self, field_name)}"
                raise ValueError(msg)

    def budget_for(self, item_count: int) -> int:
        return max(self.gas_floor, self.gas_base + self.gas_per_item * item_count)


@dataclass(frozen=True)
class MutationBatch:
    """One ledger transaction worth of resource mutations.

    Add and update batches carry one resource per path, in path order.
    Delete batches carry paths only.
    """

    operation: Operation
    paths: tuple[str, ...]
    resources: tuple[ResourceDescriptor, ...]
    gas_budget: int

    @property
    def size(self) -> int:
        return len(self.paths)


def plan_batches(
    operation: Operation,
    paths: Sequence[str],
    limits: BatchLimits,
    resources: Mapping[str, ResourceDescriptor] | None = None,
) -> list[MutationBatch]:
    """Split ``paths`` into contiguous, order-preserving batches.

    ``resources`` must hold a descriptor for every path of an add or update;
    it is ignored for deletes.
    """
    carries_resources = operation is not Operation.DELETE
    if carries_resources:
        missing = [path for path in paths if resources is None or path not in resources]
        if missing:
            msg = f"No resource fields for {operation} path(s): {', '.join(missing)}"
            raise ValueError(msg)

    batches: list[MutationBatch] = []
    ceiling = limits.cardinality_ceiling
    for start in range(0, len(paths), ceiling):
        chunk = tuple(paths[start : start + ceiling])
        chunk_resources = (
            tuple(resources[path] for path in chunk)  # type: ignore[index]
            if carries_resources
            else ()
        )
        batches.append(
            MutationBatch(
                operation=operation,
                paths=chunk,
                resources=chunk_resources,
                gas_budget=limits.budget_for(len(chunk)),
            )
        )
    return batches


def plan_delta(
    delta: DeltaResult,
    resources: Mapping[str, ResourceDescriptor],
    limits: BatchLimits,
) -> list[MutationBatch]:
    """Plan every batch for a delta: adds, then updates, then deletes."""
    batches = [
        *plan_batches(Operation.ADD, delta.added, limits, resources),
        *plan_batches(Operation.UPDATE, delta.modified, limits, resources),
        *plan_batches(Operation.DELETE, delta.removed, limits),
    ]
    logger.info(
        "Planned %d batch(es) for %d mutation(s)",
        len(batches),
        sum(batch.size for batch in batches),
    )
    return batches


def conflicting_paths(batches: Sequence[MutationBatch]) -> set[str]:
    """Return paths touched by batches of more than one operation kind.

    Batches containing any of these must be submitted in planned order;
    batches with disjoint paths may be submitted in parallel.
    """
    kinds_by_path: dict[str, set[Operation]] = {}
    for batch in batches:
        for path in batch.paths:
            kinds_by_path.setdefault(path, set()).add(batch.operation)
    return {path for path, kinds in kinds_by_path.items() if len(kinds) > 1}


def submit_batches(
    batches: Sequence[MutationBatch],
    ledger: Ledger,
    start_index: int = 0,
) -> int:
    """Submit ``batches[start_index:]`` in order and return the total committed ops.

    The count includes batches before ``start_index``, which are taken as
    committed by an earlier run. Raises ``BatchSubmissionError`` at the first
    failing batch without submitting the rest or undoing earlier ones.
    """
    if not 0 <= start_index <= len(batches):
        msg = f"start_index must be within 0..{len(batches)}, got {start_index}"
        raise ValueError(msg)

    committed = sum(batch.size for batch in batches[:start_index])
    for index in range(start_index, len(batches)):
        batch = batches[index]
        logger.info(
            "Submitting batch %d/%d (%s, %d path(s), gas budget %d)",
            index + 1,
            len(batches),
            batch.operation,
            batch.size,
            batch.gas_budget,
        )
        try:
            result = ledger.submit(batch)
        except Exception as exc:
            logger.error("Batch %d raised during submission: %s", index, exc)
            raise BatchSubmissionError(index, committed, str(exc)) from exc

        if not result.success:
            reason = result.error or "rejected by ledger"
            logger.error("Batch %d failed: %s", index, reason)
            raise BatchSubmissionError(index, committed, reason)
        logger.info("Batch %d committed (digest %s)", index, result.digest or "unknown")
        committed += batch.size
    return committed
