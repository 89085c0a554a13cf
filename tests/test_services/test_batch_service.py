"""Tests for mutation batch planning and submission."""

from __future__ import annotations

import logging

import pytest

from tests.conftest import RecordingLedger
from versui.exceptions import BatchSubmissionError
from versui.ledger.base import SubmissionResult
from versui.schemas.manifest import ResourceDescriptor
from versui.services.batch_service import (
    BatchLimits,
    MutationBatch,
    Operation,
    conflicting_paths,
    plan_batches,
    plan_delta,
    submit_batches,
)
from versui.services.delta_service import DeltaResult

LIMITS = BatchLimits(
    cardinality_ceiling=50,
    gas_floor=50_000_000,
    gas_base=1_000_000,
    gas_per_item=1_000_000,
)


def _resource(path: str) -> ResourceDescriptor:
    return ResourceDescriptor(
        path=path,
        blob_id=f"blob{path}",
        blob_hash=f"hash{path}",
        content_type="text/html",
        size=10,
    )


def _paths(count: int, prefix: str = "/p") -> list[str]:
    return [f"{prefix}{i}.html" for i in range(count)]


class TestBatchLimits:
    def test_budget_respects_floor(self) -> None:
        assert LIMITS.budget_for(1) == 50_000_000

    def test_budget_grows_past_floor(self) -> None:
        small_floor = BatchLimits(cardinality_ceiling=10, gas_floor=5, gas_base=100, gas_per_item=7)
        assert small_floor.budget_for(3) == 121

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"cardinality_ceiling": 0},
            {"gas_floor": -1},
            {"gas_base": -1},
            {"gas_per_item": -5},
        ],
    )
    def test_rejects_invalid_limits(self, kwargs: dict[str, int]) -> None:
        values = {"cardinality_ceiling": 50, "gas_floor": 0, "gas_base": 0, "gas_per_item": 0}
        values.update(kwargs)
        with pytest.raises(ValueError):
            BatchLimits(**values)


class TestPlanBatches:
    def test_deletes_split_by_ceiling(self) -> None:
        paths = _paths(120)
        batches = plan_batches(Operation.DELETE, paths, LIMITS)

        assert [batch.size for batch in batches] == [50, 50, 20]
        for batch in batches:
            assert batch.operation is Operation.DELETE
            assert batch.resources == ()
            assert batch.gas_budget == max(50_000_000, 1_000_000 + 1_000_000 * batch.size)

    def test_order_preserved(self) -> None:
        paths = _paths(120)
        batches = plan_batches(Operation.DELETE, paths, LIMITS)
        assert [path for batch in batches for path in batch.paths] == paths

    def test_budget_above_floor(self) -> None:
        limits = BatchLimits(
            cardinality_ceiling=100,
            gas_floor=50_000_000,
            gas_base=1_000_000,
            gas_per_item=1_000_000,
        )
        (batch,) = plan_batches(Operation.DELETE, _paths(60), limits)
        assert batch.gas_budget == 61_000_000

    def test_empty_input_yields_no_batches(self) -> None:
        assert plan_batches(Operation.ADD, [], LIMITS, {}) == []

    def test_add_batches_carry_resources_in_path_order(self) -> None:
        paths = _paths(3)
        resources = {path: _resource(path) for path in reversed(paths)}

        (batch,) = plan_batches(Operation.ADD, paths, LIMITS, resources)

        assert batch.paths == tuple(paths)
        assert [r.path for r in batch.resources] == paths

    def test_update_without_resource_fields_rejected(self) -> None:
        with pytest.raises(ValueError, match="/p1.html"):
            plan_batches(Operation.UPDATE, _paths(2), LIMITS, {"/p0.html": _resource("/p0.html")})

    def test_add_without_any_resources_rejected(self) -> None:
        with pytest.raises(ValueError):
            plan_batches(Operation.ADD, ["/a.html"], LIMITS)


class TestPlanDelta:
    def test_adds_then_updates_then_deletes(self) -> None:
        delta = DeltaResult(
            added=["/new.html"],
            modified=["/changed.html"],
            removed=["/gone.html"],
            unchanged=["/same.html"],
        )
        resources = {path: _resource(path) for path in ("/new.html", "/changed.html")}

        batches = plan_delta(delta, resources, LIMITS)

        assert [batch.operation for batch in batches] == [
            Operation.ADD,
            Operation.UPDATE,
            Operation.DELETE,
        ]
        assert conflicting_paths(batches) == set()

    def test_no_changes_no_batches(self) -> None:
        assert plan_delta(DeltaResult(unchanged=["/a.html"]), {}, LIMITS) == []


class TestConflictingPaths:
    def test_reports_paths_shared_across_operations(self) -> None:
        update = MutationBatch(Operation.UPDATE, ("/a.html",), (_resource("/a.html"),), 1)
        delete = MutationBatch(Operation.DELETE, ("/a.html", "/b.html"), (), 1)
        assert conflicting_paths([update, delete]) == {"/a.html"}


class TestSubmitBatches:
    def test_submits_in_order(self) -> None:
        ledger = RecordingLedger()
        batches = plan_batches(Operation.DELETE, _paths(120), LIMITS)

        committed = submit_batches(batches, ledger)

        assert committed == 120
        assert ledger.submitted == batches

    def test_stops_at_first_failure(self) -> None:
        ledger = RecordingLedger(fail_at={1})
        batches = plan_batches(Operation.DELETE, _paths(120), LIMITS)

        with pytest.raises(BatchSubmissionError) as exc_info:
            submit_batches(batches, ledger)

        assert exc_info.value.failed_batch_index == 1
        assert exc_info.value.committed_ops == 50
        assert exc_info.value.reason == "MoveAbort"
        assert len(ledger.submitted) == 2

    def test_resume_from_failed_batch(self) -> None:
        ledger = RecordingLedger()
        batches = plan_batches(Operation.DELETE, _paths(120), LIMITS)

        committed = submit_batches(batches, ledger, start_index=1)

        assert committed == 120
        assert ledger.submitted == batches[1:]

    def test_ledger_exception_becomes_submission_error(self) -> None:
        class _BrokenLedger:
            def submit(self, batch: MutationBatch) -> SubmissionResult:
                raise ConnectionError("rpc unreachable")

        batches = plan_batches(Operation.DELETE, _paths(3), LIMITS)
        with pytest.raises(BatchSubmissionError) as exc_info:
            submit_batches(batches, _BrokenLedger())

        assert exc_info.value.failed_batch_index == 0
        assert exc_info.value.committed_ops == 0
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_failure_without_message(self) -> None:
        class _SilentLedger:
            def submit(self, batch: MutationBatch) -> SubmissionResult:
                return SubmissionResult(success=False)

        with pytest.raises(BatchSubmissionError, match="rejected by ledger"):
            submit_batches(plan_batches(Operation.DELETE, ["/a.html"], LIMITS), _SilentLedger())

    def test_invalid_start_index(self) -> None:
        with pytest.raises(ValueError):
            submit_batches([], RecordingLedger(), start_index=1)

    def test_logs_commit_digest(self, caplog: pytest.LogCaptureFixture) -> None:
        batches = plan_batches(Operation.DELETE, _paths(3), LIMITS)
        with caplog.at_level(logging.INFO, logger="versui.services.batch_service"):
            submit_batches(batches, RecordingLedger())
        assert "Batch 0 committed (digest digest-0)" in caplog.text
