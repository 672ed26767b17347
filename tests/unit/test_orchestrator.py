"""
Unit tests for the load orchestrator.

Runs batches against the in-memory warehouse session from conftest so
commit and rollback behavior can be checked without a database.
"""

import psycopg
import pytest

from dwh_etl.batch.orchestrator import LoadOrchestrator, new_batch_id
from dwh_etl.batch.steps import LoadStep
from dwh_etl.core.errors import StagingUnavailableError, TransformError
from dwh_etl.core.models import (
    CustomerLocationRecord,
    ProductCategoryRecord,
    TargetIdentity,
)


def location_step(target: TargetIdentity, count: int = 2) -> LoadStep:
    rows = [CustomerLocationRecord(customer_key=f"AW{i}", country="Germany") for i in range(count)]
    return LoadStep(target=target, transform=lambda: rows, record_type=CustomerLocationRecord)


def failing_step(target: TargetIdentity, error: Exception) -> LoadStep:
    def transform():
        raise error

    return LoadStep(target=target, transform=transform, record_type=ProductCategoryRecord)


@pytest.mark.unit
class TestCommittedBatch:
    """Tests for a batch where every step succeeds"""

    def test_all_steps_commit(self, memory_session, warehouse_targets):
        steps = [location_step(t, count=i + 1) for i, t in enumerate(warehouse_targets)]

        result = LoadOrchestrator(memory_session).run_batch(steps, batch_id="batch_test")

        assert result.committed is True
        assert result.failed_step is None
        assert result.batch_id == "batch_test"
        assert [s.step for s in result.steps] == [1, 2, 3, 4, 5, 6]
        assert all(s.status == "committed" for s in result.steps)
        assert [s.row_count for s in result.steps] == [1, 2, 3, 4, 5, 6]
        assert result.total_rows == 21
        assert memory_session.commits == 1
        assert memory_session.rollbacks == 0

    def test_targets_are_replaced(self, memory_session, warehouse_targets):
        target = warehouse_targets[0]

        LoadOrchestrator(memory_session).run_batch([location_step(target, count=2)])

        assert memory_session.tables[target] == [("AW0", "Germany"), ("AW1", "Germany")]

    def test_empty_output_is_not_a_failure(self, memory_session, warehouse_targets):
        target = warehouse_targets[0]

        result = LoadOrchestrator(memory_session).run_batch([location_step(target, count=0)])

        assert result.committed is True
        assert result.steps[0].row_count == 0
        assert memory_session.tables[target] == []

    def test_lock_key_held_for_batch(self, memory_session, warehouse_targets):
        LoadOrchestrator(memory_session, lock_key=724301).run_batch([location_step(warehouse_targets[0])])

        assert memory_session.locks == [724301]

    def test_durations_recorded(self, memory_session, warehouse_targets):
        result = LoadOrchestrator(memory_session).run_batch([location_step(warehouse_targets[0])])

        assert result.steps[0].duration_seconds >= 0
        assert result.finished_at >= result.started_at

    def test_generated_batch_id(self, memory_session, warehouse_targets):
        result = LoadOrchestrator(memory_session).run_batch([location_step(warehouse_targets[0])])

        assert result.batch_id.startswith("batch_")


@pytest.mark.unit
class TestRolledBackBatch:
    """Tests for full rollback when any step fails"""

    def test_missing_target_at_step_three_rolls_back_everything(self, memory_session, warehouse_targets):
        """Step 3 of 6 targets a table that does not exist"""
        missing = TargetIdentity(namespace="dw_customer", name="does_not_exist")
        targets = list(warehouse_targets)
        targets[2] = missing
        pre_batch = {t: list(rows) for t, rows in memory_session.tables.items()}

        result = LoadOrchestrator(memory_session).run_batch([location_step(t) for t in targets])

        assert result.committed is False
        assert memory_session.tables == pre_batch
        assert memory_session.commits == 0
        assert memory_session.rollbacks == 1

        assert result.failed_step.step == 3
        assert result.failed_step.target == missing
        assert result.failed_step.error_type == "MissingTargetError"
        assert "does_not_exist" in result.failed_step.message

        assert [s.status for s in result.steps] == [
            "rolled_back", "rolled_back", "failed", "skipped", "skipped", "skipped",
        ]
        assert result.total_rows == 0

    def test_transform_error_rolls_back(self, memory_session, warehouse_targets):
        steps = [
            location_step(warehouse_targets[0]),
            failing_step(
                warehouse_targets[1],
                TransformError("crm_prd_info", "staging row does not match CrmProductRow", 4),
            ),
        ]

        result = LoadOrchestrator(memory_session).run_batch(steps)

        assert result.committed is False
        assert result.failed_step.step == 2
        assert result.failed_step.error_type == "TransformError"
        assert "staging row 4" in result.failed_step.message
        assert memory_session.tables[warehouse_targets[0]] == [("pre-batch",)]

    def test_database_error_rolls_back(self, memory_session, warehouse_targets):
        steps = [failing_step(warehouse_targets[0], psycopg.errors.NotNullViolation("null value"))]

        result = LoadOrchestrator(memory_session).run_batch(steps)

        assert result.committed is False
        assert result.failed_step.error_type == "NotNullViolation"
        assert [s.status for s in result.steps] == ["failed"]

    def test_unexpected_errors_propagate(self, memory_session, warehouse_targets):
        steps = [failing_step(warehouse_targets[0], ZeroDivisionError("bug"))]

        with pytest.raises(ZeroDivisionError):
            LoadOrchestrator(memory_session).run_batch(steps)

    def test_first_failure_stops_batch(self, memory_session, warehouse_targets):
        calls = []

        def tracked():
            calls.append("ran")
            return []

        steps = [
            failing_step(warehouse_targets[0], TransformError("customer_info", "bad")),
            LoadStep(target=warehouse_targets[1], transform=tracked, record_type=CustomerLocationRecord),
        ]

        result = LoadOrchestrator(memory_session).run_batch(steps)

        assert calls == []
        assert [s.status for s in result.steps] == ["failed", "skipped"]


@pytest.mark.unit
class TestPreparation:
    """Tests for work done inside the transaction before step 1"""

    def test_prepare_runs_after_begin_and_before_steps(self, memory_session, warehouse_targets):
        events = []

        def prepare():
            events.append(("prepare", len(memory_session.locks)))

        def transform():
            events.append(("step", len(memory_session.locks)))
            return []

        step = LoadStep(target=warehouse_targets[0], transform=transform, record_type=CustomerLocationRecord)
        result = LoadOrchestrator(memory_session).run_batch([step], prepare=prepare)

        assert result.committed is True
        assert events == [("prepare", 1), ("step", 1)]

    def test_prepare_failure_rolls_back_and_raises(self, memory_session, warehouse_targets):
        def prepare():
            raise StagingUnavailableError("staging.erp_product_maintenance")

        with pytest.raises(StagingUnavailableError):
            LoadOrchestrator(memory_session).run_batch([location_step(warehouse_targets[0])], prepare=prepare)

        assert memory_session.rollbacks == 1
        assert memory_session.commits == 0
        assert memory_session.tables[warehouse_targets[0]] == [("pre-batch",)]


@pytest.mark.unit
class TestCommitFailure:
    """Tests for a failing commit"""

    def test_commit_error_rolls_back_and_raises(self, memory_session, warehouse_targets):
        def broken_commit():
            raise psycopg.OperationalError("connection lost")

        memory_session.commit = broken_commit

        with pytest.raises(psycopg.OperationalError):
            LoadOrchestrator(memory_session).run_batch([location_step(warehouse_targets[0])])

        assert memory_session.rollbacks == 1
        assert memory_session.tables[warehouse_targets[0]] == [("pre-batch",)]


def test_new_batch_id_format():
    batch_id = new_batch_id()

    assert batch_id.startswith("batch_")
    assert len(batch_id) == len("batch_20240101_000000_000000")
