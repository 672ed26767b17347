"""
Load orchestrator: runs ordered load steps as one all-or-nothing batch.

Idle -> TransactionOpen -> StepRunning ... -> Committed
                           StepRunning -> Failed -> RolledBack

A failing step never raises out of run_batch: it becomes a StepFailure in
the returned BatchResult after everything applied so far is rolled back.
"""

import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Protocol

import psycopg
from pydantic import ValidationError

from dwh_etl.core.errors import MissingTargetError, PipelineError
from dwh_etl.core.models import BatchResult, StepFailure, StepResult, TargetIdentity
from dwh_etl.observability import metrics
from dwh_etl.observability.logger import get_logger

from .steps import LoadStep

logger = get_logger(__name__)

# Errors that abort a step; anything else is a bug and propagates.
STEP_ERRORS = (PipelineError, psycopg.Error, ValidationError)


class BatchSession(Protocol):
    """Storage operations the orchestrator needs (see WarehouseSession)."""

    def begin(self, lock_key: int | None = None) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def target_exists(self, target: TargetIdentity) -> bool: ...

    def replace_rows(self, target: TargetIdentity, columns: Sequence[str], rows: Sequence[tuple]) -> int: ...


def new_batch_id() -> str:
    return datetime.now(timezone.utc).strftime("batch_%Y%m%d_%H%M%S_%f")


class LoadOrchestrator:
    """
    Executes load steps in declared order inside a single transaction.

    Each step checks its target exists, runs its transform, replaces the
    target's rows and records row count and duration. The batch commits once
    after the last step, or rolls back entirely on the first failure.
    """

    def __init__(self, session: BatchSession, lock_key: int | None = None):
        """
        Args:
            session: Transactional warehouse session
            lock_key: Advisory lock key held for the duration of the batch
        """
        self.session = session
        self.lock_key = lock_key

    def run_batch(
        self,
        steps: Sequence[LoadStep],
        batch_id: str | None = None,
        prepare: Callable[[], object] | None = None,
    ) -> BatchResult:
        """
        Run every step as one unit of work.

        Args:
            steps: Ordered step descriptors; step N is steps[N - 1]
            batch_id: Identifier for logs and the report
            prepare: Called inside the transaction before the first step
                (reference set loading)

        Returns:
            BatchResult with per-step outcomes; committed=False and
            failed_step set if any step failed

        Raises:
            PipelineError, psycopg.Error: If prepare fails; the transaction
                is rolled back and no step runs
        """
        batch_id = batch_id or new_batch_id()
        started_at = datetime.now(timezone.utc)
        log_extra = {"batch_id": batch_id, "step_count": len(steps)}

        logger.info(f"Starting batch {batch_id} with {len(steps)} steps", extra=log_extra)
        self.session.begin(self.lock_key)

        if prepare is not None:
            try:
                prepare()
            except STEP_ERRORS as e:
                self.session.rollback()
                logger.error(f"Batch {batch_id} aborted before step 1: {e}", extra=log_extra)
                metrics.record_batch(
                    committed=False,
                    duration_seconds=(datetime.now(timezone.utc) - started_at).total_seconds(),
                )
                raise

        results: list[StepResult] = []
        failure: StepFailure | None = None

        for index, step in enumerate(steps, start=1):
            result, failure = self._run_step(index, step, batch_id)
            results.append(result)
            if failure is not None:
                break

        if failure is None:
            try:
                self.session.commit()
            except psycopg.Error:
                logger.error(f"Commit failed for batch {batch_id}", extra=log_extra, exc_info=True)
                self.session.rollback()
                raise
            logger.info(f"Committed batch {batch_id}", extra=log_extra)
        else:
            self.session.rollback()
            logger.error(
                f"Rolled back batch {batch_id} after step {failure.step} failed",
                extra={**log_extra, "failed_step": failure.step, "target": str(failure.target)},
            )
            results = self._mark_rolled_back(results, steps)

        finished_at = datetime.now(timezone.utc)
        batch = BatchResult(
            batch_id=batch_id,
            steps=results,
            committed=failure is None,
            failed_step=failure,
            started_at=started_at,
            finished_at=finished_at,
        )

        metrics.record_batch(
            committed=batch.committed,
            duration_seconds=batch.duration_seconds,
            rows_by_target={str(r.target): r.row_count for r in batch.steps},
            finished_at=finished_at.timestamp(),
        )
        return batch

    def _run_step(
        self, index: int, step: LoadStep, batch_id: str
    ) -> tuple[StepResult, StepFailure | None]:
        started = time.perf_counter()
        try:
            if not self.session.target_exists(step.target):
                raise MissingTargetError(index, step.target)

            records = step.transform()
            row_count = self.session.replace_rows(
                step.target, step.columns, [record.as_row() for record in records]
            )
        except STEP_ERRORS as e:
            duration = time.perf_counter() - started
            failure = StepFailure(
                step=index,
                target=step.target,
                error_type=type(e).__name__,
                message=str(e),
            )
            logger.error(
                f"ERROR in step {index} loading {step.target}: {e}",
                extra={
                    "batch_id": batch_id,
                    "step": index,
                    "target": str(step.target),
                    "error_type": failure.error_type,
                    "duration_seconds": round(duration, 3),
                },
            )
            metrics.record_step(str(step.target), 0, duration, success=False)
            metrics.record_step_failure(str(step.target), failure.error_type)
            result = StepResult(step=index, target=step.target, duration_seconds=duration, status="failed")
            return result, failure

        duration = time.perf_counter() - started
        logger.info(
            f"Step {index}: loaded {row_count} rows into {step.target}",
            extra={
                "batch_id": batch_id,
                "step": index,
                "target": str(step.target),
                "row_count": row_count,
                "duration_seconds": round(duration, 3),
            },
        )
        metrics.record_step(str(step.target), row_count, duration)
        result = StepResult(
            step=index,
            target=step.target,
            row_count=row_count,
            duration_seconds=duration,
            status="committed",
        )
        return result, None

    @staticmethod
    def _mark_rolled_back(results: list[StepResult], steps: Sequence[LoadStep]) -> list[StepResult]:
        """Completed steps become rolled_back; steps never reached become skipped."""
        marked = [
            r.model_copy(update={"status": "rolled_back"}) if r.status == "committed" else r
            for r in results
        ]
        for index in range(len(results) + 1, len(steps) + 1):
            marked.append(StepResult(step=index, target=steps[index - 1].target, status="skipped"))
        return marked
