"""
Error taxonomy for the transformation-and-load engine.

Structural failures (missing targets, missing staging data, unrecoverable
transforms) abort the batch. Row-level anomalies never reach this module:
they are coerced to sentinels or nulls by the transformation rules.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dwh_etl.core.models.batch_result import TargetIdentity


class PipelineError(Exception):
    """Base class for all errors raised by the load engine."""


class ConfigError(PipelineError):
    """Raised when the pipeline configuration is missing or invalid."""


class MissingTargetError(PipelineError):
    """Raised when a step's output target does not exist in the warehouse."""

    def __init__(self, step: int, target: "TargetIdentity"):
        self.step = step
        self.target = target
        super().__init__(f"Step {step}: target table {target} does not exist")


class StagingUnavailableError(PipelineError):
    """Raised when a staging batch cannot be read (table absent or unreadable)."""

    def __init__(self, table: str, message: str | None = None):
        self.table = table
        self.message = message or "staging table does not exist"
        super().__init__(f"Staging batch {table} unavailable: {self.message}")


class TransformError(PipelineError):
    """
    Raised when a staged row cannot be turned into a record at all.

    Attributes:
        entity: Staging table or output entity (e.g. "crm_prd_info")
        message: Human readable reason
        row_index: Position of the offending row in the staging batch, if known
    """

    def __init__(self, entity: str, message: str, row_index: int | None = None):
        self.entity = entity
        self.message = message
        self.row_index = row_index
        location = f" (staging row {row_index})" if row_index is not None else ""
        super().__init__(f"[{entity}] {message}{location}")


class VerificationFailure(UserWarning):
    """
    Post-commit verification did not pass.

    A warning, not an exception: the batch is already committed and nothing
    is rolled back.
    """
