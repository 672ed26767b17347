"""
Batch report models: target identities, per-step outcomes and the
operator-facing batch result.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

StepStatus = Literal["committed", "rolled_back", "failed", "skipped"]


class TargetIdentity(BaseModel):
    """
    A warehouse table identified by (namespace, name).

    Both parts are plain identifiers; they are always quoted when composed
    into SQL and never interpolated as text.
    """

    namespace: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)

    class Config:
        frozen = True

    @classmethod
    def parse(cls, qualified: str) -> "TargetIdentity":
        """Build an identity from "namespace.name"."""
        namespace, sep, name = qualified.partition(".")
        if not sep or "." in name:
            raise ValueError(f"Expected 'namespace.name', got '{qualified}'")
        return cls(namespace=namespace, name=name)

    def __str__(self) -> str:
        return f"{self.namespace}.{self.name}"


class StepFailure(BaseModel):
    """Step-indexed diagnostic for the step that aborted a batch."""

    step: int = Field(..., ge=1)
    target: TargetIdentity
    error_type: str
    message: str


class StepResult(BaseModel):
    """
    Outcome of one load step.

    Attributes:
        step: 1-based position in the batch
        target: Output table
        row_count: Rows inserted (0 for skipped or failed steps)
        duration_seconds: Wall-clock duration of the step
        status: committed, rolled_back, failed or skipped
    """

    step: int = Field(..., ge=1)
    target: TargetIdentity
    row_count: int = Field(0, ge=0)
    duration_seconds: float = Field(0.0, ge=0.0)
    status: StepStatus


class BatchResult(BaseModel):
    """
    Operator-facing report of one batch run.

    committed=True implies failed_step is None; verified stays None until
    post-commit verification has run.
    """

    batch_id: str
    steps: list[StepResult] = Field(default_factory=list)
    committed: bool
    failed_step: StepFailure | None = None
    verified: bool | None = None
    started_at: datetime
    finished_at: datetime

    @field_validator("failed_step")
    @classmethod
    def check_commit_consistency(cls, v, info):
        """A committed batch cannot carry a failed step."""
        if info.data.get("committed") and v is not None:
            raise ValueError("committed=True but failed_step is set")
        return v

    @property
    def total_rows(self) -> int:
        return sum(s.row_count for s in self.steps if s.status == "committed")

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


class TargetStatus(BaseModel):
    """Existence and population of one target after a batch."""

    target: TargetIdentity
    exists: bool
    row_count: int = 0

    @property
    def populated(self) -> bool:
        return self.exists and self.row_count > 0


class VerificationReport(BaseModel):
    """Result of checking the expected targets after commit."""

    targets: list[TargetStatus] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(t.populated for t in self.targets)

    @property
    def missing(self) -> list[TargetIdentity]:
        return [t.target for t in self.targets if not t.exists]

    @property
    def empty(self) -> list[TargetIdentity]:
        return [t.target for t in self.targets if t.exists and t.row_count == 0]
