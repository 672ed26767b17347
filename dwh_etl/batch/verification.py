"""
Post-commit verification of warehouse targets.

Checks existence and population only, not content. A failed check is a
warning for operators; the batch it follows is already committed.
"""

import warnings
from collections.abc import Sequence
from typing import Protocol

from dwh_etl.core.errors import VerificationFailure
from dwh_etl.core.models import TargetIdentity, TargetStatus, VerificationReport
from dwh_etl.observability import metrics
from dwh_etl.observability.logger import get_logger

logger = get_logger(__name__)


class VerificationSession(Protocol):
    def target_exists(self, target: TargetIdentity) -> bool: ...

    def count_rows(self, target: TargetIdentity) -> int: ...


class TargetVerifier:
    """Confirms the expected targets exist and are non-empty."""

    def __init__(self, session: VerificationSession):
        self.session = session

    def inspect(self, expected_targets: Sequence[TargetIdentity]) -> VerificationReport:
        """Collect existence and row count for every expected target."""
        statuses = []
        for target in expected_targets:
            exists = self.session.target_exists(target)
            row_count = self.session.count_rows(target) if exists else 0
            statuses.append(TargetStatus(target=target, exists=exists, row_count=row_count))
        return VerificationReport(targets=statuses)

    def verify(self, expected_targets: Sequence[TargetIdentity]) -> bool:
        """
        Check every expected target exists and holds at least one row.

        Emits a VerificationFailure warning when the check does not pass.

        Returns:
            True if all targets are populated
        """
        report = self.inspect(expected_targets)

        for target in report.missing:
            logger.warning(f"Verification: target {target} is missing", extra={"target": str(target)})
            metrics.record_verification_failure(str(target), "missing")
        for target in report.empty:
            logger.warning(f"Verification: target {target} is empty", extra={"target": str(target)})
            metrics.record_verification_failure(str(target), "empty")

        if not report.passed:
            problems = len(report.missing) + len(report.empty)
            warnings.warn(
                VerificationFailure(
                    f"{problems} of {len(report.targets)} expected targets are missing or empty"
                ),
                stacklevel=2,
            )
        else:
            logger.info(
                f"Verification passed: all {len(report.targets)} targets populated",
                extra={"target_count": len(report.targets)},
            )

        return report.passed
