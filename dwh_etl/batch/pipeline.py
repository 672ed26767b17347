"""
Warehouse load pipeline orchestration.

Coordinates the flow: reference sets -> transforms -> atomic load -> verification
"""

from dwh_etl.core.config import PipelineConfig
from dwh_etl.core.models import BatchResult, VerificationReport
from dwh_etl.observability.logger import get_logger, log_operation
from dwh_etl.warehouse.connection import DatabaseConnectionPool
from dwh_etl.warehouse.reference import ReferenceData
from dwh_etl.warehouse.session import WarehouseSession
from dwh_etl.warehouse.staging import StagingReader

from .orchestrator import LoadOrchestrator, new_batch_id
from .steps import build_load_steps
from .verification import TargetVerifier

logger = get_logger(__name__)


class WarehouseLoadPipeline:
    """
    Runs one full staging-to-warehouse batch.

    Flow:
    1. Borrow one connection for the whole batch
    2. Build the configured load steps
    3. Open the batch transaction and load every reference set
    4. Run all steps in that transaction; commit or roll back as a whole
    5. After a commit, verify the expected targets are populated
    """

    def __init__(self, pool: DatabaseConnectionPool, config: PipelineConfig):
        """
        Args:
            pool: Database connection pool
            config: Validated pipeline configuration
        """
        self.pool = pool
        self.config = config

    def run(self, batch_id: str | None = None, verify: bool = True) -> BatchResult:
        """
        Run a batch.

        Args:
            batch_id: Identifier for logs and the report
            verify: Run post-commit verification

        Returns:
            BatchResult; verified is None when the batch rolled back or
            verification was skipped

        Raises:
            StagingUnavailableError: If a reference table cannot be read;
                nothing is loaded
        """
        batch_id = batch_id or new_batch_id()

        with log_operation("warehouse batch", logger=logger, batch_id=batch_id):
            with self.pool.get_connection() as conn:
                session = WarehouseSession(conn)
                reader = StagingReader(session, self.config.staging_namespace)
                reference = ReferenceData(reader, self.config.reference_sets)
                steps = build_load_steps(self.config, reader, reference)

                result = LoadOrchestrator(session, lock_key=self.config.lock_key).run_batch(
                    steps, batch_id=batch_id, prepare=reference.load
                )

                if result.committed and verify:
                    passed = TargetVerifier(session).verify(self.config.expected_targets)
                    result = result.model_copy(update={"verified": passed})
                    session.rollback()  # end the read-only verification transaction

        return result

    def verify(self) -> VerificationReport:
        """Inspect the expected targets without loading anything."""
        with self.pool.get_connection() as conn:
            session = WarehouseSession(conn)
            report = TargetVerifier(session).inspect(self.config.expected_targets)
            session.rollback()
        return report
