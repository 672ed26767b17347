"""
Read-only access to staging batches.
"""

from typing import TypeVar

from pydantic import ValidationError

from dwh_etl.core.errors import StagingUnavailableError, TransformError
from dwh_etl.core.models import StagingRecord, TargetIdentity
from dwh_etl.observability.logger import get_logger

from .session import WarehouseSession

logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=StagingRecord)


class StagingReader:
    """
    Bulk-reads staging tables into staging record models.

    Rows are returned in ingestion order so that tie-breaks in the
    transforms are reproducible.
    """

    def __init__(self, session: WarehouseSession, namespace: str = "staging"):
        self.session = session
        self.namespace = namespace

    def _table(self, table: str) -> TargetIdentity:
        target = TargetIdentity(namespace=self.namespace, name=table)
        if not self.session.target_exists(target):
            raise StagingUnavailableError(str(target))
        return target

    def read(self, table: str, model: type[RecordT]) -> list[RecordT]:
        """
        Read every row of a staging table.

        Args:
            table: Staging table name
            model: Staging record model; its fields name the columns to read

        Raises:
            StagingUnavailableError: If the staging table does not exist
            TransformError: If a row cannot be coerced into the model
        """
        target = self._table(table)
        rows = self.session.fetch_rows(target, list(model.model_fields), physical_order=True)

        records = []
        for index, row in enumerate(rows):
            try:
                records.append(model(**row))
            except ValidationError as e:
                raise TransformError(table, f"staging row does not match {model.__name__}: {e}", index) from e

        logger.debug(f"Read {len(records)} rows from {target}", extra={"staging_table": str(target)})
        return records

    def read_keys(self, table: str, column: str) -> list[str | None]:
        """Read a single key column of a staging table as text."""
        target = self._table(table)
        rows = self.session.fetch_rows(target, [column])
        return [None if row[column] is None else str(row[column]) for row in rows]
