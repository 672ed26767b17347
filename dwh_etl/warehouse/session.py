"""
Warehouse session: one psycopg connection owned by a batch.

All statements run in the connection's single transaction until commit()
or rollback(). Table identities are composed with psycopg.sql and never
interpolated as text.
"""

from collections.abc import Sequence
from typing import Any

import psycopg
from psycopg import sql
from psycopg.pq import TransactionStatus
from psycopg.rows import dict_row

from dwh_etl.core.models import TargetIdentity
from dwh_etl.observability.logger import get_logger

logger = get_logger(__name__)


def _table(target: TargetIdentity) -> sql.Identifier:
    return sql.Identifier(target.namespace, target.name)


class WarehouseSession:
    """
    Transactional access to warehouse and staging tables.

    The connection must not be in autocommit mode: TRUNCATE and INSERT
    statements of every step share one transaction.
    """

    def __init__(self, conn: psycopg.Connection):
        """
        Args:
            conn: Open psycopg connection
        """
        if conn.autocommit:
            raise ValueError("WarehouseSession requires a connection with autocommit disabled")
        self.conn = conn

    def begin(self, lock_key: int | None = None) -> None:
        """
        Start the batch transaction and take the batch write lock.

        The advisory lock is transaction-scoped: commit or rollback releases it,
        so a second batch blocks here until the first one finishes.
        """
        if self.conn.info.transaction_status != TransactionStatus.IDLE:
            # Discard reads issued before the batch so the lock covers all writes.
            self.conn.rollback()

        if lock_key is not None:
            with self.conn.cursor(row_factory=dict_row) as cur:
                cur.execute("SELECT pg_advisory_xact_lock(%s)", (lock_key,))
            logger.debug(f"Acquired batch lock {lock_key}")

    def commit(self) -> None:
        self.conn.commit()

    def rollback(self) -> None:
        self.conn.rollback()

    def target_exists(self, target: TargetIdentity) -> bool:
        """Check that a base table exists for the target identity."""
        query = """
            SELECT EXISTS (
                SELECT 1
                FROM information_schema.tables
                WHERE table_schema = %s
                  AND table_name = %s
                  AND table_type = 'BASE TABLE'
            ) AS present
        """
        with self.conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query, (target.namespace, target.name))
            row = cur.fetchone()
        return bool(row["present"])

    def replace_rows(
        self,
        target: TargetIdentity,
        columns: Sequence[str],
        rows: Sequence[tuple[Any, ...]],
    ) -> int:
        """
        Truncate the target and insert rows.

        Args:
            target: Output table
            columns: Column names, in the order of each row tuple
            rows: Row values

        Returns:
            Number of rows inserted
        """
        truncate = sql.SQL("TRUNCATE TABLE {}").format(_table(target))
        insert = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
            _table(target),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            sql.SQL(", ").join(sql.Placeholder() for _ in columns),
        )

        with self.conn.cursor(row_factory=dict_row) as cur:
            cur.execute(truncate)
            if rows:
                cur.executemany(insert, rows)

        return len(rows)

    def count_rows(self, target: TargetIdentity) -> int:
        query = sql.SQL("SELECT count(*) AS row_count FROM {}").format(_table(target))
        with self.conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query)
            row = cur.fetchone()
        return int(row["row_count"])

    def fetch_rows(
        self,
        target: TargetIdentity,
        columns: Sequence[str],
        physical_order: bool = False,
    ) -> list[dict[str, Any]]:
        """
        Read the given columns of a table.

        Args:
            target: Table to read
            columns: Columns to select
            physical_order: Order by ctid, which follows ingestion order for
                a truncate-and-reload staging table

        Returns:
            List of dictionaries (one per row)
        """
        query = sql.SQL("SELECT {} FROM {}").format(
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            _table(target),
        )
        if physical_order:
            query = query + sql.SQL(" ORDER BY ctid")

        with self.conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query)
            return cur.fetchall()
