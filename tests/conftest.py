"""
Pytest configuration and fixtures for dwh-etl tests

Unit tests run against an in-memory warehouse session; integration tests
run against PostgreSQL in a testcontainer.
"""
import os
from datetime import date
from decimal import Decimal
from typing import Generator

import psycopg
import pytest
from testcontainers.postgres import PostgresContainer

from dwh_etl.core.models import TargetIdentity

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")

STAGING_TABLES = [
    "crm_cust_info",
    "crm_prd_info",
    "crm_sales_details",
    "erp_customer_info",
    "erp_customer_country",
    "erp_product_maintenance",
]

WAREHOUSE_TABLES = [
    "dw_customer.customer_info",
    "dw_customer.customer_demographics",
    "dw_customer.customer_locations",
    "dw_product.product_info",
    "dw_product.product_categories",
    "dw_sales.sales_details",
]


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )


# =======================
# IN-MEMORY WAREHOUSE
# =======================

class InMemoryWarehouseSession:
    """
    Dict-backed stand-in for WarehouseSession.

    begin() snapshots every table; rollback() restores the snapshot, so
    tests can observe exactly what readers would see after a batch.
    """

    def __init__(self, tables: dict[TargetIdentity, list[tuple]] | None = None):
        self.tables = {t: list(rows) for t, rows in (tables or {}).items()}
        self._snapshot: dict[TargetIdentity, list[tuple]] | None = None
        self.locks: list[int | None] = []
        self.commits = 0
        self.rollbacks = 0

    def begin(self, lock_key: int | None = None) -> None:
        self._snapshot = {t: list(rows) for t, rows in self.tables.items()}
        self.locks.append(lock_key)

    def commit(self) -> None:
        self._snapshot = None
        self.commits += 1

    def rollback(self) -> None:
        if self._snapshot is not None:
            self.tables = self._snapshot
            self._snapshot = None
        self.rollbacks += 1

    def target_exists(self, target: TargetIdentity) -> bool:
        return target in self.tables

    def replace_rows(self, target, columns, rows) -> int:
        if target not in self.tables:
            raise psycopg.errors.UndefinedTable(f'relation "{target}" does not exist')
        self.tables[target] = list(rows)
        return len(rows)

    def count_rows(self, target: TargetIdentity) -> int:
        return len(self.tables[target])


class InMemoryStagingSession:
    """
    Read side of WarehouseSession over dict rows, keyed by "namespace.name".
    """

    def __init__(self, tables: dict[str, list[dict]] | None = None):
        self.tables = dict(tables or {})
        self.reads: list[str] = []

    def target_exists(self, target: TargetIdentity) -> bool:
        return str(target) in self.tables

    def fetch_rows(self, target, columns, physical_order: bool = False) -> list[dict]:
        self.reads.append(str(target))
        return [{c: row.get(c) for c in columns} for row in self.tables[str(target)]]


@pytest.fixture
def staging_session() -> InMemoryStagingSession:
    """Staging tables with a small, consistent CRM/ERP batch"""
    return InMemoryStagingSession({
        "staging.crm_cust_info": [
            {"cst_id": 1, "cst_key": "AW1", "cst_firstname": " Jon", "cst_gndr": "M",
             "cst_create_date": date(2024, 1, 1)},
            {"cst_id": 1, "cst_key": "AW1", "cst_firstname": "Jon", "cst_gndr": "F",
             "cst_create_date": date(2024, 6, 1)},
        ],
        "staging.crm_prd_info": [
            {"prd_id": 1, "prd_key": "CO-RF-FR-1", "prd_cost": None, "prd_line": "R",
             "prd_start_dt": date(2011, 7, 1)},
            {"prd_id": 2, "prd_key": "CO-RF-FR-1", "prd_cost": Decimal("5"), "prd_line": "R",
             "prd_start_dt": date(2012, 7, 1)},
            {"prd_id": 3, "prd_key": "XX-YY-FR-2", "prd_start_dt": date(2011, 7, 1)},
        ],
        "staging.crm_sales_details": [
            {"sls_ord_num": "SO1", "sls_prd_key": "FR-1", "sls_cust_id": 1,
             "sls_order_dt": 20101229, "sls_ship_dt": 0, "sls_due_dt": 20110110,
             "sls_sales": None, "sls_quantity": 5, "sls_price": Decimal("10")},
        ],
        "staging.erp_customer_info": [
            {"cid": "NASAW1", "bdate": date(1980, 1, 1), "gen": "Male"},
        ],
        "staging.erp_customer_country": [
            {"cid": "AW-1", "cntry": "DE"},
        ],
        "staging.erp_product_maintenance": [
            {"id": "CO_RF", "cat": "Components", "subcat": "Road Frames", "maintenance": "No"},
            {"id": " AC_HE ", "cat": "Accessories", "subcat": "Helmets", "maintenance": "Yes"},
            {"id": None, "cat": None, "subcat": None, "maintenance": None},
        ],
    })


@pytest.fixture
def warehouse_targets() -> list[TargetIdentity]:
    """The six default warehouse targets"""
    return [TargetIdentity.parse(t) for t in WAREHOUSE_TABLES]


@pytest.fixture
def memory_session(warehouse_targets) -> InMemoryWarehouseSession:
    """
    In-memory session where every default target exists and holds one
    pre-batch row
    """
    return InMemoryWarehouseSession({t: [("pre-batch",)] for t in warehouse_targets})


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container with the staging and warehouse schema

    Yields:
        PostgresContainer instance with initialized database
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_pipeline",
        password="test_password",
        dbname="test_datawarehouse",
        driver=None,
    ) as postgres:
        with open(os.path.join(FIXTURES_DIR, "init-db.sql")) as f:
            init_sql = f.read()

        with psycopg.connect(postgres.get_connection_url()) as conn:
            with conn.cursor() as cur:
                cur.execute(init_sql)
            conn.commit()

        yield postgres


@pytest.fixture(scope="function")
def db_pool(postgres_container):
    """
    Open DatabaseConnectionPool against the test container

    Yields:
        DatabaseConnectionPool instance, closed after the test
    """
    from dwh_etl.warehouse.connection import DatabaseConnectionPool

    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_datawarehouse",
        user="test_pipeline",
        password="test_password",
    )
    pool.open()
    yield pool
    pool.close()


@pytest.fixture(scope="function")
def clean_db(postgres_container) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a connection to a database whose staging and warehouse tables
    are all empty

    Yields:
        psycopg Connection object with clean database
    """
    with psycopg.connect(postgres_container.get_connection_url()) as conn:
        with conn.cursor() as cur:
            for table in STAGING_TABLES:
                cur.execute(f"TRUNCATE TABLE staging.{table}")
            for table in WAREHOUSE_TABLES:
                cur.execute(f"TRUNCATE TABLE {table}")
        conn.commit()
        yield conn
        conn.rollback()
