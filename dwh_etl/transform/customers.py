"""
Customer transforms: CRM customer deduplication and the ERP demographics
and location cleansing.
"""

from collections.abc import Sequence
from datetime import date

from dwh_etl.core.models import (
    CrmCustomerRow,
    CustomerDemographicsRecord,
    CustomerDimensionRecord,
    CustomerLocationRecord,
    ErpCustomerRow,
    ErpLocationRow,
)
from dwh_etl.observability.logger import get_logger

from .normalize import (
    clean_text,
    normalize_country,
    normalize_gender,
    normalize_marital_status,
    sanitize_birth_date,
)

logger = get_logger(__name__)

# ERP customer ids carry this prefix for some legacy accounts; CRM keys do not.
LEGACY_CUSTOMER_PREFIX = "NAS"


def latest_customer_revisions(rows: Sequence[CrmCustomerRow]) -> list[CrmCustomerRow]:
    """
    Keep one staged row per business key: the one with the latest create date.

    Rows without a business key or surrogate id are dropped. A missing create
    date ranks below any real date. When the latest date is shared, the row
    staged first wins. Result is ordered by first appearance of each key.
    """
    winners: dict[str, CrmCustomerRow] = {}

    for row in rows:
        key = clean_text(row.cst_key)
        if key is None or row.cst_id is None:
            continue

        current = winners.get(key)
        if current is None or _is_newer(row.cst_create_date, current.cst_create_date):
            # Re-assigning an existing key keeps its original insertion position.
            winners[key] = row

    return list(winners.values())


def _is_newer(candidate: date | None, current: date | None) -> bool:
    if candidate is None:
        return False
    if current is None:
        return True
    return candidate > current


def transform_customers(rows: Sequence[CrmCustomerRow]) -> list[CustomerDimensionRecord]:
    """Build the customer dimension from staged CRM customer rows."""
    latest = latest_customer_revisions(rows)

    dropped = len(rows) - len(latest)
    if dropped:
        logger.info(
            f"Collapsed {dropped} duplicate or keyless customer rows",
            extra={"entity": "customer_info", "dropped_rows": dropped},
        )

    return [
        CustomerDimensionRecord(
            customer_id=row.cst_id,
            customer_key=clean_text(row.cst_key),
            first_name=clean_text(row.cst_firstname),
            last_name=clean_text(row.cst_lastname),
            marital_status=normalize_marital_status(row.cst_marital_status),
            gender=normalize_gender(row.cst_gndr),
            create_date=row.cst_create_date,
        )
        for row in latest
    ]


def normalize_erp_customer_key(cid: str | None) -> str | None:
    """Strip the legacy prefix so ERP ids match CRM business keys."""
    key = clean_text(cid)
    if key is not None and key.startswith(LEGACY_CUSTOMER_PREFIX):
        key = key[len(LEGACY_CUSTOMER_PREFIX):] or None
    return key


def transform_customer_demographics(
    rows: Sequence[ErpCustomerRow],
    as_of: date | None = None,
) -> list[CustomerDemographicsRecord]:
    """
    Cleanse ERP customer demographics.

    Birth dates outside [1926-01-01, as_of] are nulled; gender codes are
    normalized to Female, Male or Unknown.
    """
    today = as_of or date.today()
    return [
        CustomerDemographicsRecord(
            customer_key=normalize_erp_customer_key(row.cid),
            birth_date=sanitize_birth_date(row.bdate, today),
            gender=normalize_gender(row.gen),
        )
        for row in rows
    ]


def transform_customer_locations(rows: Sequence[ErpLocationRow]) -> list[CustomerLocationRecord]:
    """Remove separators from ERP customer ids and expand country codes."""
    return [
        CustomerLocationRecord(
            customer_key=clean_text(row.cid.replace("-", "")) if row.cid else None,
            country=normalize_country(row.cntry),
        )
        for row in rows
    ]
