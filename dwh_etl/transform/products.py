"""
Product transforms: composite key split, referential filter against the
maintenance categories, and validity-interval derivation for product history.
"""

from collections import defaultdict
from collections.abc import Collection, Sequence
from datetime import date, timedelta
from decimal import Decimal
from typing import NamedTuple

from dwh_etl.core.models import (
    CrmProductRow,
    ErpCategoryRow,
    ProductCategoryRecord,
    ProductDimensionRecord,
)
from dwh_etl.observability import metrics
from dwh_etl.observability.logger import get_logger

from .normalize import clean_text, normalize_product_line

logger = get_logger(__name__)

CATEGORY_ID_WIDTH = 5
# Category segment plus its one-character separator.
PRODUCT_KEY_OFFSET = CATEGORY_ID_WIDTH + 1

ENTITY = "product_info"


class _Revision(NamedTuple):
    index: int
    row: CrmProductRow
    category_id: str
    product_key: str


def split_product_key(composite: str) -> tuple[str, str]:
    """
    Split "CO-RF-FR-R92B-58" into ("CO_RF", "FR-R92B-58").

    Fixed-width slicing: the first five characters are the category id with
    dashes normalized to underscores; everything after the separator is the
    product key (possibly empty for short inputs).
    """
    category_id = composite[:CATEGORY_ID_WIDTH].replace("-", "_")
    product_key = composite[PRODUCT_KEY_OFFSET:]
    return category_id, product_key


def validity_end_dates(start_dates: Sequence[date]) -> list[date | None]:
    """
    Derive end dates for revisions already sorted by start date.

    Each revision ends the day before the next one starts; the last one is
    open (None).
    """
    ends: list[date | None] = [
        following - timedelta(days=1) for following in start_dates[1:]
    ]
    if start_dates:
        ends.append(None)
    return ends


def transform_products(
    rows: Sequence[CrmProductRow],
    category_ids: Collection[str],
) -> list[ProductDimensionRecord]:
    """
    Build the product dimension with contiguous validity intervals.

    Rows outside the maintenance categories are filtered silently. A retained
    row with no product segment or no start date cannot be placed in a
    product's history; it is dropped and counted rather than failing the batch.

    Args:
        rows: Staged CRM product revisions in ingestion order
        category_ids: Maintenance category ids; products outside are dropped

    Returns:
        Product revisions ordered by product key then start date. May be
        empty when no category id matches.
    """
    retained: list[_Revision] = []
    unplaceable: list[int] = []

    for index, row in enumerate(rows):
        composite = clean_text(row.prd_key)
        if composite is None:
            continue

        category_id, product_key = split_product_key(composite)
        if category_id not in category_ids:
            continue

        if not product_key or row.prd_start_dt is None:
            unplaceable.append(index)
            continue

        retained.append(_Revision(index, row, category_id, product_key))

    if unplaceable:
        logger.info(
            f"Dropped {len(unplaceable)} products without a product segment or start date",
            extra={"entity": ENTITY, "dropped_rows": len(unplaceable), "row_indexes": unplaceable[:20]},
        )
        metrics.record_dropped_rows(ENTITY, "unplaceable", len(unplaceable))

    filtered = len(rows) - len(retained) - len(unplaceable)
    if filtered:
        logger.info(
            f"Dropped {filtered} products outside the maintenance categories",
            extra={"entity": ENTITY, "dropped_rows": filtered},
        )
    if rows and not retained:
        logger.info("Referential filter retained no products", extra={"entity": ENTITY})

    history: dict[str, list[_Revision]] = defaultdict(list)
    for revision in retained:
        history[revision.product_key].append(revision)

    records = []
    for product_key in sorted(history):
        revisions = sorted(history[product_key], key=lambda r: (r.row.prd_start_dt, r.index))
        end_dates = validity_end_dates([r.row.prd_start_dt for r in revisions])

        for revision, end_date in zip(revisions, end_dates):
            row = revision.row
            records.append(
                ProductDimensionRecord(
                    product_id=row.prd_id,
                    category_id=revision.category_id,
                    product_key=product_key,
                    product_name=clean_text(row.prd_nm),
                    product_cost=row.prd_cost if row.prd_cost is not None else Decimal(0),
                    product_line=normalize_product_line(row.prd_line),
                    start_date=row.prd_start_dt,
                    end_date=end_date,
                )
            )

    return records


def transform_product_categories(rows: Sequence[ErpCategoryRow]) -> list[ProductCategoryRecord]:
    """Copy the maintenance reference rows through unchanged."""
    return [
        ProductCategoryRecord(
            category_id=row.id,
            category=row.cat,
            subcategory=row.subcat,
            maintenance=row.maintenance,
        )
        for row in rows
    ]
