"""
Per-entity transformation rules from staging rows to warehouse records.
"""

from .customers import (
    latest_customer_revisions,
    transform_customer_demographics,
    transform_customer_locations,
    transform_customers,
)
from .products import (
    split_product_key,
    transform_product_categories,
    transform_products,
    validity_end_dates,
)
from .sales import reconcile_amounts, transform_sales

__all__ = [
    "latest_customer_revisions",
    "transform_customers",
    "transform_customer_demographics",
    "transform_customer_locations",
    "split_product_key",
    "validity_end_dates",
    "transform_products",
    "transform_product_categories",
    "reconcile_amounts",
    "transform_sales",
]
