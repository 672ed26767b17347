"""
Sales fact transform: date token sanitization and sales/price reconciliation.
"""

from collections.abc import Sequence
from decimal import Context, Decimal, DivisionByZero, Inexact, InvalidOperation

from dwh_etl.core.models import CrmSalesRow, SalesFactRecord

from .normalize import clean_text, parse_date_token

# Arithmetic either yields an exact result or nothing.
_EXACT = Context(prec=38, traps=[Inexact, InvalidOperation, DivisionByZero])


def _line_total(quantity: int | None, price: Decimal | None) -> Decimal | None:
    if quantity is None or price is None:
        return None
    try:
        return _EXACT.multiply(Decimal(quantity), abs(price))
    except Inexact:
        return None


def _unit_price(sales: Decimal | None, quantity: int | None) -> Decimal | None:
    if sales is None or not quantity:
        return None
    try:
        return _EXACT.divide(sales, Decimal(quantity))
    except Inexact:
        return None


def reconcile_amounts(
    sales: Decimal | None,
    quantity: int | None,
    price: Decimal | None,
) -> tuple[Decimal | None, Decimal | None]:
    """
    Enforce sales == quantity * price by recomputing the untrusted side.

    1. Sales is replaced by quantity * abs(price) (original values) when it
       is missing, non-positive, or disagrees with that product.
    2. Price is then replaced by sales / quantity (corrected sales) when it
       is missing, non-positive, or disagrees with that quotient.

    Null operands propagate. A null line total only replaces a missing or
    non-positive sales value; a null unit price always replaces the price,
    so a zero quantity or a quotient that is not an exact decimal yields a
    null price, never an error.

    Returns:
        (sales, price) after reconciliation
    """
    expected_sales = _line_total(quantity, price)
    if (
        sales is None
        or sales <= 0
        or (expected_sales is not None and sales != expected_sales)
    ):
        sales = expected_sales

    expected_price = _unit_price(sales, quantity)
    if (
        price is None
        or price <= 0
        or expected_price is None
        or price != expected_price
    ):
        price = expected_price

    return sales, price


def transform_sales(rows: Sequence[CrmSalesRow]) -> list[SalesFactRecord]:
    """Build the sales fact from staged CRM order lines, preserving order."""
    records = []
    for row in rows:
        sales, price = reconcile_amounts(row.sls_sales, row.sls_quantity, row.sls_price)
        records.append(
            SalesFactRecord(
                order_number=clean_text(row.sls_ord_num),
                product_key=clean_text(row.sls_prd_key),
                customer_id=row.sls_cust_id,
                order_date=parse_date_token(row.sls_order_dt),
                ship_date=parse_date_token(row.sls_ship_dt),
                due_date=parse_date_token(row.sls_due_dt),
                sales_amount=sales,
                quantity=row.sls_quantity,
                unit_price=price,
            )
        )
    return records
