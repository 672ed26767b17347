"""
SalesFactRecord model representing one reconciled order line.
"""

from datetime import date
from decimal import Decimal

from .warehouse_record import WarehouseRecord


class SalesFactRecord(WarehouseRecord):
    """
    Reconciled sales order line (dw_sales.sales_details).

    Attributes:
        order_number: Sales order number
        product_key: Product business key (joins product_info.product_key)
        customer_id: Customer surrogate id (joins customer_info.customer_id)
        order_date: Order date, None if the raw token was malformed
        ship_date: Ship date, None if the raw token was malformed
        due_date: Due date, None if the raw token was malformed
        sales_amount: Line total; equals quantity * unit_price when price is set
        quantity: Units ordered
        unit_price: Unit price; None when it cannot be derived
    """

    order_number: str | None = None
    product_key: str | None = None
    customer_id: int | None = None
    order_date: date | None = None
    ship_date: date | None = None
    due_date: date | None = None
    sales_amount: Decimal | None = None
    quantity: int | None = None
    unit_price: Decimal | None = None

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "order_number": "SO43697",
                "product_key": "BK-R93R-62",
                "customer_id": 21768,
                "order_date": "2010-12-29",
                "ship_date": "2011-01-05",
                "due_date": "2011-01-10",
                "sales_amount": "3578",
                "quantity": 1,
                "unit_price": "3578",
            }
        }
