"""
Dimension models: customers, customer demographics and locations, products,
and the product category reference set.
"""

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import Field

from .warehouse_record import WarehouseRecord

MaritalStatus = Literal["Married", "Single", "Unknown"]
Gender = Literal["Female", "Male", "Unknown"]
ProductLine = Literal["Road", "Mountain", "Other sales", "Touring", "Unknown"]


class CustomerDimensionRecord(WarehouseRecord):
    """
    Deduplicated CRM customer (dw_customer.customer_info).

    Attributes:
        customer_id: Surrogate id carried from the CRM export
        customer_key: Business key; unique across the output
        first_name: Trimmed first name
        last_name: Trimmed last name
        marital_status: Married, Single or Unknown
        gender: Female, Male or Unknown
        create_date: Creation date of the retained revision
    """

    customer_id: int
    customer_key: str = Field(..., min_length=1)
    first_name: str | None = None
    last_name: str | None = None
    marital_status: MaritalStatus = "Unknown"
    gender: Gender = "Unknown"
    create_date: date | None = None

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "customer_id": 11000,
                "customer_key": "AW00011000",
                "first_name": "Jon",
                "last_name": "Yang",
                "marital_status": "Married",
                "gender": "Male",
                "create_date": "2025-10-06",
            }
        }


class CustomerDemographicsRecord(WarehouseRecord):
    """ERP customer birth date and gender (dw_customer.customer_demographics)."""

    customer_key: str | None = None
    birth_date: date | None = None
    gender: Gender = "Unknown"


class CustomerLocationRecord(WarehouseRecord):
    """ERP customer country (dw_customer.customer_locations)."""

    customer_key: str | None = None
    country: str = "n/a"


class ProductDimensionRecord(WarehouseRecord):
    """
    One revision of a product (dw_product.product_info).

    Revisions of the same product_key form a contiguous history: each
    end_date is the day before the next revision's start_date and the
    latest revision is open (end_date is None).
    """

    product_id: int | None = None
    category_id: str
    product_key: str = Field(..., min_length=1)
    product_name: str | None = None
    product_cost: Decimal = Decimal(0)
    product_line: ProductLine = "Unknown"
    start_date: date
    end_date: date | None = None

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "product_id": 210,
                "category_id": "CO_RF",
                "product_key": "FR-R92B-58",
                "product_name": "HL Road Frame - Black- 58",
                "product_cost": "0",
                "product_line": "Road",
                "start_date": "2003-07-01",
                "end_date": None,
            }
        }


class ProductCategoryRecord(WarehouseRecord):
    """Maintenance category reference row (dw_product.product_categories)."""

    category_id: str | None = None
    category: str | None = None
    subcategory: str | None = None
    maintenance: str | None = None
