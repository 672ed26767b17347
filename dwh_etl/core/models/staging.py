"""
Staging record models, one per staging table.

Fields are loosely typed and named exactly as in the source extracts.
Staging rows are immutable once ingested.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class StagingRecord(BaseModel):
    """Base class for raw staging rows."""

    class Config:
        frozen = True


class CrmCustomerRow(StagingRecord):
    """
    Row of staging.crm_cust_info (CRM customer export).

    Attributes:
        cst_id: Source system customer id
        cst_key: Customer business key (e.g. "AW00011000")
        cst_firstname: First name, untrimmed
        cst_lastname: Last name, untrimmed
        cst_marital_status: Marital status code ("S", "M", ...)
        cst_gndr: Gender code ("F", "M", ...)
        cst_create_date: Creation date of this customer revision
    """

    cst_id: int | None = None
    cst_key: str | None = None
    cst_firstname: str | None = None
    cst_lastname: str | None = None
    cst_marital_status: str | None = None
    cst_gndr: str | None = None
    cst_create_date: date | None = None

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "cst_id": 11000,
                "cst_key": "AW00011000",
                "cst_firstname": " Jon",
                "cst_lastname": "Yang ",
                "cst_marital_status": "M",
                "cst_gndr": "M",
                "cst_create_date": "2025-10-06",
            }
        }


class CrmProductRow(StagingRecord):
    """
    Row of staging.crm_prd_info (CRM product revisions).

    prd_key is a composite key: five characters of category id, a
    separator, then the product key (e.g. "CO-RF-FR-R92B-58").
    """

    prd_id: int | None = None
    prd_key: str | None = None
    prd_nm: str | None = None
    prd_cost: Decimal | None = None
    prd_line: str | None = None
    prd_start_dt: date | None = None
    prd_end_dt: date | None = None


class CrmSalesRow(StagingRecord):
    """
    Row of staging.crm_sales_details (CRM order lines).

    Date fields hold raw YYYYMMDD tokens as extracted, either integers or
    strings; they are sanitized by the sales transform.
    """

    sls_ord_num: str | None = None
    sls_prd_key: str | None = None
    sls_cust_id: int | None = None
    sls_order_dt: int | str | None = None
    sls_ship_dt: int | str | None = None
    sls_due_dt: int | str | None = None
    sls_sales: Decimal | None = None
    sls_quantity: int | None = None
    sls_price: Decimal | None = None

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "sls_ord_num": "SO43697",
                "sls_prd_key": "BK-R93R-62",
                "sls_cust_id": 21768,
                "sls_order_dt": 20101229,
                "sls_ship_dt": 20110105,
                "sls_due_dt": 20110110,
                "sls_sales": "3578",
                "sls_quantity": 1,
                "sls_price": "3578",
            }
        }


class ErpCustomerRow(StagingRecord):
    """Row of staging.erp_customer_info (ERP CUST_AZ12 export)."""

    cid: str | None = None
    bdate: date | None = None
    gen: str | None = None


class ErpLocationRow(StagingRecord):
    """Row of staging.erp_customer_country (ERP LOC_A101 export)."""

    cid: str | None = None
    cntry: str | None = None


class ErpCategoryRow(StagingRecord):
    """Row of staging.erp_product_maintenance (ERP PX_CAT_G1V2 export)."""

    id: str | None = None
    cat: str | None = None
    subcat: str | None = None
    maintenance: str | None = None
