"""
Core data models for the staging-to-warehouse load engine.

All models use Pydantic for runtime validation and type safety.
"""

from .batch_result import (
    BatchResult,
    StepFailure,
    StepResult,
    TargetIdentity,
    TargetStatus,
    VerificationReport,
)
from .dimensions import (
    CustomerDemographicsRecord,
    CustomerDimensionRecord,
    CustomerLocationRecord,
    ProductCategoryRecord,
    ProductDimensionRecord,
)
from .fact import SalesFactRecord
from .staging import (
    CrmCustomerRow,
    CrmProductRow,
    CrmSalesRow,
    ErpCategoryRow,
    ErpCustomerRow,
    ErpLocationRow,
    StagingRecord,
)
from .warehouse_record import WarehouseRecord

__all__ = [
    "StagingRecord",
    "CrmCustomerRow",
    "CrmProductRow",
    "CrmSalesRow",
    "ErpCustomerRow",
    "ErpLocationRow",
    "ErpCategoryRow",
    "WarehouseRecord",
    "CustomerDimensionRecord",
    "CustomerDemographicsRecord",
    "CustomerLocationRecord",
    "ProductDimensionRecord",
    "ProductCategoryRecord",
    "SalesFactRecord",
    "TargetIdentity",
    "StepFailure",
    "StepResult",
    "BatchResult",
    "TargetStatus",
    "VerificationReport",
]
