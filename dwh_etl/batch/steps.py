"""
Load step descriptors and the registry of entity transforms.

A step pairs a target identity with a zero-argument transform call; the
orchestrator derives the step index from the step's position.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import partial

from dwh_etl.core.config import PipelineConfig
from dwh_etl.core.errors import ConfigError
from dwh_etl.core.models import (
    CrmCustomerRow,
    CrmProductRow,
    CrmSalesRow,
    CustomerDemographicsRecord,
    CustomerDimensionRecord,
    CustomerLocationRecord,
    ErpCategoryRow,
    ErpCustomerRow,
    ErpLocationRow,
    ProductCategoryRecord,
    ProductDimensionRecord,
    SalesFactRecord,
    StagingRecord,
    TargetIdentity,
    WarehouseRecord,
)
from dwh_etl.transform import (
    transform_customer_demographics,
    transform_customer_locations,
    transform_customers,
    transform_product_categories,
    transform_products,
    transform_sales,
)
from dwh_etl.warehouse.reference import ReferenceData
from dwh_etl.warehouse.staging import StagingReader


@dataclass(frozen=True)
class LoadStep:
    """
    One unit of a batch.

    Attributes:
        target: Output table
        transform: Produces the rows for the target; called inside the batch
        record_type: Output model; defines the target columns
    """

    target: TargetIdentity
    transform: Callable[[], Sequence[WarehouseRecord]]
    record_type: type[WarehouseRecord]

    @property
    def columns(self) -> list[str]:
        return self.record_type.columns()


@dataclass(frozen=True)
class EntityTransform:
    """How to build one output entity from its staging table."""

    staging_table: str
    staging_model: type[StagingRecord]
    record_type: type[WarehouseRecord]
    apply: Callable[..., list]
    reference_set: str | None = None


TRANSFORM_REGISTRY: dict[str, EntityTransform] = {
    "customers": EntityTransform(
        "crm_cust_info", CrmCustomerRow, CustomerDimensionRecord, transform_customers
    ),
    "products": EntityTransform(
        "crm_prd_info", CrmProductRow, ProductDimensionRecord, transform_products,
        reference_set="product_categories",
    ),
    "sales": EntityTransform(
        "crm_sales_details", CrmSalesRow, SalesFactRecord, transform_sales
    ),
    "customer_demographics": EntityTransform(
        "erp_customer_info", ErpCustomerRow, CustomerDemographicsRecord, transform_customer_demographics
    ),
    "customer_locations": EntityTransform(
        "erp_customer_country", ErpLocationRow, CustomerLocationRecord, transform_customer_locations
    ),
    "product_categories": EntityTransform(
        "erp_product_maintenance", ErpCategoryRow, ProductCategoryRecord, transform_product_categories
    ),
}


def run_entity_transform(
    entity: EntityTransform,
    reader: StagingReader,
    reference: ReferenceData,
) -> list[WarehouseRecord]:
    """Read the entity's staging batch and apply its transform."""
    rows = reader.read(entity.staging_table, entity.staging_model)
    if entity.reference_set is not None:
        return entity.apply(rows, reference.lookup_set(entity.reference_set))
    return entity.apply(rows)


def build_load_steps(
    config: PipelineConfig,
    reader: StagingReader,
    reference: ReferenceData,
) -> list[LoadStep]:
    """
    Build the ordered load steps declared in the configuration.

    Raises:
        ConfigError: If a step names an unknown transform or a reference set
            that is not configured
    """
    steps = []
    for step_config in config.steps:
        entity = TRANSFORM_REGISTRY.get(step_config.transform)
        if entity is None:
            raise ConfigError(
                f"Unknown transform '{step_config.transform}' for target {step_config.target}"
            )
        if entity.reference_set is not None and entity.reference_set not in config.reference_sets:
            raise ConfigError(
                f"Transform '{step_config.transform}' needs reference set '{entity.reference_set}'"
            )

        steps.append(
            LoadStep(
                target=step_config.target,
                transform=partial(run_entity_transform, entity, reader, reference),
                record_type=entity.record_type,
            )
        )
    return steps
