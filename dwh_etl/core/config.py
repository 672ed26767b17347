"""
Pipeline configuration management.

Loads the ordered load steps, staging namespace and reference sets from a
YAML file and validates them into pydantic models.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from dwh_etl.core.errors import ConfigError
from dwh_etl.core.models import TargetIdentity

DEFAULT_CONFIG_PATH = Path("config/pipeline.yaml")


class ReferenceSource(BaseModel):
    """Staging table and key column backing one reference set."""

    table: str = Field(..., min_length=1)
    key: str = Field(..., min_length=1)


class StepConfig(BaseModel):
    """One load step: which transform populates which target."""

    target: TargetIdentity
    transform: str = Field(..., min_length=1)

    @field_validator("target", mode="before")
    @classmethod
    def parse_target(cls, v):
        if isinstance(v, str):
            return TargetIdentity.parse(v)
        return v


class PipelineConfig(BaseModel):
    """
    Validated pipeline configuration.

    Attributes:
        staging_namespace: Schema holding the staging tables
        lock_key: Advisory lock key owned by a running batch
        reference_sets: Reference set name -> backing staging table
        steps: Load steps in execution order
        verify_targets: Targets checked after commit (defaults to step targets)
    """

    staging_namespace: str = "staging"
    lock_key: int = 0
    reference_sets: dict[str, ReferenceSource] = Field(default_factory=dict)
    steps: list[StepConfig] = Field(..., min_length=1)
    verify_targets: list[TargetIdentity] | None = None

    @field_validator("verify_targets", mode="before")
    @classmethod
    def parse_verify_targets(cls, v):
        if v is None:
            return v
        return [TargetIdentity.parse(t) if isinstance(t, str) else t for t in v]

    @field_validator("steps")
    @classmethod
    def check_unique_targets(cls, v):
        """A target may only be populated by one step per batch."""
        seen = set()
        for step in v:
            if step.target in seen:
                raise ValueError(f"Target {step.target} is loaded by more than one step")
            seen.add(step.target)
        return v

    @property
    def expected_targets(self) -> list[TargetIdentity]:
        if self.verify_targets is not None:
            return list(self.verify_targets)
        return [step.target for step in self.steps]


def parse_pipeline_config(raw: dict[str, Any]) -> PipelineConfig:
    """
    Validate a raw configuration mapping.

    Expected shape:
    ```yaml
    pipeline:
      staging_namespace: staging
      lock_key: 724301
      reference_sets:
        product_categories:
          table: erp_product_maintenance
          key: id
      steps:
        - target: dw_product.product_categories
          transform: product_categories
    ```

    Raises:
        ConfigError: If the mapping is missing the pipeline section or is invalid
    """
    if not raw or "pipeline" not in raw:
        raise ConfigError("Configuration file must contain 'pipeline' section")

    try:
        return PipelineConfig(**raw["pipeline"])
    except (ValidationError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid pipeline configuration: {e}") from e


class PipelineConfigLoader:
    """Loads the pipeline configuration from a YAML file."""

    def __init__(self, config_path: str | Path = DEFAULT_CONFIG_PATH):
        """
        Initialize the config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Pipeline configuration file not found: {config_path}")

    def load(self) -> PipelineConfig:
        """
        Load and validate the configuration.

        Raises:
            ConfigError: If the YAML is malformed or fails validation
        """
        try:
            with open(self.config_path) as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Malformed YAML in {self.config_path}: {e}") from e

        return parse_pipeline_config(raw)
