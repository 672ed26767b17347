"""
Batch load orchestration: step descriptors, atomic execution and verification.
"""

from .orchestrator import LoadOrchestrator
from .pipeline import WarehouseLoadPipeline
from .steps import TRANSFORM_REGISTRY, LoadStep, build_load_steps
from .verification import TargetVerifier

__all__ = [
    "LoadOrchestrator",
    "LoadStep",
    "TRANSFORM_REGISTRY",
    "build_load_steps",
    "TargetVerifier",
    "WarehouseLoadPipeline",
]
