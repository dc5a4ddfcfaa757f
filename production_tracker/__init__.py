"""Production order tracking for a garment manufacturing line.

This package provides data models, working-day scheduling, progress and
status evaluation, JSON document persistence, and a small web interface for
following batches of an order through stages such as cutting, sewing,
washing, ironing, quality check and packing.
"""

from .catalog import StageCatalog
from .domain import (
    Batch,
    BatchStatus,
    Order,
    OrderStage,
    ProgressEntry,
    StageConfig,
    StageDefinition,
    StageTier,
    User,
    UserRole,
)
from .master_data import default_catalog
from .services import BatchInput, OrderDraft, TrackingOptions, TrackingService

__all__ = [
    "StageCatalog",
    "Batch",
    "BatchStatus",
    "Order",
    "OrderStage",
    "ProgressEntry",
    "StageConfig",
    "StageDefinition",
    "StageTier",
    "User",
    "UserRole",
    "default_catalog",
    "BatchInput",
    "OrderDraft",
    "TrackingOptions",
    "TrackingService",
]
