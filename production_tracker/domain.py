"""Core data structures for the production order tracking system."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple


class UserRole(str, Enum):
    """Roles a user can select when working with the tracker."""

    ORDER_MANAGER = "OrderManager"
    PRODUCTION_MANAGER = "ProductionManager"
    OPERATIONS = "Operations"


class BatchStatus(str, Enum):
    """Schedule adherence of a batch, ordered from best to worst."""

    ON_TIME = "on_time"
    AT_RISK = "at_risk"
    DELAYED = "delayed"

    @property
    def label(self) -> str:
        return {
            BatchStatus.ON_TIME: "On Time",
            BatchStatus.AT_RISK: "At Risk",
            BatchStatus.DELAYED: "Delayed",
        }[self]

    @property
    def severity(self) -> int:
        return {
            BatchStatus.ON_TIME: 0,
            BatchStatus.AT_RISK: 1,
            BatchStatus.DELAYED: 2,
        }[self]


@dataclass(frozen=True, slots=True)
class StageTier:
    """Quantity threshold mapped to an estimated number of days."""

    max_units: int
    days: int


@dataclass(frozen=True, slots=True)
class StageDefinition:
    """A manufacturing stage with its tiered day estimates."""

    id: str
    name: str
    tiers: Tuple[StageTier, ...]

    def __post_init__(self) -> None:
        if not self.tiers:
            raise ValueError(f"Stage {self.id!r} must define at least one tier")
        thresholds = [tier.max_units for tier in self.tiers]
        if thresholds != sorted(thresholds):
            raise ValueError(
                f"Tiers of stage {self.id!r} must be sorted ascending by max_units"
            )


@dataclass(frozen=True, slots=True)
class LineManager:
    """Shop floor manager responsible for one or more stages."""

    id: str
    name: str
    eligible_stage_ids: FrozenSet[str] = frozenset()


@dataclass(frozen=True, slots=True)
class Client:
    """Customer master data."""

    id: str
    name: str


@dataclass(frozen=True, slots=True)
class User:
    """A selectable user record; no credentials are attached."""

    id: str
    name: str
    role: UserRole


@dataclass(frozen=True, slots=True)
class StageConfig:
    """Stage blueprint chosen when an order is created, independent of quantity."""

    stage_id: str
    line_manager_id: str
    custom_name: Optional[str] = None


@dataclass(slots=True)
class OrderStage:
    """Scheduled instance of a stage within an order or batch."""

    stage_id: str
    line_manager_id: str
    expected_days: int
    sequence: int
    expected_start_date: date
    expected_end_date: date
    custom_name: Optional[str] = None
    actual_start_date: Optional[date] = None
    actual_end_date: Optional[date] = None


@dataclass(frozen=True, slots=True)
class ProgressEntry:
    """Snapshot of the quantities in a stage at a point in time."""

    time: datetime
    inward_qty: int = 0
    completed_qty: int = 0
    pending_qty: int = 0
    out_qty: int = 0
    defects_found: int = 0

    def __post_init__(self) -> None:
        for name in ("inward_qty", "completed_qty", "pending_qty", "out_qty", "defects_found"):
            if getattr(self, name) < 0:
                raise ValueError(f"Progress quantity {name} must not be negative")


@dataclass(slots=True)
class Batch:
    """A sub-quantity of an order moving through the stage pipeline."""

    id: str
    name: str
    quantity: int
    order_id: str
    sku: str
    created_date: date
    expected_completion_date: date
    stages: List[OrderStage] = field(default_factory=list)
    progress: Dict[str, List[ProgressEntry]] = field(default_factory=dict)
    current_stage_index: int = 0
    status: BatchStatus = BatchStatus.ON_TIME

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(f"Batch {self.id!r} must have a positive quantity")

    @property
    def is_complete(self) -> bool:
        return bool(self.stages) and self.current_stage_index >= len(self.stages)

    @property
    def has_progress(self) -> bool:
        return len(self.progress) > 0


@dataclass(slots=True)
class Order:
    """A production order whose batches share one stage schedule."""

    id: str
    order_number: str
    client_id: str
    brief_description: str
    created_by: str
    created_date: date
    deadline: date
    detailed_description: str = ""
    stages: List[OrderStage] = field(default_factory=list)
    batches: List[Batch] = field(default_factory=list)

    def batch(self, batch_id: str) -> Batch:
        for batch in self.batches:
            if batch.id == batch_id:
                return batch
        raise KeyError(f"Batch {batch_id!r} is not part of order {self.id!r}")


def copy_stages(stages: Sequence[OrderStage]) -> List[OrderStage]:
    """Return detached copies so batches never share mutable stage objects."""

    return [replace(stage) for stage in stages]


def resequence(stages: Sequence[OrderStage]) -> List[OrderStage]:
    return [replace(stage, sequence=index + 1) for index, stage in enumerate(stages)]


def with_stages(order: Order, stages: Sequence[OrderStage]) -> Order:
    """Install a new stage blueprint on the order and on every batch.

    Actual dates already stamped on a batch stage survive when the stage id at
    that position is unchanged.
    """

    blueprint = resequence(stages)
    batches = []
    for batch in order.batches:
        batch_stages = copy_stages(blueprint)
        for index, stage in enumerate(batch_stages):
            if index < len(batch.stages) and batch.stages[index].stage_id == stage.stage_id:
                stage.actual_start_date = batch.stages[index].actual_start_date
                stage.actual_end_date = batch.stages[index].actual_end_date
        batches.append(replace(batch, stages=batch_stages))
    return replace(order, stages=blueprint, batches=batches)


def with_stage_moved(order: Order, index: int, new_index: int) -> Order:
    """Return a copy of the order with one stage moved to a new position."""

    count = len(order.stages)
    if not 0 <= index < count:
        raise IndexError(f"Stage index {index} out of range for {count} stages")
    new_index = max(0, min(new_index, count - 1))
    if new_index == index:
        return order

    def reorder(stages: Sequence[OrderStage]) -> List[OrderStage]:
        moved = list(stages)
        moved.insert(new_index, moved.pop(index))
        return resequence(moved)

    batches = [replace(batch, stages=reorder(batch.stages)) for batch in order.batches]
    return replace(order, stages=reorder(order.stages), batches=batches)


def with_batch_updated(order: Order, batch_id: str, **changes) -> Order:
    """Return a copy of the order with the given fields of one batch replaced."""

    if "stages" in changes:
        raise ValueError("Batch stages follow the order blueprint; use with_stages")
    order.batch(batch_id)
    batches = [
        replace(batch, **changes) if batch.id == batch_id else batch
        for batch in order.batches
    ]
    return replace(order, batches=batches)


def with_batch(order: Order, updated: Batch) -> Order:
    """Return a copy of the order where the batch with the same id is replaced."""

    order.batch(updated.id)
    batches = [updated if batch.id == updated.id else batch for batch in order.batches]
    return replace(order, batches=batches)


__all__ = [
    "UserRole",
    "BatchStatus",
    "StageTier",
    "StageDefinition",
    "LineManager",
    "Client",
    "User",
    "StageConfig",
    "OrderStage",
    "ProgressEntry",
    "Batch",
    "Order",
    "copy_stages",
    "resequence",
    "with_stages",
    "with_stage_moved",
    "with_batch_updated",
    "with_batch",
]
