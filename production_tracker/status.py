"""Status evaluation: progress percentages, timelines and rollups."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, List, Optional

from .catalog import StageCatalog
from .domain import Batch, BatchStatus, Order, OrderStage
from .progress import latest_completed_qty, total_defects


class StageTimelineStatus(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    UPCOMING = "upcoming"


class VerdictKind(str, Enum):
    ON_TIME = "on_time"
    EARLY = "early"
    DELAYED = "delayed"
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    REMAINING = "remaining"


@dataclass(frozen=True, slots=True)
class StageVerdict:
    """Timing comparison of a stage against its expected end date."""

    kind: VerdictKind
    days: int

    @property
    def is_delayed(self) -> bool:
        return self.kind == VerdictKind.DELAYED

    @property
    def text(self) -> str:
        if self.kind == VerdictKind.ON_TIME:
            return "Completed on time"
        if self.kind == VerdictKind.EARLY:
            return f"Completed {self.days} day(s) early"
        if self.kind == VerdictKind.DELAYED:
            return f"Delayed by {self.days} day(s)"
        if self.kind == VerdictKind.OVERDUE:
            return f"Overdue by {self.days} day(s)"
        if self.kind == VerdictKind.DUE_TODAY:
            return "Due today"
        return f"{self.days} day(s) remaining"


@dataclass(slots=True)
class TimelineStage:
    """Display-ready summary of one stage of a batch."""

    key: str
    name: str
    manager_name: str
    status: StageTimelineStatus
    is_delayed: bool
    quantity_completed: int
    target_quantity: int
    defect_count: int
    progress_percent: int
    stage: OrderStage
    verdict: Optional[StageVerdict] = None
    duration_text: Optional[str] = None
    estimated_duration_text: Optional[str] = None


def _round_percent(fraction: float) -> int:
    # half-up, 0.5 must not round to even
    return int(math.floor(fraction * 100 + 0.5))


def batch_progress_percent(batch: Batch) -> int:
    """Overall completion of a batch as an integer percentage.

    Every stage carries an equal share regardless of its duration; stages
    before the current one count as done and the current stage contributes
    the fraction of the batch quantity completed so far.
    """

    total_stages = len(batch.stages) or 1
    current_idx = min(max(batch.current_stage_index, 0), total_stages - 1)
    fraction_in_current = 0.0
    if batch.stages and batch.quantity > 0:
        stage_id = batch.stages[current_idx].stage_id
        fraction_in_current = min(1.0, latest_completed_qty(batch, stage_id) / batch.quantity)
    overall = current_idx / total_stages + fraction_in_current / total_stages
    return _round_percent(min(1.0, overall))


def timeline_stage_status(batch: Batch, stage_index: int) -> StageTimelineStatus:
    if batch.current_stage_index >= len(batch.stages):
        return StageTimelineStatus.COMPLETED
    current_idx = max(batch.current_stage_index, 0)
    if stage_index < current_idx:
        return StageTimelineStatus.COMPLETED
    if stage_index == current_idx:
        return StageTimelineStatus.CURRENT
    return StageTimelineStatus.UPCOMING


def stage_timing_verdict(
    stage: OrderStage,
    status: StageTimelineStatus,
    today: Optional[date] = None,
) -> Optional[StageVerdict]:
    """Compare a stage's dates with its schedule.

    Completed stages compare the actual against the expected end date; the
    current stage compares today against the expected end date. Upcoming
    stages, and stages missing the needed dates, have no verdict.
    """

    if status == StageTimelineStatus.COMPLETED:
        if stage.actual_end_date is None or stage.expected_end_date is None:
            return None
        diff = (stage.actual_end_date - stage.expected_end_date).days
        if diff == 0:
            return StageVerdict(VerdictKind.ON_TIME, 0)
        if diff < 0:
            return StageVerdict(VerdictKind.EARLY, abs(diff))
        return StageVerdict(VerdictKind.DELAYED, diff)

    if status == StageTimelineStatus.CURRENT:
        if stage.expected_end_date is None:
            return None
        today = today or date.today()
        remaining = (stage.expected_end_date - today).days
        if remaining < 0:
            return StageVerdict(VerdictKind.OVERDUE, abs(remaining))
        if remaining == 0:
            return StageVerdict(VerdictKind.DUE_TODAY, 0)
        return StageVerdict(VerdictKind.REMAINING, remaining)

    return None


def worst_status(statuses: Iterable[BatchStatus]) -> BatchStatus:
    worst = BatchStatus.ON_TIME
    for status in statuses:
        if status.severity > worst.severity:
            worst = status
    return worst


def order_rollup_status(order: Order) -> BatchStatus:
    """Worst-case status across the order's batches."""

    return worst_status(batch.status for batch in order.batches)


def can_edit_order(order: Order) -> bool:
    """An order stays editable until any batch records progress."""

    return all(not batch.progress for batch in order.batches)


def derive_batch_status(
    batch: Batch,
    today: Optional[date] = None,
    *,
    at_risk_days: int = 1,
) -> BatchStatus:
    """Compute a status from the schedule without touching ``batch.status``.

    A batch is delayed when a completed stage finished late or the current
    stage is overdue, and at risk when the current stage is unfinished and
    due within ``at_risk_days``.
    """

    today = today or date.today()
    status = BatchStatus.ON_TIME
    for index, stage in enumerate(batch.stages):
        stage_status = timeline_stage_status(batch, index)
        verdict = stage_timing_verdict(stage, stage_status, today)
        if verdict is None:
            continue
        if verdict.kind in (VerdictKind.DELAYED, VerdictKind.OVERDUE):
            return BatchStatus.DELAYED
        if (
            stage_status == StageTimelineStatus.CURRENT
            and verdict.kind in (VerdictKind.DUE_TODAY, VerdictKind.REMAINING)
            and verdict.days <= at_risk_days
            and latest_completed_qty(batch, stage.stage_id) < batch.quantity
        ):
            status = BatchStatus.AT_RISK
    return status


def _inclusive_days(start: Optional[date], end: Optional[date]) -> Optional[int]:
    if start is None or end is None:
        return None
    count = (end - start).days + 1
    return count if count > 0 else None


def build_timeline(
    batch: Batch,
    catalog: StageCatalog,
    today: Optional[date] = None,
) -> List[TimelineStage]:
    """Describe every stage of a batch for timeline and sheet rendering."""

    stages = sorted(batch.stages, key=lambda stage: stage.sequence)
    timeline: List[TimelineStage] = []
    for index, stage in enumerate(stages):
        status = timeline_stage_status(batch, index)
        quantity_completed = latest_completed_qty(batch, stage.stage_id)
        if status == StageTimelineStatus.COMPLETED and quantity_completed == 0:
            quantity_completed = batch.quantity
        if status == StageTimelineStatus.UPCOMING:
            quantity_completed = 0
        progress_percent = (
            _round_percent(min(1.0, quantity_completed / batch.quantity)) if batch.quantity else 0
        )

        verdict = stage_timing_verdict(stage, status, today)
        duration = None
        if status == StageTimelineStatus.COMPLETED:
            duration = _inclusive_days(stage.actual_start_date, stage.actual_end_date)
        estimated = _inclusive_days(stage.expected_start_date, stage.expected_end_date)

        timeline.append(
            TimelineStage(
                key=f"{stage.stage_id}-{index}",
                name=catalog.stage_name(stage),
                manager_name=catalog.line_manager_name(stage.line_manager_id),
                status=status,
                is_delayed=bool(verdict and verdict.is_delayed),
                quantity_completed=quantity_completed,
                target_quantity=batch.quantity,
                defect_count=total_defects(batch, stage.stage_id),
                progress_percent=progress_percent,
                stage=stage,
                verdict=verdict,
                duration_text=f"Took {duration} day(s)" if duration else None,
                estimated_duration_text=f"{estimated} day(s)" if estimated else None,
            )
        )
    return timeline


__all__ = [
    "StageTimelineStatus",
    "VerdictKind",
    "StageVerdict",
    "TimelineStage",
    "batch_progress_percent",
    "timeline_stage_status",
    "stage_timing_verdict",
    "worst_status",
    "order_rollup_status",
    "can_edit_order",
    "derive_batch_status",
    "build_timeline",
]
