"""Demonstration orders used to populate an empty store."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import List, Sequence, Tuple

from .catalog import StageCatalog
from .domain import Batch, BatchStatus, Order, ProgressEntry, StageConfig, copy_stages
from .progress import advance_stage, record_progress
from .scheduling import build_stage_schedule, compute_batch_completion_date

# name, sku, quantity, current stage index, status, fraction done in the current stage
BatchSpec = Tuple[str, str, int, int, BatchStatus, float]


def _progress_batch(batch: Batch, target_index: int, fraction: float, slip_days: int) -> Batch:
    """Walk a batch forward, recording a ledger entry for every stage it touches."""

    for index in range(min(target_index, len(batch.stages))):
        stage = batch.stages[index]
        finished = stage.expected_end_date + timedelta(days=slip_days)
        batch = record_progress(
            batch,
            stage.stage_id,
            ProgressEntry(
                time=datetime.combine(finished, time(17, 0)),
                inward_qty=batch.quantity,
                completed_qty=batch.quantity,
                pending_qty=0,
                out_qty=batch.quantity,
                defects_found=(batch.quantity // 500) + index,
            ),
        )
        batch = advance_stage(batch, finished)
    if target_index < len(batch.stages) and fraction > 0:
        stage = batch.stages[target_index]
        completed = int(batch.quantity * fraction)
        batch = record_progress(
            batch,
            stage.stage_id,
            ProgressEntry(
                time=datetime.combine(stage.expected_start_date, time(12, 0)),
                inward_qty=batch.quantity,
                completed_qty=completed,
                pending_qty=batch.quantity - completed,
                out_qty=completed,
                defects_found=completed // 1000,
            ),
        )
    return batch


def _sample_order(
    catalog: StageCatalog,
    *,
    order_number: str,
    client_id: str,
    created_by: str,
    brief: str,
    detail: str,
    created: date,
    start: date,
    deadline: date,
    configs: Sequence[StageConfig],
    batch_specs: Sequence[BatchSpec],
    slip_days: int = 0,
) -> Order:
    order_id = f"order-{order_number.lower()}"
    stages = build_stage_schedule(catalog, start, configs, [spec[2] for spec in batch_specs])
    batches: List[Batch] = []
    for position, (name, sku, quantity, index, status, fraction) in enumerate(batch_specs):
        batch = Batch(
            id=f"batch-{order_number.lower()}-{chr(65 + position)}",
            name=name,
            quantity=quantity,
            order_id=order_id,
            sku=sku,
            created_date=start,
            expected_completion_date=compute_batch_completion_date(catalog, start, configs, quantity),
            stages=copy_stages(stages),
            status=status,
        )
        batches.append(_progress_batch(batch, index, fraction, slip_days))
    return Order(
        id=order_id,
        order_number=order_number,
        client_id=client_id,
        brief_description=brief,
        detailed_description=detail,
        created_by=created_by,
        created_date=created,
        deadline=deadline,
        stages=stages,
        batches=batches,
    )


def build_sample_orders(catalog: StageCatalog) -> List[Order]:
    return [
        _sample_order(
            catalog,
            order_number="ORD-2025-001",
            client_id="purethrill-kids-garments",
            created_by="rajesh-kumar",
            brief="Summer Collection - Organic Cotton Tees",
            detail="Half sleeve tees in organic cotton, three colourways.",
            created=date(2025, 1, 15),
            start=date(2025, 1, 16),
            deadline=date(2025, 3, 15),
            configs=[
                StageConfig("cutting", "sudheer-rao"),
                StageConfig("sewing", "arjun-desai"),
                StageConfig("quality-check", "kiran-joshi"),
                StageConfig("packing", "rahul-gupta"),
            ],
            batch_specs=[
                ("Batch A", "S-6Y-GRN-HALF", 2500, 1, BatchStatus.ON_TIME, 0.4),
                ("Batch B", "S-8Y-BLU-HALF", 2500, 0, BatchStatus.AT_RISK, 0.6),
                ("Batch C", "S-10Y-RED-HALF", 1800, 2, BatchStatus.ON_TIME, 0.25),
            ],
        ),
        _sample_order(
            catalog,
            order_number="ORD-2025-002",
            client_id="kiddy-gems",
            created_by="priya-menon",
            brief="Winter Hoodies Collection",
            detail="Fleece lined hoodies with printed front panel.",
            created=date(2025, 1, 28),
            start=date(2025, 2, 1),
            deadline=date(2025, 4, 10),
            configs=[
                StageConfig("procurement", "rajesh-mehta"),
                StageConfig("cutting", "kavita-nair"),
                StageConfig("sewing", "meera-iyer"),
                StageConfig("washing", "sneha-patel"),
                StageConfig("packing", "pooja-verma"),
            ],
            batch_specs=[
                ("Batch D", "H-4Y-GRY-FLC", 3000, 0, BatchStatus.DELAYED, 0.1),
                ("Batch E", "H-6Y-NVY-FLC", 2000, 1, BatchStatus.ON_TIME, 0.5),
            ],
            slip_days=2,
        ),
        _sample_order(
            catalog,
            order_number="ORD-2025-003",
            client_id="starworks",
            created_by="rajesh-kumar",
            brief="Spring Casual Shirts",
            detail="Poplin shirts with contrast collar.",
            created=date(2025, 2, 10),
            start=date(2025, 2, 11),
            deadline=date(2025, 3, 25),
            configs=[
                StageConfig("cutting", "kavita-nair"),
                StageConfig("sewing", "arjun-desai"),
                StageConfig("ironing", "vikram-singh"),
                StageConfig("quality-check", "deepa-menon"),
                StageConfig("packing", "rahul-gupta"),
            ],
            batch_specs=[
                ("Batch F", "SH-M-WHT-POP", 4000, 4, BatchStatus.ON_TIME, 0.75),
                ("Batch G", "SH-L-BLU-POP", 3500, 2, BatchStatus.AT_RISK, 0.3),
            ],
        ),
    ]


__all__ = ["build_sample_orders"]
