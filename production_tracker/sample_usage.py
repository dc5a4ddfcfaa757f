"""Demonstration script for the production order tracker."""

from __future__ import annotations

from datetime import date, timedelta
from pprint import pprint

from . import BatchInput, OrderDraft, StageConfig, TrackingOptions, TrackingService


def main() -> None:
    tracker = TrackingService(options=TrackingOptions(seed_sample_data=False))
    manager = tracker.login("rajesh-kumar")

    start = date.today()
    draft = OrderDraft(
        order_number="ord-demo-001",
        client_id="fantabulous-clothing",
        brief_description="Denim shorts, stone wash",
        detailed_description="Two sizes, shipped in cartons of fifty.",
        start_date=start,
        deadline=start + timedelta(days=30),
        stages=[
            StageConfig("cutting", "sudheer-rao"),
            StageConfig("sewing", "meera-iyer"),
            StageConfig("washing", "amit-kumar"),
            StageConfig("packing", "pooja-verma", custom_name="Carton packing"),
        ],
        batches=[
            BatchInput("Batch A", "DS-28-BLU", 4200),
            BatchInput("Batch B", "DS-30-BLU", 1500),
        ],
    )
    order = tracker.create_order(draft, manager)

    print("Stage plan")
    for stage in order.stages:
        print(
            f" - {tracker.catalog.stage_name(stage)}: {stage.expected_days} day(s),"
            f" {stage.expected_start_date:%d.%m} - {stage.expected_end_date:%d.%m}"
        )

    print("\nBatch completion")
    for batch in order.batches:
        print(f" - {batch.name} ({batch.quantity} units): {batch.expected_completion_date:%d.%m.%Y}")

    # Shop floor feedback for the first batch
    first = order.batches[0]
    tracker.record_progress(order.id, first.id, "cutting", inward_qty=4200, completed_qty=4200)
    tracker.advance_batch(order.id, first.id)
    tracker.record_progress(
        order.id, first.id, "sewing", inward_qty=4200, completed_qty=1400, defects_found=12
    )

    order = tracker.get_order(order.id)
    print(f"\nOrder status: {tracker.order_status(order).label}")
    print(f"Editable: {tracker.is_editable(order)}")
    for batch in order.batches:
        print(f"\n{batch.name}: {tracker.batch_progress(batch)}% complete")
        pprint(
            [
                (entry.name, entry.status.value, entry.quantity_completed, entry.defect_count)
                for entry in tracker.timeline(batch)
            ]
        )


if __name__ == "__main__":  # pragma: no cover - manual execution
    main()
