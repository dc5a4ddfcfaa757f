from __future__ import annotations

from datetime import date

import pytest

from production_tracker.domain import (
    Batch,
    BatchStatus,
    Order,
    StageConfig,
    copy_stages,
    with_batch_updated,
    with_stage_moved,
    with_stages,
)
from production_tracker.scheduling import build_stage_schedule

START = date(2025, 1, 16)


@pytest.fixture
def order(catalog):
    stages = build_stage_schedule(
        catalog,
        START,
        [
            StageConfig("cutting", "sudheer-rao"),
            StageConfig("sewing", "arjun-desai"),
            StageConfig("packing", "rahul-gupta"),
        ],
        [1000],
    )
    batch = Batch(
        id="batch-a",
        name="Batch A",
        quantity=1000,
        order_id="order-a",
        sku="SKU",
        created_date=START,
        expected_completion_date=START,
        stages=copy_stages(stages),
    )
    return Order(
        id="order-a",
        order_number="ORD-A",
        client_id="starworks",
        brief_description="Shirts",
        created_by="rajesh-kumar",
        created_date=START,
        deadline=START,
        stages=stages,
        batches=[batch],
    )


def test_batch_quantity_must_be_positive():
    with pytest.raises(ValueError):
        Batch("b", "B", 0, "o", "sku", START, START)


def test_batch_stages_are_independent_copies(order):
    order.batches[0].stages[0].actual_start_date = START
    assert order.stages[0].actual_start_date is None


def test_move_stage_reorders_order_and_batches(order):
    moved = with_stage_moved(order, 2, 0)

    assert [stage.stage_id for stage in moved.stages] == ["packing", "cutting", "sewing"]
    assert [stage.sequence for stage in moved.stages] == [1, 2, 3]
    assert [stage.stage_id for stage in moved.batches[0].stages] == ["packing", "cutting", "sewing"]
    assert [stage.stage_id for stage in order.stages] == ["cutting", "sewing", "packing"]


def test_move_stage_clamps_target_and_rejects_bad_source(order):
    moved = with_stage_moved(order, 0, 10)
    assert moved.stages[-1].stage_id == "cutting"
    with pytest.raises(IndexError):
        with_stage_moved(order, 5, 0)


def test_with_stages_keeps_actual_dates_for_same_stage(order):
    order.batches[0].stages[0].actual_start_date = START
    updated = with_stages(order, order.stages[:2])

    assert len(updated.batches[0].stages) == 2
    assert updated.batches[0].stages[0].actual_start_date == START
    assert updated.stages[0].actual_start_date is None


def test_with_batch_updated(order):
    updated = with_batch_updated(order, "batch-a", status=BatchStatus.DELAYED)

    assert updated.batch("batch-a").status == BatchStatus.DELAYED
    assert order.batch("batch-a").status == BatchStatus.ON_TIME
    with pytest.raises(ValueError):
        with_batch_updated(order, "batch-a", stages=[])
    with pytest.raises(KeyError):
        with_batch_updated(order, "batch-z", status=BatchStatus.DELAYED)
