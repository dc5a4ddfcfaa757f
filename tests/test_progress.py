from __future__ import annotations

from datetime import date, datetime

import pytest

from production_tracker.domain import Batch, ProgressEntry, StageConfig, copy_stages
from production_tracker.exceptions import BatchCompleteError, UnknownStageError
from production_tracker.progress import (
    advance_stage,
    batch_total_defects,
    latest_completed_qty,
    record_progress,
    total_defects,
)
from production_tracker.scheduling import build_stage_schedule


@pytest.fixture
def batch(catalog):
    stages = build_stage_schedule(
        catalog,
        date(2025, 1, 16),
        [StageConfig("cutting", "sudheer-rao"), StageConfig("sewing", "arjun-desai")],
        [1000],
    )
    return Batch(
        id="batch-a",
        name="Batch A",
        quantity=1000,
        order_id="order-a",
        sku="SKU",
        created_date=date(2025, 1, 16),
        expected_completion_date=date(2025, 1, 18),
        stages=copy_stages(stages),
    )


def entry(completed: int, defects: int = 0) -> ProgressEntry:
    return ProgressEntry(time=datetime(2025, 1, 16, 12), completed_qty=completed, defects_found=defects)


def test_record_progress_returns_new_batch(batch):
    updated = record_progress(batch, "cutting", entry(400))

    assert batch.progress == {}
    assert latest_completed_qty(updated, "cutting") == 400
    assert latest_completed_qty(updated, "sewing") == 0


def test_latest_entry_wins_even_when_lower(batch):
    batch = record_progress(batch, "cutting", entry(600))
    batch = record_progress(batch, "cutting", entry(500))
    assert latest_completed_qty(batch, "cutting") == 500


def test_defects_accumulate(batch):
    batch = record_progress(batch, "cutting", entry(300, defects=2))
    batch = record_progress(batch, "cutting", entry(600, defects=3))
    batch = record_progress(batch, "sewing", entry(100, defects=1))
    assert total_defects(batch, "cutting") == 5
    assert total_defects(batch, "packing") == 0
    assert batch_total_defects(batch) == 6


def test_recording_against_stage_outside_batch_fails(batch):
    with pytest.raises(UnknownStageError):
        record_progress(batch, "washing", entry(10))


def test_negative_quantities_are_rejected():
    with pytest.raises(ValueError):
        ProgressEntry(time=datetime(2025, 1, 16), completed_qty=-1)


def test_advance_stamps_actual_dates(batch):
    moved = advance_stage(batch, date(2025, 1, 17))

    assert moved.current_stage_index == 1
    assert moved.stages[0].actual_start_date == date(2025, 1, 17)
    assert moved.stages[0].actual_end_date == date(2025, 1, 17)
    assert moved.stages[1].actual_start_date == date(2025, 1, 17)
    assert batch.stages[0].actual_end_date is None

    done = advance_stage(moved, date(2025, 1, 20))
    assert done.is_complete
    assert done.stages[1].actual_start_date == date(2025, 1, 17)
    assert done.stages[1].actual_end_date == date(2025, 1, 20)


def test_completed_batch_cannot_advance(batch):
    batch = advance_stage(advance_stage(batch, date(2025, 1, 17)), date(2025, 1, 18))
    with pytest.raises(BatchCompleteError):
        advance_stage(batch, date(2025, 1, 19))
