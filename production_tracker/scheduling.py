"""Working-day aware stage scheduling."""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import List, Sequence

from .catalog import StageCatalog
from .domain import OrderStage, StageConfig
from .exceptions import InvalidQuantityError

SUNDAY = 6


def is_working_day(day: date) -> bool:
    return day.weekday() != SUNDAY


def add_working_days(start: date, days: float) -> date:
    """Advance ``start`` by ``ceil(days)`` working days.

    Calendar days are stepped one at a time and only non-Sundays are counted.
    The start date itself is never adjusted, so ``add_working_days(d, 0)``
    returns ``d`` even when ``d`` is a Sunday.
    """

    target = math.ceil(days)
    cursor = start
    counted = 0
    while counted < target:
        cursor += timedelta(days=1)
        if is_working_day(cursor):
            counted += 1
    return cursor


def build_stage_schedule(
    catalog: StageCatalog,
    start_date: date,
    stage_configs: Sequence[StageConfig],
    batch_quantities: Sequence[int],
) -> List[OrderStage]:
    """Compute the shared stage schedule for all batches of an order.

    Each stage lasts as long as the slowest batch needs for it, so the
    resulting schedule is uniform across every batch in the order.
    """

    if not stage_configs:
        return []
    if not batch_quantities:
        raise InvalidQuantityError("At least one batch quantity is required to schedule stages")

    schedule: List[OrderStage] = []
    cursor = start_date
    for index, config in enumerate(stage_configs):
        stage_days = max(
            catalog.tier_days_for(config.stage_id, quantity) for quantity in batch_quantities
        )
        schedule.append(
            OrderStage(
                stage_id=config.stage_id,
                custom_name=config.custom_name,
                line_manager_id=config.line_manager_id,
                expected_days=stage_days,
                sequence=index + 1,
                expected_start_date=cursor,
                expected_end_date=add_working_days(cursor, max(stage_days - 1, 0)),
            )
        )
        cursor = add_working_days(cursor, stage_days)
    return schedule


def compute_batch_completion_date(
    catalog: StageCatalog,
    start_date: date,
    stage_configs: Sequence[StageConfig],
    quantity: int,
) -> date:
    """Advisory completion date for a single batch quantity.

    Unlike :func:`build_stage_schedule` this only considers the given quantity,
    answering when this batch alone would finish.
    """

    cursor = start_date
    for config in stage_configs:
        cursor = add_working_days(cursor, catalog.tier_days_for(config.stage_id, quantity))
    return cursor


def reschedule(
    catalog: StageCatalog,
    start_date: date,
    stages: Sequence[OrderStage],
    batch_quantities: Sequence[int],
) -> List[OrderStage]:
    """Rebuild dates for an existing stage list, keeping names and managers."""

    configs = [
        StageConfig(
            stage_id=stage.stage_id,
            line_manager_id=stage.line_manager_id,
            custom_name=stage.custom_name,
        )
        for stage in stages
    ]
    return build_stage_schedule(catalog, start_date, configs, batch_quantities)


__all__ = [
    "is_working_day",
    "add_working_days",
    "build_stage_schedule",
    "compute_batch_completion_date",
    "reschedule",
]
