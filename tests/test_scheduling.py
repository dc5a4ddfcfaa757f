from __future__ import annotations

from datetime import date

import pytest

from production_tracker.domain import StageConfig
from production_tracker.exceptions import InvalidQuantityError, UnknownStageError
from production_tracker.scheduling import (
    add_working_days,
    build_stage_schedule,
    compute_batch_completion_date,
    is_working_day,
)

THURSDAY = date(2025, 1, 16)
SATURDAY = date(2025, 1, 18)
SUNDAY = date(2025, 1, 19)


def test_only_sunday_is_a_rest_day():
    assert is_working_day(SATURDAY)
    assert not is_working_day(SUNDAY)


def test_add_working_days_skips_sundays():
    assert add_working_days(SATURDAY, 1) == date(2025, 1, 20)
    assert add_working_days(THURSDAY, 3) == date(2025, 1, 20)


def test_zero_days_returns_start_even_on_sunday():
    assert add_working_days(SUNDAY, 0) == SUNDAY


def test_fractional_days_round_up():
    assert add_working_days(THURSDAY, 1.2) == add_working_days(THURSDAY, 2)


def test_end_to_end_schedule(catalog):
    configs = [StageConfig("cutting", "sudheer-rao"), StageConfig("sewing", "arjun-desai")]
    stages = build_stage_schedule(catalog, THURSDAY, configs, [2500])

    cutting, sewing = stages
    assert (cutting.expected_days, cutting.expected_start_date, cutting.expected_end_date) == (
        1,
        date(2025, 1, 16),
        date(2025, 1, 16),
    )
    assert (sewing.expected_days, sewing.expected_start_date, sewing.expected_end_date) == (
        3,
        date(2025, 1, 17),
        date(2025, 1, 20),
    )
    assert [stage.sequence for stage in stages] == [1, 2]


def test_slowest_batch_sets_stage_duration(catalog):
    stages = build_stage_schedule(
        catalog, THURSDAY, [StageConfig("cutting", "sudheer-rao")], [100, 10000]
    )
    assert stages[0].expected_days == 3


def test_custom_names_and_managers_are_carried(catalog):
    stages = build_stage_schedule(
        catalog,
        THURSDAY,
        [StageConfig("packing", "pooja-verma", custom_name="Carton packing")],
        [500],
    )
    assert stages[0].custom_name == "Carton packing"
    assert stages[0].line_manager_id == "pooja-verma"
    assert stages[0].actual_start_date is None


def test_empty_stage_list_gives_empty_schedule(catalog):
    assert build_stage_schedule(catalog, THURSDAY, [], [100]) == []


def test_schedule_requires_quantities(catalog):
    with pytest.raises(InvalidQuantityError):
        build_stage_schedule(catalog, THURSDAY, [StageConfig("cutting", "sudheer-rao")], [])


def test_unknown_stage_aborts_schedule(catalog):
    with pytest.raises(UnknownStageError):
        build_stage_schedule(catalog, THURSDAY, [StageConfig("dyeing", "x")], [100])


def test_batch_completion_uses_only_its_own_quantity(catalog):
    configs = [StageConfig("cutting", "sudheer-rao"), StageConfig("sewing", "arjun-desai")]
    # 1 day cutting, 3 days sewing for 2500 units
    assert compute_batch_completion_date(catalog, THURSDAY, configs, 2500) == date(2025, 1, 21)
    # 1 day cutting, 1 day sewing for 1500 units
    assert compute_batch_completion_date(catalog, THURSDAY, configs, 1500) == date(2025, 1, 18)
