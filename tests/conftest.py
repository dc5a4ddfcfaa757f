from __future__ import annotations

from datetime import date

import pytest

from production_tracker.domain import StageConfig
from production_tracker.master_data import default_catalog
from production_tracker.services import BatchInput, OrderDraft, TrackingOptions, TrackingService


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def service(catalog):
    return TrackingService(
        catalog=catalog,
        options=TrackingOptions(seed_sample_data=False),
        clock=lambda: date(2025, 1, 16),
    )


@pytest.fixture
def order_manager(catalog):
    return catalog.user("rajesh-kumar")


@pytest.fixture
def production_manager(catalog):
    return catalog.user("kalpesh-patel")


@pytest.fixture
def make_draft():
    return _make_draft


def _make_draft(**overrides) -> OrderDraft:
    values = dict(
        order_number="ord-100",
        client_id="starworks",
        brief_description="Polo shirts",
        start_date=date(2025, 1, 16),
        deadline=date(2025, 2, 28),
        stages=[
            StageConfig("cutting", "sudheer-rao"),
            StageConfig("sewing", "arjun-desai"),
        ],
        batches=[
            BatchInput("Batch A", "PL-S-WHT", 2500),
            BatchInput("Batch B", "PL-M-WHT", 1800),
        ],
    )
    values.update(overrides)
    return OrderDraft(**values)
