from __future__ import annotations

import json
import logging
import sqlite3

import pytest

from production_tracker.exceptions import MalformedDocumentError
from production_tracker.repository import (
    CURRENT_USER_KEY,
    ORDERS_KEY,
    DuplicateRecordError,
    InMemoryDocumentStore,
    OrderRepository,
    RecordNotFoundError,
)
from production_tracker.sample_data import build_sample_orders
from production_tracker.serialization import (
    dumps_orders,
    loads_orders,
    order_from_dict,
    order_to_dict,
    stage_from_dict,
)
from production_tracker.storage import SQLiteDocumentStore, TrackerDatabase


@pytest.fixture
def sample_orders(catalog):
    return build_sample_orders(catalog)


def test_orders_document_uses_camel_case(sample_orders):
    data = order_to_dict(sample_orders[0])

    assert data["orderNumber"] == "ORD-2025-001"
    assert data["clientId"] == "purethrill-kids-garments"
    batch = data["batches"][0]
    assert batch["expectedCompletionDate"] == "2025-01-23"
    assert batch["stages"][0]["expectedStartDate"] == "2025-01-16"
    assert set(batch["progress"]["cutting"][0]) == {
        "time",
        "inwardQty",
        "completedQty",
        "pendingQty",
        "outQty",
        "defectsFound",
    }


def test_orders_document_reloads_unchanged(sample_orders):
    assert loads_orders(dumps_orders(sample_orders)) == sample_orders


def test_dates_with_time_component_are_accepted(sample_orders):
    data = order_to_dict(sample_orders[0])
    data["deadline"] = "2025-03-15T00:00:00.000Z"
    assert order_from_dict(data).deadline.isoformat() == "2025-03-15"


@pytest.mark.parametrize(
    "text",
    ["not json", json.dumps({"orders": []}), json.dumps([{"id": "x"}]), json.dumps([42])],
)
def test_malformed_orders_document_is_rejected(text):
    with pytest.raises(MalformedDocumentError):
        loads_orders(text)


def test_malformed_stage_date_is_rejected():
    with pytest.raises(MalformedDocumentError):
        stage_from_dict(
            {
                "stageId": "cutting",
                "expectedDays": 1,
                "sequence": 1,
                "expectedStartDate": "someday",
                "expectedEndDate": "2025-01-16",
            }
        )


def test_repository_crud(sample_orders):
    repository = OrderRepository()
    first, second, _ = sample_orders

    repository.add(first)
    repository.add(second)
    assert len(repository) == 2
    assert first.id in repository
    assert repository.get(second.id) == second
    with pytest.raises(DuplicateRecordError):
        repository.add(first)

    repository.remove(first.id)
    assert [order.id for order in repository] == [second.id]
    with pytest.raises(RecordNotFoundError):
        repository.get(first.id)
    with pytest.raises(RecordNotFoundError):
        repository.update(first)


def _misshapen_batch(field: str, value):
    def damage(document):
        document[0]["batches"][0][field] = value
        return document

    return damage


MISSHAPEN_BATCHES = [
    _misshapen_batch("stages", 7),
    _misshapen_batch("stages", {"stageId": "cutting"}),
    _misshapen_batch("progress", {"cutting": 5}),
    _misshapen_batch("progress", {"cutting": {"completedQty": 10}}),
]


@pytest.mark.parametrize("damage", MISSHAPEN_BATCHES)
def test_misshapen_batch_is_rejected(sample_orders, damage):
    document = damage(json.loads(dumps_orders(sample_orders)))
    with pytest.raises(MalformedDocumentError):
        loads_orders(json.dumps(document))


@pytest.mark.parametrize("damage", MISSHAPEN_BATCHES)
def test_misshapen_stored_batch_falls_back_to_empty(sample_orders, damage):
    store = InMemoryDocumentStore()
    store.write(ORDERS_KEY, json.dumps(damage(json.loads(dumps_orders(sample_orders)))))

    assert OrderRepository(store).load() == []


def test_malformed_stored_documents_fall_back(caplog):
    store = InMemoryDocumentStore()
    store.write(ORDERS_KEY, "{broken")
    store.write(CURRENT_USER_KEY, json.dumps({"id": "x", "name": "X", "role": "Admin"}))
    repository = OrderRepository(store)

    with caplog.at_level(logging.WARNING, logger="production_tracker.repository"):
        assert repository.load() == []
        assert repository.load_current_user() is None
    assert "Failed to parse stored orders" in caplog.text
    assert repository.has_orders_document()


def test_current_user_pointer(catalog):
    repository = OrderRepository()
    assert repository.load_current_user() is None

    repository.save_current_user(catalog.user("priya-menon"))
    assert repository.load_current_user() == catalog.user("priya-menon")

    repository.save_current_user(None)
    assert repository.store.read(CURRENT_USER_KEY) is None


def test_sqlite_store_upserts_documents():
    store = SQLiteDocumentStore(sqlite3.connect(":memory:"))
    store.write("orders", "[]")
    store.write("orders", "[1]")
    store.write("current_user", "null")

    assert store.read("orders") == "[1]"
    assert list(store) == ["current_user", "orders"]
    store.delete("orders")
    assert store.read("orders") is None


def test_database_persists_between_connections(tmp_path, sample_orders, catalog):
    path = str(tmp_path / "tracker.sqlite3")
    with TrackerDatabase(path) as database:
        database.orders.save(sample_orders)
        database.orders.save_current_user(catalog.user("kalpesh-patel"))

    with TrackerDatabase(path) as database:
        assert [order.order_number for order in database.orders] == [
            "ORD-2025-001",
            "ORD-2025-002",
            "ORD-2025-003",
        ]
        assert database.orders.load_current_user().name == "Kalpesh Patel"
