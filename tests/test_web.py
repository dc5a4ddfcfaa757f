from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from production_tracker.services import TrackingOptions
from production_tracker.web.app import create_app

ORDER_FORM = {
    "order_number": "ord-500",
    "client_id": "kiddy-gems",
    "brief_description": "Rompers",
    "start_date": "2025-01-16",
    "deadline": "2025-03-01",
    "stage_id": ["cutting", "sewing"],
    "line_manager_id": ["kavita-nair", "meera-iyer"],
    "custom_name": ["Panel cutting", "Overlock sewing"],
    "batch_name": ["Batch A", "Batch B"],
    "batch_sku": ["RMP-3M", "RMP-6M"],
    "batch_quantity": ["2500", "1000"],
}


@pytest.fixture
def client(tmp_path):
    app = create_app(
        str(tmp_path / "tracker.sqlite3"), options=TrackingOptions(seed_sample_data=False)
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def logged_in(client):
    response = client.post("/session", data={"user_id": "rajesh-kumar"}, follow_redirects=False)
    assert response.status_code == 303
    return client


def create_order(client) -> str:
    response = client.post("/orders", data=ORDER_FORM, follow_redirects=False)
    assert response.status_code == 303
    return response.headers["location"]


def test_user_selection_then_dashboard(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "Select user" in response.text

    response = client.post("/session", data={"user_id": "kalpesh-patel"})
    assert response.status_code == 200
    assert "Total orders" in response.text
    assert "All order managers" in response.text


def test_unknown_user_is_rejected(client):
    response = client.post("/session", data={"user_id": "nobody"})
    assert response.status_code == 400


def test_create_order_and_view_it(logged_in):
    location = create_order(logged_in)
    assert location == "/orders/order-ord-500"

    page = logged_in.get(location)
    assert page.status_code == 200
    assert "ORD-500" in page.text
    assert "Overlock sewing" in page.text

    status = logged_in.get("/api/orders/order-ord-500/status").json()
    assert status["status"] == "on_time"
    assert status["editable"] is True
    assert [batch["id"] for batch in status["batches"]] == [
        "batch-ord-500-A",
        "batch-ord-500-B",
    ]
    assert [entry["name"] for entry in status["batches"][0]["timeline"]] == [
        "Panel cutting",
        "Overlock sewing",
    ]
    assert {batch["suggestedStatus"] for batch in status["batches"]} <= {
        "on_time",
        "at_risk",
        "delayed",
    }

    dashboard = logged_in.get("/", params={"q": "500"})
    assert "ORD-500" in dashboard.text


def test_invalid_order_form_is_a_bad_request(logged_in):
    form = dict(ORDER_FORM, batch_quantity=["0", "0"])
    response = logged_in.post("/orders", data=form)
    assert response.status_code == 400


def test_duplicate_order_number_conflicts(logged_in):
    create_order(logged_in)
    response = logged_in.post("/orders", data=ORDER_FORM)
    assert response.status_code == 409


def test_progress_locks_editing(logged_in):
    create_order(logged_in)
    assert logged_in.get("/orders/order-ord-500/edit").status_code == 200

    response = logged_in.post(
        "/orders/order-ord-500/batches/batch-ord-500-A/progress",
        data={"stage_id": "cutting", "inward_qty": "2500", "completed_qty": "2500"},
        follow_redirects=False,
    )
    assert response.status_code == 303

    assert logged_in.get("/orders/order-ord-500/edit").status_code == 409
    status = logged_in.get("/api/orders/order-ord-500/status").json()
    assert status["editable"] is False
    assert status["batches"][0]["progressPercent"] == 50


def test_negative_progress_is_rejected(logged_in):
    create_order(logged_in)
    response = logged_in.post(
        "/orders/order-ord-500/batches/batch-ord-500-A/progress",
        data={"stage_id": "cutting", "completed_qty": "-5"},
    )
    assert response.status_code == 400


def test_advance_and_set_status(logged_in):
    create_order(logged_in)
    logged_in.post(
        "/orders/order-ord-500/batches/batch-ord-500-B/advance", data={"on": "2025-01-16"}
    )
    logged_in.post(
        "/orders/order-ord-500/batches/batch-ord-500-B/status", data={"status": "delayed"}
    )

    status = logged_in.get("/api/orders/order-ord-500/status").json()
    batch = status["batches"][1]
    assert batch["currentStageIndex"] == 1
    assert batch["status"] == "delayed"
    assert status["status"] == "delayed"

    response = logged_in.post(
        "/orders/order-ord-500/batches/batch-ord-500-B/status", data={"status": "lost"}
    )
    assert response.status_code == 400


def test_move_stage_and_delete(logged_in):
    create_order(logged_in)
    logged_in.post("/orders/order-ord-500/stages/0/move", data={"direction": "down"})

    status = logged_in.get("/api/orders/order-ord-500/status").json()
    assert [entry["stageId"] for entry in status["batches"][0]["timeline"]] == ["sewing", "cutting"]

    logged_in.post("/orders/order-ord-500/delete")
    assert logged_in.get("/api/orders/order-ord-500/status").status_code == 404


def test_tracking_sheets_page(logged_in):
    create_order(logged_in)
    response = logged_in.get("/orders/order-ord-500/sheets")
    assert response.status_code == 200
    assert "Sheet 4 of 4" in response.text
    assert "Rajesh Kumar" in response.text


def test_schedule_preview(client):
    response = client.get(
        "/api/schedule-preview",
        params=[
            ("start_date", "2025-01-16"),
            ("stage", "cutting"),
            ("stage", "sewing"),
            ("quantity", "2500"),
        ],
    )
    data = response.json()
    assert [(s["expectedStartDate"], s["expectedEndDate"]) for s in data["stages"]] == [
        ("2025-01-16", "2025-01-16"),
        ("2025-01-17", "2025-01-20"),
    ]
    assert data["batchCompletion"] == [{"quantity": 2500, "expectedCompletionDate": "2025-01-21"}]
    assert client.get("/api/schedule-preview").status_code == 400


def test_export_and_import(logged_in):
    create_order(logged_in)
    exported = logged_in.get("/export")
    assert exported.headers["content-disposition"].startswith("attachment")
    document = exported.json()
    assert [order["orderNumber"] for order in document["orders"]] == ["ORD-500"]

    document["orders"] = []
    response = logged_in.post("/import", data={"data": json.dumps(document)}, follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/?imported=0"
    assert logged_in.get("/api/orders/order-ord-500/status").status_code == 404

    assert logged_in.post("/import", data={"data": "{broken"}).status_code == 400


def test_sample_data_is_seeded_on_first_start(tmp_path):
    app = create_app(str(tmp_path / "seeded.sqlite3"))
    with TestClient(app) as client:
        response = client.get("/api/orders/order-ord-2025-001/status")
        assert response.status_code == 200
        assert response.json()["editable"] is False
