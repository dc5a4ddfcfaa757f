"""FastAPI-based web interface for the production tracker."""

from __future__ import annotations

import argparse
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlencode

from fastapi import FastAPI, Form, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from ..catalog import StageCatalog
from ..domain import BatchStatus, StageConfig, UserRole
from ..exceptions import OrderLockedError, TrackerError
from ..logging_conf import configure_logging
from ..repository import DuplicateRecordError, RecordNotFoundError, RepositoryError
from ..services import BatchInput, OrderDraft, TrackingOptions, TrackingService
from ..settings import Settings, default_db_path
from ..storage import TrackerDatabase

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def create_app(
    database_path: str = "production_tracker.sqlite3",
    *,
    catalog: Optional[StageCatalog] = None,
    options: Optional[TrackingOptions] = None,
) -> FastAPI:
    database = TrackerDatabase(database_path)
    service = TrackingService(database.orders, catalog, options=options)
    service.seed_sample_data()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        database.close()

    app = FastAPI(title="Production Order Tracker", lifespan=lifespan)
    app.state.tracking_service = service
    app.state.database = database

    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(request: Request, exc: RecordNotFoundError):
        return JSONResponse({"detail": str(exc)}, status_code=404)

    @app.exception_handler(OrderLockedError)
    async def locked_handler(request: Request, exc: OrderLockedError):
        return JSONResponse({"detail": str(exc)}, status_code=409)

    @app.exception_handler(DuplicateRecordError)
    async def duplicate_handler(request: Request, exc: DuplicateRecordError):
        return JSONResponse({"detail": str(exc)}, status_code=409)

    @app.exception_handler(TrackerError)
    async def tracker_error_handler(request: Request, exc: TrackerError):
        return JSONResponse({"detail": str(exc)}, status_code=400)

    @app.exception_handler(RepositoryError)
    async def repository_error_handler(request: Request, exc: RepositoryError):
        return JSONResponse({"detail": str(exc)}, status_code=400)

    @app.get("/")
    async def dashboard(request: Request):
        service: TrackingService = request.app.state.tracking_service
        user = service.current_user
        if user is None:
            return templates.TemplateResponse(
                request,
                "select_user.html",
                {"users": service.catalog.users, "current_user": None},
            )
        query = request.query_params
        search = query.get("q", "")
        status = parse_status(query.get("status", ""))
        manager_id = query.get("manager", "")
        orders = service.visible_orders(
            user,
            search=search,
            status=status,
            order_manager_id=manager_id or None,
        )
        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {
                "current_user": user,
                "users": service.catalog.users,
                "orders": orders,
                "metrics": service.dashboard_metrics(orders),
                "catalog": service.catalog,
                "service": service,
                "search": search,
                "status_filter": status.value if status else "",
                "manager_filter": manager_id,
                "statuses": list(BatchStatus),
                "order_managers": service.catalog.users_with_role(UserRole.ORDER_MANAGER),
                "is_production_manager": user.role == UserRole.PRODUCTION_MANAGER,
            },
        )

    @app.post("/session")
    async def select_user(request: Request, user_id: str = Form(...)):
        service: TrackingService = request.app.state.tracking_service
        service.login(user_id)
        return RedirectResponse("/", status_code=303)

    @app.post("/session/logout")
    async def logout(request: Request):
        service: TrackingService = request.app.state.tracking_service
        service.logout()
        return RedirectResponse("/", status_code=303)

    @app.get("/orders/new")
    async def new_order_form(request: Request):
        service: TrackingService = request.app.state.tracking_service
        user = service.current_user
        if user is None:
            return RedirectResponse("/", status_code=303)
        return render_order_form(request, service, None, None)

    @app.post("/orders")
    async def create_order(
        request: Request,
        order_number: str = Form(""),
        client_id: str = Form(""),
        brief_description: str = Form(""),
        detailed_description: str = Form(""),
        start_date: str = Form(""),
        deadline: str = Form(""),
        assigned_to_id: str = Form(""),
        stage_id: List[str] = Form([]),
        line_manager_id: List[str] = Form([]),
        custom_name: List[str] = Form([]),
        batch_name: List[str] = Form([]),
        batch_sku: List[str] = Form([]),
        batch_quantity: List[str] = Form([]),
    ):
        service: TrackingService = request.app.state.tracking_service
        user = service.current_user
        if user is None:
            return RedirectResponse("/", status_code=303)
        draft = build_draft(
            order_number=order_number,
            client_id=client_id,
            brief_description=brief_description,
            detailed_description=detailed_description,
            start_date=start_date,
            deadline=deadline,
            assigned_to_id=assigned_to_id,
            stage_ids=stage_id,
            line_manager_ids=line_manager_id,
            custom_names=custom_name,
            batch_names=batch_name,
            batch_skus=batch_sku,
            batch_quantities=batch_quantity,
        )
        order = service.create_order(draft, user)
        return RedirectResponse(f"/orders/{order.id}", status_code=303)

    @app.get("/orders/{order_id}")
    async def order_detail(order_id: str, request: Request):
        service: TrackingService = request.app.state.tracking_service
        order = service.get_order(order_id)
        today = service.today()
        batches = [
            {
                "batch": batch,
                "progress_percent": service.batch_progress(batch),
                "timeline": service.timeline(batch, today=today),
                "suggested_status": service.suggested_status(batch, today=today),
            }
            for batch in order.batches
        ]
        return templates.TemplateResponse(
            request,
            "order_detail.html",
            {
                "current_user": service.current_user,
                "order": order,
                "batches": batches,
                "catalog": service.catalog,
                "order_status": service.order_status(order),
                "editable": service.is_editable(order),
                "statuses": list(BatchStatus),
            },
        )

    @app.get("/orders/{order_id}/edit")
    async def edit_order_form(order_id: str, request: Request):
        service: TrackingService = request.app.state.tracking_service
        order = service.get_order(order_id)
        if not service.is_editable(order):
            raise OrderLockedError(
                f"Order {order.order_number!r} has recorded progress and can no longer be edited"
            )
        return render_order_form(request, service, order, service.draft_from_order(order))

    @app.post("/orders/{order_id}/edit")
    async def update_order(
        order_id: str,
        request: Request,
        order_number: str = Form(""),
        client_id: str = Form(""),
        brief_description: str = Form(""),
        detailed_description: str = Form(""),
        start_date: str = Form(""),
        deadline: str = Form(""),
        assigned_to_id: str = Form(""),
        stage_id: List[str] = Form([]),
        line_manager_id: List[str] = Form([]),
        custom_name: List[str] = Form([]),
        batch_name: List[str] = Form([]),
        batch_sku: List[str] = Form([]),
        batch_quantity: List[str] = Form([]),
    ):
        service: TrackingService = request.app.state.tracking_service
        user = service.current_user
        if user is None:
            return RedirectResponse("/", status_code=303)
        draft = build_draft(
            order_number=order_number,
            client_id=client_id,
            brief_description=brief_description,
            detailed_description=detailed_description,
            start_date=start_date,
            deadline=deadline,
            assigned_to_id=assigned_to_id,
            stage_ids=stage_id,
            line_manager_ids=line_manager_id,
            custom_names=custom_name,
            batch_names=batch_name,
            batch_skus=batch_sku,
            batch_quantities=batch_quantity,
        )
        order = service.update_order(order_id, draft, user)
        return RedirectResponse(f"/orders/{order.id}", status_code=303)

    @app.post("/orders/{order_id}/stages/{index}/move")
    async def move_stage(order_id: str, index: int, request: Request, direction: str = Form(...)):
        service: TrackingService = request.app.state.tracking_service
        offset = -1 if direction == "up" else 1
        service.move_stage(order_id, index, index + offset)
        return RedirectResponse(f"/orders/{order_id}", status_code=303)

    @app.post("/orders/{order_id}/delete")
    async def delete_order(order_id: str, request: Request):
        service: TrackingService = request.app.state.tracking_service
        service.delete_order(order_id)
        return RedirectResponse("/", status_code=303)

    @app.post("/orders/{order_id}/batches/{batch_id}/progress")
    async def record_progress(
        order_id: str,
        batch_id: str,
        request: Request,
        stage_id: str = Form(...),
        inward_qty: int = Form(0),
        completed_qty: int = Form(0),
        pending_qty: int = Form(0),
        out_qty: int = Form(0),
        defects_found: int = Form(0),
    ):
        service: TrackingService = request.app.state.tracking_service
        try:
            service.record_progress(
                order_id,
                batch_id,
                stage_id,
                inward_qty=inward_qty,
                completed_qty=completed_qty,
                pending_qty=pending_qty,
                out_qty=out_qty,
                defects_found=defects_found,
            )
        except ValueError as exc:
            return JSONResponse({"detail": str(exc)}, status_code=400)
        return RedirectResponse(f"/orders/{order_id}", status_code=303)

    @app.post("/orders/{order_id}/batches/{batch_id}/advance")
    async def advance_batch(
        order_id: str, batch_id: str, request: Request, on: str = Form("")
    ):
        service: TrackingService = request.app.state.tracking_service
        service.advance_batch(order_id, batch_id, on=parse_date(on))
        return RedirectResponse(f"/orders/{order_id}", status_code=303)

    @app.post("/orders/{order_id}/batches/{batch_id}/status")
    async def set_batch_status(
        order_id: str, batch_id: str, request: Request, status: str = Form(...)
    ):
        service: TrackingService = request.app.state.tracking_service
        parsed = parse_status(status)
        if parsed is None:
            return JSONResponse({"detail": f"Unknown status {status!r}"}, status_code=400)
        service.set_batch_status(order_id, batch_id, parsed)
        return RedirectResponse(f"/orders/{order_id}", status_code=303)

    @app.get("/orders/{order_id}/sheets")
    async def tracking_sheets(order_id: str, request: Request):
        service: TrackingService = request.app.state.tracking_service
        order = service.get_order(order_id)
        return templates.TemplateResponse(
            request,
            "sheets.html",
            {
                "order": order,
                "sheets": service.tracking_sheets(order),
                "order_manager": service.catalog.user_name(order.created_by),
            },
        )

    @app.get("/api/orders/{order_id}/status")
    async def order_status(order_id: str, request: Request):
        service: TrackingService = request.app.state.tracking_service
        order = service.get_order(order_id)
        today = service.today()
        return {
            "orderId": order.id,
            "orderNumber": order.order_number,
            "status": service.order_status(order).value,
            "editable": service.is_editable(order),
            "batches": [
                {
                    "id": batch.id,
                    "status": batch.status.value,
                    "suggestedStatus": service.suggested_status(batch, today=today).value,
                    "progressPercent": service.batch_progress(batch),
                    "currentStageIndex": batch.current_stage_index,
                    "timeline": [
                        {
                            "stageId": entry.stage.stage_id,
                            "name": entry.name,
                            "status": entry.status.value,
                            "verdict": entry.verdict.text if entry.verdict else None,
                            "isDelayed": entry.is_delayed,
                            "quantityCompleted": entry.quantity_completed,
                            "defects": entry.defect_count,
                        }
                        for entry in service.timeline(batch, today=today)
                    ],
                }
                for batch in order.batches
            ],
        }

    @app.get("/api/schedule-preview")
    async def schedule_preview(request: Request):
        service: TrackingService = request.app.state.tracking_service
        query = request.query_params
        start = parse_date(query.get("start_date", ""))
        if start is None:
            return JSONResponse({"detail": "start_date is required"}, status_code=400)
        configs = [
            StageConfig(stage_id=stage_id, line_manager_id="")
            for stage_id in query.getlist("stage")
        ]
        quantities = [parse_int(value) for value in query.getlist("quantity")]
        quantities = [quantity for quantity in quantities if quantity > 0]
        stages = service.preview_schedule(start, configs, quantities)
        return {
            "stages": [
                {
                    "stageId": stage.stage_id,
                    "sequence": stage.sequence,
                    "expectedDays": stage.expected_days,
                    "expectedStartDate": stage.expected_start_date.isoformat(),
                    "expectedEndDate": stage.expected_end_date.isoformat(),
                }
                for stage in stages
            ],
            "batchCompletion": [
                {
                    "quantity": quantity,
                    "expectedCompletionDate": service.preview_batch_completion(
                        start, configs, quantity
                    ).isoformat(),
                }
                for quantity in quantities
            ],
        }

    @app.get("/export")
    async def export_data(request: Request):
        service: TrackingService = request.app.state.tracking_service
        filename = f"production-tracker-{date.today().isoformat()}.json"
        return Response(
            service.export_data(),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post("/import")
    async def import_data(request: Request, data: str = Form(...)):
        service: TrackingService = request.app.state.tracking_service
        imported = service.import_data(data)
        return RedirectResponse("/?" + urlencode({"imported": imported}), status_code=303)

    return app


def render_order_form(request: Request, service: TrackingService, order, draft):
    return templates.TemplateResponse(
        request,
        "order_form.html",
        {
            "current_user": service.current_user,
            "order": order,
            "draft": draft,
            "catalog": service.catalog,
            "order_managers": service.catalog.users_with_role(UserRole.ORDER_MANAGER),
        },
    )


def parse_date(value: str) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_int(value: str) -> int:
    try:
        return int(str(value).strip())
    except ValueError:
        return 0


def parse_status(value: str) -> Optional[BatchStatus]:
    for status in BatchStatus:
        if value in {status.value, status.name.lower()}:
            return status
    return None


def build_draft(
    *,
    order_number: str,
    client_id: str,
    brief_description: str,
    detailed_description: str,
    start_date: str,
    deadline: str,
    assigned_to_id: str,
    stage_ids: List[str],
    line_manager_ids: List[str],
    custom_names: List[str],
    batch_names: List[str],
    batch_skus: List[str],
    batch_quantities: List[str],
) -> OrderDraft:
    stages = []
    for index, stage_id in enumerate(stage_ids):
        if not stage_id:
            continue
        manager = line_manager_ids[index] if index < len(line_manager_ids) else ""
        name = custom_names[index].strip() if index < len(custom_names) else ""
        stages.append(StageConfig(stage_id=stage_id, line_manager_id=manager, custom_name=name or None))
    batches = [
        BatchInput(
            name=name,
            sku=batch_skus[index] if index < len(batch_skus) else "",
            quantity=parse_int(batch_quantities[index]) if index < len(batch_quantities) else 0,
        )
        for index, name in enumerate(batch_names)
    ]
    return OrderDraft(
        order_number=order_number,
        client_id=client_id,
        brief_description=brief_description,
        detailed_description=detailed_description,
        start_date=parse_date(start_date),
        deadline=parse_date(deadline),
        assigned_to_id=assigned_to_id,
        stages=stages,
        batches=batches,
    )


def main(argv: Optional[List[str]] = None) -> None:
    import uvicorn

    parser = argparse.ArgumentParser(description="Run the production order tracker")
    parser.add_argument("--db", default=str(default_db_path()))
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)
    settings = Settings(
        db_path=Path(args.db), host=args.host, port=args.port, log_level=args.log_level
    )

    configure_logging(settings.log_level)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Starting tracker on %s:%d using %s", settings.host, settings.port, settings.db_path)
    uvicorn.run(create_app(str(settings.db_path)), host=settings.host, port=settings.port)


if __name__ == "__main__":  # pragma: no cover - manual entry point
    main()
