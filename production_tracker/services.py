"""Service layer that implements the order tracking workflows."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence

from .catalog import StageCatalog
from .domain import (
    Batch,
    BatchStatus,
    Order,
    OrderStage,
    ProgressEntry,
    StageConfig,
    User,
    UserRole,
    copy_stages,
    with_batch,
    with_batch_updated,
    with_stage_moved,
)
from .exceptions import (
    InvalidOrderError,
    MalformedDocumentError,
    OrderLockedError,
    UnknownReferenceError,
)
from .master_data import default_catalog
from .progress import advance_stage, record_progress
from .repository import DuplicateRecordError, OrderRepository
from .sample_data import build_sample_orders
from .scheduling import build_stage_schedule, compute_batch_completion_date, reschedule
from .serialization import order_from_dict, order_to_dict, user_from_dict, user_to_dict
from .status import (
    TimelineStage,
    batch_progress_percent,
    build_timeline,
    can_edit_order,
    derive_batch_status,
    order_rollup_status,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TrackingOptions:
    """Tunable behaviour of the tracking workflows."""

    at_risk_days: int = 1
    default_status: BatchStatus = BatchStatus.ON_TIME
    seed_sample_data: bool = True


@dataclass(slots=True)
class BatchInput:
    """Batch row entered while creating or editing an order."""

    name: str
    sku: str
    quantity: int

    @property
    def is_valid(self) -> bool:
        return bool(self.name.strip() and self.sku.strip() and self.quantity > 0)


@dataclass(slots=True)
class OrderDraft:
    """Everything the order form collects before an order is saved."""

    order_number: str
    client_id: str
    brief_description: str
    start_date: Optional[date]
    deadline: Optional[date]
    stages: Sequence[StageConfig] = field(default_factory=list)
    batches: Sequence[BatchInput] = field(default_factory=list)
    assigned_to_id: str = ""
    detailed_description: str = ""


@dataclass(slots=True)
class DashboardMetrics:
    total_orders: int
    on_time: int
    at_risk: int
    delayed: int


@dataclass(slots=True)
class TrackingSheet:
    """One printable sheet: a single stage of a single batch."""

    order: Order
    batch: Batch
    stage: OrderStage
    stage_name: str
    line_manager_name: str
    client_name: str
    sheet_number: int
    total_sheets: int


def batch_suffix(index: int) -> str:
    """Spreadsheet-style letters: 0 -> A, 25 -> Z, 26 -> AA."""

    letters = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


class TrackingService:
    """Facade that exposes order tracking use-cases to clients."""

    def __init__(
        self,
        repository: Optional[OrderRepository] = None,
        catalog: Optional[StageCatalog] = None,
        *,
        options: Optional[TrackingOptions] = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.orders = repository or OrderRepository()
        self.catalog = catalog or default_catalog()
        self.options = options or TrackingOptions()
        self._clock = clock

    def today(self) -> date:
        return self._clock()

    def update_options(
        self,
        *,
        at_risk_days: int,
        default_status: BatchStatus,
        seed_sample_data: bool,
    ) -> TrackingOptions:
        self.options = TrackingOptions(
            at_risk_days=max(at_risk_days, 0),
            default_status=default_status,
            seed_sample_data=seed_sample_data,
        )
        return self.options

    # ------------------------------------------------------------------
    # Current user
    # ------------------------------------------------------------------
    @property
    def current_user(self) -> Optional[User]:
        return self.orders.load_current_user()

    def login(self, user_id: str) -> User:
        user = self.catalog.user(user_id)
        self.orders.save_current_user(user)
        logger.info("Switched current user to %s (%s)", user.name, user.role.value)
        return user

    def logout(self) -> None:
        self.orders.save_current_user(None)

    # ------------------------------------------------------------------
    # Scheduling previews
    # ------------------------------------------------------------------
    def preview_schedule(
        self,
        start_date: date,
        stages: Sequence[StageConfig],
        quantities: Sequence[int],
    ) -> List[OrderStage]:
        return build_stage_schedule(self.catalog, start_date, stages, quantities)

    def preview_batch_completion(
        self,
        start_date: date,
        stages: Sequence[StageConfig],
        quantity: int,
    ) -> date:
        return compute_batch_completion_date(self.catalog, start_date, stages, quantity)

    # ------------------------------------------------------------------
    # Order creation and editing
    # ------------------------------------------------------------------
    def _validate_draft(self, draft: OrderDraft) -> List[BatchInput]:
        missing = [
            label
            for label, value in (
                ("order number", draft.order_number.strip()),
                ("client", draft.client_id),
                ("brief description", draft.brief_description.strip()),
                ("start date", draft.start_date),
                ("deadline", draft.deadline),
            )
            if not value
        ]
        if missing:
            raise InvalidOrderError(f"Missing required order fields: {', '.join(missing)}")
        self.catalog.client(draft.client_id)
        if not draft.stages:
            raise InvalidOrderError("An order must contain at least one stage")
        for config in draft.stages:
            self.catalog.stage(config.stage_id)
            if not config.line_manager_id:
                raise InvalidOrderError(f"Stage {config.stage_id!r} has no line manager assigned")
            if not self.catalog.is_eligible(config.line_manager_id, config.stage_id):
                raise InvalidOrderError(
                    f"Line manager {config.line_manager_id!r} cannot run stage {config.stage_id!r}"
                )
        valid_batches = [batch for batch in draft.batches if batch.is_valid]
        if not valid_batches:
            raise InvalidOrderError("An order needs at least one batch with name, SKU and quantity")
        return valid_batches

    def _resolve_owner(self, draft: OrderDraft, acting_user: User, existing: Optional[Order]) -> str:
        if existing is not None:
            if acting_user.role == UserRole.PRODUCTION_MANAGER and draft.assigned_to_id:
                owner_id = draft.assigned_to_id
            else:
                return existing.created_by
        elif acting_user.role == UserRole.ORDER_MANAGER:
            return acting_user.id
        else:
            owner_id = draft.assigned_to_id
        if not owner_id:
            raise InvalidOrderError("The order must be assigned to an order manager")
        self.catalog.user(owner_id)
        return owner_id

    def _ensure_unique_number(self, order_number: str, order_id: Optional[str]) -> None:
        existing = self.orders.by_number().get(order_number)
        if existing is not None and existing.id != order_id:
            raise DuplicateRecordError(f"Order number {order_number!r} is already in use")

    def _build_batches(
        self,
        order_id: str,
        order_number: str,
        draft: OrderDraft,
        batch_inputs: Sequence[BatchInput],
        stages: Sequence[OrderStage],
        existing: Optional[Order],
    ) -> List[Batch]:
        batches: List[Batch] = []
        for index, batch_input in enumerate(batch_inputs):
            previous = (
                existing.batches[index]
                if existing is not None and index < len(existing.batches)
                else None
            )
            batches.append(
                Batch(
                    id=previous.id if previous else f"batch-{order_number.lower()}-{batch_suffix(index)}",
                    name=batch_input.name.strip(),
                    quantity=batch_input.quantity,
                    order_id=order_id,
                    sku=batch_input.sku.strip(),
                    created_date=draft.start_date,
                    expected_completion_date=compute_batch_completion_date(
                        self.catalog, draft.start_date, draft.stages, batch_input.quantity
                    ),
                    stages=copy_stages(stages),
                    progress={},
                    current_stage_index=0,
                    status=previous.status if previous else self.options.default_status,
                )
            )
        return batches

    def create_order(self, draft: OrderDraft, acting_user: User) -> Order:
        """Schedule and persist a new order with all of its batches."""

        batch_inputs = self._validate_draft(draft)
        order_number = draft.order_number.strip().upper()
        order_id = f"order-{order_number.lower()}"
        self._ensure_unique_number(order_number, None)
        if order_id in self.orders:
            raise DuplicateRecordError(f"Order with id {order_id!r} already exists")

        stages = build_stage_schedule(
            self.catalog,
            draft.start_date,
            draft.stages,
            [batch.quantity for batch in batch_inputs],
        )
        order = Order(
            id=order_id,
            order_number=order_number,
            client_id=draft.client_id,
            brief_description=draft.brief_description.strip(),
            detailed_description=draft.detailed_description.strip(),
            created_by=self._resolve_owner(draft, acting_user, None),
            created_date=self.today(),
            deadline=draft.deadline,
            stages=stages,
            batches=self._build_batches(order_id, order_number, draft, batch_inputs, stages, None),
        )
        self.orders.add(order)
        logger.info(
            "Created order %s with %d stage(s) and %d batch(es)",
            order.order_number,
            len(order.stages),
            len(order.batches),
        )
        return order

    def _editable_order(self, order_id: str) -> Order:
        order = self.orders.get(order_id)
        if not can_edit_order(order):
            raise OrderLockedError(
                f"Order {order.order_number!r} has recorded progress and can no longer be edited"
            )
        return order

    def update_order(self, order_id: str, draft: OrderDraft, acting_user: User) -> Order:
        """Re-plan an order; only allowed while no batch has recorded progress."""

        existing = self._editable_order(order_id)
        batch_inputs = self._validate_draft(draft)
        order_number = draft.order_number.strip().upper()
        self._ensure_unique_number(order_number, existing.id)

        stages = build_stage_schedule(
            self.catalog,
            draft.start_date,
            draft.stages,
            [batch.quantity for batch in batch_inputs],
        )
        order = replace(
            existing,
            order_number=order_number,
            client_id=draft.client_id,
            brief_description=draft.brief_description.strip(),
            detailed_description=draft.detailed_description.strip(),
            created_by=self._resolve_owner(draft, acting_user, existing),
            deadline=draft.deadline,
            stages=stages,
            batches=self._build_batches(
                existing.id, order_number, draft, batch_inputs, stages, existing
            ),
        )
        self.orders.update(order)
        logger.info("Updated order %s", order.order_number)
        return order

    def move_stage(self, order_id: str, index: int, new_index: int) -> Order:
        """Reorder a stage of an editable order and rebuild its schedule."""

        order = with_stage_moved(self._editable_order(order_id), index, new_index)
        start_date = (
            order.batches[0].created_date if order.batches else order.stages[0].expected_start_date
        )
        quantities = [batch.quantity for batch in order.batches]
        stages = reschedule(self.catalog, start_date, order.stages, quantities)
        configs = [
            StageConfig(stage.stage_id, stage.line_manager_id, stage.custom_name)
            for stage in stages
        ]
        # the stage list changed under every batch, so each restarts at the first stage
        batches = [
            replace(
                batch,
                stages=copy_stages(stages),
                current_stage_index=0,
                expected_completion_date=compute_batch_completion_date(
                    self.catalog, batch.created_date, configs, batch.quantity
                ),
            )
            for batch in order.batches
        ]
        order = replace(order, stages=stages, batches=batches)
        self.orders.update(order)
        logger.info("Moved stage %d to position %d in order %s", index, new_index, order.order_number)
        return order

    def delete_order(self, order_id: str) -> None:
        self.orders.remove(order_id)
        logger.info("Deleted order %s", order_id)

    def get_order(self, order_id: str) -> Order:
        return self.orders.get(order_id)

    def draft_from_order(self, order: Order) -> OrderDraft:
        """Pre-fill the order form from an existing order."""

        return OrderDraft(
            order_number=order.order_number,
            client_id=order.client_id,
            brief_description=order.brief_description,
            detailed_description=order.detailed_description,
            start_date=order.batches[0].created_date if order.batches else order.created_date,
            deadline=order.deadline,
            assigned_to_id=order.created_by,
            stages=[
                StageConfig(stage.stage_id, stage.line_manager_id, stage.custom_name)
                for stage in order.stages
            ],
            batches=[BatchInput(batch.name, batch.sku, batch.quantity) for batch in order.batches],
        )

    # ------------------------------------------------------------------
    # Progress tracking
    # ------------------------------------------------------------------
    def record_progress(
        self,
        order_id: str,
        batch_id: str,
        stage_id: str,
        *,
        inward_qty: int = 0,
        completed_qty: int = 0,
        pending_qty: int = 0,
        out_qty: int = 0,
        defects_found: int = 0,
        time: Optional[datetime] = None,
    ) -> Batch:
        order = self.orders.get(order_id)
        entry = ProgressEntry(
            time=time or datetime.now(),
            inward_qty=inward_qty,
            completed_qty=completed_qty,
            pending_qty=pending_qty,
            out_qty=out_qty,
            defects_found=defects_found,
        )
        batch = record_progress(self._batch(order, batch_id), stage_id, entry)
        self.orders.update(with_batch(order, batch))
        logger.info(
            "Recorded progress for batch %s stage %s: %d completed, %d defect(s)",
            batch_id,
            stage_id,
            completed_qty,
            defects_found,
        )
        return batch

    def advance_batch(self, order_id: str, batch_id: str, *, on: Optional[date] = None) -> Batch:
        order = self.orders.get(order_id)
        batch = advance_stage(self._batch(order, batch_id), on or self.today())
        self.orders.update(with_batch(order, batch))
        logger.info(
            "Advanced batch %s to stage index %d of %d",
            batch_id,
            batch.current_stage_index,
            len(batch.stages),
        )
        return batch

    def set_batch_status(self, order_id: str, batch_id: str, status: BatchStatus) -> Batch:
        order = self.orders.get(order_id)
        self._batch(order, batch_id)
        order = with_batch_updated(order, batch_id, status=status)
        self.orders.update(order)
        logger.info("Batch %s status set to %s", batch_id, status.value)
        return order.batch(batch_id)

    def assess_batch_status(
        self, order_id: str, batch_id: str, *, today: Optional[date] = None
    ) -> BatchStatus:
        """Status suggested by the schedule; the stored status is left untouched."""

        return self.suggested_status(self._batch(self.orders.get(order_id), batch_id), today=today)

    def suggested_status(self, batch: Batch, *, today: Optional[date] = None) -> BatchStatus:
        return derive_batch_status(
            batch, today or self.today(), at_risk_days=self.options.at_risk_days
        )

    @staticmethod
    def _batch(order: Order, batch_id: str) -> Batch:
        try:
            return order.batch(batch_id)
        except KeyError as exc:
            raise UnknownReferenceError(
                f"Batch {batch_id!r} not found in order {order.order_number!r}"
            ) from exc

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def visible_orders(
        self,
        user: User,
        *,
        search: str = "",
        status: Optional[BatchStatus] = None,
        order_manager_id: Optional[str] = None,
    ) -> List[Order]:
        """Orders the user may see, narrowed by the dashboard filters."""

        orders = self.orders.list()
        if user.role == UserRole.PRODUCTION_MANAGER:
            if order_manager_id:
                orders = [order for order in orders if order.created_by == order_manager_id]
        else:
            orders = [order for order in orders if order.created_by == user.id]
        query = search.strip().lower()
        if query:
            orders = [order for order in orders if query in order.order_number.lower()]
        if status is not None:
            orders = [order for order in orders if order_rollup_status(order) == status]
        return orders

    @staticmethod
    def dashboard_metrics(orders: Sequence[Order]) -> DashboardMetrics:
        batches = [batch for order in orders for batch in order.batches]
        counts: Dict[BatchStatus, int] = {status: 0 for status in BatchStatus}
        for batch in batches:
            counts[batch.status] += 1
        return DashboardMetrics(
            total_orders=len(orders),
            on_time=counts[BatchStatus.ON_TIME],
            at_risk=counts[BatchStatus.AT_RISK],
            delayed=counts[BatchStatus.DELAYED],
        )

    @staticmethod
    def order_status(order: Order) -> BatchStatus:
        return order_rollup_status(order)

    @staticmethod
    def is_editable(order: Order) -> bool:
        return can_edit_order(order)

    @staticmethod
    def batch_progress(batch: Batch) -> int:
        return batch_progress_percent(batch)

    def timeline(self, batch: Batch, *, today: Optional[date] = None) -> List[TimelineStage]:
        return build_timeline(batch, self.catalog, today or self.today())

    def tracking_sheets(self, order: Order) -> List[TrackingSheet]:
        """One sheet per batch and stage, numbered across the whole order."""

        total = sum(len(batch.stages) for batch in order.batches)
        sheets: List[TrackingSheet] = []
        client_name = self.catalog.client_name(order.client_id)
        for batch in order.batches:
            for stage in sorted(batch.stages, key=lambda item: item.sequence):
                sheets.append(
                    TrackingSheet(
                        order=order,
                        batch=batch,
                        stage=stage,
                        stage_name=self.catalog.stage_name(stage),
                        line_manager_name=self.catalog.line_manager_name(stage.line_manager_id),
                        client_name=client_name,
                        sheet_number=len(sheets) + 1,
                        total_sheets=total,
                    )
                )
        return sheets

    # ------------------------------------------------------------------
    # Data exchange
    # ------------------------------------------------------------------
    def export_data(self) -> str:
        user = self.current_user
        data = {
            "orders": [order_to_dict(order) for order in self.orders.list()],
            "currentUser": user_to_dict(user) if user else None,
        }
        return json.dumps(data, indent=2)

    def import_data(self, text: str) -> int:
        """Replace all orders and the current user from an exported document."""

        try:
            data = json.loads(text)
        except ValueError as exc:
            raise MalformedDocumentError(f"Import is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise MalformedDocumentError("Import document must be an object")
        raw_orders = data.get("orders") or []
        if not isinstance(raw_orders, list):
            raise MalformedDocumentError("Field 'orders' must be a list")
        orders = [order_from_dict(item) for item in raw_orders]
        raw_user = data.get("currentUser")
        user = user_from_dict(raw_user) if raw_user else None
        self.orders.save(orders)
        self.orders.save_current_user(user)
        logger.info("Imported %d order(s)", len(orders))
        return len(orders)

    def seed_sample_data(self) -> int:
        """Populate an empty store with demonstration orders."""

        if not self.options.seed_sample_data or self.orders.has_orders_document():
            return 0
        orders = build_sample_orders(self.catalog)
        self.orders.save(orders)
        logger.info("Seeded %d sample order(s)", len(orders))
        return len(orders)


__all__ = [
    "TrackingService",
    "TrackingOptions",
    "OrderDraft",
    "BatchInput",
    "DashboardMetrics",
    "TrackingSheet",
    "batch_suffix",
]
