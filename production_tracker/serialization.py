"""JSON document codec for orders and the current user pointer.

The persisted shape mirrors the documents exchanged with the browser client
(camelCase keys, ISO dates), so exported data can be re-imported unchanged.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from .domain import (
    Batch,
    BatchStatus,
    Order,
    OrderStage,
    ProgressEntry,
    User,
    UserRole,
)
from .exceptions import MalformedDocumentError


def _date_text(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_date(value: Any, field_name: str) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise MalformedDocumentError(f"Field {field_name!r} must be an ISO date string")
    try:
        # stored values may carry a time component
        return date.fromisoformat(value[:10])
    except ValueError as exc:
        raise MalformedDocumentError(f"Field {field_name!r} is not a valid date: {value!r}") from exc


def _parse_optional_date(value: Any, field_name: str) -> Optional[date]:
    if value in (None, ""):
        return None
    return _parse_date(value, field_name)


def _parse_datetime(value: Any, field_name: str) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise MalformedDocumentError(f"Field {field_name!r} must be an ISO timestamp")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise MalformedDocumentError(
            f"Field {field_name!r} is not a valid timestamp: {value!r}"
        ) from exc


def _ensure_mapping(data: Any) -> None:
    if not isinstance(data, Mapping):
        raise MalformedDocumentError(f"Expected an object, got {type(data).__name__}")


def _require(data: Mapping[str, Any], key: str) -> Any:
    _ensure_mapping(data)
    try:
        return data[key]
    except KeyError:
        raise MalformedDocumentError(f"Missing required field {key!r}") from None


def _number(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedDocumentError(f"Field {field_name!r} must be a number")
    return int(value)


def _list(value: Any, field_name: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedDocumentError(f"Field {field_name!r} must be a list")
    return value


# ----------------------------------------------------------------------
# Encoding
# ----------------------------------------------------------------------
def stage_to_dict(stage: OrderStage) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "stageId": stage.stage_id,
        "lineManagerId": stage.line_manager_id,
        "expectedDays": stage.expected_days,
        "sequence": stage.sequence,
        "expectedStartDate": _date_text(stage.expected_start_date),
        "expectedEndDate": _date_text(stage.expected_end_date),
    }
    if stage.custom_name is not None:
        data["customName"] = stage.custom_name
    if stage.actual_start_date is not None:
        data["actualStartDate"] = _date_text(stage.actual_start_date)
    if stage.actual_end_date is not None:
        data["actualEndDate"] = _date_text(stage.actual_end_date)
    return data


def progress_entry_to_dict(entry: ProgressEntry) -> Dict[str, Any]:
    return {
        "time": entry.time.isoformat(),
        "inwardQty": entry.inward_qty,
        "completedQty": entry.completed_qty,
        "pendingQty": entry.pending_qty,
        "outQty": entry.out_qty,
        "defectsFound": entry.defects_found,
    }


def batch_to_dict(batch: Batch) -> Dict[str, Any]:
    return {
        "id": batch.id,
        "name": batch.name,
        "quantity": batch.quantity,
        "orderId": batch.order_id,
        "sku": batch.sku,
        "createdDate": _date_text(batch.created_date),
        "expectedCompletionDate": _date_text(batch.expected_completion_date),
        "stages": [stage_to_dict(stage) for stage in batch.stages],
        "progress": {
            stage_id: [progress_entry_to_dict(entry) for entry in entries]
            for stage_id, entries in batch.progress.items()
        },
        "currentStageIndex": batch.current_stage_index,
        "status": batch.status.value,
    }


def order_to_dict(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "clientId": order.client_id,
        "briefDescription": order.brief_description,
        "detailedDescription": order.detailed_description,
        "createdBy": order.created_by,
        "createdDate": _date_text(order.created_date),
        "deadline": _date_text(order.deadline),
        "stages": [stage_to_dict(stage) for stage in order.stages],
        "batches": [batch_to_dict(batch) for batch in order.batches],
    }


def user_to_dict(user: User) -> Dict[str, Any]:
    return {"id": user.id, "name": user.name, "role": user.role.value}


# ----------------------------------------------------------------------
# Decoding
# ----------------------------------------------------------------------
def stage_from_dict(data: Mapping[str, Any]) -> OrderStage:
    _ensure_mapping(data)
    return OrderStage(
        stage_id=str(_require(data, "stageId")),
        line_manager_id=str(data.get("lineManagerId") or ""),
        expected_days=_number(_require(data, "expectedDays"), "expectedDays"),
        sequence=_number(_require(data, "sequence"), "sequence"),
        expected_start_date=_parse_date(_require(data, "expectedStartDate"), "expectedStartDate"),
        expected_end_date=_parse_date(_require(data, "expectedEndDate"), "expectedEndDate"),
        custom_name=data.get("customName"),
        actual_start_date=_parse_optional_date(data.get("actualStartDate"), "actualStartDate"),
        actual_end_date=_parse_optional_date(data.get("actualEndDate"), "actualEndDate"),
    )


def progress_entry_from_dict(data: Mapping[str, Any]) -> ProgressEntry:
    _ensure_mapping(data)
    try:
        return ProgressEntry(
            time=_parse_datetime(_require(data, "time"), "time"),
            inward_qty=_number(data.get("inwardQty", 0), "inwardQty"),
            completed_qty=_number(data.get("completedQty", 0), "completedQty"),
            pending_qty=_number(data.get("pendingQty", 0), "pendingQty"),
            out_qty=_number(data.get("outQty", 0), "outQty"),
            defects_found=_number(data.get("defectsFound", 0), "defectsFound"),
        )
    except ValueError as exc:
        raise MalformedDocumentError(str(exc)) from exc


def batch_from_dict(data: Mapping[str, Any]) -> Batch:
    _ensure_mapping(data)
    progress_data = data.get("progress") or {}
    if not isinstance(progress_data, Mapping):
        raise MalformedDocumentError("Field 'progress' must be an object")
    try:
        status = BatchStatus(data.get("status", BatchStatus.ON_TIME.value))
    except ValueError as exc:
        raise MalformedDocumentError(f"Unknown batch status {data.get('status')!r}") from exc
    try:
        return Batch(
            id=str(_require(data, "id")),
            name=str(_require(data, "name")),
            quantity=_number(_require(data, "quantity"), "quantity"),
            order_id=str(_require(data, "orderId")),
            sku=str(data.get("sku") or ""),
            created_date=_parse_date(_require(data, "createdDate"), "createdDate"),
            expected_completion_date=_parse_date(
                _require(data, "expectedCompletionDate"), "expectedCompletionDate"
            ),
            stages=[stage_from_dict(stage) for stage in _list(data.get("stages"), "stages")],
            progress={
                str(stage_id): [
                    progress_entry_from_dict(entry)
                    for entry in _list(entries, f"progress.{stage_id}")
                ]
                for stage_id, entries in progress_data.items()
            },
            current_stage_index=_number(data.get("currentStageIndex", 0), "currentStageIndex"),
            status=status,
        )
    except ValueError as exc:
        raise MalformedDocumentError(str(exc)) from exc


def order_from_dict(data: Mapping[str, Any]) -> Order:
    _ensure_mapping(data)
    stages = _list(data.get("stages"), "stages")
    batches = _list(data.get("batches"), "batches")
    return Order(
        id=str(_require(data, "id")),
        order_number=str(_require(data, "orderNumber")),
        client_id=str(_require(data, "clientId")),
        brief_description=str(data.get("briefDescription") or ""),
        detailed_description=str(data.get("detailedDescription") or ""),
        created_by=str(_require(data, "createdBy")),
        created_date=_parse_date(_require(data, "createdDate"), "createdDate"),
        deadline=_parse_date(_require(data, "deadline"), "deadline"),
        stages=[stage_from_dict(stage) for stage in stages],
        batches=[batch_from_dict(batch) for batch in batches],
    )


def user_from_dict(data: Mapping[str, Any]) -> User:
    _ensure_mapping(data)
    try:
        role = UserRole(_require(data, "role"))
    except ValueError as exc:
        raise MalformedDocumentError(f"Unknown user role {data.get('role')!r}") from exc
    return User(id=str(_require(data, "id")), name=str(_require(data, "name")), role=role)


# ----------------------------------------------------------------------
# Whole documents
# ----------------------------------------------------------------------
def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, ValueError) as exc:
        raise MalformedDocumentError(f"Stored document is not valid JSON: {exc}") from exc


def dumps_orders(orders: List[Order]) -> str:
    return json.dumps([order_to_dict(order) for order in orders])


def loads_orders(text: str) -> List[Order]:
    data = _loads(text)
    if not isinstance(data, list):
        raise MalformedDocumentError("Orders document must be a list")
    return [order_from_dict(item) for item in data]


def dumps_user(user: User) -> str:
    return json.dumps(user_to_dict(user))


def loads_user(text: str) -> Optional[User]:
    data = _loads(text)
    if data is None:
        return None
    return user_from_dict(data)


__all__ = [
    "order_to_dict",
    "order_from_dict",
    "batch_to_dict",
    "batch_from_dict",
    "stage_to_dict",
    "stage_from_dict",
    "progress_entry_to_dict",
    "progress_entry_from_dict",
    "user_to_dict",
    "user_from_dict",
    "dumps_orders",
    "loads_orders",
    "dumps_user",
    "loads_user",
]
