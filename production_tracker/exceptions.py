"""Exceptions raised by the tracking engine."""

from __future__ import annotations


class TrackerError(Exception):
    """Base exception for tracking engine errors."""


class UnknownStageError(TrackerError):
    """Raised when a stage id has no entry in the stage catalog."""

    def __init__(self, stage_id: str) -> None:
        super().__init__(f"Unknown stage id: {stage_id!r}")
        self.stage_id = stage_id


class UnknownReferenceError(TrackerError):
    """Raised when a client, user or line manager id cannot be resolved."""


class InvalidQuantityError(TrackerError, ValueError):
    """Raised when a non-positive quantity is used for a tier lookup."""


class InvalidOrderError(TrackerError, ValueError):
    """Raised when order creation or edit input is incomplete or inconsistent."""


class OrderLockedError(TrackerError):
    """Raised when editing an order after progress has been recorded."""


class BatchCompleteError(TrackerError):
    """Raised when advancing a batch that already passed its last stage."""


class MalformedDocumentError(TrackerError):
    """Raised when a persisted document cannot be parsed into the data model."""


__all__ = [
    "TrackerError",
    "UnknownStageError",
    "UnknownReferenceError",
    "InvalidQuantityError",
    "InvalidOrderError",
    "OrderLockedError",
    "BatchCompleteError",
    "MalformedDocumentError",
]
