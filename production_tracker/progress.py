"""Append-only progress ledger kept per batch and stage."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Dict, List

from .domain import Batch, ProgressEntry, copy_stages
from .exceptions import BatchCompleteError, UnknownStageError


def record_progress(batch: Batch, stage_id: str, entry: ProgressEntry) -> Batch:
    """Return a new batch with ``entry`` appended to the stage's ledger.

    Entries are snapshots: a later entry may report fewer completed units than
    an earlier one and is still accepted as-is.
    """

    if all(stage.stage_id != stage_id for stage in batch.stages):
        raise UnknownStageError(stage_id)
    progress: Dict[str, List[ProgressEntry]] = {
        key: list(entries) for key, entries in batch.progress.items()
    }
    progress.setdefault(stage_id, []).append(entry)
    return replace(batch, progress=progress)


def latest_completed_qty(batch: Batch, stage_id: str) -> int:
    entries = batch.progress.get(stage_id) or []
    if not entries:
        return 0
    return entries[-1].completed_qty


def total_defects(batch: Batch, stage_id: str) -> int:
    return sum(entry.defects_found for entry in batch.progress.get(stage_id) or [])


def batch_total_defects(batch: Batch) -> int:
    return sum(total_defects(batch, stage_id) for stage_id in batch.progress)


def advance_stage(batch: Batch, on: date) -> Batch:
    """Move the batch forward to its next stage.

    The current stage receives ``on`` as its actual end date and the next
    stage, if any, ``on`` as its actual start date. Batches never move back.
    """

    if not batch.stages or batch.current_stage_index >= len(batch.stages):
        raise BatchCompleteError(f"Batch {batch.id!r} has already completed every stage")
    stages = copy_stages(batch.stages)
    index = max(batch.current_stage_index, 0)
    current = stages[index]
    if current.actual_start_date is None:
        current.actual_start_date = on
    current.actual_end_date = on
    if index + 1 < len(stages):
        stages[index + 1].actual_start_date = on
    return replace(batch, stages=stages, current_stage_index=index + 1)


__all__ = [
    "record_progress",
    "latest_completed_qty",
    "total_defects",
    "batch_total_defects",
    "advance_stage",
]
