"""Batch-level progress and final status helpers.

Both functions are pure: they only read task state and never mutate it. The
job runner calls them after every task mutation.
"""

from __future__ import annotations

import math
from typing import Sequence

from .models import BatchStatus, RenderTask, TaskStatus


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def calculate_batch_progress(tasks: Sequence[RenderTask]) -> int:
    """Return ``(100 * completed + sum(generating progress)) / total`` as a percentage.

    Completed tasks contribute 100 each, tasks in ``generating`` contribute
    their own progress and every other status contributes 0. An empty batch
    reports 0. Halves round up.
    """

    total = len(tasks)
    if total == 0:
        return 0
    completed = sum(1 for task in tasks if task.status is TaskStatus.COMPLETED)
    in_flight = sum(task.progress for task in tasks if task.status is TaskStatus.GENERATING)
    return round_half_up((100 * completed + in_flight) / total)


def resolve_batch_status(tasks: Sequence[RenderTask], *, final: bool = False) -> BatchStatus:
    """Derive the batch status from task states.

    ``completed`` when every task completed (vacuously true for an empty
    batch), ``failed`` when every task failed, ``generating`` while any task
    is still non-terminal and ``partial`` otherwise. With ``final=True`` the
    run is over, so leftover non-terminal tasks count towards ``partial``.
    """

    if all(task.status is TaskStatus.COMPLETED for task in tasks):
        return BatchStatus.COMPLETED
    if all(task.status is TaskStatus.FAILED for task in tasks):
        return BatchStatus.FAILED
    if not final and any(not task.status.is_terminal for task in tasks):
        return BatchStatus.GENERATING
    return BatchStatus.PARTIAL
