from __future__ import annotations

import pytest

from src.adblitz.domain.models import BatchStatus, RenderTask, TaskStatus
from src.adblitz.domain.progress import (
    calculate_batch_progress,
    resolve_batch_status,
    round_half_up,
)


def make_task(status: TaskStatus, progress: int = 0, index: int = 0) -> RenderTask:
    return RenderTask(
        id=f"task_{index}",
        script_id=str(index),
        type_id="listicle",
        type_name="Listicle",
        backend="Mock",
        status=status,
        progress=progress,
    )


def test_empty_batch_reports_zero_progress():
    assert calculate_batch_progress([]) == 0


def test_progress_counts_completed_and_generating_tasks():
    tasks = [
        make_task(TaskStatus.COMPLETED, 100, 1),
        make_task(TaskStatus.GENERATING, 50, 2),
        make_task(TaskStatus.PENDING, 0, 3),
        make_task(TaskStatus.FAILED, 40, 4),
    ]

    assert calculate_batch_progress(tasks) == 38


def test_queued_and_failed_tasks_contribute_nothing():
    tasks = [make_task(TaskStatus.QUEUED, 30, 1), make_task(TaskStatus.FAILED, 80, 2)]

    assert calculate_batch_progress(tasks) == 0


def test_two_of_three_completed_rounds_to_67():
    tasks = [
        make_task(TaskStatus.COMPLETED, 100, 1),
        make_task(TaskStatus.COMPLETED, 100, 2),
        make_task(TaskStatus.FAILED, 99, 3),
    ]

    assert calculate_batch_progress(tasks) == 67


@pytest.mark.parametrize(
    ("tasks", "expected"),
    [
        ([make_task(TaskStatus.GENERATING, 5, 1), make_task(TaskStatus.PENDING, 0, 2)], 3),
        (
            [make_task(TaskStatus.GENERATING, 10, 1)]
            + [make_task(TaskStatus.PENDING, 0, i) for i in range(2, 5)],
            3,
        ),
        ([make_task(TaskStatus.GENERATING, 1, 1), make_task(TaskStatus.QUEUED, 0, 2)], 1),
    ],
)
def test_half_percent_rounds_up(tasks, expected):
    assert calculate_batch_progress(tasks) == expected


@pytest.mark.parametrize(("value", "expected"), [(0.5, 1), (2.5, 3), (12.5, 13), (2.49, 2), (0, 0)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


@pytest.mark.parametrize(
    ("statuses", "expected"),
    [
        ([], BatchStatus.COMPLETED),
        ([TaskStatus.COMPLETED, TaskStatus.COMPLETED], BatchStatus.COMPLETED),
        ([TaskStatus.FAILED, TaskStatus.FAILED], BatchStatus.FAILED),
        ([TaskStatus.COMPLETED, TaskStatus.FAILED], BatchStatus.PARTIAL),
        ([TaskStatus.COMPLETED, TaskStatus.GENERATING], BatchStatus.GENERATING),
        ([TaskStatus.PENDING, TaskStatus.FAILED], BatchStatus.GENERATING),
    ],
)
def test_resolve_batch_status(statuses, expected):
    tasks = [make_task(status, index=i) for i, status in enumerate(statuses)]

    assert resolve_batch_status(tasks) is expected


def test_final_status_treats_leftover_tasks_as_partial():
    tasks = [make_task(TaskStatus.COMPLETED, 100, 1), make_task(TaskStatus.GENERATING, 40, 2)]

    assert resolve_batch_status(tasks, final=True) is BatchStatus.PARTIAL
