"""Batch orchestration services."""

from .batch_store import BatchStore
from .job_service import BatchJobService, resolve_image_reference, select_prompt

__all__ = [
    "BatchJobService",
    "BatchStore",
    "resolve_image_reference",
    "select_prompt",
]
