"""Domain entities and pure helpers for batch video generation."""

from .models import (
    AspectRatio,
    BatchGenerateOptions,
    BatchJob,
    BatchStatus,
    ProductInfo,
    ProviderJobState,
    ProviderJobStatus,
    RenderRequest,
    RenderTask,
    Resolution,
    TaskStatus,
    VideoScript,
)
from .progress import calculate_batch_progress, resolve_batch_status, round_half_up

__all__ = [
    "AspectRatio",
    "BatchGenerateOptions",
    "BatchJob",
    "BatchStatus",
    "ProductInfo",
    "ProviderJobState",
    "ProviderJobStatus",
    "RenderRequest",
    "RenderTask",
    "Resolution",
    "TaskStatus",
    "VideoScript",
    "calculate_batch_progress",
    "resolve_batch_status",
    "round_half_up",
]
