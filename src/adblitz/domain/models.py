"""Domain models for batch video generation.

``RenderTask`` and ``BatchJob`` are mutable dataclasses owned by the job
runner; observers only ever receive copies produced by
:meth:`BatchJob.snapshot`. ``RenderRequest`` and ``ProviderJobStatus`` are
immutable values exchanged with provider drivers. Records consumed from the
analysis and script layers (``ProductInfo``, ``VideoScript``) and the caller's
generation options are pydantic models so they can be validated at the HTTP
and CLI boundaries.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    """Lifecycle of a single script-to-video render."""

    PENDING = "pending"
    QUEUED = "queued"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class BatchStatus(str, Enum):
    """Aggregate status of a batch job."""

    PREPARING = "preparing"
    GENERATING = "generating"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class ProviderJobState(str, Enum):
    """Provider-agnostic job state reported by drivers."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProviderJobState.COMPLETED, ProviderJobState.FAILED)


class AspectRatio(str, Enum):
    PORTRAIT = "9:16"
    LANDSCAPE = "16:9"
    SQUARE = "1:1"


class Resolution(str, Enum):
    HD = "720p"
    FULL_HD = "1080p"


@dataclass(frozen=True, slots=True)
class RenderRequest:
    """Generic render request translated by each driver into its wire format."""

    prompt: str
    duration: int
    aspect_ratio: AspectRatio = AspectRatio.PORTRAIT
    image_url: str | None = None
    generate_audio: bool = False
    resolution: Resolution = Resolution.HD
    language: str = "en"


@dataclass(frozen=True, slots=True)
class ProviderJobStatus:
    """Status snapshot returned by provider drivers."""

    id: str
    status: ProviderJobState
    progress: int = 0
    video_url: str | None = None
    error: str | None = None


@dataclass(slots=True)
class RenderTask:
    """One request to turn one script into one video."""

    id: str
    script_id: str
    type_id: str
    type_name: str
    backend: str
    status: TaskStatus = TaskStatus.PENDING
    progress: int = 0
    video_url: str | None = None
    thumbnail_url: str | None = None
    error: str | None = None
    submitted_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(slots=True)
class BatchJob:
    """Ordered collection of render tasks built from one approved script set."""

    id: str
    product_name: str
    tasks: list[RenderTask] = field(default_factory=list)
    status: BatchStatus = BatchStatus.PREPARING
    progress: int = 0
    created_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None

    @staticmethod
    def new_id() -> str:
        return f"batch_{uuid4().hex}"

    def snapshot(self) -> BatchJob:
        """Return a detached copy safe to hand to observers."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_name": self.product_name,
            "status": self.status.value,
            "progress": self.progress,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "tasks": [
                {
                    "id": task.id,
                    "script_id": task.script_id,
                    "type_id": task.type_id,
                    "type_name": task.type_name,
                    "backend": task.backend,
                    "status": task.status.value,
                    "progress": task.progress,
                    "video_url": task.video_url,
                    "thumbnail_url": task.thumbnail_url,
                    "error": task.error,
                    "submitted_at": task.submitted_at.isoformat() if task.submitted_at else None,
                    "completed_at": task.completed_at.isoformat() if task.completed_at else None,
                }
                for task in self.tasks
            ],
        }


class ProductInfo(BaseModel):
    """Product record produced by the analysis layer."""

    product_name: str
    product_url: str | None = None
    category: str = ""
    target_user: str = ""
    core_problem: str = ""
    core_benefits: list[str] = Field(default_factory=list)
    key_features: list[str] = Field(default_factory=list)
    differentiators: list[str] = Field(default_factory=list)
    risk_sensitive: bool = False
    additional_notes: str | None = None
    images: list[str] = Field(default_factory=list)


class VideoScript(BaseModel):
    """Approved script produced by the script generation layer.

    ``sora_prompt`` is the visual-only prompt variant; ``veo_prompt`` is the
    lip-sync variant describing a speaking presenter.
    """

    id: str
    type_id: str
    type_name: str
    title: str = ""
    duration: int = Field(default=8, ge=1)
    language: str = "en"
    hook: str = ""
    body: str = ""
    cta: str = ""
    full_script: str = ""
    visual_direction: str = ""
    sora_prompt: str | None = None
    veo_prompt: str | None = None


class BatchGenerateOptions(BaseModel):
    """Caller-selected generation options applied to every task of a batch."""

    aspect_ratio: AspectRatio = AspectRatio.PORTRAIT
    video_model: str = "sora"
    generate_audio: bool = False
    resolution: Resolution = Resolution.HD
    language: str = "en"
    product_images: list[str] = Field(default_factory=list)
