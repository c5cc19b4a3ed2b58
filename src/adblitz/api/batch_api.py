"""Routes for starting batch video generation and reading its progress."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from ..domain.models import BatchGenerateOptions, ProductInfo, VideoScript
from ..errors import ConfigurationError
from ..services.batch_store import BatchStore
from ..services.job_service import BatchJobService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["batches"])


class BatchCreateRequest(BaseModel):
    product: ProductInfo
    scripts: list[VideoScript] = Field(default_factory=list)
    options: BatchGenerateOptions = Field(default_factory=BatchGenerateOptions)


def get_job_service(request: Request) -> BatchJobService:
    return request.app.state.job_service  # type: ignore[attr-defined]


def get_batch_store(request: Request) -> BatchStore:
    return request.app.state.batch_store  # type: ignore[attr-defined]


@router.get("/backends")
def list_backends(service: BatchJobService = Depends(get_job_service)) -> dict[str, Any]:
    """Return registered backends and whether their credentials are present."""
    return dict(service.selector.describe())


@router.post("/batches", status_code=status.HTTP_202_ACCEPTED)
def create_batch(
    payload: BatchCreateRequest,
    background: BackgroundTasks,
    service: BatchJobService = Depends(get_job_service),
    store: BatchStore = Depends(get_batch_store),
) -> dict[str, Any]:
    """Create a batch and schedule its execution after the response is sent."""
    try:
        job = service.create_batch_job(
            payload.product.product_name, payload.scripts, payload.options.video_model
        )
    except ConfigurationError as exc:
        logger.warning(
            "batch.rejected",
            video_model=payload.options.video_model,
            reason=str(exc),
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    options = payload.options
    if not options.product_images:
        options = options.model_copy(update={"product_images": list(payload.product.images)})

    store.save(job.snapshot())
    background.add_task(service.execute_batch_job, job, payload.scripts, options, store.save)
    logger.info(
        "batch.accepted",
        batch_id=job.id,
        tasks=len(job.tasks),
        video_model=options.video_model,
    )
    return job.to_dict()


@router.get("/batches/{batch_id}")
def get_batch(batch_id: str, store: BatchStore = Depends(get_batch_store)) -> dict[str, Any]:
    """Return the latest snapshot of a batch."""
    job = store.get(batch_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")
    return job.to_dict()
