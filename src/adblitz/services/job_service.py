"""Batch job runner driving render tasks through provider drivers.

Tasks are executed strictly one at a time, in list order, to stay within
third-party rate limits. Any error raised while preparing, submitting or
awaiting a task fails that task only; the remaining tasks still run. Errors
resolving the requested backend are configuration errors and abort before
any task starts.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from typing import Union

from ..domain.models import (
    BatchGenerateOptions,
    BatchJob,
    BatchStatus,
    ProviderJobStatus,
    RenderRequest,
    RenderTask,
    TaskStatus,
    VideoScript,
    utcnow,
)
from ..domain.progress import calculate_batch_progress, resolve_batch_status
from ..errors import MissingInputError, UpstreamError
from ..logging import batch_context
from ..providers.providers_base import ProviderDriver
from ..providers.providers_factory import AUTO_BACKEND, BackendSelector

UpdateCallback = Callable[[BatchJob], Union[None, Awaitable[None]]]

SCRIPT_NOT_FOUND = "script not found"
MISSING_PROMPT = "missing generation prompt"


def select_prompt(script: VideoScript, driver: ProviderDriver) -> tuple[str | None, bool]:
    """Return ``(prompt, is_lipsync)`` for ``script`` rendered by ``driver``.

    The lip-sync variant wins when the backend supports it and one was
    generated; otherwise the visual-only variant is used.
    """

    if driver.supports_lipsync and script.veo_prompt:
        return script.veo_prompt, True
    return script.sora_prompt or None, False


def resolve_image_reference(images: Sequence[str]) -> str | None:
    """Prefer a public network URL; fall back to the first image of any form."""
    if not images:
        return None
    return next((image for image in images if image.startswith("http")), images[0])


class BatchJobService:
    """Create batch jobs and execute them sequentially."""

    def __init__(
        self,
        selector: BackendSelector,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.selector = selector
        self._clock = clock or utcnow
        self._logger = logging.getLogger(__name__)

    def create_batch_job(
        self,
        product_name: str,
        scripts: Sequence[VideoScript],
        video_model: str,
    ) -> BatchJob:
        """Build a ``preparing`` batch with one pending task per script.

        Raises :class:`~adblitz.errors.ConfigurationError` when the backend
        cannot be resolved.
        """

        if video_model == AUTO_BACKEND:
            backends = [self.selector.select_best(script.type_id).name for script in scripts]
        else:
            backends = [self.selector.get(video_model).name] * len(scripts)

        tasks = [
            RenderTask(
                id=f"task_{script.id}",
                script_id=script.id,
                type_id=script.type_id,
                type_name=script.type_name,
                backend=backend,
            )
            for script, backend in zip(scripts, backends)
        ]
        job = BatchJob(
            id=BatchJob.new_id(),
            product_name=product_name,
            tasks=tasks,
            created_at=self._clock(),
        )
        self._logger.info(
            "batch.created",
            extra={"batch_id": job.id, "tasks": len(tasks), "video_model": video_model},
        )
        return job

    async def execute_batch_job(
        self,
        job: BatchJob,
        scripts: Sequence[VideoScript],
        options: BatchGenerateOptions,
        on_update: UpdateCallback | None = None,
    ) -> BatchJob:
        """Run every task of ``job`` and return it in a terminal status."""

        fixed_driver: ProviderDriver | None = None
        if options.video_model != AUTO_BACKEND:
            fixed_driver = self.selector.get(options.video_model)

        with batch_context(job.id):
            job.status = BatchStatus.GENERATING
            await self._notify(on_update, job)

            script_map = {script.id: script for script in scripts}
            for task in job.tasks:
                await self._run_task(job, task, script_map, options, fixed_driver, on_update)
                job.progress = calculate_batch_progress(job.tasks)
                await self._notify(on_update, job)

            job.status = resolve_batch_status(job.tasks, final=True)
            job.completed_at = self._clock()
            self._logger.info(
                "batch.finished",
                extra={"status": job.status.value, "progress": job.progress},
            )
            await self._notify(on_update, job)
        return job

    async def _run_task(
        self,
        job: BatchJob,
        task: RenderTask,
        script_map: dict[str, VideoScript],
        options: BatchGenerateOptions,
        fixed_driver: ProviderDriver | None,
        on_update: UpdateCallback | None,
    ) -> None:
        try:
            script = script_map.get(task.script_id)
            if script is None:
                raise MissingInputError(SCRIPT_NOT_FOUND)
            driver = fixed_driver or self.selector.select_best(task.type_id)
            prompt, lipsync = select_prompt(script, driver)
            if not prompt:
                raise MissingInputError(MISSING_PROMPT)

            task.status = TaskStatus.QUEUED
            task.backend = driver.name
            task.submitted_at = self._clock()
            await self._notify(on_update, job)

            request = RenderRequest(
                prompt=prompt,
                duration=script.duration,
                aspect_ratio=options.aspect_ratio,
                image_url=resolve_image_reference(options.product_images),
                # Lip-sync needs a synthesized voice.
                generate_audio=True if lipsync else options.generate_audio,
                resolution=options.resolution,
                language=options.language or script.language,
            )
            submitted = await driver.submit(request)
            task.status = TaskStatus.GENERATING
            job.progress = calculate_batch_progress(job.tasks)
            await self._notify(on_update, job)

            async def _on_progress(status: ProviderJobStatus) -> None:
                if task.status is not TaskStatus.GENERATING:
                    return
                # Stays below 100 until the task itself is completed.
                task.progress = min(max(task.progress, status.progress), 99)
                job.progress = calculate_batch_progress(job.tasks)
                await self._notify(on_update, job)

            result = await driver.await_completion(submitted.id, _on_progress)
            if not result.video_url:
                raise UpstreamError(f"{driver.name} completed without a video URL")

            task.status = TaskStatus.COMPLETED
            task.progress = 100
            task.video_url = result.video_url
            task.completed_at = self._clock()
            self._logger.info(
                "batch.task.completed",
                extra={"task_id": task.id, "backend": task.backend},
            )
        except Exception as exc:
            task.status = TaskStatus.FAILED
            task.error = str(exc) or exc.__class__.__name__
            self._logger.warning(
                "batch.task.failed",
                extra={"task_id": task.id, "error": task.error},
            )

    @staticmethod
    async def _notify(callback: UpdateCallback | None, job: BatchJob) -> None:
        if callback is None:
            return
        result = callback(job.snapshot())
        if inspect.isawaitable(result):
            await result


__all__ = [
    "BatchJobService",
    "MISSING_PROMPT",
    "SCRIPT_NOT_FOUND",
    "UpdateCallback",
    "resolve_image_reference",
    "select_prompt",
]
