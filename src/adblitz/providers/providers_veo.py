"""Veo 3.1 provider driver (fal.ai synchronous endpoint).

fal.run answers one blocking POST with the finished clip, so ``submit`` only
prepares the payload under a local job id and ``await_completion`` performs
the real call. While that call is in flight a ticker emits a synthetic
progress curve; it lives in a task group and is cancelled before the outcome
is published, so no progress event can follow a terminal status.

Pricing (Veo 3.1 Fast): $0.10/s without audio, $0.15/s with audio.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import httpx

from ..domain.models import ProviderJobState, ProviderJobStatus, RenderRequest
from ..domain.progress import round_half_up
from ..errors import ConfigurationError, MissingInputError, ProviderTimeoutError, UpstreamError
from .providers_base import (
    ClockFunc,
    ProgressCallback,
    ProviderDriver,
    SleepFunc,
    error_detail,
    json_body,
    notify_progress,
    snap_duration_up,
)

logger = logging.getLogger(__name__)

VEO_MODEL_TEXT = "fal-ai/veo3.1/fast"
VEO_MODEL_IMAGE = "fal-ai/veo3.1/fast/image-to-video"
VEO_DURATIONS = (4, 6, 8)

# (elapsed_start, elapsed_end, progress_start, progress_end)
_LONG_CURVE = ((0, 60, 10, 35), (60, 120, 35, 55), (120, 200, 55, 75), (200, 300, 75, 90))
_LONG_TAIL = (300, 180)
_SHORT_CURVE = ((0, 30, 10, 40), (30, 60, 40, 70), (60, 120, 70, 90))
_SHORT_TAIL = (120, 120)


def to_veo_duration(seconds: float) -> str:
    return f"{snap_duration_up(seconds, VEO_DURATIONS)}s"


def synthetic_progress(elapsed: float, *, long_task: bool) -> int:
    """Map elapsed seconds onto an estimated percentage that stays below 100."""
    curve, (tail_start, tail_span) = (
        (_LONG_CURVE, _LONG_TAIL) if long_task else (_SHORT_CURVE, _SHORT_TAIL)
    )
    elapsed = max(elapsed, 0.0)
    for start, end, low, high in curve:
        if elapsed < end:
            return round_half_up(low + (elapsed - start) / (end - start) * (high - low))
    return round_half_up(90 + min(9.0, (elapsed - tail_start) / tail_span * 9))


def estimate_veo_cost(duration_seconds: float, with_audio: bool) -> float:
    """Return the estimated USD cost of a Veo 3.1 Fast render."""
    rate = 0.15 if with_audio else 0.10
    return round(duration_seconds * rate, 2)


@dataclass(slots=True)
class PendingRender:
    model: str
    input: dict[str, Any]

    @property
    def long_task(self) -> bool:
        return bool(self.input.get("image_url")) and bool(self.input.get("generate_audio"))


@dataclass(slots=True)
class VeoDriver(ProviderDriver):
    """Render clips with Veo 3.1 through one blocking fal.run call."""

    api_key: str | None = None
    fal_run_url: str = "https://fal.run"
    relay_base: str | None = None
    short_timeout_seconds: float = 240.0
    long_timeout_seconds: float = 480.0
    progress_interval_seconds: float = 2.0
    completed_cache_size: int = 256
    sleep: SleepFunc = asyncio.sleep
    clock: ClockFunc = time.monotonic
    log: logging.Logger = field(default_factory=lambda: logger)
    _pending: dict[str, PendingRender] = field(default_factory=dict, init=False, repr=False)
    _completed: dict[str, str] = field(default_factory=dict, init=False, repr=False)

    provider_id = "veo"
    name = "Veo 3.1"
    supports_lipsync = True

    async def submit(self, request: RenderRequest) -> ProviderJobStatus:
        if not self.relay_base and not self.api_key:
            raise ConfigurationError("fal.ai API key is not configured for Veo")

        model = VEO_MODEL_IMAGE if request.image_url else VEO_MODEL_TEXT
        payload: dict[str, Any] = {
            "prompt": request.prompt,
            "aspect_ratio": request.aspect_ratio.value,
            "duration": to_veo_duration(request.duration),
            "resolution": request.resolution.value,
            "generate_audio": request.generate_audio,
        }
        if request.image_url:
            payload["image_url"] = request.image_url

        job_id = f"veo_{uuid4().hex[:12]}"
        self._pending[job_id] = PendingRender(model=model, input=payload)
        self.log.info(
            "veo.job.prepared",
            extra={
                "job_id": job_id,
                "model": model,
                "generate_audio": payload["generate_audio"],
                "resolution": payload["resolution"],
                "duration": payload["duration"],
            },
        )
        return ProviderJobStatus(id=job_id, status=ProviderJobState.QUEUED, progress=0)

    async def poll_once(self, job_id: str) -> ProviderJobStatus:
        video_url = self._completed.get(job_id)
        if video_url:
            return ProviderJobStatus(
                id=job_id, status=ProviderJobState.COMPLETED, progress=100, video_url=video_url
            )
        if job_id in self._pending:
            return ProviderJobStatus(id=job_id, status=ProviderJobState.PROCESSING, progress=50)
        raise MissingInputError(f"Unknown Veo job '{job_id}'")

    async def await_completion(
        self, job_id: str, on_progress: ProgressCallback | None = None
    ) -> ProviderJobStatus:
        pending = self._pending.pop(job_id, None)
        if pending is None:
            cached = self._completed.get(job_id)
            if cached:
                return ProviderJobStatus(
                    id=job_id, status=ProviderJobState.COMPLETED, progress=100, video_url=cached
                )
            raise MissingInputError(f"Unknown Veo job '{job_id}'")

        long_task = pending.long_task
        budget = self.long_timeout_seconds if long_task else self.short_timeout_seconds
        started = self.clock()
        self.log.info(
            "veo.request.start",
            extra={"job_id": job_id, "model": pending.model, "long_task": long_task, "budget_s": budget},
        )

        failure: Exception | None = None
        try:
            async with asyncio.TaskGroup() as group:
                ticker = group.create_task(
                    self._emit_synthetic_progress(job_id, started, long_task, on_progress)
                )
                try:
                    response = await self._call(pending, budget)
                finally:
                    ticker.cancel()
        except* Exception as errors:
            failure = errors.exceptions[0]

        if failure is not None:
            self.log.warning("veo.request.failed", extra={"job_id": job_id, "error": str(failure)})
            raise failure

        if not response.is_success:
            raise UpstreamError(f"Veo API error ({response.status_code}): {error_detail(response)}")
        video_url = _extract_video_url(json_body(response, provider="Veo"))
        if not video_url:
            raise UpstreamError("Veo finished without returning a video URL")

        self._remember(job_id, video_url)
        self.log.info(
            "veo.request.completed",
            extra={"job_id": job_id, "elapsed_s": round(self.clock() - started, 1)},
        )
        status = ProviderJobStatus(
            id=job_id, status=ProviderJobState.COMPLETED, progress=100, video_url=video_url
        )
        await notify_progress(on_progress, status)
        return status

    def _remember(self, job_id: str, video_url: str) -> None:
        self._completed[job_id] = video_url
        while len(self._completed) > self.completed_cache_size:
            self._completed.pop(next(iter(self._completed)))

    async def _call(self, pending: PendingRender, budget: float) -> httpx.Response:
        """Run the blocking POST under ``budget``, mapping every failure onto driver errors."""
        try:
            async with asyncio.timeout(budget):
                return await self._post(pending, timeout=budget)
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise ProviderTimeoutError(
                f"Veo generation timed out ({int(budget // 60)} min without a result)"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Veo HTTP error: {exc}") from exc
        except Exception as exc:
            raise UpstreamError(f"Veo request failed: {exc}") from exc

    async def _emit_synthetic_progress(
        self,
        job_id: str,
        started: float,
        long_task: bool,
        on_progress: ProgressCallback | None,
    ) -> None:
        while True:
            await self.sleep(self.progress_interval_seconds)
            progress = synthetic_progress(self.clock() - started, long_task=long_task)
            await notify_progress(
                on_progress,
                ProviderJobStatus(id=job_id, status=ProviderJobState.PROCESSING, progress=progress),
            )

    async def _post(self, pending: PendingRender, *, timeout: float) -> httpx.Response:
        if self.relay_base:
            url = f"{self.relay_base.rstrip('/')}/api/fal/{pending.model}"
            headers = {"Content-Type": "application/json"}
        else:
            url = f"{self.fal_run_url.rstrip('/')}/{pending.model}"
            headers = {"Content-Type": "application/json", "Authorization": f"Key {self.api_key}"}
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.post(url, headers=headers, json=pending.input)


def _extract_video_url(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    for container in (body, body.get("data")):
        if isinstance(container, dict):
            video = container.get("video")
            if isinstance(video, dict) and video.get("url"):
                return str(video["url"])
    return None
