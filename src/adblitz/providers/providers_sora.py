"""Sora 2 provider driver (OpenAI videos API, asynchronous polling)."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx

from ..domain.models import AspectRatio, ProviderJobState, ProviderJobStatus, RenderRequest
from ..errors import ConfigurationError, UpstreamError
from .providers_base import (
    ClockFunc,
    PollingDriver,
    SleepFunc,
    error_detail,
    json_body,
    parse_progress,
    snap_duration_up,
)

logger = logging.getLogger(__name__)

SORA_DURATIONS = (4, 8, 12)
SORA_SIZES = {
    AspectRatio.PORTRAIT: "720x1280",
    AspectRatio.LANDSCAPE: "1280x720",
    AspectRatio.SQUARE: "1080x1080",
}
_STATUS_MAP = {
    "queued": ProviderJobState.QUEUED,
    "in_progress": ProviderJobState.PROCESSING,
    "completed": ProviderJobState.COMPLETED,
    "failed": ProviderJobState.FAILED,
}


def to_sora_size(ratio: AspectRatio) -> str:
    return SORA_SIZES.get(ratio, SORA_SIZES[AspectRatio.PORTRAIT])


def to_sora_seconds(seconds: float) -> str:
    return str(snap_duration_up(seconds, SORA_DURATIONS))


@dataclass(slots=True)
class SoraDriver(PollingDriver):
    """Submit a render to ``/videos`` and poll until the clip is ready.

    Sora only exposes the finished clip as binary content, so on completion
    the driver downloads it into ``media_root`` and reports a ``file://``
    locator.
    """

    api_key: str | None = None
    api_base: str = "https://api.openai.com/v1"
    relay_base: str | None = None
    media_root: Path = field(default_factory=lambda: Path("./var/media"))
    model: str = "sora-2"
    timeout_seconds: float = 30.0
    poll_interval_seconds: float = 10.0
    poll_budget_seconds: float = 600.0
    sleep: SleepFunc = asyncio.sleep
    clock: ClockFunc = time.monotonic
    log: logging.Logger = field(default_factory=lambda: logger)

    provider_id = "sora"
    name = "Sora 2"

    async def submit(self, request: RenderRequest) -> ProviderJobStatus:
        self._ensure_configured()
        body: dict[str, Any] = {
            "model": self.model,
            "prompt": request.prompt,
            "size": to_sora_size(request.aspect_ratio),
            "seconds": to_sora_seconds(request.duration),
        }
        headers = {"Content-Type": "application/json", **self._auth_headers()}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(self._url("videos"), headers=headers, json=body)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Sora HTTP error: {exc}") from exc
        if not response.is_success:
            raise UpstreamError(f"Sora API error: {error_detail(response)}")

        data = json_body(response, provider="Sora")
        job_id = data.get("id") if isinstance(data, dict) else None
        if not job_id:
            raise UpstreamError("Sora did not return a video id")

        self.log.info(
            "sora.job.created",
            extra={"job_id": job_id, "size": body["size"], "seconds": body["seconds"]},
        )
        return ProviderJobStatus(id=str(job_id), status=ProviderJobState.QUEUED, progress=0)

    async def poll_once(self, job_id: str) -> ProviderJobStatus:
        self._ensure_configured()
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(self._url(f"videos/{job_id}"), headers=self._auth_headers())
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Sora HTTP error: {exc}") from exc
        if not response.is_success:
            raise UpstreamError(f"Sora API error: {error_detail(response)}")

        data = json_body(response, provider="Sora")
        if not isinstance(data, dict):
            raise UpstreamError("Sora status response is not an object")

        state = _STATUS_MAP.get(str(data.get("status")), ProviderJobState.QUEUED)
        if state is ProviderJobState.COMPLETED:
            video_url = await self._materialize_content(job_id)
            return ProviderJobStatus(
                id=job_id, status=ProviderJobState.COMPLETED, progress=100, video_url=video_url
            )

        error = data.get("error")
        message = error.get("message") if isinstance(error, dict) else None
        progress = 0
        if state is ProviderJobState.PROCESSING:
            progress = parse_progress(data.get("progress"), provider="Sora")
        return ProviderJobStatus(id=job_id, status=state, progress=progress, error=message)

    async def _materialize_content(self, job_id: str) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(
                    self._url(f"videos/{job_id}/content"), headers=self._auth_headers()
                )
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Sora content download failed: {exc}") from exc
        if not response.is_success:
            raise UpstreamError(f"Sora content download failed: {error_detail(response)}")

        target = self.media_root / f"{job_id}.mp4"
        await asyncio.to_thread(_write_bytes, target, response.content)
        self.log.info(
            "sora.content.stored",
            extra={"job_id": job_id, "path": str(target), "size_bytes": len(response.content)},
        )
        return target.resolve().as_uri()

    def _ensure_configured(self) -> None:
        if not self.relay_base and not self.api_key:
            raise ConfigurationError("OpenAI API key is not configured for Sora")

    def _url(self, path: str) -> str:
        if self.relay_base:
            return f"{self.relay_base.rstrip('/')}/api/sora/{path}"
        return f"{self.api_base.rstrip('/')}/{path}"

    def _auth_headers(self) -> dict[str, str]:
        if self.relay_base:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}


def _write_bytes(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
