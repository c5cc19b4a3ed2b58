"""Provider capability interface shared by every video rendering backend.

A driver exposes exactly three operations. ``submit`` must return quickly
with a job id; ``poll_once`` performs one non-blocking status check and
``await_completion`` waits until the job is terminal or the driver's deadline
elapses. Drivers never swallow errors: transport failures, non-success
responses and malformed bodies raise :class:`UpstreamError`, missing
credentials raise :class:`ConfigurationError` and deadlines raise
:class:`ProviderTimeoutError`.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Union

import httpx

from ..domain.models import ProviderJobState, ProviderJobStatus, RenderRequest
from ..errors import ProviderTimeoutError, UpstreamError

ProgressCallback = Callable[[ProviderJobStatus], Union[None, Awaitable[None]]]
SleepFunc = Callable[[float], Awaitable[None]]
ClockFunc = Callable[[], float]


class ProviderDriver(ABC):
    """Base interface for video rendering drivers."""

    provider_id: str
    name: str
    supports_lipsync: bool = False

    @abstractmethod
    async def submit(self, request: RenderRequest) -> ProviderJobStatus:
        """Start rendering and return a status carrying the job id."""

    @abstractmethod
    async def poll_once(self, job_id: str) -> ProviderJobStatus:
        """Perform a single status check for ``job_id``."""

    @abstractmethod
    async def await_completion(
        self, job_id: str, on_progress: ProgressCallback | None = None
    ) -> ProviderJobStatus:
        """Wait until ``job_id`` completes, fails or times out."""


async def notify_progress(callback: ProgressCallback | None, status: ProviderJobStatus) -> None:
    """Invoke ``callback`` whether it is a plain function or a coroutine function."""
    if callback is None:
        return
    result = callback(status)
    if inspect.isawaitable(result):
        await result


def snap_duration_up(seconds: float, buckets: Sequence[int]) -> int:
    """Return the smallest supported bucket not shorter than ``seconds``.

    Requests longer than the largest bucket are capped at that bucket.
    """

    ordered = sorted(buckets)
    for bucket in ordered:
        if seconds <= bucket:
            return bucket
    return ordered[-1]


def error_detail(response: httpx.Response) -> str:
    """Extract a human-readable error description from a provider response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        for key in ("detail", "message", "error"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase or f"HTTP {response.status_code}"


def json_body(response: httpx.Response, *, provider: str) -> Any:
    """Decode a JSON body, mapping malformed payloads onto :class:`UpstreamError`."""
    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamError(f"{provider} returned a malformed response body") from exc


def parse_progress(value: Any, *, provider: str) -> int:
    """Read a provider-reported percentage, clamped to ``0..100``."""
    if value is None or value == "":
        return 0
    try:
        progress = int(float(value))
    except (TypeError, ValueError, OverflowError) as exc:
        raise UpstreamError(f"{provider} reported a malformed progress value: {value!r}") from exc
    return min(max(progress, 0), 100)


class PollingDriver(ProviderDriver):
    """Shared ``await_completion`` loop for asynchronous-poll providers.

    Subclasses implement ``submit`` and ``poll_once``; the loop sleeps
    ``poll_interval_seconds`` before each status check and gives up with
    :class:`ProviderTimeoutError` once ``poll_budget_seconds`` has elapsed.
    Concrete drivers are dataclasses providing ``poll_interval_seconds``,
    ``poll_budget_seconds``, ``sleep``, ``clock`` and ``log``.
    """

    poll_interval_seconds: float
    poll_budget_seconds: float
    sleep: SleepFunc
    clock: ClockFunc
    log: logging.Logger

    async def await_completion(
        self, job_id: str, on_progress: ProgressCallback | None = None
    ) -> ProviderJobStatus:
        started = self.clock()
        polls = 0
        while self.clock() - started < self.poll_budget_seconds:
            await self.sleep(self.poll_interval_seconds)
            status = await self.poll_once(job_id)
            polls += 1
            await notify_progress(on_progress, status)

            if status.status is ProviderJobState.COMPLETED:
                self.log.info(
                    "%s.job.completed",
                    self.provider_id,
                    extra={"job_id": job_id, "polls": polls},
                )
                return status
            if status.status is ProviderJobState.FAILED:
                raise UpstreamError(f"{self.name} generation failed: {status.error or 'unknown error'}")

        self.log.warning(
            "%s.job.timeout",
            self.provider_id,
            extra={"job_id": job_id, "polls": polls},
        )
        raise ProviderTimeoutError(
            f"{self.name} generation timed out after {int(self.poll_budget_seconds)}s"
        )
