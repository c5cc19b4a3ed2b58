"""Creatify lipsync provider driver (text to talking-avatar video).

The driver submits the script text to ``/lipsyncs/`` and polls the job until
Creatify reports ``done``. Avatar and voice ids are resolved through the
persona/voice catalogs unless explicitly configured; lookups are cached per
process in injectable :class:`CatalogCache` instances.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..domain.models import AspectRatio, ProviderJobState, ProviderJobStatus, RenderRequest
from ..errors import ConfigurationError, UpstreamError
from .catalog_cache import CatalogCache
from .providers_base import ClockFunc, PollingDriver, SleepFunc, error_detail, json_body

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VoicePreference:
    gender: str
    accents: tuple[str, ...]


LANGUAGE_VOICE_MAP: dict[str, VoicePreference] = {
    "es": VoicePreference("female", ("Spanish", "Mexican", "Latin American")),
    "pt": VoicePreference("female", ("Portuguese", "Brazilian")),
    "en": VoicePreference("female", ("American", "British")),
    "zh": VoicePreference("female", ("Chinese", "Mandarin")),
}
DEFAULT_LANGUAGE = "en"

CREATIFY_ASPECT_RATIOS = {
    AspectRatio.PORTRAIT: "9x16",
    AspectRatio.LANDSCAPE: "16x9",
    AspectRatio.SQUARE: "1x1",
}

_STATUS_MAP = {
    "pending": ProviderJobState.QUEUED,
    "in_queue": ProviderJobState.QUEUED,
    "running": ProviderJobState.PROCESSING,
    "done": ProviderJobState.COMPLETED,
    "failed": ProviderJobState.FAILED,
}
_PROGRESS = {
    ProviderJobState.QUEUED: 0,
    ProviderJobState.PROCESSING: 50,
    ProviderJobState.COMPLETED: 100,
    ProviderJobState.FAILED: 0,
}


def to_creatify_aspect_ratio(ratio: AspectRatio) -> str:
    return CREATIFY_ASPECT_RATIOS.get(ratio, CREATIFY_ASPECT_RATIOS[AspectRatio.PORTRAIT])


def pick_voice(voices: list[dict[str, Any]], language: str) -> str | None:
    """Choose an accent id for ``language`` from a Creatify voice catalog.

    Tiers: gender and accent match, then accent match for any gender, then
    the first accent of the first voice that has any.
    """

    pref = LANGUAGE_VOICE_MAP.get(language) or LANGUAGE_VOICE_MAP[DEFAULT_LANGUAGE]
    with_accents = [voice for voice in voices if voice.get("accents")]

    def _match(candidates: list[dict[str, Any]]) -> str | None:
        for voice in candidates:
            for target in pref.accents:
                for accent in voice["accents"]:
                    if target.lower() in str(accent.get("accent_name", "")).lower():
                        return str(accent["id"])
        return None

    exact = _match([voice for voice in with_accents if voice.get("gender") == pref.gender])
    if exact is not None:
        return exact
    accent_only = _match(with_accents)
    if accent_only is not None:
        return accent_only
    if with_accents:
        return str(with_accents[0]["accents"][0]["id"])
    return None


@dataclass(slots=True)
class CreatifyDriver(PollingDriver):
    """Render talking-avatar clips via Creatify's lipsync endpoint."""

    api_id: str | None = None
    api_key: str | None = None
    api_base: str = "https://api.creatify.ai/api"
    avatar_id: str | None = None
    voice_id: str | None = None
    voice_cache: CatalogCache = field(default_factory=CatalogCache)
    avatar_cache: CatalogCache = field(default_factory=CatalogCache)
    timeout_seconds: float = 30.0
    poll_interval_seconds: float = 8.0
    poll_budget_seconds: float = 600.0
    sleep: SleepFunc = asyncio.sleep
    clock: ClockFunc = time.monotonic
    log: logging.Logger = field(default_factory=lambda: logger)

    provider_id = "creatify"
    name = "Creatify"

    async def submit(self, request: RenderRequest) -> ProviderJobStatus:
        self._ensure_configured()
        language = request.language or DEFAULT_LANGUAGE
        avatar_id = self.avatar_id or await self.default_avatar_id()
        voice_id = self.voice_id or await self.voice_for_language(language)

        body = {
            "text": request.prompt,
            "creator": avatar_id,
            "accent": voice_id,
            "aspect_ratio": to_creatify_aspect_ratio(request.aspect_ratio),
            "model_version": "standard",
            "no_caption": False,
            "no_music": True,
        }
        response = await self._request("POST", "lipsyncs/", json=body)
        data = json_body(response, provider="Creatify")
        job_id = data.get("id") if isinstance(data, dict) else None
        if not job_id:
            raise UpstreamError("Creatify did not return a lipsync id")

        self.log.info(
            "creatify.job.created",
            extra={"job_id": job_id, "avatar_id": avatar_id, "voice_id": voice_id, "language": language},
        )
        return ProviderJobStatus(id=str(job_id), status=ProviderJobState.QUEUED, progress=0)

    async def poll_once(self, job_id: str) -> ProviderJobStatus:
        self._ensure_configured()
        response = await self._request("GET", f"lipsyncs/{job_id}/")
        data = json_body(response, provider="Creatify")
        if not isinstance(data, dict):
            raise UpstreamError("Creatify status response is not an object")

        state = _STATUS_MAP.get(str(data.get("status")), ProviderJobState.QUEUED)
        video_url = data.get("output") if state is ProviderJobState.COMPLETED else None
        if state is ProviderJobState.COMPLETED and not video_url:
            raise UpstreamError("Creatify finished without an output URL")
        return ProviderJobStatus(
            id=job_id,
            status=state,
            progress=_PROGRESS[state],
            video_url=video_url,
            error=data.get("failed_reason") or None,
        )

    async def default_avatar_id(self) -> str:
        """Return the first active persona id, falling back to the first persona."""

        async def _load() -> str:
            personas = await self.list_avatars()
            if not personas:
                raise UpstreamError("Creatify has no personas available")
            preferred = next((p for p in personas if p.get("is_active")), personas[0])
            self.log.info(
                "creatify.avatar.selected",
                extra={"avatar_id": preferred.get("id"), "creator_name": preferred.get("creator_name")},
            )
            return str(preferred["id"])

        return await self.avatar_cache.get_or_load("default", _load)

    async def voice_for_language(self, language: str) -> str:
        key = language or DEFAULT_LANGUAGE

        async def _load() -> str:
            voices = await self.list_voices()
            if not voices:
                raise UpstreamError("Creatify has no voices available")
            voice_id = pick_voice(voices, key)
            if voice_id is None:
                raise UpstreamError(f"Creatify has no voice with accent data for language '{key}'")
            self.log.info("creatify.voice.selected", extra={"language": key, "voice_id": voice_id})
            return voice_id

        return await self.voice_cache.get_or_load(key, _load)

    async def list_avatars(self) -> list[dict[str, Any]]:
        response = await self._request("GET", "personas/")
        return _as_list(json_body(response, provider="Creatify"), what="persona")

    async def list_voices(self) -> list[dict[str, Any]]:
        response = await self._request("GET", "voices/")
        return _as_list(json_body(response, provider="Creatify"), what="voice")

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        self._ensure_configured()
        url = f"{self.api_base.rstrip('/')}/{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                if method == "POST":
                    response = await client.post(url, headers=self._headers(), **kwargs)
                else:
                    response = await client.get(url, headers=self._headers())
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Creatify HTTP error: {exc}") from exc
        if not response.is_success:
            raise UpstreamError(f"Creatify API error ({response.status_code}): {error_detail(response)}")
        return response

    def _ensure_configured(self) -> None:
        if not self.api_id or not self.api_key:
            raise ConfigurationError("Creatify API id and key must both be configured")

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-API-ID": self.api_id or "",
            "X-API-KEY": self.api_key or "",
        }


def _as_list(payload: Any, *, what: str) -> list[dict[str, Any]]:
    if not isinstance(payload, list):
        raise UpstreamError(f"Creatify {what} catalog is not a list")
    return [item for item in payload if isinstance(item, dict)]
