"""Application configuration for AdBlitz.

Provider credentials are read from ``ADBLITZ_*`` environment variables. When
``api_base_url`` points at the credential-hiding relay, adapters talk to the
relay routes and send no credentials themselves; Sora and Veo are then
considered configured.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_media_root() -> Path:
    return Path("./var/media")


class AppConfig(BaseSettings):
    """Pydantic settings container for provider drivers and the job runner."""

    model_config = SettingsConfigDict(env_prefix="ADBLITZ_", extra="ignore")

    api_base_url: str | None = Field(
        default=None,
        description="Base URL of the relay that keeps provider credentials server-side.",
    )
    openai_api_key: str | None = Field(default=None, description="Sora (OpenAI) API key.")
    sora_api_base: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of the OpenAI videos API.",
    )
    fal_api_key: str | None = Field(default=None, description="fal.ai key used for Veo.")
    fal_run_url: str = Field(default="https://fal.run", description="fal.ai synchronous endpoint.")
    creatify_api_id: str | None = Field(default=None, description="Creatify X-API-ID header.")
    creatify_api_key: str | None = Field(default=None, description="Creatify X-API-KEY header.")
    creatify_api_base: str = Field(
        default="https://api.creatify.ai/api",
        description="Base URL of the Creatify REST API.",
    )
    media_root: Path = Field(
        default_factory=_default_media_root,
        description="Directory where downloaded video content is materialised.",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for submit/status/lookup HTTP calls.",
    )
    sora_poll_interval_seconds: float = Field(default=10.0, gt=0)
    creatify_poll_interval_seconds: float = Field(default=8.0, gt=0)
    poll_budget_seconds: float = Field(
        default=600.0,
        gt=0,
        description="Wall-clock budget for asynchronous-poll providers.",
    )
    veo_short_timeout_seconds: float = Field(default=240.0, gt=0)
    veo_long_timeout_seconds: float = Field(default=480.0, gt=0)
    veo_progress_interval_seconds: float = Field(default=2.0, gt=0)

    @property
    def uses_relay(self) -> bool:
        return bool(self.api_base_url)

    def has_sora(self) -> bool:
        return self.uses_relay or bool(self.openai_api_key)

    def has_veo(self) -> bool:
        return self.uses_relay or bool(self.fal_api_key)

    def has_creatify(self) -> bool:
        # The relay has no Creatify route; both headers are always required.
        return bool(self.creatify_api_id and self.creatify_api_key)


def load_config() -> AppConfig:
    """Load configuration from the environment."""
    return AppConfig()
