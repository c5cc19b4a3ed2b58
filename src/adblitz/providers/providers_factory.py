"""Backend selection for provider drivers.

:class:`BackendSelector` resolves a logical model name (``sora``, ``veo``,
``creatify``) to a driver instance. It also carries a content-aware policy
that picks the most capable configured backend for a creative type; the job
runner uses it when the caller asks for ``"auto"``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from ..config import AppConfig
from ..errors import NoBackendConfiguredError, UnknownBackendError
from .catalog_cache import CatalogCache
from .providers_base import ProviderDriver
from .providers_creatify import CreatifyDriver
from .providers_sora import SoraDriver
from .providers_veo import VeoDriver

AUTO_BACKEND = "auto"
DEFAULT_BACKEND = "sora"

DIALOGUE_LED_TYPES = frozenset(
    {
        "ugc-testimonial",
        "reaction-review",
        "faq-objection",
        "problem-solution",
        "listicle",
        "myth-busting",
        "social-proof",
        "emotional-hook",
        "quick-hack",
        "how-to-tutorial",
        "countdown-reveal",
        "feature-highlight",
    }
)
SCENE_LED_TYPES = frozenset(
    {
        "story-narrative",
        "day-in-life",
        "unboxing-reveal",
        "before-after",
        "challenge-trend",
    }
)
FALLBACK_PRIORITY = ("veo", "sora", "creatify")


class CreativeCategory(str, Enum):
    DIALOGUE_LED = "dialogue-led"
    SCENE_LED = "scene-led"
    OTHER = "other"


def classify_creative_type(type_id: str) -> CreativeCategory:
    if type_id in DIALOGUE_LED_TYPES:
        return CreativeCategory.DIALOGUE_LED
    if type_id in SCENE_LED_TYPES:
        return CreativeCategory.SCENE_LED
    return CreativeCategory.OTHER


@dataclass(slots=True)
class BackendSelector:
    """Registry of provider drivers keyed by logical backend name."""

    drivers: dict[str, ProviderDriver] = field(default_factory=dict)
    configured: dict[str, bool] = field(default_factory=dict)

    def register(self, name: str, driver: ProviderDriver, *, configured: bool = True) -> None:
        self.drivers[name] = driver
        self.configured[name] = configured

    def get(self, name: str) -> ProviderDriver:
        driver = self.drivers.get(name)
        if driver is None:
            available = ", ".join(self.names()) or "none"
            raise UnknownBackendError(f"Unknown video backend '{name}'. Available: {available}")
        return driver

    def names(self) -> list[str]:
        return list(self.drivers)

    def default(self) -> ProviderDriver:
        return self.get(DEFAULT_BACKEND)

    def is_configured(self, name: str) -> bool:
        return name in self.drivers and self.configured.get(name, False)

    def select_best(self, type_id: str) -> ProviderDriver:
        """Pick a backend for ``type_id`` by content category and credentials.

        Dialogue-led and scene-led types prefer the lip-sync capable ``veo``
        backend; everything else walks ``veo -> sora -> creatify`` until a
        configured backend is found.
        """

        category = classify_creative_type(type_id)
        if category is not CreativeCategory.OTHER and self.is_configured("veo"):
            return self.get("veo")
        for name in FALLBACK_PRIORITY:
            if self.is_configured(name):
                return self.get(name)
        raise NoBackendConfiguredError(
            "No video backend is configured; set credentials for at least one provider"
        )

    def describe(self) -> Mapping[str, object]:
        return {
            "backends": self.names(),
            "default": DEFAULT_BACKEND,
            "configured": {name: self.is_configured(name) for name in self.names()},
        }


def create_selector(
    config: AppConfig,
    *,
    voice_cache: CatalogCache | None = None,
    avatar_cache: CatalogCache | None = None,
) -> BackendSelector:
    """Instantiate every known driver from ``config``."""
    selector = BackendSelector()
    selector.register(
        "sora",
        SoraDriver(
            api_key=config.openai_api_key,
            api_base=config.sora_api_base,
            relay_base=config.api_base_url,
            media_root=config.media_root,
            timeout_seconds=config.request_timeout_seconds,
            poll_interval_seconds=config.sora_poll_interval_seconds,
            poll_budget_seconds=config.poll_budget_seconds,
        ),
        configured=config.has_sora(),
    )
    selector.register(
        "veo",
        VeoDriver(
            api_key=config.fal_api_key,
            fal_run_url=config.fal_run_url,
            relay_base=config.api_base_url,
            short_timeout_seconds=config.veo_short_timeout_seconds,
            long_timeout_seconds=config.veo_long_timeout_seconds,
            progress_interval_seconds=config.veo_progress_interval_seconds,
        ),
        configured=config.has_veo(),
    )
    selector.register(
        "creatify",
        CreatifyDriver(
            api_id=config.creatify_api_id,
            api_key=config.creatify_api_key,
            api_base=config.creatify_api_base,
            voice_cache=voice_cache or CatalogCache(),
            avatar_cache=avatar_cache or CatalogCache(),
            timeout_seconds=config.request_timeout_seconds,
            poll_interval_seconds=config.creatify_poll_interval_seconds,
            poll_budget_seconds=config.poll_budget_seconds,
        ),
        configured=config.has_creatify(),
    )
    return selector
