"""Provider drivers for the external video rendering services."""

from .catalog_cache import CatalogCache
from .providers_base import PollingDriver, ProgressCallback, ProviderDriver, snap_duration_up
from .providers_creatify import CreatifyDriver
from .providers_factory import AUTO_BACKEND, BackendSelector, classify_creative_type, create_selector
from .providers_sora import SoraDriver
from .providers_veo import VeoDriver, estimate_veo_cost

__all__ = [
    "AUTO_BACKEND",
    "BackendSelector",
    "CatalogCache",
    "CreatifyDriver",
    "PollingDriver",
    "ProgressCallback",
    "ProviderDriver",
    "SoraDriver",
    "VeoDriver",
    "classify_creative_type",
    "create_selector",
    "estimate_veo_cost",
    "snap_duration_up",
]
