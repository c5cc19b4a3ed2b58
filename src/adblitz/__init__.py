"""AdBlitz batch video generation orchestrator.

Turns approved ad scripts into render jobs on external video providers
(Sora, Veo via fal.ai, Creatify), tracks them to completion one at a time and
reports a single batch-level progress figure.
"""

from .errors import (
    AdBlitzError,
    ConfigurationError,
    MissingInputError,
    NoBackendConfiguredError,
    ProviderTimeoutError,
    UnknownBackendError,
    UpstreamError,
)
from .services.job_service import BatchJobService

__all__ = [
    "AdBlitzError",
    "BatchJobService",
    "ConfigurationError",
    "MissingInputError",
    "NoBackendConfiguredError",
    "ProviderTimeoutError",
    "UnknownBackendError",
    "UpstreamError",
]
