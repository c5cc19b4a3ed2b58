"""Exceptions raised by the batch video generation pipeline."""


class AdBlitzError(Exception):
    """Base class for batch video generation errors."""


class ConfigurationError(AdBlitzError):
    """Raised when credentials are missing or a backend cannot be resolved."""


class UnknownBackendError(ConfigurationError):
    """Raised when a logical backend name is not registered."""


class NoBackendConfiguredError(ConfigurationError):
    """Raised when none of the provider credential sets is configured."""


class MissingInputError(AdBlitzError):
    """Raised when a task has no script or no usable generation prompt."""


class UpstreamError(AdBlitzError):
    """Raised when a provider responds with an error or a malformed body."""


class ProviderTimeoutError(AdBlitzError):
    """Raised when a provider does not finish before its deadline."""
