"""HTTP routes exposed by AdBlitz."""

from .batch_api import router

__all__ = ["router"]
