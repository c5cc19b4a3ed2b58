"""FastAPI application entry point."""

from __future__ import annotations

from fastapi import FastAPI

from .api.batch_api import router as batch_router
from .config import AppConfig, load_config
from .logging import configure_logging
from .providers.providers_factory import BackendSelector, create_selector
from .services.batch_store import BatchStore
from .services.job_service import BatchJobService


def create_app(
    config: AppConfig | None = None,
    *,
    selector: BackendSelector | None = None,
) -> FastAPI:
    """Build FastAPI instance with configured dependencies."""
    configure_logging()
    cfg = config or load_config()
    app = FastAPI(title="AdBlitz")
    app.state.job_service = BatchJobService(selector or create_selector(cfg))
    app.state.batch_store = BatchStore()
    app.include_router(batch_router)
    return app


app = create_app()
