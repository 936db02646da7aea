"""FastAPI application factory."""

from fastapi import FastAPI

from agency_import.api.errors import register_exception_handlers
from agency_import.api.router import router
from agency_import.config.loader import load_config_or_default
from agency_import.models.config_models import ImportConfig


def create_app(config: ImportConfig | None = None) -> FastAPI:
    """Build the app. Without an explicit config, config/import.yml (or defaults) is used."""
    app = FastAPI(title="Agency Bulk Import", version="0.1.0")
    app.state.config = config if config is not None else load_config_or_default()
    register_exception_handlers(app)
    app.include_router(router, prefix="/admin/agencies", tags=["agency-import"])
    return app
