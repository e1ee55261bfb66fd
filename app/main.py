"""
FastAPI application entrypoint for the GitHub connection callback service.
"""

from __future__ import annotations

from fastapi import FastAPI

from app.api.routes import oauth_router
from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="GitHub Connection Callback",
        version="0.1.0",
        description="Links platform users and organizations to GitHub accounts.",
    )
    app.include_router(api_router, prefix="/api")
    app.include_router(oauth_router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
