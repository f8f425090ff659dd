"""
FastAPI application entrypoint for the B2C auth plugin.
"""

from __future__ import annotations

from fastapi import FastAPI

from b2c_auth.api.routes import router as api_router
from b2c_auth.core.config import get_settings
from b2c_auth.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Azure AD B2C Auth Plugin",
        version="0.1.0",
        description="Login hooks, redirect handling and state cleanup for B2C sign-in.",
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
