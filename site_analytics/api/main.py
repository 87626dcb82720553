"""
FastAPI application factory.

Run with: uvicorn --factory site_analytics.api.main:create_app
"""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from site_analytics.api.deps import get_rules, get_settings
from site_analytics.api.routes import admin_analytics
from site_analytics.rules.loader import load_rules
from site_analytics.rules.models import Rules

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()
    logger.info("Analytics database: %s", settings.db_path)
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    yield


def create_app(rules: Rules | None = None) -> FastAPI:
    """
    Build the API app.

    Rules are loaded and validated up front (fail-fast); pass them in to
    skip loading from disk.
    """
    logging.basicConfig(level=logging.INFO)
    settings = get_settings()

    if rules is None:
        try:
            rules = load_rules(settings.rules_path)
            logger.info("Rules loaded from %s", settings.rules_path)
        except (FileNotFoundError, ValueError) as e:
            logger.critical("Rules load failed: %s", e)
            sys.exit(1)

    app = FastAPI(
        title="Site Analytics API",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    loaded = rules
    app.dependency_overrides[get_rules] = lambda: loaded

    # --- Routers ---
    app.include_router(
        admin_analytics.router, prefix="/api/admin/analytics", tags=["Admin Analytics"]
    )

    # CORS (Allow Frontend)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=rules.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok", "service": "analytics"}

    return app
