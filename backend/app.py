"""
FastAPI application -- Metior API server.

Run locally:
    uvicorn backend.app:app --reload --port 8000

On Railway the Procfile handles this (see railway_start.py).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

import config_env
from backend.database import init_db
from backend.errors import register_exception_handlers
from backend.routes import companies, investors, plugins, search
from plugin_system import build_plugin_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialise database schema
    await init_db()
    logger.info(
        "Metior API started (%d plugins registered)", len(app.state.plugins.registry)
    )

    yield

    # Shutdown: run plugin cleanup hooks
    await app.state.plugins.shutdown()


def create_app() -> FastAPI:
    logging.basicConfig(
        level=getattr(logging, config_env.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Metior API",
        version="1.0.0",
        description="Startup data platform -- companies, investors and profile plugins",
        lifespan=lifespan,
    )
    # Registry is populated before the first request, independent of the lifespan
    app.state.plugins = build_plugin_service(
        disabled=config_env.DISABLED_PLUGINS,
        load_timeout=config_env.PLUGIN_LOAD_TIMEOUT_SECONDS,
    )
    register_exception_handlers(app)

    app.include_router(companies.router)
    app.include_router(investors.router)
    app.include_router(search.router)
    app.include_router(plugins.router)

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint."""
        service = request.app.state.plugins
        return {
            "status": "ok",
            "plugins_registered": len(service.registry),
            "plugins_loaded": len(service.loader.loaded_ids),
        }

    return app


app = create_app()
