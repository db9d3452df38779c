"""Fitness Focus API: FastAPI application entry point.

Run locally:
    uvicorn fitness_focus.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fitness_focus.config import get_settings
from fitness_focus.middleware.api_token import ApiTokenMiddleware
from fitness_focus.routers import health, history, state, suggestions, templates
from fitness_focus.services.supabase import close_pool, init_pool

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("fitness_focus")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logger.info(
        "Starting Fitness Focus API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    await init_pool(settings)
    yield
    await close_pool()
    logger.info("Fitness Focus API shut down")


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Fitness Focus API",
        description=(
            "Workout logging: day templates, logged set history, a saved-state "
            "slot for resuming, and AI exercise suggestions."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ---------- Middleware (order matters, outermost first) ----------

    # Bearer token (no-op when API_TOKEN is unset)
    app.add_middleware(ApiTokenMiddleware, settings=settings)

    # CORS must be the innermost middleware so it can handle preflight
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Health check (outside v1 prefix, always at /health) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    v1_prefix = "/api/v1"

    app.include_router(templates.router, prefix=v1_prefix)
    app.include_router(history.router, prefix=v1_prefix)
    app.include_router(state.router, prefix=v1_prefix)
    app.include_router(suggestions.router, prefix=v1_prefix)

    return app


app = create_app()
