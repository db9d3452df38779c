"""Health check endpoint. Public, no auth required.

Offline clients poll it to decide whether they are online, so it answers 200
even when the database is down and reports the problem in the body instead.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from fitness_focus.config import get_settings
from fitness_focus.services.store import TRANSPORT_ERRORS
from fitness_focus.services.supabase import get_pool

router = APIRouter(tags=["system"])
logger = logging.getLogger("fitness_focus.health")

WORKOUT_TABLES = ("Templates", "Workout History", "Current State")


async def _probe_tables() -> dict[str, bool] | None:
    """Which workout tables exist, or None if the database is unreachable."""
    try:
        async with get_pool().acquire() as conn:
            rows = await conn.fetch(
                "SELECT name, to_regclass(format('%I', name)) IS NOT NULL AS present "
                "FROM unnest($1::text[]) AS name",
                list(WORKOUT_TABLES),
            )
    except TRANSPORT_ERRORS as exc:
        logger.warning("Health check DB probe failed: %s", exc)
        return None
    return {row["name"]: row["present"] for row in rows}


@router.get("/health")
async def health_check() -> dict:
    settings = get_settings()
    tables = await _probe_tables()
    db_ok = tables is not None
    ready = db_ok and all(tables.values())

    return {
        "status": "healthy" if ready else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if db_ok else "unreachable",
        "tables": tables or {},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
