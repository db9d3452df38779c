"""Day templates: read one, or replace it with the current routine."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Path

from fitness_focus.dependencies import Store
from fitness_focus.models.workout import SaveTemplateRequest, TemplateSaved, WorkoutTemplate
from fitness_focus.workouts.base import StoreError

router = APIRouter(prefix="/templates", tags=["templates"])
logger = logging.getLogger("fitness_focus.routers.templates")


@router.get("/{day}", response_model=WorkoutTemplate)
async def get_template(store: Store, day: int = Path(ge=1)) -> Any:
    template = await store.fetch_template(day)
    if template is None:
        raise HTTPException(status_code=404, detail=f"No template for day {day}")
    return template


@router.put("/{day}", response_model=TemplateSaved)
async def save_template(body: SaveTemplateRequest, store: Store, day: int = Path(ge=1)) -> Any:
    if not any(exercise.sets for exercise in body.exercises):
        raise HTTPException(status_code=400, detail="No exercises to save")
    try:
        rows = await store.save_template(day, body.exercises)
    except StoreError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    logger.info("Template for day %d replaced (%s)", day, body.name or "unnamed")
    return TemplateSaved(day=day, rows_written=rows)
