"""Workout history: list logged sets, group them into sessions, log new ones."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from fitness_focus.dependencies import Store
from fitness_focus.models.workout import (
    HistoryEntry,
    LogWorkoutRequest,
    SubmitResult,
    WorkoutSession,
)
from fitness_focus.workouts.history import group_sessions

router = APIRouter(prefix="/history", tags=["history"])


@router.get("", response_model=list[HistoryEntry])
async def list_history(store: Store) -> Any:
    return await store.fetch_history()


@router.get("/sessions", response_model=list[WorkoutSession])
async def list_sessions(store: Store) -> Any:
    return group_sessions(await store.fetch_history())


@router.post("", response_model=SubmitResult)
async def log_workout(body: LogWorkoutRequest, store: Store) -> Any:
    result = await store.submit_workout(
        body.week, body.day, body.workout, submission_id=body.submission_id
    )
    if not result.success:
        raise HTTPException(status_code=502, detail=result.error or "Could not log workout")
    return result
