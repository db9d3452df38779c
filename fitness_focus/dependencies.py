"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from fitness_focus.config import Settings, get_settings
from fitness_focus.services.store import SupabaseWorkoutStore
from fitness_focus.workouts.base import WorkoutBackend


def get_store(settings: Annotated[Settings, Depends(get_settings)]) -> WorkoutBackend:
    """Database-backed persistence adapter for the current request."""
    return SupabaseWorkoutStore(settings)


# Annotated shortcuts for route signatures
Store = Annotated[WorkoutBackend, Depends(get_store)]
