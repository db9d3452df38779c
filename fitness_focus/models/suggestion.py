"""Pydantic models for AI exercise suggestions."""

from __future__ import annotations

from pydantic import Field

from fitness_focus.models.base import FitnessBase


class SuggestionRequest(FitnessBase):
    workout_history: str = Field(min_length=1)
    target_muscle_group: str = Field(min_length=1)


class SuggestionResponse(FitnessBase):
    exercise_name: str
    sets: int = Field(ge=1)
    reps: int = Field(ge=1)
    weight: str  # includes units, e.g. "40 kg"
    reasoning: str
