"""Pydantic models for workouts, logged history and the app state snapshot.

The workout models are the single parsing boundary for loosely-typed data:
anything read from the ``Current State`` slot, the local snapshot file or an
API body goes through the ``mode="before"`` validators below, which default
missing ids, coerce numeric-as-string fields and never reject a malformed
set or exercise.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from fitness_focus.models.base import FitnessBase, utc_now


def new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Scalar coercion helpers
# ---------------------------------------------------------------------------


def parse_number(value: Any) -> int | float | None:
    """Return ``value`` as an int or float, or None when blank or unparsable.

    Integral values come back as ``int`` so that ``"5"``, ``5`` and ``5.0``
    all normalize to the same thing.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    if number.is_integer():
        return int(number)
    return number


def format_number(value: Any) -> str:
    """Render a stored value as display text (``80.0`` → ``"80"``)."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    number = parse_number(value)
    if number is None:
        return str(value)
    return str(number)


def _parse_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "y"}
    return bool(value)


def _pick(raw: Mapping, camel: str, snake: str) -> Any:
    if camel in raw:
        return raw[camel]
    return raw.get(snake)


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def workout_items(raw: Any) -> list[dict]:
    """Plain dict copies of the exercise entries in ``raw``.

    Non-list input yields an empty list; entries that are neither mappings nor
    models are dropped.
    """
    if not isinstance(raw, (list, tuple)):
        return []
    items: list[dict] = []
    for item in raw:
        if isinstance(item, BaseModel):
            items.append(item.model_dump(by_alias=True))
        elif isinstance(item, Mapping):
            items.append(dict(item))
    return items


# ---------------------------------------------------------------------------
# Workout
# ---------------------------------------------------------------------------


class WorkoutSet(FitnessBase):
    """One set of an exercise, as edited in the logger."""

    id: str = Field(default_factory=new_id)
    set_number: int = Field(default=1, ge=1)
    target_weight: str = ""
    target_reps: int | float | None = None
    logged_weight: str = ""
    logged_reps: int | float | Literal[""] = ""
    is_completed: bool = False
    notes: str = ""

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: Any) -> Any:
        if isinstance(data, WorkoutSet):
            return data
        if not isinstance(data, Mapping):
            return {}

        coerced: dict[str, Any] = {
            "id": _as_text(data.get("id")).strip() or new_id(),
            "targetWeight": format_number(_pick(data, "targetWeight", "target_weight")),
            "targetReps": parse_number(_pick(data, "targetReps", "target_reps")),
            "loggedWeight": format_number(_pick(data, "loggedWeight", "logged_weight")),
            "isCompleted": _parse_flag(_pick(data, "isCompleted", "is_completed")),
            "notes": _as_text(data.get("notes")),
        }
        reps = parse_number(_pick(data, "loggedReps", "logged_reps"))
        coerced["loggedReps"] = "" if reps is None else reps

        set_number = parse_number(_pick(data, "setNumber", "set_number"))
        if isinstance(set_number, int) and set_number >= 1:
            coerced["setNumber"] = set_number
        return coerced


class WorkoutExercise(FitnessBase):
    """An exercise in the current workout and its ordered sets."""

    id: str = Field(default_factory=new_id)
    name: str = ""
    tool: str = ""
    target_muscle_group: str = ""
    sets: list[WorkoutSet] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: Any) -> Any:
        if isinstance(data, WorkoutExercise):
            return data
        if not isinstance(data, Mapping):
            return {}

        sets: list[dict] = []
        raw_sets = data.get("sets")
        for position, raw_set in enumerate(workout_items(raw_sets), start=1):
            number = parse_number(_pick(raw_set, "setNumber", "set_number"))
            if not (isinstance(number, int) and number >= 1):
                raw_set["setNumber"] = position
            sets.append(raw_set)

        return {
            "id": _as_text(data.get("id")).strip() or new_id(),
            "name": _as_text(data.get("name")),
            "tool": _as_text(data.get("tool")),
            "targetMuscleGroup": _as_text(
                _pick(data, "targetMuscleGroup", "target_muscle_group")
            ),
            "sets": sets,
        }

    @property
    def completed_sets(self) -> list[WorkoutSet]:
        return [s for s in self.sets if s.is_completed]


Workout = list[WorkoutExercise]


class WorkoutTemplate(FitnessBase):
    """The exercise/set structure for one day of the cycle."""

    id: str
    name: str
    day_identifier: int
    exercises: list[WorkoutExercise] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Logged history
# ---------------------------------------------------------------------------


class HistoryEntry(FitnessBase):
    """One row of the ``Workout History`` table (one completed set).

    Aliases are the table's column names, so rows from asyncpg validate
    directly and API responses mirror the table.
    """

    id: int | None = None
    week: int = Field(alias="Week")
    day: int = Field(alias="Day")
    target_group: str | None = Field(default=None, alias="Target Group")
    exercise: str = Field(alias="Exercise")
    weight: int | float | None = Field(default=None, alias="Weight")
    reps: int | float | None = Field(default=None, alias="Reps")
    completed: bool | None = Field(default=None, alias="Completed")
    tool: str | None = Field(default=None, alias="Tool")
    set_number: int | None = Field(default=None, alias="SetNumber")

    @field_validator("weight", "reps", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> int | float | None:
        return parse_number(value)

    @property
    def tool_key(self) -> str:
        return self.tool or ""


class LoggedSetInfo(FitnessBase):
    exercise_name: str
    tool: str | None = None
    set_number: int
    weight: str = ""
    reps: str = ""
    notes: str = ""
    target_muscle_group: str | None = None


class WorkoutSession(FitnessBase):
    """History rows sharing one (week, day) pair."""

    id: str
    date: str
    week: int
    day: int
    workout_name: str | None = None
    logged_sets: list[LoggedSetInfo] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Snapshot / offline queue
# ---------------------------------------------------------------------------


class QueuedWorkout(FitnessBase):
    """A log attempt made while offline, waiting for the next drain.

    ``submission_id`` is generated when the attempt is queued and travels with
    every replay so the store can reject rows it already wrote.
    """

    week: int
    day: int
    workout: list[WorkoutExercise] = Field(default_factory=list)
    submission_id: str = Field(default_factory=new_id)
    queued_at: datetime = Field(default_factory=utc_now)

    @field_validator("workout", mode="before")
    @classmethod
    def _workout(cls, value: Any) -> list[dict]:
        return workout_items(value)


class AppStateSnapshot(FitnessBase):
    """Everything needed to resume the logger where it was left."""

    selected_week: int = Field(default=1, ge=1)
    selected_day: int = Field(default=1, ge=1)
    current_workout: list[WorkoutExercise] = Field(default_factory=list)
    loaded_template_name: str | None = None
    initial_template_workout: list[WorkoutExercise] = Field(default_factory=list)
    queued_workouts: list[QueuedWorkout] = Field(default_factory=list)

    @field_validator("current_workout", "initial_template_workout", mode="before")
    @classmethod
    def _workout(cls, value: Any) -> list[dict]:
        return workout_items(value)

    @field_validator("queued_workouts", mode="before")
    @classmethod
    def _queue(cls, value: Any) -> list[Any]:
        if not isinstance(value, (list, tuple)):
            return []
        return [item for item in value if isinstance(item, (Mapping, QueuedWorkout))]


class SubmitResult(FitnessBase):
    success: bool
    logged_count: int = 0
    error: str | None = None


# ---------------------------------------------------------------------------
# API bodies
# ---------------------------------------------------------------------------


class LogWorkoutRequest(FitnessBase):
    week: int = Field(ge=1)
    day: int = Field(ge=1)
    workout: list[WorkoutExercise] = Field(default_factory=list)
    submission_id: str | None = None

    @field_validator("workout", mode="before")
    @classmethod
    def _workout(cls, value: Any) -> list[dict]:
        return workout_items(value)


class SaveTemplateRequest(FitnessBase):
    name: str | None = None
    exercises: list[WorkoutExercise] = Field(default_factory=list)

    @field_validator("exercises", mode="before")
    @classmethod
    def _exercises(cls, value: Any) -> list[dict]:
        return workout_items(value)


class TemplateSaved(FitnessBase):
    day: int
    rows_written: int
