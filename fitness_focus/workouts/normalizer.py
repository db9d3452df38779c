"""Coerce loosely-typed workout data into the canonical ``WorkoutExercise`` shape.

Both directions go through the same pydantic boundary
(``fitness_focus.models.workout``):

- ``normalize_for_display``: after loading from the state slot, the local
  snapshot or a template: ids filled in, optional text fields defaulted to
  ``""``, ``logged_reps`` a number or ``""``, ``is_completed`` a bool.
- ``normalize_for_persistence``: before saving or submitting: the same
  coercions on a JSON round-trip, so the result shares nothing with the
  live workout.

Neither function raises; unusable entries are dropped or defaulted, and
applying either one twice gives the same result as applying it once.
"""

from __future__ import annotations

import json
from typing import Any

from fitness_focus.models.workout import WorkoutExercise, workout_items


def normalize_for_display(raw: Any) -> list[WorkoutExercise]:
    """Build a canonical workout from arbitrary exercise records."""
    return [WorkoutExercise.model_validate(item) for item in workout_items(raw)]


def normalize_for_persistence(workout: Any) -> list[WorkoutExercise]:
    """Canonical, detached copy of ``workout`` that is safe to serialize."""
    plain = json.loads(json.dumps(dump_workout(normalize_for_display(workout))))
    return [WorkoutExercise.model_validate(item) for item in plain]


def dump_workout(workout: list[WorkoutExercise]) -> list[dict]:
    """Wire (camelCase, JSON-safe) form of a workout."""
    return [exercise.to_wire() for exercise in workout]


def clone_workout(workout: list[WorkoutExercise]) -> list[WorkoutExercise]:
    return [exercise.model_copy(deep=True) for exercise in workout]
