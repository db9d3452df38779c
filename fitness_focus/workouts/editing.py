"""Pure editing operations on a workout.

Every function returns a new list and leaves its input untouched, so the
controller can swap ``current_workout`` in one assignment.
"""

from __future__ import annotations

from typing import Any

from fitness_focus.models.workout import WorkoutExercise, WorkoutSet
from fitness_focus.workouts.normalizer import clone_workout, normalize_for_display

DEFAULT_EXERCISE_NAME = "New Exercise"


class EditRejected(ValueError):
    """An edit that would leave the workout without a single set."""


def blank_set(set_number: int = 1) -> WorkoutSet:
    return WorkoutSet(set_number=set_number)


def new_exercise(name: str = DEFAULT_EXERCISE_NAME) -> WorkoutExercise:
    return WorkoutExercise(name=name, sets=[blank_set()])


def default_workout() -> list[WorkoutExercise]:
    return [new_exercise()]


def _check_index(items: list, index: int, what: str) -> None:
    # negative indices are rejected, not wrapped
    if not 0 <= index < len(items):
        raise IndexError(f"{what} index {index} out of range")


def renumber_sets(sets: list[WorkoutSet]) -> list[WorkoutSet]:
    """Renumber ``sets`` 1..N in their current order."""
    return [s.model_copy(update={"set_number": i}) for i, s in enumerate(sets, start=1)]


def add_exercise(
    workout: list[WorkoutExercise], name: str = DEFAULT_EXERCISE_NAME
) -> list[WorkoutExercise]:
    return [*clone_workout(workout), new_exercise(name)]


def remove_exercise(workout: list[WorkoutExercise], index: int) -> list[WorkoutExercise]:
    """Drop the exercise at ``index``.

    Raises:
        EditRejected: If it is the only exercise and has at most one set.
        IndexError:   If ``index`` is out of range.
    """
    _check_index(workout, index, "exercise")
    target = workout[index]
    if len(workout) <= 1 and len(target.sets) <= 1:
        raise EditRejected("At least one exercise with one set must remain.")

    remaining = [ex for i, ex in enumerate(clone_workout(workout)) if i != index]
    return remaining or default_workout()


def add_set(workout: list[WorkoutExercise], exercise_index: int) -> list[WorkoutExercise]:
    _check_index(workout, exercise_index, "exercise")
    updated = clone_workout(workout)
    exercise = updated[exercise_index]
    exercise.sets.append(blank_set(len(exercise.sets) + 1))
    return updated


def remove_set(
    workout: list[WorkoutExercise], exercise_index: int, set_index: int
) -> list[WorkoutExercise]:
    """Drop one set and renumber the rest of the exercise 1..N.

    Removing the last set of an exercise removes the exercise itself.

    Raises:
        EditRejected: If it is the only set left in the whole workout.
        IndexError:   If either index is out of range.
    """
    _check_index(workout, exercise_index, "exercise")
    exercise = workout[exercise_index]
    _check_index(exercise.sets, set_index, "set")

    if len(exercise.sets) <= 1:
        if len(workout) == 1:
            raise EditRejected("At least one set must remain in the workout.")
        return remove_exercise(workout, exercise_index)

    updated = clone_workout(workout)
    target = updated[exercise_index]
    target.sets = renumber_sets([s for i, s in enumerate(target.sets) if i != set_index])
    return updated


def update_exercise(
    workout: list[WorkoutExercise], exercise_index: int, **changes: Any
) -> list[WorkoutExercise]:
    """Replace fields (``name``, ``tool``, ``target_muscle_group``) of one exercise."""
    _check_index(workout, exercise_index, "exercise")
    updated = clone_workout(workout)
    merged = {**updated[exercise_index].model_dump(), **changes}
    updated[exercise_index] = normalize_for_display([merged])[0]
    return updated


def update_set(
    workout: list[WorkoutExercise], exercise_index: int, set_index: int, **changes: Any
) -> list[WorkoutExercise]:
    """Replace fields of one set; values go through the usual coercion.

    ``update_set(w, 0, 1, logged_weight="82.5", logged_reps="5", is_completed=True)``
    """
    _check_index(workout, exercise_index, "exercise")
    _check_index(workout[exercise_index].sets, set_index, "set")
    updated = clone_workout(workout)
    exercise = updated[exercise_index]
    merged = {**exercise.sets[set_index].model_dump(), **changes}
    exercise.sets[set_index] = WorkoutSet.model_validate(merged)
    return updated


def reset_to_template(initial: list[WorkoutExercise]) -> list[WorkoutExercise]:
    """Fresh copy of the initial template, or a default workout if there is none."""
    if initial:
        return clone_workout(initial)
    return default_workout()
