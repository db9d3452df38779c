"""Derived views over the flat ``Workout History`` rows.

History is fetched most-recent-first.  Rows carry no set number of their
own, so a row's set number is its position among the rows for the same
exercise and tool within its (week, day) session, counted in insertion
order.  An explicit ``SetNumber`` on the row wins when present.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from fitness_focus.models.workout import (
    HistoryEntry,
    LoggedSetInfo,
    WorkoutExercise,
    WorkoutSession,
    WorkoutSet,
    format_number,
    parse_number,
)
from fitness_focus.workouts.normalizer import clone_workout

logger = logging.getLogger("fitness_focus.workouts.history")

SessionKey = tuple[int, int]


def number_history(history: list[HistoryEntry]) -> list[tuple[HistoryEntry, int]]:
    """Pair each row with its set number, keeping the most-recent-first order."""
    counters: dict[tuple, int] = defaultdict(int)
    numbered: list[tuple[HistoryEntry, int]] = []
    for entry in reversed(history):
        key = (entry.week, entry.day, entry.exercise, entry.tool_key)
        counters[key] += 1
        numbered.append((entry, entry.set_number or counters[key]))
    numbered.reverse()
    return numbered


def latest_week_for_day(history: list[HistoryEntry], day: int) -> int | None:
    """Week of the most recent session logged for ``day``."""
    for entry in history:
        if entry.day == day:
            return entry.week
    return None


def _choose_session(
    candidates: list[tuple[HistoryEntry, int]], focus: SessionKey | None
) -> SessionKey:
    if focus is not None:
        for entry, _ in candidates:
            if (entry.week, entry.day) == focus:
                return focus
    first, _ = candidates[0]
    return first.week, first.day


def prefill_from_history(
    workout: list[WorkoutExercise],
    history: list[HistoryEntry],
    day: int | None = None,
) -> list[WorkoutExercise]:
    """Fill each set's logged weight/reps from the most recent matching history.

    Rows match on exercise name and tool.  When ``day`` is given, the most
    recent week that has entries for that day is preferred; otherwise (or if
    the exercise was not logged that week) the exercise's most recent session
    is used.  Sets with no matching row keep their current values.
    """
    updated = clone_workout(workout)
    if not history:
        return updated

    numbered = number_history(history)
    focus: SessionKey | None = None
    if day is not None:
        week = latest_week_for_day(history, day)
        if week is not None:
            focus = (week, day)

    for exercise in updated:
        candidates = [
            (entry, number)
            for entry, number in numbered
            if entry.exercise == exercise.name and entry.tool_key == exercise.tool
        ]
        if not candidates:
            continue

        session = _choose_session(candidates, focus)
        by_number: dict[int, HistoryEntry] = {}
        for entry, number in candidates:
            if (entry.week, entry.day) == session:
                by_number.setdefault(number, entry)

        for workout_set in exercise.sets:
            match = by_number.get(workout_set.set_number)
            if match is None:
                continue
            reps = parse_number(match.reps)
            workout_set.logged_weight = format_number(match.weight)
            workout_set.logged_reps = "" if reps is None else reps

    return updated


def group_sessions(history: list[HistoryEntry]) -> list[WorkoutSession]:
    """Group rows into (week, day) sessions, newest week and day first."""
    sessions: dict[SessionKey, WorkoutSession] = {}
    for entry, number in reversed(number_history(history)):
        key = (entry.week, entry.day)
        session = sessions.get(key)
        if session is None:
            session = sessions[key] = WorkoutSession(
                id=f"W{entry.week}-D{entry.day}",
                date=f"Week {entry.week}, Day {entry.day}",
                week=entry.week,
                day=entry.day,
                workout_name=f"Workout Week {entry.week}, Day {entry.day}",
            )
        session.logged_sets.append(
            LoggedSetInfo(
                exercise_name=entry.exercise,
                tool=entry.tool or None,
                set_number=number,
                weight=format_number(entry.weight),
                reps=format_number(entry.reps),
                target_muscle_group=entry.target_group or None,
            )
        )

    return sorted(sessions.values(), key=lambda s: (s.week, s.day), reverse=True)


def session_workout(
    history: list[HistoryEntry], week: int, day: int
) -> list[WorkoutExercise]:
    """Rebuild the workout logged for (week, day), one set per row.

    Returns an empty list when nothing was logged for that session.
    """
    exercises: dict[tuple[str, str], WorkoutExercise] = {}
    for entry in reversed(history):
        if (entry.week, entry.day) != (week, day):
            continue
        key = (entry.exercise, entry.tool_key)
        exercise = exercises.get(key)
        if exercise is None:
            exercise = exercises[key] = WorkoutExercise(
                name=entry.exercise,
                tool=entry.tool_key,
                target_muscle_group=entry.target_group or "",
            )
        reps = parse_number(entry.reps)
        exercise.sets.append(
            WorkoutSet(
                set_number=len(exercise.sets) + 1,
                logged_weight=format_number(entry.weight),
                logged_reps="" if reps is None else reps,
                is_completed=bool(entry.completed),
            )
        )

    return list(exercises.values())


def format_history_for_prompt(history: list[HistoryEntry], max_sessions: int = 10) -> str:
    """Plain-text summary of recent sessions for the AI coach."""
    lines: list[str] = []
    for session in group_sessions(history)[:max_sessions]:
        lines.append(f"{session.date}:")
        for logged in session.logged_sets:
            label = logged.exercise_name
            if logged.tool:
                label += f" ({logged.tool})"
            weight = logged.weight or "?"
            reps = logged.reps or "?"
            lines.append(f"  - {label} set {logged.set_number}: {weight} x {reps} reps")
    return "\n".join(lines)
