"""Shared fixtures for the workout logger tests.

``FakeBackend`` is an in-memory ``WorkoutBackend``: templates and the state
slot are plain attributes, submitted sets are appended to ``history`` the way
the database appends rows, and failures are switched on per call.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from fitness_focus.models.suggestion import SuggestionRequest, SuggestionResponse
from fitness_focus.models.workout import (
    AppStateSnapshot,
    HistoryEntry,
    SubmitResult,
    WorkoutExercise,
    WorkoutSet,
    WorkoutTemplate,
    parse_number,
)
from fitness_focus.workouts.base import StoreError, SuggestionError, WorkoutBackend
from fitness_focus.workouts.local_store import LocalStateStore


class FakeBackend(WorkoutBackend):
    SOURCE_ID = "fake"

    def __init__(self) -> None:
        self.templates: dict[int, WorkoutTemplate] = {}
        self.history: list[HistoryEntry] = []  # most recent first
        self.snapshot: AppStateSnapshot | None = None
        self.saved_templates: dict[int, list[WorkoutExercise]] = {}
        self.suggestion: SuggestionResponse | None = None

        self.template_fetches: list[int] = []
        self.submissions: list[tuple[int, int, str | None]] = []
        self.reject_weeks: set[int] = set()
        self.fail_snapshot = False
        self.reachable = True

    async def ping(self) -> bool:
        return self.reachable

    async def fetch_template(self, day: int) -> WorkoutTemplate | None:
        self.template_fetches.append(day)
        template = self.templates.get(day)
        return template.model_copy(deep=True) if template else None

    async def fetch_history(self) -> list[HistoryEntry]:
        return list(self.history)

    async def submit_workout(self, week, day, workout, submission_id=None) -> SubmitResult:
        self.submissions.append((week, day, submission_id))
        if week in self.reject_weeks:
            return SubmitResult(success=False, logged_count=0, error="Database error: boom")

        base_id = len(self.history)
        completed = [
            (exercise, workout_set)
            for exercise in workout
            for workout_set in exercise.completed_sets
        ]
        rows = [
            HistoryEntry(
                id=base_id + position,
                week=week,
                day=day,
                exercise=exercise.name,
                tool=exercise.tool or None,
                weight=parse_number(workout_set.logged_weight),
                reps=parse_number(workout_set.logged_reps),
                completed=True,
            )
            for position, (exercise, workout_set) in enumerate(completed, start=1)
        ]
        # history is newest first; rows were inserted in order
        self.history = list(reversed(rows)) + self.history
        return SubmitResult(success=True, logged_count=len(rows))

    async def get_snapshot(self) -> AppStateSnapshot | None:
        if self.fail_snapshot:
            raise StoreError("Database error: unreachable")
        return self.snapshot

    async def put_snapshot(self, snapshot: AppStateSnapshot) -> None:
        if self.fail_snapshot:
            raise StoreError("Database error: unreachable")
        self.snapshot = snapshot

    async def save_template(self, day, workout) -> int:
        self.saved_templates[day] = workout
        return sum(len(exercise.sets) for exercise in workout)

    async def suggest_exercise(self, request: SuggestionRequest) -> SuggestionResponse:
        if self.suggestion is None:
            raise SuggestionError("Suggestion service unavailable")
        return self.suggestion


def make_exercise(name: str, tool: str = "", sets: int = 3, **kwargs) -> WorkoutExercise:
    return WorkoutExercise(
        name=name,
        tool=tool,
        sets=[WorkoutSet(set_number=i) for i in range(1, sets + 1)],
        **kwargs,
    )


def make_template(day: int, *exercises: WorkoutExercise) -> WorkoutTemplate:
    return WorkoutTemplate(
        id=f"supabase-day-{day}-test",
        name=f"Day {day} Workout",
        day_identifier=day,
        exercises=list(exercises),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def backend() -> FakeBackend:
    fake = FakeBackend()
    fake.templates[1] = make_template(1, make_exercise("Bench Press", "Barbell"))
    fake.templates[2] = make_template(2, make_exercise("Squat", "Barbell"))
    return fake


@pytest.fixture
def local_store(tmp_path: Path) -> LocalStateStore:
    return LocalStateStore(tmp_path)


@pytest.fixture
def squat_history() -> list[HistoryEntry]:
    """One logged set: Week 1 / Day 2 / Squat / Barbell, 80 x 5."""
    return [
        HistoryEntry.model_validate({
            "id": 1,
            "Week": 1,
            "Day": 2,
            "Target Group": "Legs",
            "Exercise": "Squat",
            "Weight": 80,
            "Reps": 5,
            "Completed": True,
            "Tool": "Barbell",
            "SetNumber": 1,
        })
    ]


@pytest.fixture
def make_exercise_factory():
    return make_exercise


@pytest.fixture
def make_template_factory():
    return make_template
