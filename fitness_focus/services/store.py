"""Database-backed persistence adapter over the Supabase Postgres tables.

Tables (column names are quoted exactly as they exist in the database):

    "Templates"       : "Day" int, "Exercise" text, "Tool" text NULL
    "Workout History" : id bigserial, "Week", "Day", "Target Group",
                         "Exercise", "Weight", "Reps", "Completed", "Tool"
    "Current State"   : id int PRIMARY KEY, state_data jsonb, updated_at timestamptz

Usage::

    store = SupabaseWorkoutStore()
    template = await store.fetch_template(2)
    result = await store.submit_workout(3, 2, workout)
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any

import asyncpg

from fitness_focus.config import Settings, get_settings
from fitness_focus.models.suggestion import SuggestionRequest, SuggestionResponse
from fitness_focus.models.workout import (
    AppStateSnapshot,
    HistoryEntry,
    SubmitResult,
    WorkoutExercise,
    WorkoutSet,
    WorkoutTemplate,
    new_id,
    parse_number,
)
from fitness_focus.services import supabase
from fitness_focus.services.suggest import ExerciseSuggester
from fitness_focus.workouts.base import StoreError, WorkoutBackend
from fitness_focus.workouts.normalizer import normalize_for_persistence
from fitness_focus.workouts.sync.dedup import row_submission_key

logger = logging.getLogger("fitness_focus.store")

# Failures that mean "the database could not do it", as opposed to bugs.
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
    RuntimeError,  # pool not initialized
)

_HISTORY_COLUMNS = (
    "Week", "Day", "Target Group", "Exercise", "Weight", "Reps", "Completed", "Tool",
)
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_ ]*$")


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def build_template(day: int, rows: list[Any]) -> WorkoutTemplate | None:
    """Group template rows into exercises keyed by (Exercise, Tool).

    Each row contributes one blank set; set numbers run 1..N per exercise in
    row order.  Returns None when there are no rows.
    """
    if not rows:
        return None

    exercises: dict[tuple[str, str], WorkoutExercise] = {}
    for row in rows:
        name = row["Exercise"]
        tool = row["Tool"] or ""
        exercise = exercises.get((name, tool))
        if exercise is None:
            exercise = exercises[(name, tool)] = WorkoutExercise(name=name, tool=tool)
        exercise.sets.append(WorkoutSet(set_number=len(exercise.sets) + 1))

    return WorkoutTemplate(
        id=f"supabase-day-{day}-{new_id()}",
        name=f"Day {day} Workout",
        day_identifier=day,
        exercises=list(exercises.values()),
    )


def history_rows(week: int, day: int, workout: list[WorkoutExercise]) -> list[dict[str, Any]]:
    """One ``Workout History`` row per completed set.

    Weight and reps that do not parse as numbers are stored as NULL.
    """
    rows: list[dict[str, Any]] = []
    for exercise in workout:
        for workout_set in exercise.completed_sets:
            rows.append({
                "Week": week,
                "Day": day,
                "Target Group": exercise.target_muscle_group or None,
                "Exercise": exercise.name,
                "Weight": parse_number(workout_set.logged_weight),
                "Reps": parse_number(workout_set.logged_reps),
                "Completed": True,
                "Tool": exercise.tool or None,
            })
    return rows


def template_rows(day: int, workout: list[WorkoutExercise]) -> list[tuple[int, str, str | None]]:
    """``Templates`` rows (Day, Exercise, Tool) for a workout, one per set."""
    return [
        (day, exercise.name, exercise.tool or None)
        for exercise in workout
        if exercise.name
        for _ in exercise.sets
    ]


def _quote(identifier: str) -> str:
    if not _IDENTIFIER_RE.match(identifier):
        raise ValueError(f"Unsafe column name: {identifier!r}")
    return f'"{identifier}"'


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SupabaseWorkoutStore(WorkoutBackend):
    """Persistence adapter backed by the asyncpg pool in ``services.supabase``."""

    SOURCE_ID = "supabase"

    def __init__(
        self,
        settings: Settings | None = None,
        suggester: ExerciseSuggester | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._suggester = suggester or ExerciseSuggester(self._settings)
        self._submission_column = self._settings.history_submission_column

    async def ping(self) -> bool:
        try:
            await supabase.fetchrow("SELECT 1")
        except TRANSPORT_ERRORS as exc:
            logger.warning("Database probe failed: %s", exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def fetch_template(self, day: int) -> WorkoutTemplate | None:
        logger.info('Loading template for day %d from "Templates"', day)
        try:
            rows = await supabase.fetch(
                'SELECT "Exercise", "Tool" FROM "Templates" WHERE "Day" = $1', day
            )
        except TRANSPORT_ERRORS as exc:
            logger.error("Error fetching template for day %d: %s", day, exc)
            return None

        template = build_template(day, rows)
        if template is None:
            logger.info('No template found for day %d in "Templates"', day)
        return template

    async def save_template(self, day: int, workout: list[WorkoutExercise]) -> int:
        rows = template_rows(day, normalize_for_persistence(workout))
        try:
            async with supabase.get_connection() as conn:
                await conn.execute('DELETE FROM "Templates" WHERE "Day" = $1', day)
                if rows:
                    await conn.executemany(
                        'INSERT INTO "Templates" ("Day", "Exercise", "Tool") VALUES ($1, $2, $3)',
                        rows,
                    )
        except TRANSPORT_ERRORS as exc:
            logger.error("Failed to save template for day %d: %s", day, exc)
            raise StoreError(f"Database error: {exc}") from exc

        logger.info("Saved template for day %d (%d rows)", day, len(rows))
        return len(rows)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def fetch_history(self) -> list[HistoryEntry]:
        try:
            rows = await supabase.fetch('SELECT * FROM "Workout History" ORDER BY id DESC')
        except TRANSPORT_ERRORS as exc:
            logger.error("Error fetching workout history: %s", exc)
            return []
        return [HistoryEntry.model_validate(dict(row)) for row in rows]

    async def submit_workout(
        self,
        week: int,
        day: int,
        workout: list[WorkoutExercise],
        submission_id: str | None = None,
    ) -> SubmitResult:
        rows = history_rows(week, day, normalize_for_persistence(workout))
        if not rows:
            return SubmitResult(success=True, logged_count=0)

        columns = list(_HISTORY_COLUMNS)
        records = [[row[c] for c in _HISTORY_COLUMNS] for row in rows]
        conflict = ""
        if self._submission_column and submission_id:
            columns.append(self._submission_column)
            for position, record in enumerate(records, start=1):
                record.append(row_submission_key(submission_id, position))
            conflict = " ON CONFLICT DO NOTHING"

        column_sql = ", ".join(_quote(c) for c in columns)
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        query = f'INSERT INTO "Workout History" ({column_sql}) VALUES ({placeholders}){conflict}'

        try:
            async with supabase.get_connection() as conn:
                await conn.executemany(query, records)
        except TRANSPORT_ERRORS as exc:
            logger.error('Failed to log workout sets to "Workout History": %s', exc)
            return SubmitResult(success=False, logged_count=0, error=f"Database error: {exc}")

        logger.info("%d sets logged for week %d, day %d", len(rows), week, day)
        return SubmitResult(success=True, logged_count=len(rows))

    # ------------------------------------------------------------------
    # State slot
    # ------------------------------------------------------------------

    async def get_snapshot(self) -> AppStateSnapshot | None:
        try:
            row = await supabase.fetchrow(
                'SELECT state_data FROM "Current State" WHERE id = $1',
                self._settings.state_slot_id,
            )
        except TRANSPORT_ERRORS as exc:
            logger.error("Failed to load current state: %s", exc)
            raise StoreError(f"Database error: {exc}") from exc

        if row is None or not row["state_data"]:
            return None
        state_data = row["state_data"]
        try:
            if isinstance(state_data, str):  # plain json column, no codec
                state_data = json.loads(state_data)
            return AppStateSnapshot.model_validate(state_data)
        except ValueError as exc:  # JSONDecodeError and ValidationError
            logger.error("Malformed state in slot %d: %s", self._settings.state_slot_id, exc)
            raise StoreError(f"Saved state is malformed: {exc}") from exc

    async def put_snapshot(self, snapshot: AppStateSnapshot) -> None:
        # The offline queue belongs to the device that queued it.
        state_data = snapshot.model_dump(
            mode="json", by_alias=True, exclude={"queued_workouts"}
        )
        try:
            await supabase.execute(
                """
                INSERT INTO "Current State" (id, state_data, updated_at)
                VALUES ($1, $2, NOW())
                ON CONFLICT (id) DO UPDATE
                SET state_data = EXCLUDED.state_data, updated_at = EXCLUDED.updated_at
                """,
                self._settings.state_slot_id,
                state_data,
            )
        except TRANSPORT_ERRORS as exc:
            logger.error("Failed to save current state: %s", exc)
            raise StoreError(f"Database error: {exc}") from exc
        logger.info("Current state saved to slot %d", self._settings.state_slot_id)

    # ------------------------------------------------------------------
    # AI coach
    # ------------------------------------------------------------------

    async def suggest_exercise(self, request: SuggestionRequest) -> SuggestionResponse:
        return await self._suggester.suggest(request)
