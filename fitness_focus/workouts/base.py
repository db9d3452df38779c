"""Persistence adapter contract shared by the database store and the API client.

Every backend the controller and sync engine talk to subclasses
``WorkoutBackend``.  Read paths and ``submit_workout`` absorb transport
failures and return a safe default (None, an empty list, a failed
``SubmitResult``); snapshot and template writes raise ``StoreError`` so the
caller can tell the user the save did not happen.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from fitness_focus.models.suggestion import SuggestionRequest, SuggestionResponse
from fitness_focus.models.workout import (
    AppStateSnapshot,
    HistoryEntry,
    SubmitResult,
    WorkoutExercise,
    WorkoutTemplate,
)

logger = logging.getLogger("fitness_focus.workouts")


class StoreError(RuntimeError):
    """The remote store could not be reached or rejected the request."""


class SuggestionError(RuntimeError):
    """The AI coach call failed or returned an unusable answer."""


class WorkoutBackend(ABC):
    """Abstract persistence adapter for templates, history and the state slot.

    Subclasses must implement every abstract method.  No method retries:
    replaying failed submissions is the sync engine's job.
    """

    SOURCE_ID: str = ""

    async def ping(self) -> bool:
        """True if the backend is reachable.

        Backends without a cheap probe report themselves reachable.
        """
        return True

    @abstractmethod
    async def fetch_template(self, day: int) -> WorkoutTemplate | None:
        """Return the template for ``day``, or None if there is none.

        Transport errors are logged and reported as None.
        """

    @abstractmethod
    async def fetch_history(self) -> list[HistoryEntry]:
        """Return every logged set, most recent first (empty on error)."""

    @abstractmethod
    async def submit_workout(
        self,
        week: int,
        day: int,
        workout: list[WorkoutExercise],
        submission_id: str | None = None,
    ) -> SubmitResult:
        """Write one history row per completed set.

        A workout with no completed sets is a successful no-op.  A failed
        write returns ``success=False`` and ``logged_count=0``.
        """

    @abstractmethod
    async def get_snapshot(self) -> AppStateSnapshot | None:
        """Read the saved state slot (None if empty).

        Raises:
            StoreError: If the store cannot be reached.
        """

    @abstractmethod
    async def put_snapshot(self, snapshot: AppStateSnapshot) -> None:
        """Overwrite the saved state slot.

        Raises:
            StoreError: If the write fails.
        """

    @abstractmethod
    async def save_template(self, day: int, workout: list[WorkoutExercise]) -> int:
        """Replace the template for ``day`` with one row per set.

        Returns:
            Number of template rows written.

        Raises:
            StoreError: If the write fails.
        """

    @abstractmethod
    async def suggest_exercise(self, request: SuggestionRequest) -> SuggestionResponse:
        """Ask the AI coach for an exercise suggestion.

        Raises:
            SuggestionError: If the model call fails.
        """
