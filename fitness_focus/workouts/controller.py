"""Reconciliation controller: the state machine behind the workout logger.

The controller owns the in-memory workout, the week/day selector, the loaded
history and the connectivity flag.  Exactly one named state is active at a
time.  Async actions move from a resting state into their busy state and
back in a ``finally`` block; an action requested while another one is busy
is ignored.

Template loading and history/state population both write
``current_workout``.  An action that populates the workout without wanting
it replaced exits into ``SUPPRESS_NEXT_FETCH`` instead of ``IDLE``.  The very
next day-change evaluation leaves that state, adopts the selected day as the
one the workout reflects, and does not fetch.  Every later day change
fetches exactly once.

The queue drain runs outside this mutual exclusion: it is triggered by
connectivity, enters ``SYNCING`` only when the controller is resting, and is
always followed by a history refresh.

Usage::

    controller = WorkoutController(backend, LocalStateStore(dir), notify=print)
    await controller.start()
    await controller.select_day(2)
    controller.update_set(0, 0, logged_weight="80", logged_reps=5, is_completed=True)
    await controller.log_workout()
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Callable

from pydantic import ValidationError

from fitness_focus.config import Settings, get_settings
from fitness_focus.models.suggestion import SuggestionRequest, SuggestionResponse
from fitness_focus.models.workout import (
    AppStateSnapshot,
    HistoryEntry,
    QueuedWorkout,
    SubmitResult,
    WorkoutExercise,
    new_id,
)
from fitness_focus.workouts import editing
from fitness_focus.workouts.base import StoreError, SuggestionError, WorkoutBackend
from fitness_focus.workouts.connectivity import ConnectivityMonitor
from fitness_focus.workouts.history import (
    format_history_for_prompt,
    prefill_from_history,
    session_workout,
)
from fitness_focus.workouts.local_store import LocalStateStore
from fitness_focus.workouts.normalizer import (
    clone_workout,
    normalize_for_display,
    normalize_for_persistence,
)
from fitness_focus.workouts.sync.engine import DrainReport, SyncEngine

logger = logging.getLogger("fitness_focus.controller")


class ControllerState(str, Enum):
    IDLE = "idle"
    LOADING_TEMPLATE = "loading-template"
    LOGGING = "logging"
    SAVING_STATE = "saving-state"
    LOADING_HISTORY = "loading-history"
    SYNCING = "syncing"
    LOADING_SPECIFIC_DAY = "loading-specific-day"
    POPULATING_HISTORY = "populating-history"
    SAVING_TEMPLATE = "saving-template"
    SUPPRESS_NEXT_FETCH = "suppress-next-fetch"


RESTING_STATES = frozenset({ControllerState.IDLE, ControllerState.SUPPRESS_NEXT_FETCH})


@dataclass
class Notification:
    """A user-facing message (``variant`` is ``"default"`` or ``"destructive"``)."""

    title: str
    description: str = ""
    variant: str = "default"


@dataclass
class _Exit:
    state: ControllerState


class WorkoutController:
    """Page-level state machine for one installation."""

    def __init__(
        self,
        backend: WorkoutBackend,
        local_store: LocalStateStore,
        *,
        sync_engine: SyncEngine | None = None,
        notify: Callable[[Notification], None] | None = None,
        online: bool = True,
        auto_evaluate: bool = True,
    ) -> None:
        """Initialize the controller.

        Args:
            backend:       Persistence adapter (HTTP client or database store).
            local_store:   Snapshot file holding the working state and queue.
            sync_engine:   Queue drainer (built from backend/local_store if None).
            notify:        Callback for user-facing notifications.
            online:        Initial connectivity.
            auto_evaluate: Re-evaluate the day change after every action, the
                           way a re-render would.  Turn off to drive
                           ``evaluate_day_change`` by hand.
        """
        self._backend = backend
        self._local = local_store
        self._sync = sync_engine or SyncEngine(backend, local_store)
        self._notify = notify
        self._auto_evaluate = auto_evaluate

        self.state = ControllerState.IDLE
        self.online = online
        self.selected_week = 1
        self.selected_day = 1
        self.current_workout: list[WorkoutExercise] = []
        self.initial_template_workout: list[WorkoutExercise] = []
        self.loaded_template_name: str | None = None
        self.history: list[HistoryEntry] = []
        self.notifications: list[Notification] = []

        # Day the current workout reflects; a selector day that differs from
        # it means the template still has to be fetched.
        self._template_day: int | None = self.selected_day

    # ------------------------------------------------------------------
    # State machine plumbing
    # ------------------------------------------------------------------

    @property
    def is_busy(self) -> bool:
        return self.state not in RESTING_STATES

    @property
    def pending_count(self) -> int:
        return len(self._local.get_queue())

    @asynccontextmanager
    async def _busy(self, state: ControllerState) -> AsyncIterator[_Exit]:
        """Enter ``state``; on exit go to ``outcome.state`` (the prior resting state by default)."""
        outcome = _Exit(self.state)
        self.state = state
        try:
            yield outcome
        finally:
            self.state = outcome.state

    def _ignored(self, action: str) -> bool:
        if self.is_busy:
            logger.debug("Ignoring %s while %s", action, self.state.value)
            return True
        return False

    def notify(self, title: str, description: str = "", variant: str = "default") -> None:
        notification = Notification(title, description, variant)
        self.notifications.append(notification)
        if self._notify:
            self._notify(notification)

    async def _settle(self) -> None:
        if self._auto_evaluate:
            await self.evaluate_day_change()

    async def evaluate_day_change(self) -> bool:
        """Fetch the template if the selected day changed; True if it fetched."""
        if self.is_busy:
            return False
        if self.state is ControllerState.SUPPRESS_NEXT_FETCH:
            logger.debug("Suppressing template fetch for day %d", self.selected_day)
            self.state = ControllerState.IDLE
            self._template_day = self.selected_day
            return False
        fetched = False
        # A day selected while a load was in flight is picked up here.
        while self.selected_day != self._template_day:
            await self._load_template(self.selected_day)
            fetched = True
        return fetched

    # ------------------------------------------------------------------
    # Lifecycle and selector
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load history, resume the local working state, and drain if online.

        Without a local working state the template for the selected day is
        loaded.
        """
        await self.refresh_history()

        snapshot = self._local.load()
        if snapshot is not None and snapshot.current_workout:
            self._apply_snapshot(snapshot, selector=True)
            self.state = ControllerState.SUPPRESS_NEXT_FETCH
        else:
            self._template_day = None

        if self.online:
            await self.sync()
        await self.evaluate_day_change()

    async def select_week(self, week: int) -> None:
        if week < 1:
            raise ValueError("week must be >= 1")
        self.selected_week = week
        await self._settle()

    async def select_day(self, day: int) -> None:
        if day < 1:
            raise ValueError("day must be >= 1")
        self.selected_day = day
        await self._settle()

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def load_template(self, day: int | None = None) -> list[WorkoutExercise] | None:
        """Replace the workout with the template for ``day``, selecting that day if given."""
        if self._ignored("load_template"):
            return None
        if day is not None:
            self.selected_day = day
        await self._load_template(self.selected_day)
        await self._settle()
        return self.current_workout

    async def _load_template(self, day: int) -> None:
        async with self._busy(ControllerState.LOADING_TEMPLATE) as outcome:
            outcome.state = ControllerState.IDLE
            try:
                template = await self._backend.fetch_template(day)
                if template is not None and template.exercises:
                    exercises = _blank_logged(normalize_for_display(template.exercises))
                    name = template.name
                    self.notify("Template Loaded", f"{name}. Populating from history...")
                else:
                    exercises = editing.default_workout()
                    name = f"Day {day} (Default Blank)"
                    self.notify(
                        "No Template Found",
                        f"Loaded blank structure for Day {day}. Populating from history...",
                    )
                if self.history:
                    exercises = prefill_from_history(exercises, self.history, day)
            except Exception as exc:
                logger.exception("Failed to load template for day %d", day)
                exercises = editing.default_workout()
                name = f"Day {day} (Error Loading)"
                self.notify("Error Loading Workout", str(exc) or "Could not load workout.", "destructive")

            self.current_workout = exercises
            self.initial_template_workout = clone_workout(exercises)
            self.loaded_template_name = name
            self._template_day = day

    async def save_routine(self, name: str | None = None) -> int | None:
        """Store the current workout as the template for the selected day."""
        if self._ignored("save_routine"):
            return None
        if not any(exercise.sets for exercise in self.current_workout):
            self.notify("Cannot Save Empty Routine", "Add some exercises and sets first.", "destructive")
            return None

        day = self.selected_day
        name = name or f"Day {day} Workout"
        rows = None
        async with self._busy(ControllerState.SAVING_TEMPLATE):
            try:
                rows = await self._backend.save_template(day, self.current_workout)
            except StoreError as exc:
                self.notify("Save Routine Failed", str(exc), "destructive")
            else:
                self.initial_template_workout = clone_workout(self.current_workout)
                self.loaded_template_name = name
                self.notify("Routine Saved", f"'{name}' saved as the template for Day {day}.")
        await self._settle()
        return rows

    # ------------------------------------------------------------------
    # Logging and history
    # ------------------------------------------------------------------

    async def log_workout(self) -> SubmitResult | None:
        """Log the completed sets of the current workout.

        Returns the backend result, or None when the attempt was rejected,
        ignored, or queued because the controller is offline.
        """
        if self._ignored("log_workout"):
            return None

        workout = self.current_workout
        if not workout or all(not exercise.sets for exercise in workout):
            self.notify("Cannot Log Empty Workout", "Add some exercises and sets first.", "destructive")
            return None
        if not any(exercise.completed_sets for exercise in workout):
            self.notify(
                "No Sets Logged", "Please mark at least one set as completed to log the workout."
            )
            return None

        week, day = self.selected_week, self.selected_day
        if not self.online:
            pending = self._local.enqueue(
                QueuedWorkout(week=week, day=day, workout=normalize_for_persistence(workout))
            )
            self.notify(
                "Workout Queued",
                f"You are offline. Week {week}, Day {day} will sync when you reconnect "
                f"({pending} pending).",
            )
            return None

        async with self._busy(ControllerState.LOGGING):
            result = await self._backend.submit_workout(
                week, day, workout, submission_id=new_id()
            )

        if result.success:
            self.notify(
                "Workout Logged!",
                f"{result.logged_count} sets for Week {week}, Day {day} saved.",
            )
            await self.refresh_history()
        else:
            self.notify(
                "Logging Failed",
                result.error or "Could not save your workout completely.",
                "destructive",
            )
            await self._settle()
        return result

    async def refresh_history(self) -> list[HistoryEntry]:
        if self._ignored("refresh_history"):
            return self.history
        async with self._busy(ControllerState.LOADING_HISTORY):
            await self._reload_history()
        await self._settle()
        return self.history

    async def _reload_history(self) -> None:
        self.history = await self._backend.fetch_history()

    async def load_specific_day(self, week: int, day: int) -> bool:
        """Switch to (week, day) and show the sets logged for that session.

        Falls back to the day's template when nothing was logged.
        """
        if self._ignored("load_specific_day"):
            return False

        found = False
        async with self._busy(ControllerState.LOADING_SPECIFIC_DAY) as outcome:
            outcome.state = ControllerState.IDLE
            await self._reload_history()
            workout = session_workout(self.history, week, day)
            self.selected_week, self.selected_day = week, day
            if workout:
                self.current_workout = workout
                self.initial_template_workout = clone_workout(workout)
                self.loaded_template_name = f"Week {week}, Day {day} (Logged)"
                outcome.state = ControllerState.SUPPRESS_NEXT_FETCH
                found = True
                self.notify("Workout Loaded", f"Showing logged sets for Week {week}, Day {day}.")
            else:
                self._template_day = None
                self.notify("No Logged Data", f"Nothing logged for Week {week}, Day {day}. Loading template...")
        await self._settle()
        return found

    async def populate_from_history(self) -> bool:
        """Prefill the current workout's logged values from history."""
        if self._ignored("populate_from_history"):
            return False

        async with self._busy(ControllerState.POPULATING_HISTORY) as outcome:
            outcome.state = ControllerState.IDLE
            await self._reload_history()
            if self.history:
                self.current_workout = prefill_from_history(
                    self.current_workout, self.history, self.selected_day
                )
                outcome.state = ControllerState.SUPPRESS_NEXT_FETCH
                self.notify("Workout Info Populated", "Logged data applied to the current day.")
            else:
                self.notify("No Workout Data", "No logged history found to populate.")
        await self._settle()
        return outcome.state is ControllerState.SUPPRESS_NEXT_FETCH

    # ------------------------------------------------------------------
    # Saved state
    # ------------------------------------------------------------------

    def snapshot(self) -> AppStateSnapshot:
        return AppStateSnapshot(
            selected_week=self.selected_week,
            selected_day=self.selected_day,
            current_workout=normalize_for_persistence(self.current_workout),
            loaded_template_name=self.loaded_template_name,
            initial_template_workout=normalize_for_persistence(self.initial_template_workout),
        )

    async def save_state(self) -> bool:
        """Save the working state locally and, when online, to the state slot."""
        if self._ignored("save_state"):
            return False

        saved = False
        async with self._busy(ControllerState.SAVING_STATE):
            snapshot = self.snapshot()
            self._local.save(
                selected_week=snapshot.selected_week,
                selected_day=snapshot.selected_day,
                current_workout=snapshot.current_workout,
                loaded_template_name=snapshot.loaded_template_name,
                initial_template_workout=snapshot.initial_template_workout,
            )
            if not self.online:
                saved = True
                self.notify("State Saved Locally", "It will be saved online when you reconnect.")
            else:
                try:
                    await self._backend.put_snapshot(snapshot)
                except StoreError as exc:
                    self.notify("Save State Failed", f"Could not save your current state: {exc}", "destructive")
                else:
                    saved = True
                    self.notify("State Saved", "Your current progress has been saved.")
        await self._settle()
        return saved

    async def _load_snapshot(self) -> AppStateSnapshot | None:
        local = self._local.load()
        if local is not None and (local.current_workout or local.loaded_template_name):
            return local
        if not self.online:
            return None
        return await self._backend.get_snapshot()

    def _apply_snapshot(self, snapshot: AppStateSnapshot, selector: bool = False) -> None:
        if selector:
            self.selected_week = snapshot.selected_week
            self.selected_day = snapshot.selected_day
        self.current_workout = normalize_for_display(snapshot.current_workout)
        self.initial_template_workout = normalize_for_display(snapshot.initial_template_workout)
        self.loaded_template_name = snapshot.loaded_template_name

    async def load_week_and_day(self) -> bool:
        """Switch the selector to the saved week/day; the day's template then loads."""
        if self._ignored("load_week_and_day"):
            return False

        found = False
        async with self._busy(ControllerState.LOADING_SPECIFIC_DAY) as outcome:
            outcome.state = ControllerState.IDLE
            try:
                snapshot = await self._load_snapshot()
            except StoreError as exc:
                self.notify("Load Failed", f"Could not load week/day: {exc}", "destructive")
            else:
                if snapshot is not None:
                    found = True
                    self.selected_week = snapshot.selected_week
                    self.selected_day = snapshot.selected_day
                    self._template_day = None
                    self.notify(
                        "Week & Day Loaded",
                        f"Switched to Week {snapshot.selected_week}, Day {snapshot.selected_day}. "
                        "Template loading...",
                    )
                else:
                    self.notify("No Saved State", "No saved state found to load week/day from.")
        await self._settle()
        return found

    async def populate_logged_info(self) -> bool:
        """Restore the saved workout without touching the selector."""
        if self._ignored("populate_logged_info"):
            return False

        async with self._busy(ControllerState.POPULATING_HISTORY) as outcome:
            outcome.state = ControllerState.IDLE
            try:
                snapshot = await self._load_snapshot()
            except StoreError as exc:
                self.notify("Population Failed", f"Could not populate workout data: {exc}", "destructive")
            else:
                if snapshot is not None and snapshot.current_workout:
                    self._apply_snapshot(snapshot)
                    outcome.state = ControllerState.SUPPRESS_NEXT_FETCH
                    self.notify("Workout Info Populated", "Logged data applied to the current day.")
                else:
                    self.notify("No Workout Data", "No saved workout data found to populate.")
        await self._settle()
        return outcome.state is ControllerState.SUPPRESS_NEXT_FETCH

    # ------------------------------------------------------------------
    # Connectivity and sync
    # ------------------------------------------------------------------

    async def set_online(self, online: bool) -> DrainReport | None:
        """Record a connectivity change; going online drains the queue."""
        was_online = self.online
        self.online = online
        if online and not was_online:
            return await self.sync()
        return None

    on_connectivity_changed = set_online

    async def sync(self) -> DrainReport | None:
        """Drain the pending queue, then refresh history."""
        if not self.online:
            return None

        if self.is_busy:
            report = await self._sync.drain()
        else:
            async with self._busy(ControllerState.SYNCING):
                report = await self._sync.drain()

        if report.skipped:
            return report
        if report.attempted:
            if report.failed:
                self.notify("Sync Incomplete", report.summary())
            else:
                self.notify("Sync Complete", report.summary())
        await self._reload_history()
        await self._settle()
        return report

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def _edit(self, operation: Callable[..., list[WorkoutExercise]], *args: Any, **kwargs: Any) -> bool:
        try:
            self.current_workout = operation(self.current_workout, *args, **kwargs)
        except editing.EditRejected as exc:
            self.notify("Cannot Remove", str(exc), "destructive")
            return False
        return True

    def add_exercise(self, name: str = editing.DEFAULT_EXERCISE_NAME) -> bool:
        return self._edit(editing.add_exercise, name)

    def remove_exercise(self, index: int) -> bool:
        return self._edit(editing.remove_exercise, index)

    def add_set(self, exercise_index: int) -> bool:
        return self._edit(editing.add_set, exercise_index)

    def remove_set(self, exercise_index: int, set_index: int) -> bool:
        return self._edit(editing.remove_set, exercise_index, set_index)

    def update_exercise(self, exercise_index: int, **changes: Any) -> bool:
        return self._edit(editing.update_exercise, exercise_index, **changes)

    def update_set(self, exercise_index: int, set_index: int, **changes: Any) -> bool:
        return self._edit(editing.update_set, exercise_index, set_index, **changes)

    def reset_to_template(self) -> None:
        self.current_workout = editing.reset_to_template(self.initial_template_workout)
        if self.initial_template_workout:
            self.notify("Workout Reset", "Exercises reset to the loaded template/saved state.")
        else:
            self.initial_template_workout = clone_workout(self.current_workout)
            self.notify("Workout Reset", "Reset to a blank slate.")

    # ------------------------------------------------------------------
    # AI coach
    # ------------------------------------------------------------------

    async def suggest_exercise(
        self, target_muscle_group: str, workout_history: str | None = None
    ) -> SuggestionResponse | None:
        """Ask for an exercise; history defaults to the loaded history rendered as text."""
        try:
            request = SuggestionRequest(
                workout_history=workout_history or format_history_for_prompt(self.history),
                target_muscle_group=target_muscle_group,
            )
        except ValidationError:
            self.notify(
                "Missing Information",
                "Please provide both workout history and a target muscle group.",
                "destructive",
            )
            return None

        try:
            return await self._backend.suggest_exercise(request)
        except SuggestionError as exc:
            self.notify("Suggestion Failed", str(exc), "destructive")
            return None


def _blank_logged(workout: list[WorkoutExercise]) -> list[WorkoutExercise]:
    for exercise in workout:
        for workout_set in exercise.sets:
            workout_set.logged_weight = ""
            workout_set.logged_reps = ""
    return workout


def build_client(
    settings: Settings | None = None,
    backend: WorkoutBackend | None = None,
    notify: Callable[[Notification], None] | None = None,
) -> tuple[WorkoutController, ConnectivityMonitor]:
    """Controller wired to the HTTP backend, plus the monitor that drives it.

    The monitor probes ``backend.ping`` every
    ``connectivity_interval_seconds`` and reports changes to
    ``controller.set_online``, so reconnecting drains the pending queue.

    Usage::

        controller, monitor = build_client(notify=print)
        await controller.start()
        watcher = asyncio.create_task(monitor.run())
        ...
        monitor.stop()
        await watcher
    """
    from fitness_focus.workouts.adapters import get_backend

    settings = settings or get_settings()
    backend = backend or get_backend("api")(settings=settings)
    controller = WorkoutController(
        backend, LocalStateStore(settings.local_state_dir), notify=notify
    )
    monitor = ConnectivityMonitor(
        backend.ping,
        controller.on_connectivity_changed,
        interval=settings.connectivity_interval_seconds,
    )
    return controller, monitor
