"""Tests for the reconciliation controller state machine."""

from __future__ import annotations

import asyncio

import pytest

from fitness_focus.config import Settings
from fitness_focus.models.suggestion import SuggestionResponse
from fitness_focus.models.workout import AppStateSnapshot, HistoryEntry, WorkoutExercise
from fitness_focus.workouts.controller import ControllerState, WorkoutController, build_client


@pytest.fixture
def controller(backend, local_store) -> WorkoutController:
    return WorkoutController(backend, local_store)


def _titles(controller: WorkoutController) -> list[str]:
    return [n.title for n in controller.notifications]


def _complete_sets(controller: WorkoutController, count: int) -> None:
    for index in range(count):
        controller.update_set(
            0, index, logged_weight=str(80 + index), logged_reps=5, is_completed=True
        )


class TestStartAndDayChange:
    @pytest.mark.asyncio
    async def test_start_loads_template_for_selected_day(self, controller, backend) -> None:
        await controller.start()
        assert backend.template_fetches == [1]
        assert controller.loaded_template_name == "Day 1 Workout"
        assert [e.name for e in controller.current_workout] == ["Bench Press"]
        assert controller.initial_template_workout == controller.current_workout
        assert controller.state is ControllerState.IDLE

    @pytest.mark.asyncio
    async def test_day_change_fetches_once(self, controller, backend) -> None:
        await controller.start()
        await controller.select_day(2)
        await controller.select_day(2)
        assert backend.template_fetches == [1, 2]
        assert controller.current_workout[0].name == "Squat"

    @pytest.mark.asyncio
    async def test_day_selected_during_load_wins(self, controller, backend) -> None:
        await controller.start()
        gate = asyncio.Event()
        fetch = backend.fetch_template

        async def gated(day):
            if day == 2:
                await gate.wait()
            return await fetch(day)

        backend.fetch_template = gated
        loading = asyncio.create_task(controller.select_day(2))
        await asyncio.sleep(0)
        assert controller.state is ControllerState.LOADING_TEMPLATE

        await controller.select_day(1)
        gate.set()
        await loading

        assert controller.selected_day == 1
        assert [e.name for e in controller.current_workout] == ["Bench Press"]
        assert controller.loaded_template_name == "Day 1 Workout"
        assert backend.template_fetches == [1, 2, 1]
        assert controller.state is ControllerState.IDLE

    @pytest.mark.asyncio
    async def test_explicit_load_selects_day(self, controller, backend) -> None:
        await controller.start()
        await controller.load_template(2)
        assert controller.selected_day == 2
        assert controller.current_workout[0].name == "Squat"
        assert backend.template_fetches == [1, 2]

    @pytest.mark.asyncio
    async def test_week_change_does_not_fetch(self, controller, backend) -> None:
        await controller.start()
        await controller.select_week(5)
        assert backend.template_fetches == [1]
        assert controller.selected_week == 5

    @pytest.mark.asyncio
    async def test_squat_scenario(self, controller, backend, squat_history) -> None:
        backend.history = squat_history
        await controller.start()
        await controller.select_day(2)

        sets = controller.current_workout[0].sets
        assert (sets[0].logged_weight, sets[0].logged_reps) == ("80", 5)
        assert (sets[1].logged_weight, sets[1].logged_reps) == ("", "")
        assert (sets[2].logged_weight, sets[2].logged_reps) == ("", "")

    @pytest.mark.asyncio
    async def test_missing_template_loads_default(self, controller) -> None:
        await controller.start()
        await controller.select_day(6)
        assert controller.loaded_template_name == "Day 6 (Default Blank)"
        assert [e.name for e in controller.current_workout] == ["New Exercise"]
        assert "No Template Found" in _titles(controller)

    @pytest.mark.asyncio
    async def test_template_error_loads_default(self, controller, backend) -> None:
        async def broken(day):
            raise RuntimeError("boom")

        backend.fetch_template = broken
        await controller.start()
        assert controller.loaded_template_name == "Day 1 (Error Loading)"
        assert controller.notifications[-1].variant == "destructive"
        assert controller.state is ControllerState.IDLE

    @pytest.mark.asyncio
    async def test_invalid_day_rejected(self, controller) -> None:
        with pytest.raises(ValueError):
            await controller.select_day(0)

    @pytest.mark.asyncio
    async def test_actions_ignored_while_busy(self, controller, backend) -> None:
        await controller.start()
        controller.state = ControllerState.LOGGING
        assert await controller.load_template(2) is None
        assert await controller.populate_from_history() is False
        await controller.select_day(2)
        assert backend.template_fetches == [1]

        # the pending day change is picked up once the controller rests
        controller.state = ControllerState.IDLE
        assert await controller.evaluate_day_change() is True
        assert backend.template_fetches == [1, 2]


class TestSuppression:
    @pytest.mark.asyncio
    async def test_populate_then_rerender_does_not_fetch(self, backend, local_store, squat_history) -> None:
        controller = WorkoutController(backend, local_store, auto_evaluate=False)
        await controller.start()
        await controller.select_day(2)
        await controller.evaluate_day_change()
        assert backend.template_fetches == [1, 2]

        backend.history = squat_history
        assert await controller.populate_from_history() is True
        assert controller.state is ControllerState.SUPPRESS_NEXT_FETCH
        populated = controller.current_workout

        # day-unchanged re-render
        assert await controller.evaluate_day_change() is False
        assert controller.state is ControllerState.IDLE
        assert controller.current_workout is populated
        assert backend.template_fetches == [1, 2]

        # a later day change fetches exactly once
        await controller.select_day(1)
        assert await controller.evaluate_day_change() is True
        assert await controller.evaluate_day_change() is False
        assert backend.template_fetches == [1, 2, 1]

    @pytest.mark.asyncio
    async def test_suppression_is_one_shot(self, backend, local_store, squat_history) -> None:
        controller = WorkoutController(backend, local_store, auto_evaluate=False)
        await controller.start()
        backend.history = squat_history
        await controller.populate_from_history()

        await controller.select_day(2)
        assert await controller.evaluate_day_change() is False  # consumed here
        await controller.select_day(1)
        assert await controller.evaluate_day_change() is True
        assert backend.template_fetches == [1, 1]

    @pytest.mark.asyncio
    async def test_load_specific_day_is_not_overwritten(self, controller, backend) -> None:
        backend.history = [
            HistoryEntry(id=2, week=3, day=2, exercise="Squat", tool="Barbell", weight=100, reps=3, completed=True),
            HistoryEntry(id=1, week=3, day=2, exercise="Squat", tool="Barbell", weight=95, reps=5, completed=True),
        ]
        await controller.start()

        assert await controller.load_specific_day(3, 2) is True

        assert (controller.selected_week, controller.selected_day) == (3, 2)
        assert backend.template_fetches == [1]
        sets = controller.current_workout[0].sets
        assert [s.logged_weight for s in sets] == ["95", "100"]
        assert controller.state is ControllerState.IDLE

        await controller.select_day(1)
        assert backend.template_fetches == [1, 1]

    @pytest.mark.asyncio
    async def test_load_specific_day_without_data_loads_template(self, controller, backend) -> None:
        await controller.start()
        assert await controller.load_specific_day(4, 2) is False
        assert backend.template_fetches == [1, 2]
        assert controller.current_workout[0].name == "Squat"

    @pytest.mark.asyncio
    async def test_populate_logged_info_from_remote_slot(self, controller, backend) -> None:
        backend.snapshot = AppStateSnapshot(
            selected_week=2,
            selected_day=4,
            current_workout=[WorkoutExercise(name="Deadlift")],
            loaded_template_name="Saved Pull Day",
        )
        await controller.start()

        assert await controller.populate_logged_info() is True
        assert controller.current_workout[0].name == "Deadlift"
        assert controller.loaded_template_name == "Saved Pull Day"
        assert controller.selected_day == 1  # selector untouched
        assert backend.template_fetches == [1]

    @pytest.mark.asyncio
    async def test_populate_logged_info_without_data(self, controller) -> None:
        await controller.start()
        assert await controller.populate_logged_info() is False
        assert "No Workout Data" in _titles(controller)
        assert controller.state is ControllerState.IDLE


class TestLogging:
    @pytest.mark.asyncio
    async def test_no_completed_sets_is_rejected_locally(self, controller, backend) -> None:
        await controller.start()
        assert await controller.log_workout() is None
        assert backend.submissions == []
        assert controller.notifications[-1].title == "No Sets Logged"

    @pytest.mark.asyncio
    async def test_empty_workout_is_rejected_locally(self, controller, backend) -> None:
        await controller.start()
        controller.current_workout = []
        assert await controller.log_workout() is None
        assert backend.submissions == []
        assert controller.notifications[-1].title == "Cannot Log Empty Workout"

    @pytest.mark.asyncio
    async def test_online_log_refreshes_history(self, controller, backend) -> None:
        await controller.start()
        _complete_sets(controller, 2)

        result = await controller.log_workout()

        assert result.success and result.logged_count == 2
        assert len(controller.history) == 2
        assert backend.submissions[0][2]  # a submission id is always sent
        assert controller.notifications[-1].title == "Workout Logged!"
        assert controller.state is ControllerState.IDLE

    @pytest.mark.asyncio
    async def test_online_failure_is_reported_not_queued(self, controller, backend, local_store) -> None:
        await controller.start()
        backend.reject_weeks = {1}
        _complete_sets(controller, 1)

        result = await controller.log_workout()

        assert result.success is False
        assert local_store.get_queue() == []
        assert controller.notifications[-1].title == "Logging Failed"
        assert controller.notifications[-1].variant == "destructive"

    @pytest.mark.asyncio
    async def test_offline_log_is_queued_then_drained(self, backend, local_store) -> None:
        controller = WorkoutController(backend, local_store, online=False)
        await controller.start()
        await controller.select_week(3)
        _complete_sets(controller, 2)

        assert await controller.log_workout() is None
        assert backend.submissions == []
        assert controller.pending_count == 1
        assert controller.notifications[-1].title == "Workout Queued"

        await controller.set_online(True)

        assert len(backend.submissions) == 1
        assert controller.pending_count == 0
        new_rows = [row for row in controller.history if row.week == 3]
        assert len(new_rows) == 2
        assert controller.notifications[-1].title == "Sync Complete"
        assert controller.state is ControllerState.IDLE

    @pytest.mark.asyncio
    async def test_partial_drain_reports_count(self, backend, local_store) -> None:
        controller = WorkoutController(backend, local_store, online=False)
        await controller.start()
        _complete_sets(controller, 1)
        await controller.log_workout()
        await controller.select_week(2)
        await controller.log_workout()
        backend.reject_weeks = {2}

        report = await controller.set_online(True)

        assert report.failed == 1
        assert controller.pending_count == 1
        assert controller.notifications[-1].description == "1 could not be synced, will retry later."

    @pytest.mark.asyncio
    async def test_sync_offline_is_noop(self, backend, local_store) -> None:
        controller = WorkoutController(backend, local_store, online=False)
        assert await controller.sync() is None


class TestSavedState:
    @pytest.mark.asyncio
    async def test_save_state_writes_local_and_remote(self, controller, backend, local_store) -> None:
        await controller.start()
        await controller.select_week(2)

        assert await controller.save_state() is True

        assert backend.snapshot.selected_week == 2
        assert backend.snapshot.queued_workouts == []
        local = local_store.load()
        assert local.current_workout[0].name == "Bench Press"
        assert controller.notifications[-1].title == "State Saved"

    @pytest.mark.asyncio
    async def test_save_state_keeps_pending_queue(self, backend, local_store) -> None:
        controller = WorkoutController(backend, local_store, online=False)
        await controller.start()
        _complete_sets(controller, 1)
        await controller.log_workout()

        assert await controller.save_state() is True

        assert controller.pending_count == 1
        assert backend.snapshot is None
        assert controller.notifications[-1].title == "State Saved Locally"

    @pytest.mark.asyncio
    async def test_remote_save_failure_is_notified(self, controller, backend, local_store) -> None:
        await controller.start()
        backend.fail_snapshot = True

        assert await controller.save_state() is False

        assert controller.notifications[-1].title == "Save State Failed"
        assert local_store.load() is not None
        assert controller.state is ControllerState.IDLE

    @pytest.mark.asyncio
    async def test_load_week_and_day_fetches_saved_day(self, controller, backend) -> None:
        backend.snapshot = AppStateSnapshot(selected_week=4, selected_day=2)
        await controller.start()

        assert await controller.load_week_and_day() is True

        assert (controller.selected_week, controller.selected_day) == (4, 2)
        assert backend.template_fetches == [1, 2]

    @pytest.mark.asyncio
    async def test_load_week_and_day_failure(self, controller, backend) -> None:
        await controller.start()
        backend.fail_snapshot = True

        assert await controller.load_week_and_day() is False

        assert controller.notifications[-1].title == "Load Failed"
        assert controller.state is ControllerState.IDLE
        assert backend.template_fetches == [1]

    @pytest.mark.asyncio
    async def test_start_resumes_local_state(self, backend, local_store) -> None:
        local_store.save(
            selected_week=6,
            selected_day=2,
            current_workout=[WorkoutExercise(name="Front Squat")],
            loaded_template_name="Day 2 Workout",
        )
        controller = WorkoutController(backend, local_store)

        await controller.start()

        assert (controller.selected_week, controller.selected_day) == (6, 2)
        assert controller.current_workout[0].name == "Front Squat"
        assert backend.template_fetches == []
        assert controller.state is ControllerState.IDLE


class TestRoutineAndEditing:
    @pytest.mark.asyncio
    async def test_save_routine(self, controller, backend) -> None:
        await controller.start()
        controller.add_set(0)

        rows = await controller.save_routine("Heavy Bench")

        assert rows == 4
        assert backend.saved_templates[1][0].name == "Bench Press"
        assert controller.loaded_template_name == "Heavy Bench"
        assert controller.notifications[-1].title == "Routine Saved"

    @pytest.mark.asyncio
    async def test_reset_to_template(self, controller) -> None:
        await controller.start()
        _complete_sets(controller, 1)
        controller.reset_to_template()
        assert controller.current_workout[0].sets[0].is_completed is False

    @pytest.mark.asyncio
    async def test_rejected_edit_notifies(self, controller) -> None:
        await controller.start()
        controller.current_workout = controller.current_workout[:1]
        controller.current_workout[0].sets = controller.current_workout[0].sets[:1]

        assert controller.remove_set(0, 0) is False
        assert controller.notifications[-1].variant == "destructive"
        assert len(controller.current_workout) == 1


class TestSuggestions:
    @pytest.mark.asyncio
    async def test_uses_rendered_history(self, controller, backend, squat_history) -> None:
        backend.history = squat_history
        backend.suggestion = SuggestionResponse(
            exercise_name="Bulgarian Split Squat", sets=3, reps=10, weight="16 kg", reasoning="Unilateral work"
        )
        await controller.start()

        answer = await controller.suggest_exercise("Legs")

        assert answer.exercise_name == "Bulgarian Split Squat"

    @pytest.mark.asyncio
    async def test_missing_input_is_rejected(self, controller, backend) -> None:
        await controller.start()
        assert await controller.suggest_exercise("Legs") is None
        assert controller.notifications[-1].title == "Missing Information"

    @pytest.mark.asyncio
    async def test_service_failure_is_notified(self, controller) -> None:
        await controller.start()
        assert await controller.suggest_exercise("Legs", workout_history="Squat 80x5") is None
        assert controller.notifications[-1].title == "Suggestion Failed"


class TestClientWiring:
    @pytest.mark.asyncio
    async def test_reconnect_drains_queue(self, backend, tmp_path) -> None:
        settings = Settings(
            supabase_db_url="postgresql://test",
            local_state_dir=tmp_path,
            connectivity_interval_seconds=0.01,
        )
        controller, monitor = build_client(settings, backend=backend)

        backend.reachable = False
        await monitor.check_once()
        assert controller.online is False

        await controller.start()
        _complete_sets(controller, 1)
        assert await controller.log_workout() is None
        assert controller.pending_count == 1
        assert backend.submissions == []

        backend.reachable = True
        await monitor.check_once()

        assert controller.online is True
        assert controller.pending_count == 0
        [(week, day, submission_id)] = backend.submissions
        assert (week, day) == (1, 1)
        assert submission_id
        assert "Sync Complete" in _titles(controller)
