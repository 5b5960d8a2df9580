import asyncio
from datetime import datetime, timezone

import pytest

from gymtracker.config import MAX_SETS
from gymtracker.services.clocks import ManualScheduler
from gymtracker.services.entities import ExerciseLog, SetEntry, Split
from gymtracker.services.session import (
    ComparisonKind,
    SessionNotActive,
    SessionPhase,
    SessionState,
    load_baselines,
    parse_number,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def history(*sets: tuple[float, int]) -> list[ExerciseLog]:
    """A one-log history whose sets are all completed."""
    return [
        ExerciseLog(
            exercise_name="Bench",
            workout_id=1,
            sets=[
                SetEntry(set_number=i + 1, weight=w, reps=r, completed=True)
                for i, (w, r) in enumerate(sets)
            ],
        )
    ]


@pytest.fixture(name="scheduler")
def scheduler_fixture() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture(name="state")
def state_fixture(scheduler: ManualScheduler) -> SessionState:
    state = SessionState(scheduler, default_rest_sec=180)
    state.start_session(Split(name="Push Day", exercises=["Bench", "Dips"]))
    return state


def enter_set(state: SessionState, name: str, index: int, weight, reps) -> None:
    state.update_set(name, index, "weight", weight)
    state.update_set(name, index, "reps", reps)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def test_new_state_is_idle(scheduler: ManualScheduler):
    state = SessionState(scheduler)
    assert state.phase is SessionPhase.IDLE


def test_idle_mutations_are_noops(scheduler: ManualScheduler):
    state = SessionState(scheduler)
    assert state.update_set("Bench", 0, "weight", "100") is None
    assert state.toggle_set("Bench", 0) is None
    assert state.add_set_row("Bench") is None
    assert state.add_exercise("Bench") is False
    assert state.logs == {}


def test_finish_while_idle_raises(scheduler: ManualScheduler):
    with pytest.raises(SessionNotActive):
        SessionState(scheduler).finish()


def test_start_creates_stub_per_exercise(state: SessionState):
    assert state.phase is SessionPhase.ACTIVE
    assert state.exercises == ["Bench", "Dips"]
    assert state.logs["Bench"].workout_id == 0
    assert state.logs["Bench"].sets == []
    assert state.pending_baselines == ["Bench", "Dips"]
    assert state.elapsed.running


def test_start_does_not_mutate_split(scheduler: ManualScheduler):
    split = Split(name="Push Day", exercises=["Bench"])
    state = SessionState(scheduler)
    state.start_session(split)

    state.add_exercise("Flyes")

    assert split.exercises == ["Bench"]
    assert state.exercises == ["Bench", "Flyes"]


def test_finish_is_terminal(state: SessionState):
    state.finish()
    assert state.phase is SessionPhase.FINISHED
    with pytest.raises(SessionNotActive):
        state.finish()
    assert state.toggle_set("Bench", 0) is None


def test_restart_after_finish(state: SessionState):
    state.finish()
    state.start_session(Split(name="Leg Day", exercises=["Squat"]))
    assert state.phase is SessionPhase.ACTIVE
    assert state.exercises == ["Squat"]


# ---------------------------------------------------------------------------
# Set entry
# ---------------------------------------------------------------------------


def test_update_creates_missing_slot(state: SessionState):
    state.update_set("Bench", 0, "weight", "100")

    (entry,) = state.logs["Bench"].sets
    assert entry == SetEntry(set_number=1, weight=100.0, reps=0, completed=False)


def test_update_fills_gap_before_slot(state: SessionState):
    state.update_set("Bench", 2, "reps", "8")

    sets = state.logs["Bench"].sets
    assert [s.set_number for s in sets] == [1, 2, 3]
    assert sets[2].reps == 8
    assert sets[0].reps == 0


def test_update_beyond_set_limit_is_noop(state: SessionState):
    assert state.update_set("Bench", MAX_SETS, "weight", "100") is None
    assert state.toggle_set("Bench", -1) is None
    assert state.logs["Bench"].sets == []


def test_add_set_row_stops_at_limit(state: SessionState):
    for _ in range(MAX_SETS):
        state.add_set_row("Bench")

    assert state.add_set_row("Bench") is None
    assert len(state.logs["Bench"].sets) == MAX_SETS


@pytest.mark.parametrize("raw", ["abc", "", None, "nan", "-5", object()])
def test_malformed_input_becomes_zero(state: SessionState, raw):
    state.update_set("Bench", 0, "weight", "50")
    state.update_set("Bench", 0, "weight", raw)
    assert state.logs["Bench"].sets[0].weight == 0


def test_parse_number():
    assert parse_number("82.5") == 82.5
    assert parse_number(7) == 7.0
    assert parse_number("inf") == 0
    assert parse_number(True) == 0


def test_update_unknown_field_raises(state: SessionState):
    with pytest.raises(ValueError):
        state.update_set("Bench", 0, "rpe", "8")


def test_update_unknown_exercise_is_noop(state: SessionState):
    assert state.update_set("Curl", 0, "weight", "20") is None
    assert "Curl" not in state.logs


def test_toggle_creates_and_flips(state: SessionState):
    state.toggle_set("Bench", 1)

    sets = state.logs["Bench"].sets
    assert len(sets) == 2
    assert sets[1].completed is True

    state.toggle_set("Bench", 1)
    assert sets[1].completed is False


def test_add_set_row_appends(state: SessionState):
    state.update_set("Bench", 0, "weight", "60")

    entry = state.add_set_row("Bench")

    assert entry.set_number == 2
    assert [s.set_number for s in state.logs["Bench"].sets] == [1, 2]
    assert entry.completed is False


# ---------------------------------------------------------------------------
# Exercises
# ---------------------------------------------------------------------------


def test_add_exercise(state: SessionState):
    assert state.add_exercise("  Flyes  ") is True
    assert state.exercises[-1] == "Flyes"
    assert state.logs["Flyes"].sets == []
    assert state.baselines["Flyes"] is None
    assert "Flyes" not in state.pending_baselines


@pytest.mark.parametrize("name", ["", "   ", "Bench"])
def test_add_exercise_rejected(state: SessionState, name: str):
    before = list(state.exercises)
    assert state.add_exercise(name) is False
    assert state.exercises == before


# ---------------------------------------------------------------------------
# Rest clock interplay
# ---------------------------------------------------------------------------


def test_completing_set_starts_rest(state: SessionState, scheduler: ManualScheduler):
    state.toggle_set("Bench", 0)

    assert state.rest.running
    assert state.rest_remaining == 180
    scheduler.advance(30)
    assert state.rest_remaining == 150


def test_uncompleting_set_leaves_rest_alone(state: SessionState, scheduler: ManualScheduler):
    state.toggle_set("Bench", 0)
    scheduler.advance(30)

    state.toggle_set("Bench", 0)

    assert state.rest_remaining == 150


def test_each_completion_restarts_rest_at_last_target(
    state: SessionState, scheduler: ManualScheduler
):
    state.rest.change_preset(240)
    state.toggle_set("Bench", 0)
    scheduler.advance(100)

    state.toggle_set("Bench", 1)

    assert state.rest_target == 240
    assert state.rest_remaining == 240


def test_default_rest_from_profile(scheduler: ManualScheduler):
    state = SessionState(scheduler, default_rest_sec=300)
    state.start_session(Split(name="Push Day", exercises=["Bench"]))
    assert state.rest_target == 300


# ---------------------------------------------------------------------------
# Comparison labels
# ---------------------------------------------------------------------------


def test_comparison_none_without_baseline(state: SessionState):
    enter_set(state, "Bench", 0, "100", "5")
    comparison = state.toggle_set("Bench", 0)
    assert comparison.kind is ComparisonKind.NONE


def test_comparison_none_without_current(state: SessionState):
    state.apply_baseline("Bench", history((90, 5)))
    assert state.comparison_label("Bench").kind is ComparisonKind.NONE


@pytest.mark.parametrize(
    "weight,kind",
    [
        ("100", ComparisonKind.IMPROVED),
        ("80", ComparisonKind.REGRESSED),
        ("90", ComparisonKind.EQUAL),
    ],
)
def test_comparison_against_baseline(state: SessionState, weight: str, kind: ComparisonKind):
    state.apply_baseline("Bench", history((90, 5)))
    enter_set(state, "Bench", 0, weight, "5")

    comparison = state.toggle_set("Bench", 0)

    assert comparison.kind is kind
    assert comparison.previous.weight == 90


def test_comparison_refreshed_on_edit(state: SessionState):
    state.apply_baseline("Bench", history((90, 5)))
    enter_set(state, "Bench", 0, "100", "5")
    state.toggle_set("Bench", 0)

    comparison = state.update_set("Bench", 0, "weight", "70")

    assert comparison.kind is ComparisonKind.REGRESSED


def test_baseline_uses_most_recent_log_only(state: SessionState):
    logs = history((200, 5)) + history((80, 5))
    state.apply_baseline("Bench", logs)
    assert state.baselines["Bench"].weight == 80


def test_baseline_for_unknown_exercise_ignored(state: SessionState):
    state.apply_baseline("Curl", history((20, 10)))
    assert "Curl" not in state.baselines


def test_baseline_after_finish_ignored(state: SessionState):
    state.finish()
    state.apply_baseline("Bench", history((90, 5)))
    assert "Bench" not in state.baselines


# ---------------------------------------------------------------------------
# Async baseline lookups
# ---------------------------------------------------------------------------


def test_load_baselines_out_of_order(state: SessionState):
    order: list[str] = []

    async def fetch(name: str):
        # Bench resolves last even though it was requested first
        await asyncio.sleep(0.02 if name == "Bench" else 0)
        order.append(name)
        return history((90, 5)) if name == "Bench" else []

    asyncio.run(load_baselines(state, fetch))

    assert order == ["Dips", "Bench"]
    assert state.baselines["Bench"].weight == 90
    assert state.baselines["Dips"] is None
    assert state.pending_baselines == []


def test_mutations_accepted_while_lookups_pending(state: SessionState):
    async def scenario():
        gate = asyncio.Event()

        async def fetch(name: str):
            await gate.wait()
            return history((90, 5))

        task = asyncio.create_task(load_baselines(state, fetch))
        await asyncio.sleep(0)
        enter_set(state, "Bench", 0, "100", "5")
        before = state.toggle_set("Bench", 0)
        gate.set()
        await task
        return before

    before = asyncio.run(scenario())

    assert before.kind is ComparisonKind.NONE
    assert state.comparison_label("Bench").kind is ComparisonKind.IMPROVED


def test_load_baselines_skips_ad_hoc_exercises(state: SessionState):
    requested: list[str] = []
    state.add_exercise("Flyes")

    async def fetch(name: str):
        requested.append(name)
        return []

    asyncio.run(load_baselines(state, fetch))

    assert sorted(requested) == ["Bench", "Dips"]


# ---------------------------------------------------------------------------
# Finish
# ---------------------------------------------------------------------------


def test_finish_filters_sets_and_exercises(state: SessionState, scheduler: ManualScheduler):
    enter_set(state, "Bench", 0, "100", "5")
    state.toggle_set("Bench", 0)
    enter_set(state, "Bench", 1, "100", "4")  # never completed
    state.toggle_set("Bench", 2)  # completed but empty
    enter_set(state, "Dips", 0, "20", "8")  # never completed
    scheduler.advance(90)

    finished = state.finish(now=datetime(2024, 1, 3, 18, 0, tzinfo=timezone.utc))

    assert finished.workout.split_name == "Push Day"
    assert finished.workout.date == "2024-01-03T18:00:00+00:00"
    assert finished.workout.duration_ms == 90_000
    assert [log.exercise_name for log in finished.logs] == ["Bench"]
    assert finished.logs[0].sets == [SetEntry(set_number=1, weight=100.0, reps=5, completed=True)]


def test_finish_keeps_bodyweight_sets(state: SessionState):
    enter_set(state, "Dips", 0, "0", "12")
    state.toggle_set("Dips", 0)

    finished = state.finish()

    assert finished.logs[0].sets[0].reps == 12


def test_finish_with_nothing_logged(state: SessionState):
    finished = state.finish()
    assert finished.logs == []
    assert finished.workout.duration_ms == 0


def test_finish_stops_clocks(state: SessionState, scheduler: ManualScheduler):
    state.toggle_set("Bench", 0)
    scheduler.advance(10)

    state.finish()
    scheduler.advance(60)

    assert not state.elapsed.running
    assert not state.rest.running
    assert state.elapsed_ms == 10_000
    assert state.rest_remaining == 170


def test_reopen_after_failed_store(state: SessionState, scheduler: ManualScheduler):
    enter_set(state, "Bench", 0, "100", "5")
    state.toggle_set("Bench", 0)
    scheduler.advance(10)
    state.finish()
    scheduler.advance(5)

    state.reopen()
    scheduler.advance(5)

    assert state.phase is SessionPhase.ACTIVE
    assert state.elapsed.running
    assert not state.rest.running
    assert state.elapsed_ms == 20_000
    assert state.logs["Bench"].sets[0].weight == 100
    assert state.finish().workout.duration_ms == 20_000


def test_reopen_requires_finished(state: SessionState):
    with pytest.raises(SessionNotActive):
        state.reopen()


# ---------------------------------------------------------------------------
# End-to-end
# ---------------------------------------------------------------------------


def test_new_exercise_without_history(scheduler: ManualScheduler):
    state = SessionState(scheduler)
    state.start_session(Split(name="Push Day", exercises=["Bench"]))
    state.apply_baseline("Bench", [])

    enter_set(state, "Bench", 0, "100", "5")
    comparison = state.toggle_set("Bench", 0)
    finished = state.finish()

    assert comparison.kind is ComparisonKind.NONE
    assert len(finished.logs) == 1
    assert finished.logs[0].sets == [SetEntry(set_number=1, weight=100.0, reps=5, completed=True)]


def test_improvement_over_previous_session(scheduler: ManualScheduler):
    state = SessionState(scheduler)
    state.start_session(Split(name="Push Day", exercises=["Bench"]))
    state.apply_baseline("Bench", history((90, 5)))

    enter_set(state, "Bench", 0, "100", "5")
    comparison = state.toggle_set("Bench", 0)

    assert comparison.kind is ComparisonKind.IMPROVED
    assert comparison.current.weight == 100
