import asyncio
import itertools
import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Field, Session, SQLModel

from gymtracker.config import MAX_SETS, REST_PRESETS
from gymtracker.database import get_session
from gymtracker.models import Split as SplitRow
from gymtracker.services.clocks import AsyncioScheduler, Scheduler
from gymtracker.services.entities import SetEntry
from gymtracker.services.formatters import fmt_kg, format_countdown, format_elapsed
from gymtracker.services.session import (
    Comparison,
    SessionNotActive,
    SessionState,
    load_baselines,
)
from gymtracker.storage import (
    fetch_most_recent_logs,
    get_profile,
    persist_finished_session,
    split_from_row,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SessionDep = Annotated[Session, Depends(get_session)]


class SessionRegistry:
    """Live sessions keyed by id. One registry per application."""

    def __init__(self):
        self._sessions: dict[int, SessionState] = {}
        self._ids = itertools.count(1)

    def add(self, state: SessionState) -> int:
        session_id = next(self._ids)
        self._sessions[session_id] = state
        return session_id

    def get(self, session_id: int) -> SessionState | None:
        return self._sessions.get(session_id)

    def discard(self, session_id: int) -> None:
        self._sessions.pop(session_id, None)


def get_registry(request: Request) -> SessionRegistry:
    registry = getattr(request.app.state, "sessions", None)
    if registry is None:
        registry = request.app.state.sessions = SessionRegistry()
    return registry


def get_scheduler() -> Scheduler:
    return AsyncioScheduler()


RegistryDep = Annotated[SessionRegistry, Depends(get_registry)]
SchedulerDep = Annotated[Scheduler, Depends(get_scheduler)]


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class SetEntryRead(SQLModel):
    set_number: int
    weight: float
    weight_display: str
    reps: int
    completed: bool


class ComparisonRead(SQLModel):
    kind: str
    current: SetEntryRead | None
    previous: SetEntryRead | None


class SessionExerciseRead(SQLModel):
    name: str
    sets: list[SetEntryRead]
    previous_best: SetEntryRead | None
    comparison: ComparisonRead


class SessionRead(SQLModel):
    id: int
    phase: str
    split_name: str
    split_emoji: str
    started_at: str | None
    elapsed_ms: int
    elapsed_display: str
    rest_target: int
    rest_remaining: int
    rest_running: bool
    rest_display: str
    pending_baselines: list[str]
    exercises: list[SessionExerciseRead]


class AddExerciseResponse(SQLModel):
    added: bool
    session: SessionRead


class FinishResponse(SQLModel):
    workout_id: int
    split_name: str
    date: str
    duration_ms: int
    exercise_names: list[str]


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class SessionCreate(SQLModel):
    split_id: int


class ExerciseRef(SQLModel):
    exercise_name: str


class SetRef(SQLModel):
    exercise_name: str
    set_index: int = Field(ge=0, lt=MAX_SETS)


class SetFieldUpdate(SQLModel):
    exercise_name: str
    set_index: int = Field(ge=0, lt=MAX_SETS)
    field: Literal["weight", "reps"]
    value: str | float | None = None


class RestStart(SQLModel):
    target: int | None = None


class RestPreset(SQLModel):
    target: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _set_read(entry: SetEntry | None) -> SetEntryRead | None:
    if entry is None:
        return None
    return SetEntryRead(
        set_number=entry.set_number,
        weight=entry.weight,
        weight_display=fmt_kg(entry.weight),
        reps=entry.reps,
        completed=entry.completed,
    )


def _comparison_read(comparison: Comparison) -> ComparisonRead:
    return ComparisonRead(
        kind=comparison.kind.value,
        current=_set_read(comparison.current),
        previous=_set_read(comparison.previous),
    )


def _build_session_read(session_id: int, state: SessionState) -> SessionRead:
    exercises = [
        SessionExerciseRead(
            name=name,
            sets=[_set_read(s) for s in state.logs[name].sets],
            previous_best=_set_read(state.baselines.get(name)),
            comparison=_comparison_read(state.comparison_label(name)),
        )
        for name in state.exercises
    ]
    return SessionRead(
        id=session_id,
        phase=state.phase.value,
        split_name=state.split.name if state.split else "",
        split_emoji=state.split.emoji if state.split else "",
        started_at=state.started_at.isoformat() if state.started_at else None,
        elapsed_ms=state.elapsed_ms,
        elapsed_display=format_elapsed(state.elapsed_ms),
        rest_target=state.rest_target,
        rest_remaining=state.rest_remaining,
        rest_running=state.rest.running,
        rest_display=format_countdown(state.rest_remaining),
        pending_baselines=list(state.pending_baselines),
        exercises=exercises,
    )


def _get_state(session_id: int, registry: SessionRegistry) -> SessionState:
    state = registry.get(session_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return state


def _require_exercise(state: SessionState, exercise_name: str) -> None:
    if exercise_name not in state.logs:
        raise HTTPException(status_code=404, detail="Exercise not in session")


def _verify_rest_target(target: int) -> None:
    if target <= 0:
        raise HTTPException(status_code=400, detail="Rest target must be positive")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
# Routes are async so clocks tick on the server's event loop. Database work
# runs in the threadpool.


@router.post("/", response_model=SessionRead, status_code=201)
async def start_session(
    body: SessionCreate,
    db: SessionDep,
    registry: RegistryDep,
    scheduler: SchedulerDep,
):
    split_row = await run_in_threadpool(db.get, SplitRow, body.split_id)
    if split_row is None:
        raise HTTPException(status_code=404, detail="Split not found")

    profile = await run_in_threadpool(get_profile, db)
    state = SessionState(scheduler, default_rest_sec=profile.default_rest_sec)
    state.start_session(split_from_row(split_row))
    session_id = registry.add(state)

    # One ORM session is not thread-safe: lookups share it one at a time
    db_lock = asyncio.Lock()

    async def fetch_history(name: str):
        async with db_lock:
            return await run_in_threadpool(fetch_most_recent_logs, name, db)

    await load_baselines(state, fetch_history)
    return _build_session_read(session_id, state)


@router.get("/{session_id}", response_model=SessionRead)
async def get_session_state(session_id: int, registry: RegistryDep):
    return _build_session_read(session_id, _get_state(session_id, registry))


@router.patch("/{session_id}/sets", response_model=SessionRead)
async def update_set(session_id: int, body: SetFieldUpdate, registry: RegistryDep):
    state = _get_state(session_id, registry)
    _require_exercise(state, body.exercise_name)
    state.update_set(body.exercise_name, body.set_index, body.field, body.value)
    return _build_session_read(session_id, state)


@router.post("/{session_id}/sets/toggle", response_model=SessionRead)
async def toggle_set(session_id: int, body: SetRef, registry: RegistryDep):
    state = _get_state(session_id, registry)
    _require_exercise(state, body.exercise_name)
    state.toggle_set(body.exercise_name, body.set_index)
    return _build_session_read(session_id, state)


@router.post("/{session_id}/sets", response_model=SessionRead, status_code=201)
async def add_set_row(session_id: int, body: ExerciseRef, registry: RegistryDep):
    state = _get_state(session_id, registry)
    _require_exercise(state, body.exercise_name)
    if len(state.logs[body.exercise_name].sets) >= MAX_SETS:
        raise HTTPException(status_code=400, detail=f"At most {MAX_SETS} sets per exercise")
    state.add_set_row(body.exercise_name)
    return _build_session_read(session_id, state)


@router.post("/{session_id}/exercises", response_model=AddExerciseResponse)
async def add_exercise(session_id: int, body: ExerciseRef, registry: RegistryDep):
    state = _get_state(session_id, registry)
    added = state.add_exercise(body.exercise_name)
    return AddExerciseResponse(added=added, session=_build_session_read(session_id, state))


@router.post("/{session_id}/rest", response_model=SessionRead)
async def start_rest(session_id: int, body: RestStart, registry: RegistryDep):
    state = _get_state(session_id, registry)
    if body.target is not None:
        _verify_rest_target(body.target)
    state.rest.start(body.target)
    return _build_session_read(session_id, state)


@router.post("/{session_id}/rest/preset", response_model=SessionRead)
async def change_rest_preset(session_id: int, body: RestPreset, registry: RegistryDep):
    state = _get_state(session_id, registry)
    if body.target not in REST_PRESETS:
        raise HTTPException(
            status_code=400,
            detail=f"Rest preset must be one of {', '.join(map(str, REST_PRESETS))}",
        )
    state.rest.change_preset(body.target)
    return _build_session_read(session_id, state)


@router.post("/{session_id}/rest/skip", response_model=SessionRead)
async def skip_rest(session_id: int, registry: RegistryDep):
    state = _get_state(session_id, registry)
    state.rest.skip()
    return _build_session_read(session_id, state)


@router.post("/{session_id}/finish", response_model=FinishResponse)
async def finish_session(session_id: int, db: SessionDep, registry: RegistryDep):
    state = _get_state(session_id, registry)
    try:
        finished = state.finish()
    except SessionNotActive as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    try:
        workout_id = await run_in_threadpool(persist_finished_session, finished, db)
    except SQLAlchemyError as exc:
        logger.exception("Storing session %d failed", session_id)
        state.reopen()
        raise HTTPException(status_code=500, detail="Could not store workout") from exc
    registry.discard(session_id)
    return FinishResponse(
        workout_id=workout_id,
        split_name=finished.workout.split_name,
        date=finished.workout.date,
        duration_ms=finished.workout.duration_ms,
        exercise_names=[log.exercise_name for log in finished.logs],
    )


@router.delete("/{session_id}", status_code=204)
async def abandon_session(session_id: int, registry: RegistryDep):
    state = _get_state(session_id, registry)
    state.elapsed.stop()
    state.rest.stop()
    registry.discard(session_id)
    logger.info("Session %d abandoned", session_id)
