from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, SQLModel, select

from gymtracker.database import get_session
from gymtracker.models import Workout, WorkoutExercise
from gymtracker.services.entities import ExerciseLog
from gymtracker.services.estimator import total_volume
from gymtracker.services.formatters import format_duration
from gymtracker.storage import delete_workout as delete_workout_cascade
from gymtracker.storage import fetch_logs_for_workout

router = APIRouter()

SessionDep = Annotated[Session, Depends(get_session)]


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class SetRead(SQLModel):
    set_number: int
    weight: float
    reps: int
    completed: bool


class ExerciseLogRead(SQLModel):
    id: int
    exercise_name: str
    muscle_group: str
    volume: float
    sets: list[SetRead]


class WorkoutRead(SQLModel):
    id: int
    split_name: str
    date: str  # ISO format
    duration_ms: int
    duration_display: str
    notes: str | None
    logs: list[ExerciseLogRead]


class WorkoutSummary(SQLModel):
    id: int
    split_name: str
    date: str  # ISO format
    duration_ms: int
    duration_display: str
    exercise_names: list[str]


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class NotesUpdate(SQLModel):
    notes: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _log_read(log: ExerciseLog) -> ExerciseLogRead:
    return ExerciseLogRead(
        id=log.id,
        exercise_name=log.exercise_name,
        muscle_group=log.muscle_group,
        volume=total_volume(log.sets),
        sets=[
            SetRead(
                set_number=s.set_number,
                weight=s.weight,
                reps=s.reps,
                completed=s.completed,
            )
            for s in log.sets
        ],
    )


def _build_workout_read(workout: Workout, session: Session) -> WorkoutRead:
    return WorkoutRead(
        id=workout.id,
        split_name=workout.split_name,
        date=workout.date,
        duration_ms=workout.duration_ms,
        duration_display=format_duration(workout.duration_ms),
        notes=workout.notes,
        logs=[_log_read(log) for log in fetch_logs_for_workout(workout.id, session)],
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/", response_model=list[WorkoutSummary])
def list_workouts(session: SessionDep):
    workouts = session.exec(select(Workout).order_by(Workout.date.desc())).all()
    result: list[WorkoutSummary] = []
    for workout in workouts:
        exercises = session.exec(
            select(WorkoutExercise)
            .where(WorkoutExercise.workout_id == workout.id)
            .order_by(WorkoutExercise.id)
        ).all()
        result.append(
            WorkoutSummary(
                id=workout.id,
                split_name=workout.split_name,
                date=workout.date,
                duration_ms=workout.duration_ms,
                duration_display=format_duration(workout.duration_ms),
                exercise_names=[e.exercise_name for e in exercises],
            )
        )
    return result


@router.get("/{id}", response_model=WorkoutRead)
def get_workout(id: int, session: SessionDep):
    workout = session.get(Workout, id)
    if workout is None:
        raise HTTPException(status_code=404, detail="Workout not found")
    return _build_workout_read(workout, session)


@router.patch("/{id}", response_model=WorkoutRead)
def update_workout(id: int, body: NotesUpdate, session: SessionDep):
    workout = session.get(Workout, id)
    if workout is None:
        raise HTTPException(status_code=404, detail="Workout not found")
    workout.notes = body.notes
    session.add(workout)
    session.commit()
    session.refresh(workout)
    return _build_workout_read(workout, session)


@router.delete("/{id}", status_code=204)
def delete_workout(id: int, session: SessionDep):
    if not delete_workout_cascade(id, session):
        raise HTTPException(status_code=404, detail="Workout not found")
