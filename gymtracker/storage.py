"""
Storage collaborator: SQLModel rows in, plain session/analytics entities out.

The session engine and the analytics functions never see a database row;
everything crossing that boundary is converted here.
"""

import logging
from datetime import datetime, timezone

from sqlmodel import Session, select

from gymtracker.config import DEFAULT_PROFILE_NAME, DEFAULT_REST_SEC
from gymtracker.models import BodyWeight, Profile, WorkoutExercise, WorkoutSet
from gymtracker.models import Split as SplitRow
from gymtracker.models import Workout as WorkoutRow
from gymtracker.services.entities import (
    BodyWeightEntry,
    ExerciseLog,
    SetEntry,
    Split,
    Workout,
)
from gymtracker.services.progression import group_by_exercise, sort_logs_by_workout_date
from gymtracker.services.session import FinishedSession

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Row -> entity conversion
# ---------------------------------------------------------------------------


def workout_from_row(row: WorkoutRow) -> Workout:
    return Workout(
        id=row.id,
        split_name=row.split_name,
        date=row.date,
        duration_ms=row.duration_ms,
        notes=row.notes,
    )


def split_from_row(row: SplitRow) -> Split:
    return Split(
        id=row.id,
        name=row.name,
        emoji=row.emoji,
        exercises=list(row.exercises or []),
        muscle_groups=list(row.muscle_groups or []),
    )


def body_weight_from_row(row: BodyWeight) -> BodyWeightEntry:
    return BodyWeightEntry(id=row.id, weight=row.weight, date=row.date, notes=row.notes)


def _logs_from_rows(rows: list[WorkoutExercise], session: Session) -> list[ExerciseLog]:
    """Attach sets (in insertion order) to each exercise row."""
    ids = [row.id for row in rows]
    sets_by_exercise: dict[int, list[SetEntry]] = {i: [] for i in ids}
    if ids:
        set_rows = session.exec(
            select(WorkoutSet)
            .where(WorkoutSet.workout_exercise_id.in_(ids))
            .order_by(WorkoutSet.id)
        ).all()
        for s in set_rows:
            sets_by_exercise[s.workout_exercise_id].append(
                SetEntry(
                    set_number=s.set_number,
                    weight=s.weight,
                    reps=s.reps,
                    completed=s.completed,
                )
            )
    return [
        ExerciseLog(
            id=row.id,
            workout_id=row.workout_id,
            exercise_name=row.exercise_name,
            muscle_group=row.muscle_group,
            sets=sets_by_exercise[row.id],
        )
        for row in rows
    ]


# ---------------------------------------------------------------------------
# Fetch
# ---------------------------------------------------------------------------


def fetch_most_recent_logs(exercise_name: str, session: Session) -> list[ExerciseLog]:
    """Logs for one exercise, oldest workout first; the last one is the most recent."""
    statement = (
        select(WorkoutExercise)
        .join(WorkoutRow, WorkoutRow.id == WorkoutExercise.workout_id)
        .where(WorkoutExercise.exercise_name == exercise_name)
        .order_by(WorkoutRow.date.asc(), WorkoutExercise.id.asc())
    )
    return _logs_from_rows(list(session.exec(statement).all()), session)


def fetch_logs_for_workout(workout_id: int, session: Session) -> list[ExerciseLog]:
    rows = session.exec(
        select(WorkoutExercise)
        .where(WorkoutExercise.workout_id == workout_id)
        .order_by(WorkoutExercise.id)
    ).all()
    return _logs_from_rows(list(rows), session)


def fetch_all_logs(session: Session) -> list[ExerciseLog]:
    rows = session.exec(select(WorkoutExercise).order_by(WorkoutExercise.id)).all()
    return _logs_from_rows(list(rows), session)


def fetch_all_workouts(session: Session) -> list[Workout]:
    """All workouts, newest first."""
    rows = session.exec(select(WorkoutRow).order_by(WorkoutRow.date.desc())).all()
    return [workout_from_row(row) for row in rows]


def fetch_all_body_weights(session: Session) -> list[BodyWeightEntry]:
    """All body-weight samples, newest first."""
    rows = session.exec(select(BodyWeight).order_by(BodyWeight.date.desc())).all()
    return [body_weight_from_row(row) for row in rows]


def logs_by_exercise_chronological(
    session: Session, logs: list[ExerciseLog] | None = None
) -> dict[str, list[ExerciseLog]]:
    """Group logs by exercise with each group sorted oldest workout first."""
    if logs is None:
        logs = fetch_all_logs(session)
    workouts = fetch_all_workouts(session)
    return group_by_exercise(sort_logs_by_workout_date(logs, workouts))


# ---------------------------------------------------------------------------
# Persist
# ---------------------------------------------------------------------------


def _add_workout(workout: Workout, session: Session) -> int:
    row = WorkoutRow(
        split_name=workout.split_name,
        date=workout.date,
        duration_ms=workout.duration_ms,
        notes=workout.notes,
    )
    session.add(row)
    session.flush()
    return row.id


def _add_exercise_log(log: ExerciseLog, session: Session) -> int:
    row = WorkoutExercise(
        workout_id=log.workout_id,
        exercise_name=log.exercise_name,
        muscle_group=log.muscle_group,
    )
    session.add(row)
    session.flush()
    for s in log.sets:
        session.add(
            WorkoutSet(
                workout_exercise_id=row.id,
                set_number=s.set_number,
                weight=s.weight,
                reps=s.reps,
                completed=s.completed,
            )
        )
    session.flush()
    return row.id


def persist_workout(workout: Workout, session: Session) -> int:
    workout_id = _add_workout(workout, session)
    session.commit()
    return workout_id


def persist_exercise_log(log: ExerciseLog, session: Session) -> int:
    log_id = _add_exercise_log(log, session)
    session.commit()
    return log_id


def persist_finished_session(finished: FinishedSession, session: Session) -> int:
    """Store a finished session's workout and its logs in one transaction.

    Returns the workout id. On error nothing is stored and the exception
    propagates.
    """
    try:
        workout_id = _add_workout(finished.workout, session)
        log_ids = []
        for log in finished.logs:
            log.workout_id = workout_id
            log_ids.append(_add_exercise_log(log, session))
        session.commit()
    except Exception:
        session.rollback()
        raise
    finished.workout.id = workout_id
    for log, log_id in zip(finished.logs, log_ids):
        log.id = log_id
    logger.info("Stored workout %d with %d exercise logs", workout_id, len(finished.logs))
    return workout_id


def delete_workout(workout_id: int, session: Session) -> bool:
    """Delete WorkoutSets -> WorkoutExercises -> Workout (SQLite has no auto-cascade)."""
    workout = session.get(WorkoutRow, workout_id)
    if workout is None:
        return False

    exercises = session.exec(
        select(WorkoutExercise).where(WorkoutExercise.workout_id == workout_id)
    ).all()
    exercise_ids = [e.id for e in exercises]
    if exercise_ids:
        sets = session.exec(
            select(WorkoutSet).where(WorkoutSet.workout_exercise_id.in_(exercise_ids))
        ).all()
        for s in sets:
            session.delete(s)
        for e in exercises:
            session.delete(e)

    session.delete(workout)
    session.commit()
    return True


def get_profile(session: Session) -> Profile:
    """Return the single profile row, creating the default one if missing."""
    profile = session.get(Profile, 1)
    if profile is None:
        profile = Profile(
            id=1,
            name=DEFAULT_PROFILE_NAME,
            created_at=datetime.now(timezone.utc).isoformat(),
            default_rest_sec=DEFAULT_REST_SEC,
        )
        session.add(profile)
        session.commit()
        session.refresh(profile)
    return profile
