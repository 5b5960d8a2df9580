from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, SQLModel

from gymtracker.database import get_session
from gymtracker.services.entities import ExerciseProgress, SetEntry
from gymtracker.services.formatters import fmt_percent, fmt_volume
from gymtracker.services.progression import (
    build_progress,
    build_ranking,
    calc_streak,
    dashboard_summary,
    exercise_history,
    filter_logs_by_range,
)
from gymtracker.storage import (
    fetch_all_logs,
    fetch_all_workouts,
    fetch_most_recent_logs,
    logs_by_exercise_chronological,
)

router = APIRouter()

SessionDep = Annotated[Session, Depends(get_session)]

TimeRange = Literal["1W", "1M", "3M", "6M", "All"]
ChartMode = Literal["weight", "volume", "1rm"]


class BestSetRead(SQLModel):
    weight: float
    reps: int


class ExerciseProgressRead(SQLModel):
    name: str
    muscle_group: str
    current_1rm: float
    previous_1rm: float
    change_percent: float
    change_display: str
    current_best: BestSetRead | None
    previous_best: BestSetRead | None
    sessions: int


class HistoryPointRead(SQLModel):
    workout_id: int
    date: str
    value: float


class StreakRead(SQLModel):
    streak: int


class RecentWorkoutRead(SQLModel):
    id: int
    split_name: str
    date: str
    duration_ms: int


class DashboardRead(SQLModel):
    streak: int
    week_workouts: int
    week_volume: float
    week_volume_display: str
    total_workouts: int
    top_gain: float
    top_progress: list[ExerciseProgressRead]
    recent_workouts: list[RecentWorkoutRead]


def _best_read(entry: SetEntry | None) -> BestSetRead | None:
    if entry is None:
        return None
    return BestSetRead(weight=entry.weight, reps=entry.reps)


def _progress_read(p: ExerciseProgress) -> ExerciseProgressRead:
    return ExerciseProgressRead(
        name=p.name,
        muscle_group=p.muscle_group,
        current_1rm=p.current_1rm,
        previous_1rm=p.previous_1rm,
        change_percent=p.change_percent,
        change_display=fmt_percent(p.change_percent),
        current_best=_best_read(p.current_best),
        previous_best=_best_read(p.previous_best),
        sessions=len(p.all_logs),
    )


@router.get("/ranking", response_model=list[ExerciseProgressRead])
def get_ranking(session: SessionDep, range: TimeRange = "All"):
    workouts = fetch_all_workouts(session)
    logs = filter_logs_by_range(fetch_all_logs(session), workouts, range)
    grouped = logs_by_exercise_chronological(session, logs)
    return [_progress_read(p) for p in build_ranking(grouped)]


@router.get("/exercises/{name}", response_model=ExerciseProgressRead)
def get_exercise_progress(name: str, session: SessionDep):
    logs = fetch_most_recent_logs(name, session)
    if not logs:
        raise HTTPException(status_code=404, detail="No history for exercise")
    return _progress_read(build_progress(name, logs))


@router.get("/exercises/{name}/history", response_model=list[HistoryPointRead])
def get_exercise_history(
    name: str, session: SessionDep, mode: ChartMode = "weight", range: TimeRange = "All"
):
    workouts = fetch_all_workouts(session)
    logs = filter_logs_by_range(fetch_most_recent_logs(name, session), workouts, range)
    return [
        HistoryPointRead(workout_id=p.workout_id, date=p.date, value=p.value)
        for p in exercise_history(logs, workouts, mode)
    ]


@router.get("/streak", response_model=StreakRead)
def get_streak(session: SessionDep):
    return StreakRead(streak=calc_streak(w.date for w in fetch_all_workouts(session)))


@router.get("/dashboard", response_model=DashboardRead)
def get_dashboard(session: SessionDep):
    summary = dashboard_summary(fetch_all_workouts(session), fetch_all_logs(session))
    return DashboardRead(
        streak=summary.streak,
        week_workouts=summary.week_workouts,
        week_volume=summary.week_volume,
        week_volume_display=fmt_volume(summary.week_volume),
        total_workouts=summary.total_workouts,
        top_gain=summary.top_gain,
        top_progress=[_progress_read(p) for p in summary.top_progress],
        recent_workouts=[
            RecentWorkoutRead(
                id=w.id,
                split_name=w.split_name,
                date=w.date,
                duration_ms=w.duration_ms,
            )
            for w in summary.recent_workouts
        ],
    )
