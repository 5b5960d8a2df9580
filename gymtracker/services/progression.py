"""
Progression analytics over historical exercise logs and body-weight samples.

Everything here is pure: functions take plain entity sequences and return
new values without touching storage. Logs handed to build_progress and
build_ranking must already be in chronological order (oldest first); use
sort_logs_by_workout_date when workout dates are at hand.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from gymtracker.services.entities import (
    BodyWeightEntry,
    ExerciseLog,
    ExerciseProgress,
    SetEntry,
    WeeklyBodyWeight,
    Workout,
)
from gymtracker.services.estimator import best_set, estimate_one_rep_max, total_volume

TIME_RANGES: dict[str, timedelta | None] = {
    "1W": timedelta(days=7),
    "1M": timedelta(days=30),
    "3M": timedelta(days=90),
    "6M": timedelta(days=180),
    "All": None,
}

CHART_MODES = ("weight", "volume", "1rm")


@dataclass
class HistoryPoint:
    workout_id: int
    date: str  # ISO timestamp of the owning workout
    value: float


@dataclass
class DashboardSummary:
    streak: int
    week_workouts: int
    week_volume: float
    total_workouts: int
    top_gain: float
    top_progress: list[ExerciseProgress] = field(default_factory=list)
    recent_workouts: list[Workout] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _one_rep_max_of(s: SetEntry | None) -> float:
    return estimate_one_rep_max(s.weight, s.reps) if s else 0.0


def _calendar_day(iso: str) -> date:
    """Reduce an ISO timestamp to its calendar day (first 10 characters)."""
    return date.fromisoformat(iso[:10])


def _parse_timestamp(iso: str) -> datetime:
    """Parse an ISO timestamp; naive values are taken to be UTC."""
    parsed = datetime.fromisoformat(iso)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _workout_dates(workouts: Iterable[Workout]) -> dict[int, str]:
    return {w.id: w.date for w in workouts if w.id is not None}


# ---------------------------------------------------------------------------
# Exercise progression
# ---------------------------------------------------------------------------


def group_by_exercise(logs: Iterable[ExerciseLog]) -> dict[str, list[ExerciseLog]]:
    """Group logs by exercise name, keeping input order within each group."""
    grouped: dict[str, list[ExerciseLog]] = {}
    for log in logs:
        grouped.setdefault(log.exercise_name, []).append(log)
    return grouped


def sort_logs_by_workout_date(
    logs: Iterable[ExerciseLog], workouts: Iterable[Workout]
) -> list[ExerciseLog]:
    """Return logs ordered oldest→newest by their workout's date.

    Logs whose workout is unknown sort first (empty date), matching how the
    storage layer orders orphans. The sort is stable.
    """
    dates = _workout_dates(workouts)
    return sorted(logs, key=lambda log: dates.get(log.workout_id, ""))


def build_progress(name: str, logs: Sequence[ExerciseLog]) -> ExerciseProgress:
    """Compare the most recent log against the one before it."""
    muscle_group = logs[0].muscle_group if logs else ""

    if len(logs) < 2:
        best = best_set(logs[-1].sets) if logs else None
        rm = _one_rep_max_of(best)
        return ExerciseProgress(
            name=name,
            muscle_group=muscle_group,
            current_1rm=rm,
            previous_1rm=rm,
            change_percent=0.0,
            current_best=best,
            previous_best=best,
            all_logs=list(logs),
        )

    current_best = best_set(logs[-1].sets)
    previous_best = best_set(logs[-2].sets)
    current_1rm = _one_rep_max_of(current_best)
    previous_1rm = _one_rep_max_of(previous_best)
    if previous_1rm > 0:
        change = (current_1rm - previous_1rm) / previous_1rm * 100
    else:
        change = 0.0

    return ExerciseProgress(
        name=name,
        muscle_group=muscle_group,
        current_1rm=current_1rm,
        previous_1rm=previous_1rm,
        change_percent=change,
        current_best=current_best,
        previous_best=previous_best,
        all_logs=list(logs),
    )


def build_ranking(grouped: Mapping[str, Sequence[ExerciseLog]]) -> list[ExerciseProgress]:
    """Progress for every exercise with history, best improvement first.

    sorted() is stable, so ties keep the mapping's iteration order.
    """
    results = [build_progress(name, logs) for name, logs in grouped.items() if logs]
    return sorted(results, key=lambda p: p.change_percent, reverse=True)


def weekly_volume(logs: Iterable[ExerciseLog]) -> float:
    return sum((total_volume(log.sets) for log in logs), 0.0)


def filter_logs_by_range(
    logs: Iterable[ExerciseLog],
    workouts: Iterable[Workout],
    time_range: str,
    now: datetime | None = None,
) -> list[ExerciseLog]:
    """Keep logs whose workout falls inside the given range (1W/1M/3M/6M/All).

    Logs with no matching workout are dropped. Unknown range keys raise
    ValueError.
    """
    if time_range not in TIME_RANGES:
        raise ValueError(f"Unknown time range {time_range!r}")
    dates = _workout_dates(workouts)
    span = TIME_RANGES[time_range]
    if span is None:
        return [log for log in logs if log.workout_id in dates]

    cutoff = (now or datetime.now(timezone.utc)) - span
    return [
        log
        for log in logs
        if log.workout_id in dates and _parse_timestamp(dates[log.workout_id]) >= cutoff
    ]


def exercise_history(
    logs: Iterable[ExerciseLog], workouts: Iterable[Workout], mode: str = "weight"
) -> list[HistoryPoint]:
    """Chart series for one exercise, one point per log in workout-date order.

    A set is considered when it is completed or carries weight. ``weight``
    reports the weight of the set with the highest Epley value, ``volume``
    the completed volume, ``1rm`` that Epley value rounded to 0.1 kg.
    """
    if mode not in CHART_MODES:
        raise ValueError(f"Unknown chart mode {mode!r}")
    workouts = list(workouts)
    dates = _workout_dates(workouts)

    points: list[HistoryPoint] = []
    for log in sort_logs_by_workout_date(logs, workouts):
        considered = [s for s in log.sets if s.completed or s.weight > 0]
        value = 0.0
        if considered:
            if mode == "volume":
                value = total_volume(considered)
            else:
                # Raw Epley without the reps == 1 shortcut, first set wins ties
                top = considered[0]
                top_rm = 0.0
                for s in considered:
                    rm = s.weight * (1 + s.reps / 30)
                    if rm > top_rm:
                        top, top_rm = s, rm
                value = round(top_rm, 1) if mode == "1rm" else top.weight
        points.append(
            HistoryPoint(workout_id=log.workout_id, date=dates.get(log.workout_id, ""), value=value)
        )
    return points


# ---------------------------------------------------------------------------
# Adherence
# ---------------------------------------------------------------------------


def calc_streak(workout_dates: Iterable[str], today: date | None = None) -> int:
    """Count training days walking back from today.

    Days are deduplicated and visited newest first. A day extends the streak
    when it is at most one day before the previously counted day (or today);
    the first larger gap ends the walk.
    """
    days = sorted({_calendar_day(d) for d in workout_dates}, reverse=True)
    if not days:
        return 0

    expected = today or date.today()
    streak = 0
    for day in days:
        if (expected - day).days > 1:
            break
        streak += 1
        expected = day
    return streak


def dashboard_summary(
    workouts: Sequence[Workout],
    logs: Iterable[ExerciseLog],
    now: datetime | None = None,
    today: date | None = None,
    top: int = 5,
) -> DashboardSummary:
    now = now or datetime.now(timezone.utc)
    week_ago = now - timedelta(days=7)
    week_ids = {
        w.id for w in workouts if w.id is not None and _parse_timestamp(w.date) > week_ago
    }
    logs = list(logs)
    week_volume = weekly_volume(log for log in logs if log.workout_id in week_ids)

    ranking = build_ranking(group_by_exercise(sort_logs_by_workout_date(logs, workouts)))
    newest_first = sorted(workouts, key=lambda w: w.date, reverse=True)

    return DashboardSummary(
        streak=calc_streak((w.date for w in workouts), today=today),
        week_workouts=len(week_ids),
        week_volume=week_volume,
        total_workouts=len(workouts),
        top_gain=ranking[0].change_percent if ranking else 0.0,
        top_progress=ranking[:top],
        recent_workouts=newest_first[:3],
    )


# ---------------------------------------------------------------------------
# Body weight
# ---------------------------------------------------------------------------


def week_start(day: date) -> date:
    """Monday of the week containing ``day`` (Sunday belongs to the week before)."""
    return day - timedelta(days=day.isoweekday() - 1)


def calculate_weekly_body_weight(entries: Iterable[BodyWeightEntry]) -> list[WeeklyBodyWeight]:
    buckets: dict[str, list[float]] = {}
    for entry in entries:
        key = week_start(_calendar_day(entry.date)).isoformat()
        buckets.setdefault(key, []).append(entry.weight)

    result = [
        WeeklyBodyWeight(
            week=week,
            average=sum(weights) / len(weights),
            min=min(weights),
            max=max(weights),
            count=len(weights),
        )
        for week, weights in buckets.items()
    ]
    return sorted(result, key=lambda w: w.week)


def get_body_weight_trend(entries: Iterable[BodyWeightEntry]) -> float:
    """Percent change from the oldest to the newest sample; 0 with fewer than two."""
    ordered = sorted(entries, key=lambda e: e.date)
    if len(ordered) < 2:
        return 0.0
    first = ordered[0].weight
    last = ordered[-1].weight
    if first == 0:
        return 0.0
    return (last - first) / first * 100
