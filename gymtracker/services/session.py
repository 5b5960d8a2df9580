"""
In-progress workout session.

A SessionState moves Idle -> Active -> Finished. While Active it owns the
exercise roster, the per-exercise set lists, the elapsed clock and the rest
clock, and compares each exercise's live best set against the best set of
its most recent previous session.

Input is normalised rather than rejected: unparsable numbers become 0,
missing set slots are created on demand up to MAX_SETS, blank exercise names
are ignored.
"""

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from gymtracker.config import DEFAULT_REST_SEC, MAX_SETS
from gymtracker.services.clocks import ElapsedClock, RestClock, Scheduler
from gymtracker.services.entities import ExerciseLog, SetEntry, Split, Workout
from gymtracker.services.estimator import best_set, estimate_one_rep_max

logger = logging.getLogger(__name__)

SET_FIELDS = ("weight", "reps")


class SessionPhase(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    FINISHED = "finished"


class ComparisonKind(str, Enum):
    NONE = "none"
    IMPROVED = "improved"
    REGRESSED = "regressed"
    EQUAL = "equal"


class SessionNotActive(Exception):
    """Raised when finish or reopen is called in the wrong phase."""


@dataclass
class Comparison:
    kind: ComparisonKind
    current: SetEntry | None = None
    previous: SetEntry | None = None


@dataclass
class FinishedSession:
    workout: Workout
    logs: list[ExerciseLog] = field(default_factory=list)


def parse_number(raw: object) -> float:
    """Parse user input as a non-negative real; anything else becomes 0."""
    if isinstance(raw, bool):
        return 0.0
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


class SessionState:
    def __init__(self, scheduler: Scheduler, default_rest_sec: int = DEFAULT_REST_SEC):
        self.phase = SessionPhase.IDLE
        self.split: Split | None = None
        self.exercises: list[str] = []
        self.logs: dict[str, ExerciseLog] = {}
        # exercise -> best set of its most recent previous session (None: no history)
        self.baselines: dict[str, SetEntry | None] = {}
        self.pending_baselines: list[str] = []
        self.started_at: datetime | None = None
        self.elapsed = ElapsedClock(scheduler)
        self.rest = RestClock(scheduler, target=default_rest_sec)

    # -- lifecycle ---------------------------------------------------------

    def start_session(self, split: Split, now: datetime | None = None) -> None:
        """Begin a session from a split; the stored split itself is never mutated."""
        if self.phase is SessionPhase.ACTIVE:
            self._stop_clocks()

        self.split = split
        self.exercises = list(dict.fromkeys(split.exercises))
        self.logs = {name: ExerciseLog(exercise_name=name) for name in self.exercises}
        self.baselines = {}
        self.pending_baselines = list(self.exercises)
        self.started_at = now or datetime.now(timezone.utc)
        self.phase = SessionPhase.ACTIVE
        self.elapsed.start()
        logger.info("Session started for split %r with %d exercises", split.name, len(self.exercises))

    def apply_baseline(self, exercise_name: str, history: Sequence[ExerciseLog]) -> None:
        """Seed an exercise's baseline from its history (last entry = most recent).

        Results for exercises no longer on the roster, or arriving once the
        session is no longer active, are dropped.
        """
        if self.phase is not SessionPhase.ACTIVE or exercise_name not in self.logs:
            logger.debug("Dropping baseline for %r", exercise_name)
            return
        self.baselines[exercise_name] = best_set(history[-1].sets) if history else None
        if exercise_name in self.pending_baselines:
            self.pending_baselines.remove(exercise_name)

    def finish(self, now: datetime | None = None) -> FinishedSession:
        if self.phase is not SessionPhase.ACTIVE:
            raise SessionNotActive(f"Cannot finish a session in phase {self.phase.value}")

        self._stop_clocks()
        workout = Workout(
            split_name=self.split.name,
            date=(now or datetime.now(timezone.utc)).isoformat(),
            duration_ms=self.elapsed.elapsed_ms,
        )
        logs: list[ExerciseLog] = []
        for name in self.exercises:
            log = self.logs[name]
            done = [s for s in log.sets if s.completed and (s.weight > 0 or s.reps > 0)]
            if done:
                logs.append(
                    ExerciseLog(
                        exercise_name=log.exercise_name,
                        workout_id=log.workout_id,
                        muscle_group=log.muscle_group,
                        sets=done,
                    )
                )
        self.phase = SessionPhase.FINISHED
        logger.info(
            "Session for split %r finished after %d ms with %d logged exercises",
            workout.split_name,
            workout.duration_ms,
            len(logs),
        )
        return FinishedSession(workout=workout, logs=logs)

    def reopen(self) -> None:
        """Return a finished session to Active after its workout failed to store.

        The elapsed clock keeps counting from the original start; the rest
        clock stays stopped.
        """
        if self.phase is not SessionPhase.FINISHED:
            raise SessionNotActive(f"Cannot reopen a session in phase {self.phase.value}")
        self.phase = SessionPhase.ACTIVE
        self.elapsed.resume()
        logger.warning("Session for split %r reopened", self.split.name)

    # -- intents -----------------------------------------------------------

    def update_set(
        self, exercise_name: str, set_index: int, field_name: str, raw_value: object
    ) -> Comparison | None:
        if field_name not in SET_FIELDS:
            raise ValueError(f"Unknown set field {field_name!r}")
        entry = self._slot(exercise_name, set_index)
        if entry is None:
            return None
        value = parse_number(raw_value)
        if field_name == "weight":
            entry.weight = value
        else:
            entry.reps = int(value)
        return self.comparison_label(exercise_name)

    def toggle_set(self, exercise_name: str, set_index: int) -> Comparison | None:
        entry = self._slot(exercise_name, set_index)
        if entry is None:
            return None
        entry.completed = not entry.completed
        if entry.completed:
            self.rest.start()
        return self.comparison_label(exercise_name)

    def add_set_row(self, exercise_name: str) -> SetEntry | None:
        if not self._accepts(exercise_name):
            return None
        sets = self.logs[exercise_name].sets
        if len(sets) >= MAX_SETS:
            logger.warning("Set limit reached for %r", exercise_name)
            return None
        entry = SetEntry(set_number=len(sets) + 1)
        sets.append(entry)
        return entry

    def add_exercise(self, name: str) -> bool:
        """Append an ad-hoc exercise. Returns False when nothing was added."""
        if self.phase is not SessionPhase.ACTIVE:
            logger.warning("Ignoring add_exercise while %s", self.phase.value)
            return False
        name = (name or "").strip()
        if not name or name in self.logs:
            return False
        self.exercises.append(name)
        self.logs[name] = ExerciseLog(exercise_name=name)
        self.baselines[name] = None
        return True

    # -- reads -------------------------------------------------------------

    @property
    def elapsed_ms(self) -> int:
        return self.elapsed.elapsed_ms

    @property
    def rest_remaining(self) -> int:
        return self.rest.remaining

    @property
    def rest_target(self) -> int:
        return self.rest.target

    def comparison_label(self, exercise_name: str) -> Comparison:
        log = self.logs.get(exercise_name)
        previous = self.baselines.get(exercise_name)
        current = best_set(log.sets) if log else None
        if current is None or previous is None:
            return Comparison(ComparisonKind.NONE, current=current, previous=previous)

        current_rm = estimate_one_rep_max(current.weight, current.reps)
        previous_rm = estimate_one_rep_max(previous.weight, previous.reps)
        if current_rm > previous_rm:
            kind = ComparisonKind.IMPROVED
        elif current_rm < previous_rm:
            kind = ComparisonKind.REGRESSED
        else:
            kind = ComparisonKind.EQUAL
        return Comparison(kind, current=current, previous=previous)

    def comparisons(self) -> dict[str, Comparison]:
        return {name: self.comparison_label(name) for name in self.exercises}

    # -- internals ---------------------------------------------------------

    def _accepts(self, exercise_name: str) -> bool:
        if self.phase is not SessionPhase.ACTIVE:
            logger.warning("Ignoring intent for %r while %s", exercise_name, self.phase.value)
            return False
        if exercise_name not in self.logs:
            logger.warning("Ignoring intent for unknown exercise %r", exercise_name)
            return False
        return True

    def _slot(self, exercise_name: str, set_index: int) -> SetEntry | None:
        """Return the set at ``set_index``, creating it (and any gap before it)."""
        if not self._accepts(exercise_name):
            return None
        if not 0 <= set_index < MAX_SETS:
            logger.warning("Ignoring set index %d for %r", set_index, exercise_name)
            return None
        sets = self.logs[exercise_name].sets
        while len(sets) <= set_index:
            sets.append(SetEntry(set_number=len(sets) + 1))
        return sets[set_index]

    def _stop_clocks(self) -> None:
        self.elapsed.stop()
        self.rest.stop()


async def load_baselines(
    state: SessionState,
    fetch_history: Callable[[str], Awaitable[Sequence[ExerciseLog]]],
) -> None:
    """Look up every pending exercise's history concurrently.

    Each result is applied to its own exercise as soon as it arrives, so the
    session keeps accepting intents while lookups are in flight.
    """

    async def _lookup(name: str) -> None:
        history = await fetch_history(name)
        state.apply_baseline(name, history)

    await asyncio.gather(*(_lookup(name) for name in list(state.pending_baselines)))
