from dataclasses import dataclass, field


@dataclass
class SetEntry:
    set_number: int
    weight: float = 0.0  # kg
    reps: int = 0
    completed: bool = False


@dataclass
class ExerciseLog:
    exercise_name: str
    workout_id: int = 0  # 0 until the owning workout is persisted
    muscle_group: str = ""
    sets: list[SetEntry] = field(default_factory=list)
    id: int | None = None


@dataclass
class Workout:
    split_name: str
    date: str  # ISO-8601 timestamp
    duration_ms: int = 0
    notes: str | None = None
    id: int | None = None


@dataclass
class Split:
    name: str
    exercises: list[str] = field(default_factory=list)
    emoji: str = ""
    muscle_groups: list[str] = field(default_factory=list)
    id: int | None = None


@dataclass
class BodyWeightEntry:
    weight: float  # kg
    date: str  # ISO-8601 timestamp
    notes: str | None = None
    id: int | None = None


@dataclass
class ExerciseProgress:
    name: str
    muscle_group: str
    current_1rm: float
    previous_1rm: float
    change_percent: float  # positive = improvement
    current_best: SetEntry | None
    previous_best: SetEntry | None
    all_logs: list[ExerciseLog] = field(default_factory=list)  # chronological


@dataclass
class WeeklyBodyWeight:
    week: str  # ISO date of the Monday starting the week
    average: float
    min: float
    max: float
    count: int
