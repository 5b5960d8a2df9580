from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from gymtracker.config import DEFAULT_REST_SEC


class Workout(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    split_name: str
    date: str = Field(index=True)  # ISO timestamp
    duration_ms: int = 0
    notes: str | None = None


class WorkoutExercise(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    workout_id: int = Field(foreign_key="workout.id", index=True)
    exercise_name: str = Field(index=True)
    muscle_group: str = ""


class WorkoutSet(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    workout_exercise_id: int = Field(foreign_key="workoutexercise.id")
    set_number: int
    weight: float = 0.0  # stored in kg
    reps: int = 0
    completed: bool = True


class Split(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    name: str
    emoji: str = ""
    exercises: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    muscle_groups: list[str] = Field(default_factory=list, sa_column=Column(JSON))


class BodyWeight(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    weight: float  # kg
    date: str = Field(index=True)  # ISO timestamp
    notes: str | None = None


class Profile(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    name: str
    created_at: str
    default_rest_sec: int = DEFAULT_REST_SEC
