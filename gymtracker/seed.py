"""
Default splits/profile, plus realistic fake training history.
Run with: python -m gymtracker.seed

WARNING: Running as a script drops all existing workouts and body weights.
"""

import random
from datetime import datetime, timedelta, timezone

from sqlmodel import Session, SQLModel, create_engine, select

from gymtracker.config import DATABASE_URL
from gymtracker.models import BodyWeight, Split, Workout, WorkoutExercise, WorkoutSet
from gymtracker.storage import get_profile

# Reproducible data
RANDOM_SEED = 42

# ---------------------------------------------------------------------------
# Split catalogue
# ---------------------------------------------------------------------------

DEFAULT_SPLITS: list[dict] = [
    {
        "name": "Push Day",
        "emoji": "💪",
        "exercises": [
            "Bankdrücken",
            "Schulterdrücken",
            "Schrägbankdrücken",
            "Seitheben",
            "Trizepsdrücken",
        ],
        "muscle_groups": ["Brust", "Schulter", "Trizeps"],
    },
    {
        "name": "Pull Day",
        "emoji": "🏋️",
        "exercises": [
            "Klimmzüge",
            "Langhantelrudern",
            "Kabelrudern",
            "Bizepscurls",
            "Gesichtsziehen",
        ],
        "muscle_groups": ["Rücken", "Bizeps"],
    },
    {
        "name": "Leg Day",
        "emoji": "🦵",
        "exercises": [
            "Kniebeugen",
            "Beinpresse",
            "Rumänisches Kreuzheben",
            "Beinbeuger",
            "Wadenheben",
        ],
        "muscle_groups": ["Quadrizeps", "Hamstrings", "Waden"],
    },
    {
        "name": "Upper Body",
        "emoji": "🔝",
        "exercises": [
            "Bankdrücken",
            "Klimmzüge",
            "Schulterdrücken",
            "Rudern",
            "Bizepscurls",
            "Trizeps",
        ],
        "muscle_groups": ["Oberkörper"],
    },
    {
        "name": "Lower Body",
        "emoji": "⚡",
        "exercises": [
            "Kniebeugen",
            "Kreuzheben",
            "Ausfallschritte",
            "Beinpresse",
            "Wadenheben",
        ],
        "muscle_groups": ["Unterkörper"],
    },
]

# Base weights in kg (0 = bodyweight / reps-only)
BASE_WEIGHTS: dict[str, float] = {
    "Bankdrücken": 80.0,
    "Schulterdrücken": 50.0,
    "Schrägbankdrücken": 24.0,
    "Seitheben": 10.0,
    "Trizepsdrücken": 35.0,
    "Klimmzüge": 0.0,
    "Langhantelrudern": 70.0,
    "Kabelrudern": 55.0,
    "Bizepscurls": 30.0,
    "Gesichtsziehen": 20.0,
    "Kniebeugen": 100.0,
    "Beinpresse": 150.0,
    "Rumänisches Kreuzheben": 80.0,
    "Beinbeuger": 40.0,
    "Wadenheben": 60.0,
}

HISTORY_WORKOUTS = 20
START_BODY_WEIGHT = 84.0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _progression_weight(base: float, workout_idx: int, rng: random.Random) -> float:
    """Progressive overload with realistic noise. Rounds to nearest 2.5 kg."""
    factor = 1.0 + 0.025 * workout_idx + rng.uniform(-0.05, 0.05)
    return round(base * factor / 2.5) * 2.5


def _progression_reps(workout_idx: int, rng: random.Random) -> int:
    """Reps for bodyweight lifts: starts at 5, trends up."""
    base = 5 + workout_idx // 3
    return max(1, base + rng.randint(-1, 1))


def seed_defaults(session: Session) -> None:
    """Create the default profile and splits if the database has none."""
    get_profile(session)
    if session.exec(select(Split)).first() is None:
        for data in DEFAULT_SPLITS:
            session.add(Split(**data))
        session.commit()


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def seed() -> None:
    rng = random.Random(RANDOM_SEED)

    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        # ------------------------------------------------------------------
        # Wipe existing history (order matters for FK constraints)
        # ------------------------------------------------------------------
        for model in [WorkoutSet, WorkoutExercise, Workout, BodyWeight]:
            for row in session.exec(select(model)).all():
                session.delete(row)
        session.commit()
        print("Cleared existing history.")

        seed_defaults(session)
        splits = DEFAULT_SPLITS[:3]  # push / pull / legs

        # ------------------------------------------------------------------
        # Workouts (one every 3 days, cycling push/pull/legs)
        # ------------------------------------------------------------------
        start = datetime.now(timezone.utc) - timedelta(days=3 * HISTORY_WORKOUTS)
        for workout_idx in range(HISTORY_WORKOUTS):
            split = splits[workout_idx % len(splits)]
            workout = Workout(
                split_name=split["name"],
                date=(start + timedelta(days=3 * workout_idx)).isoformat(),
                duration_ms=rng.randint(45, 90) * 60_000,
            )
            session.add(workout)
            session.commit()
            session.refresh(workout)

            for exercise_name in split["exercises"]:
                exercise = WorkoutExercise(workout_id=workout.id, exercise_name=exercise_name)
                session.add(exercise)
                session.commit()
                session.refresh(exercise)

                base = BASE_WEIGHTS.get(exercise_name, 20.0)
                for set_num in range(1, rng.randint(3, 4) + 1):
                    if base == 0:
                        weight = 0.0
                        reps = _progression_reps(workout_idx, rng)
                    else:
                        weight = _progression_weight(base, workout_idx, rng)
                        reps = rng.randint(5, 10)
                    session.add(
                        WorkoutSet(
                            workout_exercise_id=exercise.id,
                            set_number=set_num,
                            weight=weight,
                            reps=reps,
                        )
                    )
            session.commit()
        print(f"Created {HISTORY_WORKOUTS} workouts.")

        # ------------------------------------------------------------------
        # Body weight, slowly trending down
        # ------------------------------------------------------------------
        for day in range(0, 3 * HISTORY_WORKOUTS, 2):
            weight = START_BODY_WEIGHT - 0.04 * day + rng.uniform(-0.4, 0.4)
            session.add(
                BodyWeight(
                    weight=round(weight, 1),
                    date=(start + timedelta(days=day)).isoformat(),
                )
            )
        session.commit()
        print("Created body weight samples.")
        print("Seed complete! ✦")


if __name__ == "__main__":
    seed()
