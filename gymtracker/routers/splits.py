from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, SQLModel, select

from gymtracker.config import DEFAULT_SPLIT_EMOJI
from gymtracker.database import get_session
from gymtracker.models import Split, Workout

router = APIRouter()

SessionDep = Annotated[Session, Depends(get_session)]


class SplitRead(SQLModel):
    id: int
    name: str
    emoji: str
    exercises: list[str]
    muscle_groups: list[str]
    last_date: str | None  # date of the most recent workout with this split


class SplitCreate(SQLModel):
    name: str
    emoji: str = ""
    exercises: list[str]
    muscle_groups: list[str] = []


def _last_dates(session: Session) -> dict[str, str]:
    """Map split name -> most recent workout date."""
    last: dict[str, str] = {}
    for workout in session.exec(select(Workout)).all():
        if workout.date > last.get(workout.split_name, ""):
            last[workout.split_name] = workout.date
    return last


def _split_read(split: Split, last_dates: dict[str, str]) -> SplitRead:
    return SplitRead(
        id=split.id,
        name=split.name,
        emoji=split.emoji,
        exercises=list(split.exercises or []),
        muscle_groups=list(split.muscle_groups or []),
        last_date=last_dates.get(split.name),
    )


@router.get("/", response_model=list[SplitRead])
def list_splits(session: SessionDep):
    last_dates = _last_dates(session)
    return [_split_read(s, last_dates) for s in session.exec(select(Split)).all()]


@router.get("/{split_id}", response_model=SplitRead)
def get_split(split_id: int, session: SessionDep):
    split = session.get(Split, split_id)
    if split is None:
        raise HTTPException(status_code=404, detail="Split not found")
    return _split_read(split, _last_dates(session))


@router.post("/", response_model=SplitRead, status_code=201)
def create_split(body: SplitCreate, session: SessionDep):
    name = body.name.strip()
    # Blank lines are dropped; duplicate names keep their first position
    exercises = list(dict.fromkeys(e.strip() for e in body.exercises if e.strip()))
    if not name or not exercises:
        raise HTTPException(status_code=400, detail="Name and at least one exercise required")

    split = Split(
        name=name,
        emoji=body.emoji.strip() or DEFAULT_SPLIT_EMOJI,
        exercises=exercises,
        muscle_groups=[g.strip() for g in body.muscle_groups if g.strip()],
    )
    session.add(split)
    session.commit()
    session.refresh(split)
    return _split_read(split, {})


@router.delete("/{split_id}", status_code=204)
def delete_split(split_id: int, session: SessionDep):
    split = session.get(Split, split_id)
    if split is None:
        raise HTTPException(status_code=404, detail="Split not found")
    session.delete(split)
    session.commit()
