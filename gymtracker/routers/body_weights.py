from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, SQLModel

from gymtracker.database import get_session
from gymtracker.models import BodyWeight
from gymtracker.services.progression import calculate_weekly_body_weight, get_body_weight_trend
from gymtracker.storage import fetch_all_body_weights

router = APIRouter()

SessionDep = Annotated[Session, Depends(get_session)]


class BodyWeightRead(SQLModel):
    id: int
    weight: float
    date: str
    notes: str | None


class BodyWeightCreate(SQLModel):
    weight: float
    date: str | None = None  # defaults to now
    notes: str | None = None


class WeeklyBodyWeightRead(SQLModel):
    week: str
    average: float
    min: float
    max: float
    count: int


class TrendRead(SQLModel):
    trend_percent: float
    average: float
    count: int


@router.get("/", response_model=list[BodyWeightRead])
def list_body_weights(session: SessionDep):
    return [
        BodyWeightRead(id=e.id, weight=e.weight, date=e.date, notes=e.notes)
        for e in fetch_all_body_weights(session)
    ]


@router.post("/", response_model=BodyWeightRead, status_code=201)
def add_body_weight(body: BodyWeightCreate, session: SessionDep):
    if not body.weight or body.weight <= 0:
        raise HTTPException(status_code=400, detail="Weight must be a positive number")
    if body.date is not None:
        try:
            datetime.fromisoformat(body.date)
        except ValueError:
            raise HTTPException(status_code=400, detail="Date must be ISO-8601")

    entry = BodyWeight(
        weight=body.weight,
        date=body.date or datetime.now(timezone.utc).isoformat(),
        notes=(body.notes or "").strip() or None,
    )
    session.add(entry)
    session.commit()
    session.refresh(entry)
    return entry


@router.get("/weekly", response_model=list[WeeklyBodyWeightRead])
def weekly_body_weight(session: SessionDep):
    return [
        WeeklyBodyWeightRead(
            week=w.week,
            average=w.average,
            min=w.min,
            max=w.max,
            count=w.count,
        )
        for w in calculate_weekly_body_weight(fetch_all_body_weights(session))
    ]


@router.get("/trend", response_model=TrendRead)
def body_weight_trend(session: SessionDep):
    entries = fetch_all_body_weights(session)
    average = sum(e.weight for e in entries) / len(entries) if entries else 0.0
    return TrendRead(
        trend_percent=get_body_weight_trend(entries),
        average=average,
        count=len(entries),
    )


@router.delete("/{entry_id}", status_code=204)
def delete_body_weight(entry_id: int, session: SessionDep):
    entry = session.get(BodyWeight, entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Body weight entry not found")
    session.delete(entry)
    session.commit()
