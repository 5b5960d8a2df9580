from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, SQLModel

from gymtracker.config import REST_PRESETS
from gymtracker.database import get_session
from gymtracker.storage import get_profile

router = APIRouter()

SessionDep = Annotated[Session, Depends(get_session)]


class ProfileRead(SQLModel):
    name: str
    created_at: str
    default_rest_sec: int
    rest_presets: list[int]


class ProfileUpdate(SQLModel):
    name: str | None = None
    default_rest_sec: int | None = None


def _profile_read(session: Session) -> ProfileRead:
    profile = get_profile(session)
    return ProfileRead(
        name=profile.name,
        created_at=profile.created_at,
        default_rest_sec=profile.default_rest_sec,
        rest_presets=list(REST_PRESETS),
    )


@router.get("/", response_model=ProfileRead)
def read_profile(session: SessionDep):
    return _profile_read(session)


@router.patch("/", response_model=ProfileRead)
def update_profile(body: ProfileUpdate, session: SessionDep):
    profile = get_profile(session)

    if body.name is not None:
        name = body.name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="Name must not be empty")
        profile.name = name
    if body.default_rest_sec is not None:
        if body.default_rest_sec not in REST_PRESETS:
            raise HTTPException(
                status_code=400,
                detail=f"Default rest must be one of {', '.join(map(str, REST_PRESETS))}",
            )
        profile.default_rest_sec = body.default_rest_sec

    session.add(profile)
    session.commit()
    session.refresh(profile)
    return _profile_read(session)
