import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlmodel import Session

import gymtracker.models as _models  # noqa: F401  registers tables with SQLModel metadata
from gymtracker.config import LOG_LEVEL
from gymtracker.database import create_db_and_tables, engine
from gymtracker.routers import analytics, body_weights, profile, sessions, splits, workouts
from gymtracker.seed import seed_defaults

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    with Session(engine) as session:
        seed_defaults(session)
    app.state.sessions = sessions.SessionRegistry()
    yield


app = FastAPI(title="Gym Tracker", lifespan=lifespan)

app.include_router(sessions.router, prefix="/api/sessions", tags=["sessions"])
app.include_router(workouts.router, prefix="/api/workouts", tags=["workouts"])
app.include_router(splits.router, prefix="/api/splits", tags=["splits"])
app.include_router(body_weights.router, prefix="/api/body-weights", tags=["body-weights"])
app.include_router(profile.router, prefix="/api/profile", tags=["profile"])
app.include_router(analytics.router, prefix="/api/analytics", tags=["analytics"])
