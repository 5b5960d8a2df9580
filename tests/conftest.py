import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from gymtracker.database import get_session
from gymtracker.main import app
from gymtracker.routers.sessions import SessionRegistry, get_scheduler
from gymtracker.services.clocks import ManualScheduler


@pytest.fixture(name="session")
def session_fixture():
    # StaticPool ensures the in-memory DB is shared across all connections,
    # including those spawned by TestClient's anyio thread pool.
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="scheduler")
def scheduler_fixture() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture(name="client")
def client_fixture(session: Session, scheduler: ManualScheduler):
    def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    app.state.sessions = SessionRegistry()
    yield TestClient(app)
    app.dependency_overrides.clear()
