import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from fitlife.database import get_session
from fitlife.deps import get_snapshot_store
from fitlife.main import app
from fitlife.services.row_store import SQLModelRowStore
from fitlife.services.snapshots import MemorySnapshotStore, SessionSnapshots

USER_ID = "user-1"


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


@pytest.fixture(name="store")
def store_fixture(session: Session) -> SQLModelRowStore:
    return SQLModelRowStore(session)


@pytest.fixture(name="snapshot_store")
def snapshot_store_fixture() -> MemorySnapshotStore:
    return MemorySnapshotStore()


@pytest.fixture(name="snapshots")
def snapshots_fixture(snapshot_store: MemorySnapshotStore) -> SessionSnapshots:
    return SessionSnapshots(snapshot_store)


@pytest.fixture(name="client")
def client_fixture(session: Session, snapshot_store: MemorySnapshotStore):
    def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_snapshot_store] = lambda: snapshot_store
    yield TestClient(app, headers={"X-User-Id": USER_ID})
    app.dependency_overrides.clear()
