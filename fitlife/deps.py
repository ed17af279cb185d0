from typing import Annotated

from fastapi import Depends, Header, HTTPException
from sqlmodel import Session

from fitlife.database import get_session
from fitlife.services.row_store import RowStore, SQLModelRowStore
from fitlife.services.snapshots import FileSnapshotStore, SessionSnapshots, SnapshotStore
from fitlife.settings import get_settings

SessionDep = Annotated[Session, Depends(get_session)]


def get_row_store(session: SessionDep) -> RowStore:
    return SQLModelRowStore(session)


def get_snapshot_store() -> SnapshotStore:
    return FileSnapshotStore(get_settings().SNAPSHOT_DIR)


def get_session_snapshots(store: Annotated[SnapshotStore, Depends(get_snapshot_store)]) -> SessionSnapshots:
    return SessionSnapshots(store)


def get_user_id(x_user_id: Annotated[str | None, Header()] = None) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


StoreDep = Annotated[RowStore, Depends(get_row_store)]
SnapshotsDep = Annotated[SessionSnapshots, Depends(get_session_snapshots)]
UserDep = Annotated[str, Depends(get_user_id)]
