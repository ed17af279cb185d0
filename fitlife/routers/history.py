from datetime import date, timedelta

from fastapi import APIRouter, Query
from sqlmodel import SQLModel

from fitlife.deps import StoreDep, UserDep
from fitlife.services.row_store import Row, RowStore

router = APIRouter()


class HistoryRead(SQLModel):
    id: int
    exercise_id: int
    exercise_name: str
    training_date: str  # ISO format
    set_index: int
    reps: int
    load: float


def fetch_history(store: RowStore, user_id: str, since: date | None = None) -> list[Row]:
    """The user's history rows from ``since`` on, oldest first, each with its exercise name."""
    rows = store.select("exercisehistory", {"user_id": user_id}, order=[("training_date", "asc"), ("id", "asc")])
    if since is not None:
        rows = [row for row in rows if row["training_date"] >= since]
    exercise_ids = sorted({row["exercise_id"] for row in rows})
    names = {e["id"]: e["name"] for e in store.select("exercise", {"id": exercise_ids})} if exercise_ids else {}
    for row in rows:
        row["exercise_name"] = names.get(row["exercise_id"], "")
    return rows


def window_start(days: int | None) -> date | None:
    return date.today() - timedelta(days=days) if days else None


@router.get("", response_model=list[HistoryRead])
def list_history(
    store: StoreDep,
    user_id: UserDep,
    days: int | None = Query(30, ge=1, le=3650),
    exercise_id: int | None = None,
):
    rows = fetch_history(store, user_id, window_start(days))
    if exercise_id is not None:
        rows = [row for row in rows if row["exercise_id"] == exercise_id]
    return [
        HistoryRead(
            id=row["id"],
            exercise_id=row["exercise_id"],
            exercise_name=row["exercise_name"],
            training_date=row["training_date"].isoformat(),
            set_index=row["set_index"],
            reps=row["reps"],
            load=row["load"],
        )
        for row in rows
    ]
