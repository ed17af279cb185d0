from datetime import date, datetime, timezone

from fastapi import APIRouter, HTTPException
from sqlmodel import Field, SQLModel

from fitlife.deps import StoreDep, UserDep
from fitlife.services.metrics import completion_percentage
from fitlife.services.row_store import Row, RowStore

router = APIRouter()


class HabitRead(SQLModel):
    id: int
    name: str
    notify: bool
    done: bool


class HabitCreate(SQLModel):
    name: str
    notify: bool = False


class HabitStatusUpdate(SQLModel):
    status: bool
    day: date | None = Field(default=None, alias="date")


class ProgressRead(SQLModel):
    completed: int
    total: int
    percentage: int


def _active_habits(store: RowStore, user_id: str) -> list[Row]:
    return store.select("habit", {"user_id": user_id, "active": True}, order=[("created_at", "asc"), ("id", "asc")])


def _statuses(store: RowStore, user_id: str, habit_ids: list[int], day: date) -> dict[int, bool]:
    if not habit_ids:
        return {}
    rows = store.select("habitstatus", {"user_id": user_id, "date": day, "habit_id": habit_ids})
    return {row["habit_id"]: row["status"] for row in rows}


@router.get("", response_model=list[HabitRead])
def list_habits(store: StoreDep, user_id: UserDep, on: date | None = None):
    habits = _active_habits(store, user_id)
    done = _statuses(store, user_id, [h["id"] for h in habits], on or date.today())
    return [HabitRead(id=h["id"], name=h["name"], notify=h["notify"], done=done.get(h["id"], False)) for h in habits]


@router.post("", response_model=HabitRead, status_code=201)
def create_habit(body: HabitCreate, store: StoreDep, user_id: UserDep):
    name = body.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Habit name is required")
    habit = store.insert("habit", {"user_id": user_id, "name": name, "notify": body.notify})[0]
    return HabitRead(id=habit["id"], name=habit["name"], notify=habit["notify"], done=False)


@router.delete("/{id}", status_code=204)
def delete_habit(id: int, store: StoreDep, user_id: UserDep):
    """Habits are deactivated, not removed, so their history stays."""
    if not store.select("habit", {"id": id, "user_id": user_id, "active": True}):
        raise HTTPException(status_code=404, detail="Habit not found")
    store.update("habit", {"active": False, "updated_at": datetime.now(timezone.utc)}, {"id": id})


@router.put("/{id}/status", response_model=HabitRead)
def set_habit_status(id: int, body: HabitStatusUpdate, store: StoreDep, user_id: UserDep):
    habits = store.select("habit", {"id": id, "user_id": user_id, "active": True})
    if not habits:
        raise HTTPException(status_code=404, detail="Habit not found")
    row = store.upsert(
        "habitstatus",
        {"habit_id": id, "user_id": user_id, "date": body.day or date.today(), "status": body.status},
        conflict_keys=("habit_id", "user_id", "date"),
    )
    habit = habits[0]
    return HabitRead(id=habit["id"], name=habit["name"], notify=habit["notify"], done=row["status"])


@router.get("/progress", response_model=ProgressRead)
def get_habit_progress(store: StoreDep, user_id: UserDep, on: date | None = None):
    habits = _active_habits(store, user_id)
    done = _statuses(store, user_id, [h["id"] for h in habits], on or date.today())
    statuses = [done.get(h["id"], False) for h in habits]
    return ProgressRead(
        completed=sum(statuses),
        total=len(habits),
        percentage=completion_percentage(statuses, len(habits)),
    )
