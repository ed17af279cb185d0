from datetime import date, datetime, timezone

from fastapi import APIRouter, HTTPException
from pydantic import Field
from sqlmodel import SQLModel

from fitlife.deps import StoreDep, UserDep
from fitlife.services.metrics import completion_percentage
from fitlife.services.row_store import Row, RowStore

router = APIRouter()

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class FoodRead(SQLModel):
    id: int
    name: str
    quantity: str
    notes: str | None


class MealRead(SQLModel):
    id: int
    name: str
    time: str | None
    order_index: int
    done: bool
    foods: list[FoodRead]


class DietRead(SQLModel):
    id: int
    name: str
    active: bool
    meal_count: int
    progress: int
    meals: list[MealRead]


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class FoodWrite(SQLModel):
    name: str
    quantity: str = ""
    notes: str | None = None


class MealWrite(SQLModel):
    name: str
    time: str | None = Field(default=None, pattern=TIME_PATTERN)
    foods: list[FoodWrite] = []


class DietWrite(SQLModel):
    name: str
    active: bool = True
    meals: list[MealWrite] = []


class MealStatusUpdate(SQLModel):
    status: bool
    day: date | None = Field(default=None, alias="date")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _meal_statuses(store: RowStore, user_id: str, meal_ids: list[int], day: date) -> dict[int, bool]:
    if not meal_ids:
        return {}
    rows = store.select("mealstatus", {"user_id": user_id, "date": day, "meal_id": meal_ids})
    return {row["meal_id"]: row["status"] for row in rows}


def _build_diet_read(store: RowStore, diet: Row, user_id: str, day: date) -> DietRead:
    meals = diet.get("meal", [])
    done = _meal_statuses(store, user_id, [m["id"] for m in meals], day)
    meal_reads = [
        MealRead(
            id=m["id"],
            name=m["name"],
            time=m["time"],
            order_index=m["order_index"],
            done=done.get(m["id"], False),
            foods=[FoodRead(**f) for f in m.get("food", [])],
        )
        for m in meals
    ]
    return DietRead(
        id=diet["id"],
        name=diet["name"],
        active=diet["active"],
        meal_count=len(meal_reads),
        progress=completion_percentage([m.done for m in meal_reads], len(meal_reads)),
        meals=meal_reads,
    )


def _get_owned_diet(store: RowStore, diet_id: int, user_id: str) -> Row:
    rows = store.select_with_join("diet", {"id": diet_id, "user_id": user_id}, {"meal": "food"})
    if not rows:
        raise HTTPException(status_code=404, detail="Diet not found")
    return rows[0]


def _validate_diet(body: DietWrite) -> None:
    if not body.name.strip():
        raise HTTPException(status_code=400, detail="Diet name is required")


def _delete_meals(store: RowStore, diet_id: int) -> None:
    """Delete foods -> meal statuses -> meals for a diet."""
    meal_ids = [row["id"] for row in store.select("meal", {"diet_id": diet_id})]
    if meal_ids:
        store.delete("food", {"meal_id": meal_ids})
        store.delete("mealstatus", {"meal_id": meal_ids})
        store.delete("meal", {"id": meal_ids})


def _insert_meals(store: RowStore, diet_id: int, meals: list[MealWrite]) -> None:
    for position, meal in enumerate((m for m in meals if m.name.strip()), start=1):
        meal_row = store.insert(
            "meal",
            {"diet_id": diet_id, "name": meal.name.strip(), "time": meal.time, "order_index": position},
        )[0]
        foods = [
            {"meal_id": meal_row["id"], "name": f.name.strip(), "quantity": f.quantity, "notes": f.notes}
            for f in meal.foods
            if f.name.strip()
        ]
        if foods:
            store.insert("food", foods)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/diets", response_model=list[DietRead])
def list_diets(store: StoreDep, user_id: UserDep, on: date | None = None):
    rows = store.select_with_join("diet", {"user_id": user_id}, {"meal": "food"})
    rows.sort(key=lambda r: (r["created_at"], r["id"]), reverse=True)
    return [_build_diet_read(store, row, user_id, on or date.today()) for row in rows]


@router.get("/diets/active", response_model=DietRead | None)
def get_active_diet(store: StoreDep, user_id: UserDep, on: date | None = None):
    rows = store.select_with_join("diet", {"user_id": user_id, "active": True}, {"meal": "food"})
    if not rows:
        return None
    return _build_diet_read(store, rows[0], user_id, on or date.today())


@router.post("/diets", response_model=DietRead, status_code=201)
def create_diet(body: DietWrite, store: StoreDep, user_id: UserDep):
    _validate_diet(body)
    diet = store.insert("diet", {"user_id": user_id, "name": body.name.strip(), "active": body.active})[0]
    _insert_meals(store, diet["id"], body.meals)
    return _build_diet_read(store, _get_owned_diet(store, diet["id"], user_id), user_id, date.today())


@router.get("/diets/{id}", response_model=DietRead)
def get_diet(id: int, store: StoreDep, user_id: UserDep, on: date | None = None):
    return _build_diet_read(store, _get_owned_diet(store, id, user_id), user_id, on or date.today())


@router.put("/diets/{id}", response_model=DietRead)
def update_diet(id: int, body: DietWrite, store: StoreDep, user_id: UserDep):
    _get_owned_diet(store, id, user_id)
    _validate_diet(body)
    store.update(
        "diet",
        {"name": body.name.strip(), "active": body.active, "updated_at": datetime.now(timezone.utc)},
        {"id": id},
    )
    _delete_meals(store, id)
    _insert_meals(store, id, body.meals)
    return _build_diet_read(store, _get_owned_diet(store, id, user_id), user_id, date.today())


@router.post("/diets/{id}/toggle-active", response_model=DietRead)
def toggle_diet_active(id: int, store: StoreDep, user_id: UserDep):
    diet = _get_owned_diet(store, id, user_id)
    store.update("diet", {"active": not diet["active"]}, {"id": id})
    return _build_diet_read(store, _get_owned_diet(store, id, user_id), user_id, date.today())


@router.delete("/diets/{id}", status_code=204)
def delete_diet(id: int, store: StoreDep, user_id: UserDep):
    _get_owned_diet(store, id, user_id)
    _delete_meals(store, id)
    store.delete("diet", {"id": id})


@router.put("/meals/{id}/status", response_model=MealRead)
def set_meal_status(id: int, body: MealStatusUpdate, store: StoreDep, user_id: UserDep):
    meals = store.select_with_join("meal", {"id": id}, "food")
    if not meals or not store.select("diet", {"id": meals[0]["diet_id"], "user_id": user_id}):
        raise HTTPException(status_code=404, detail="Meal not found")
    meal = meals[0]
    row = store.upsert(
        "mealstatus",
        {"meal_id": id, "user_id": user_id, "date": body.day or date.today(), "status": body.status},
        conflict_keys=("meal_id", "user_id", "date"),
    )
    return MealRead(
        id=meal["id"],
        name=meal["name"],
        time=meal["time"],
        order_index=meal["order_index"],
        done=row["status"],
        foods=[FoodRead(**f) for f in meal["food"]],
    )
