from datetime import date, datetime, timezone

from fastapi import APIRouter, HTTPException
from sqlmodel import Field, SQLModel

from fitlife.deps import SnapshotsDep, StoreDep, UserDep
from fitlife.services.finalizer import NoCompletedSets, quick_log
from fitlife.services.row_store import Row, RowStore
from fitlife.services.workout_session import ExerciseSet

router = APIRouter()


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ExerciseRead(SQLModel):
    id: int
    name: str
    planned_sets: int
    planned_reps: str
    planned_load: float | None
    notes: str | None
    order_index: int


class WorkoutRead(SQLModel):
    id: int
    name: str
    weekdays: list[int]
    active: bool
    exercise_count: int
    exercises: list[ExerciseRead]


class QuickLogRead(SQLModel):
    written: int
    training_date: str  # ISO format


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ExerciseWrite(SQLModel):
    id: int | None = None
    name: str
    planned_sets: int = Field(default=3, ge=1, le=50)
    planned_reps: str = ""
    planned_load: float | None = Field(default=None, ge=0)
    notes: str | None = None


class WorkoutWrite(SQLModel):
    name: str
    weekdays: list[int]
    active: bool = True
    exercises: list[ExerciseWrite] = []


class QuickLogSet(SQLModel):
    reps: int = Field(default=0, ge=0)
    load: float = Field(default=0.0, ge=0)
    completed: bool = False


class QuickLogExercise(SQLModel):
    exercise_id: int
    sets: list[QuickLogSet]


class QuickLogBody(SQLModel):
    training_date: date | None = None
    exercises: list[QuickLogExercise]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def weekday_index(day: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def _build_workout_read(row: Row) -> WorkoutRead:
    exercises = sorted(row.get("exercise", []), key=lambda e: e["order_index"])
    return WorkoutRead(
        id=row["id"],
        name=row["name"],
        weekdays=row["weekdays"],
        active=row["active"],
        exercise_count=len(exercises),
        exercises=[ExerciseRead(**e) for e in exercises],
    )


def get_owned_workout(store: RowStore, workout_id: int, user_id: str) -> Row:
    rows = store.select_with_join("workout", {"id": workout_id, "user_id": user_id}, "exercise")
    if not rows:
        raise HTTPException(status_code=404, detail="Workout not found")
    return rows[0]


def _validate_workout(body: WorkoutWrite) -> None:
    if not body.name.strip():
        raise HTTPException(status_code=400, detail="Workout name is required")
    if not body.weekdays:
        raise HTTPException(status_code=400, detail="Select at least one weekday")
    if any(day < 0 or day > 6 for day in body.weekdays):
        raise HTTPException(status_code=400, detail="Weekdays must be between 0 (Sunday) and 6 (Saturday)")


def _exercise_row(exercise: ExerciseWrite, workout_id: int, order_index: int) -> Row:
    return {
        "workout_id": workout_id,
        "name": exercise.name.strip(),
        "planned_sets": exercise.planned_sets,
        "planned_reps": exercise.planned_reps,
        "planned_load": exercise.planned_load,
        "notes": exercise.notes,
        "order_index": order_index,
    }


def _save_exercises(store: RowStore, workout_id: int, exercises: list[ExerciseWrite]) -> None:
    """Make the workout's exercises match ``exercises``; order follows the list, blank names are dropped."""
    valid = [e for e in exercises if e.name.strip()]
    existing_ids = {row["id"] for row in store.select("exercise", {"workout_id": workout_id})}
    kept_ids = {e.id for e in valid if e.id in existing_ids}

    removed = list(existing_ids - kept_ids)
    if removed:
        store.delete("exercisehistory", {"exercise_id": removed})
        store.delete("exercise", {"id": removed})

    new_rows = []
    for position, exercise in enumerate(valid, start=1):
        row = _exercise_row(exercise, workout_id, position)
        if exercise.id in kept_ids:
            store.update("exercise", row, {"id": exercise.id})
        else:
            new_rows.append(row)
    if new_rows:
        store.insert("exercise", new_rows)


def _delete_workout_cascade(store: RowStore, workout_id: int) -> None:
    """Delete history -> exercises -> workout."""
    exercise_ids = [row["id"] for row in store.select("exercise", {"workout_id": workout_id})]
    if exercise_ids:
        store.delete("exercisehistory", {"exercise_id": exercise_ids})
        store.delete("exercise", {"id": exercise_ids})
    store.delete("workout", {"id": workout_id})


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/", response_model=list[WorkoutRead])
def list_workouts(store: StoreDep, user_id: UserDep):
    rows = store.select_with_join("workout", {"user_id": user_id}, "exercise")
    rows.sort(key=lambda r: (r["created_at"], r["id"]), reverse=True)
    return [_build_workout_read(row) for row in rows]


@router.get("/today", response_model=WorkoutRead | None)
def get_today_workout(store: StoreDep, user_id: UserDep, on: date | None = None):
    """The first active workout scheduled for today's weekday, or null."""
    day = weekday_index(on or date.today())
    rows = store.select_with_join("workout", {"user_id": user_id, "active": True}, "exercise")
    rows.sort(key=lambda r: (r["created_at"], r["id"]), reverse=True)
    for row in rows:
        if day in row["weekdays"]:
            return _build_workout_read(row)
    return None


@router.post("/", response_model=WorkoutRead, status_code=201)
def create_workout(body: WorkoutWrite, store: StoreDep, user_id: UserDep):
    _validate_workout(body)
    workout = store.insert(
        "workout",
        {
            "user_id": user_id,
            "name": body.name.strip(),
            "weekdays": sorted(set(body.weekdays)),
            "active": body.active,
        },
    )[0]
    _save_exercises(store, workout["id"], body.exercises)
    return _build_workout_read(get_owned_workout(store, workout["id"], user_id))


@router.get("/{id}", response_model=WorkoutRead)
def get_workout(id: int, store: StoreDep, user_id: UserDep):
    return _build_workout_read(get_owned_workout(store, id, user_id))


@router.put("/{id}", response_model=WorkoutRead)
def update_workout(id: int, body: WorkoutWrite, store: StoreDep, user_id: UserDep):
    get_owned_workout(store, id, user_id)
    _validate_workout(body)
    store.update(
        "workout",
        {
            "name": body.name.strip(),
            "weekdays": sorted(set(body.weekdays)),
            "active": body.active,
            "updated_at": datetime.now(timezone.utc),
        },
        {"id": id},
    )
    _save_exercises(store, id, body.exercises)
    return _build_workout_read(get_owned_workout(store, id, user_id))


@router.post("/{id}/toggle-active", response_model=WorkoutRead)
def toggle_workout_active(id: int, store: StoreDep, user_id: UserDep):
    workout = get_owned_workout(store, id, user_id)
    store.update("workout", {"active": not workout["active"]}, {"id": id})
    return _build_workout_read(get_owned_workout(store, id, user_id))


@router.delete("/{id}", status_code=204)
def delete_workout(id: int, store: StoreDep, snapshots: SnapshotsDep, user_id: UserDep):
    get_owned_workout(store, id, user_id)
    _delete_workout_cascade(store, id)
    snapshots.clear(id, user_id)


@router.post("/{id}/quick-log", response_model=QuickLogRead, status_code=201)
def quick_log_workout(id: int, body: QuickLogBody, store: StoreDep, user_id: UserDep):
    """Record a past workout's sets for a chosen date."""
    workout = get_owned_workout(store, id, user_id)
    exercise_ids = {e["id"] for e in workout["exercise"]}
    unknown = [e.exercise_id for e in body.exercises if e.exercise_id not in exercise_ids]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Exercise {unknown[0]} is not part of this workout")

    sets_by_exercise = {
        e.exercise_id: [
            ExerciseSet(set_index=position, reps=s.reps, load=s.load, completed=s.completed)
            for position, s in enumerate(e.sets, start=1)
        ]
        for e in body.exercises
    }
    training_date = body.training_date or date.today()
    try:
        written = quick_log(store, sets_by_exercise, user_id, training_date)
    except NoCompletedSets as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return QuickLogRead(written=written, training_date=training_date.isoformat())
