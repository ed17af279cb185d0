import logging
from datetime import date, datetime

from pydantic import ValidationError
from sqlmodel import SQLModel

from fitlife.services.row_store import Row, RowStore
from fitlife.services.workout_session import ExerciseSet, SessionState

log = logging.getLogger(__name__)


class PlannedExercise(SQLModel):
    id: int
    workout_id: int
    name: str
    planned_sets: int
    planned_reps: str = ""
    planned_load: float | None = None
    notes: str | None = None
    order_index: int


class HistoryRecord(SQLModel):
    id: int
    exercise_id: int
    training_date: date
    set_index: int
    reps: int
    load: float
    created_at: datetime | None = None


def _records(rows: list[Row], record_type: type[SQLModel], label: str) -> list:
    """Validate raw store rows, logging and dropping the ones that don't fit."""
    records = []
    for row in rows:
        try:
            records.append(record_type.model_validate(row))
        except ValidationError as exc:
            log.warning("Skipping malformed %s row %r: %s", label, row.get("id"), exc.errors()[0]["msg"])
    return records


def load_exercises(store: RowStore, workout_id: int) -> list[PlannedExercise]:
    rows = store.select("exercise", {"workout_id": workout_id}, order=[("order_index", "asc")])
    return _records(rows, PlannedExercise, "exercise")


def _recency(record: HistoryRecord) -> tuple:
    created = record.created_at.replace(tzinfo=None) if record.created_at else datetime.min
    return (record.training_date, created, record.id)


def last_performance(
    store: RowStore, exercise_ids: list[int], user_id: str
) -> dict[int, dict[int, HistoryRecord]]:
    """Return the most recent history record per exercise and set index.

    Equal training dates are broken by the latest ``created_at``, then the
    highest id.
    """
    if not exercise_ids:
        return {}
    rows = store.select(
        "exercisehistory",
        {"exercise_id": exercise_ids, "user_id": user_id},
        order=[("training_date", "desc")],
    )
    latest: dict[int, dict[int, HistoryRecord]] = {}
    for record in _records(rows, HistoryRecord, "history"):
        per_set = latest.setdefault(record.exercise_id, {})
        current = per_set.get(record.set_index)
        if current is None or _recency(record) > _recency(current):
            per_set[record.set_index] = record
    return latest


def build_initial_state(
    workout_id: int,
    exercises: list[PlannedExercise],
    history: dict[int, dict[int, HistoryRecord]],
) -> SessionState:
    exercise_sets: dict[int, list[ExerciseSet]] = {}
    for exercise in exercises:
        previous = history.get(exercise.id, {})
        sets = []
        for set_index in range(1, exercise.planned_sets + 1):
            last = previous.get(set_index)
            sets.append(
                ExerciseSet(
                    set_index=set_index,
                    reps=0,
                    load=exercise.planned_load or 0.0,
                    completed=False,
                    last_reps=last.reps if last else None,
                    last_load=last.load if last else None,
                )
            )
        exercise_sets[exercise.id] = sets
    return SessionState(workout_id=workout_id, exercise_sets=exercise_sets)


def load_session_plan(store: RowStore, workout_id: int, user_id: str) -> tuple[list[PlannedExercise], SessionState]:
    """Fetch a workout's exercises and the user's last results, and build a fresh session."""
    exercises = load_exercises(store, workout_id)
    history = last_performance(store, [e.id for e in exercises], user_id)
    return exercises, build_initial_state(workout_id, exercises, history)
