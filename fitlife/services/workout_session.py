"""In-memory state of one live workout session.

A session tracks, per planned exercise, the sets the user performs, which
exercise is on screen, and a rest timer. State is plain data so that it can
be written to a snapshot after every change and rebuilt from one.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


class SessionError(ValueError):
    """A session action referenced a set or field that does not exist."""


SET_FIELDS = ("reps", "load", "completed")


def _coerce_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        number = int(value)
    except (TypeError, ValueError):
        try:
            number = int(float(value))
        except (TypeError, ValueError):
            return 0
    return max(number, 0)


def _coerce_float(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number or number < 0:  # NaN or negative
        return 0.0
    return number


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _optional_number(value: Any, kind: type) -> Any:
    """Previous-session values: a non-negative number, or None when unreadable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = kind(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if number != number or number < 0 or number == float("inf"):
        return None
    return number


def percentage(done: int, total: int) -> int:
    """round(100 * done / total) with halves rounded up; 0 when total is 0."""
    if total <= 0:
        return 0
    return (200 * done + total) // (2 * total)


def format_timer(seconds: int) -> str:
    minutes, secs = divmod(max(seconds, 0), 60)
    return f"{minutes:02d}:{secs:02d}"


@dataclass
class ExerciseSet:
    set_index: int
    reps: int = 0
    load: float = 0.0
    completed: bool = False
    last_reps: int | None = None
    last_load: float | None = None

    def to_snapshot(self) -> dict[str, Any]:
        return {
            "series": self.set_index,
            "reps": self.reps,
            "load": self.load,
            "completed": self.completed,
            "lastReps": self.last_reps,
            "lastLoad": self.last_load,
        }

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "ExerciseSet":
        if not isinstance(data, dict):
            raise ValueError(f"Set snapshot must be an object, got {type(data).__name__}")
        return cls(
            set_index=int(data["series"]),
            reps=_coerce_int(data.get("reps", 0)),
            load=_coerce_float(data.get("load", 0)),
            completed=_coerce_bool(data.get("completed", False)),
            last_reps=_optional_number(data.get("lastReps"), int),
            last_load=_optional_number(data.get("lastLoad"), float),
        )


@dataclass
class SessionState:
    workout_id: int
    # Exercise id -> its sets, in plan order
    exercise_sets: dict[int, list[ExerciseSet]] = field(default_factory=dict)
    current_exercise_index: int = 0
    timer_seconds: int = 0
    timer_running: bool = False
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # -- queries -------------------------------------------------------------

    @property
    def exercise_ids(self) -> list[int]:
        return list(self.exercise_sets)

    @property
    def current_exercise_id(self) -> int | None:
        ids = self.exercise_ids
        if not ids:
            return None
        return ids[self.current_exercise_index]

    def sets_for(self, exercise_id: int) -> list[ExerciseSet]:
        try:
            return self.exercise_sets[exercise_id]
        except KeyError:
            raise SessionError(f"Exercise {exercise_id} is not part of this session") from None

    def _set(self, exercise_id: int, set_index: int) -> ExerciseSet:
        sets = self.sets_for(exercise_id)
        if not 0 <= set_index < len(sets):
            raise SessionError(f"Exercise {exercise_id} has no set at position {set_index}")
        return sets[set_index]

    def all_sets(self) -> list[ExerciseSet]:
        return [s for sets in self.exercise_sets.values() for s in sets]

    def completed_count(self) -> int:
        return sum(1 for s in self.all_sets() if s.completed)

    def all_completed(self) -> bool:
        return all(s.completed for s in self.all_sets())

    def overall_progress(self) -> int:
        sets = self.all_sets()
        return percentage(sum(1 for s in sets if s.completed), len(sets))

    def exercise_progress(self, exercise_id: int) -> int:
        sets = self.exercise_sets.get(exercise_id, [])
        return percentage(sum(1 for s in sets if s.completed), len(sets))

    @property
    def formatted_timer(self) -> str:
        return format_timer(self.timer_seconds)

    # -- mutations -----------------------------------------------------------

    def update_set(self, exercise_id: int, set_index: int, field_name: str, value: Any) -> None:
        target = self._set(exercise_id, set_index)
        if field_name == "reps":
            target.reps = _coerce_int(value)
        elif field_name == "load":
            target.load = _coerce_float(value)
        elif field_name == "completed":
            target.completed = _coerce_bool(value)
        else:
            raise SessionError(f"Unknown set field '{field_name}'")

    def toggle_set_complete(self, exercise_id: int, set_index: int) -> None:
        target = self._set(exercise_id, set_index)
        target.completed = not target.completed
        if target.completed:
            # rest timer for the next set
            self.timer_seconds = 0
            self.timer_running = True

    def next_exercise(self) -> None:
        if self.current_exercise_index < len(self.exercise_sets) - 1:
            self.current_exercise_index += 1
        self.reset_timer()

    def prev_exercise(self) -> None:
        if self.current_exercise_index > 0:
            self.current_exercise_index -= 1
        self.reset_timer()

    def toggle_timer(self) -> None:
        self.timer_running = not self.timer_running

    def reset_timer(self) -> None:
        self.timer_seconds = 0
        self.timer_running = False

    def tick(self, seconds: int = 1) -> None:
        if self.timer_running and seconds > 0:
            self.timer_seconds += seconds

    # -- snapshot ------------------------------------------------------------

    def to_snapshot(self) -> dict[str, Any]:
        return {
            "workoutId": self.workout_id,
            "currentExerciseIndex": self.current_exercise_index,
            "exerciseSets": {
                str(exercise_id): [s.to_snapshot() for s in sets]
                for exercise_id, sets in self.exercise_sets.items()
            },
            "timer": self.timer_seconds,
            "timerRunning": self.timer_running,
            "sessionStartTime": self.started_at.isoformat(),
        }

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "SessionState":
        """Rebuild a session; raises ValueError, TypeError or KeyError on a malformed snapshot."""
        if not isinstance(data, dict):
            raise ValueError(f"Snapshot must be an object, got {type(data).__name__}")
        raw_sets = data["exerciseSets"]
        if not isinstance(raw_sets, dict):
            raise ValueError(f"'exerciseSets' must be an object, got {type(raw_sets).__name__}")
        exercise_sets = {}
        for exercise_id, sets in raw_sets.items():
            if not isinstance(sets, list):
                raise ValueError(f"Sets of exercise {exercise_id} must be a list")
            exercise_sets[int(exercise_id)] = [ExerciseSet.from_snapshot(s) for s in sets]
        index = int(data.get("currentExerciseIndex", 0))
        if exercise_sets:
            index = min(max(index, 0), len(exercise_sets) - 1)
        else:
            index = 0
        return cls(
            workout_id=int(data["workoutId"]),
            exercise_sets=exercise_sets,
            current_exercise_index=index,
            timer_seconds=max(int(data.get("timer", 0)), 0),
            timer_running=_coerce_bool(data.get("timerRunning", False)),
            started_at=datetime.fromisoformat(data["sessionStartTime"]),
        )
