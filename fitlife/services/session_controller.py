import logging
from datetime import date
from typing import Any, Literal

from sqlmodel import SQLModel

from fitlife.services.finalizer import finalize_session
from fitlife.services.plan_loader import PlannedExercise, build_initial_state, last_performance, load_exercises
from fitlife.services.row_store import RowStore
from fitlife.services.snapshots import SessionSnapshots
from fitlife.services.workout_session import SessionError, SessionState

log = logging.getLogger(__name__)


class SessionNotStarted(Exception):
    def __init__(self, workout_id: int):
        super().__init__(f"No session in progress for workout {workout_id}")
        self.workout_id = workout_id


class SessionAction(SQLModel):
    type: Literal[
        "update_set",
        "toggle_set",
        "next_exercise",
        "prev_exercise",
        "toggle_timer",
        "reset_timer",
        "tick",
    ]
    exercise_id: int | None = None
    set_index: int | None = None  # position in the exercise's set list, 0-based
    field: Literal["reps", "load", "completed"] | None = None
    value: Any = None
    seconds: int = 1


class WorkoutSessionController:
    """Entry points used by the API: start, mutate, finish.

    Every change to the session state is written to the snapshot store right
    away, so a session survives restarts until it is finished or discarded.
    """

    def __init__(self, store: RowStore, snapshots: SessionSnapshots):
        self.store = store
        self.snapshots = snapshots
        self.workout_id: int | None = None
        self.user_id: str | None = None
        self.plan: list[PlannedExercise] = []
        self.state: SessionState | None = None
        self.restored = False

    def start(self, workout_id: int, user_id: str) -> SessionState:
        """Restore the saved session for this workout, or build a fresh one."""
        self.workout_id, self.user_id = workout_id, user_id
        self.plan = load_exercises(self.store, self.workout_id)
        saved = self.snapshots.load(self.workout_id, self.user_id)
        if saved is not None and saved.exercise_sets:
            unknown = set(saved.exercise_ids) - {e.id for e in self.plan}
            if not unknown:
                log.info("Restored session for workout %s", self.workout_id)
                self.state = saved
                self.restored = True
                return saved
            log.warning(
                "Discarding session for workout %s: exercises %s are no longer in the plan",
                self.workout_id,
                sorted(unknown),
            )

        history = last_performance(self.store, [e.id for e in self.plan], self.user_id)
        self.state = build_initial_state(self.workout_id, self.plan, history)
        self.restored = False
        self._persist()
        return self.state

    def resume(self, workout_id: int, user_id: str) -> SessionState:
        """Load the saved session without touching the row store."""
        self.workout_id, self.user_id = workout_id, user_id
        saved = self.snapshots.load(self.workout_id, self.user_id)
        if saved is None:
            raise SessionNotStarted(self.workout_id)
        self.state = saved
        self.restored = True
        return saved

    def _require_state(self) -> SessionState:
        if self.state is None:
            raise SessionNotStarted(self.workout_id)
        return self.state

    def _persist(self) -> None:
        self.snapshots.save(self._require_state(), self.user_id)

    def mutate(self, action: SessionAction) -> SessionState:
        state = self._require_state()
        if action.type in ("update_set", "toggle_set"):
            if action.exercise_id is None or action.set_index is None:
                raise SessionError(f"'{action.type}' needs exercise_id and set_index")
            if action.type == "update_set":
                if action.field is None:
                    raise SessionError("'update_set' needs a field")
                state.update_set(action.exercise_id, action.set_index, action.field, action.value)
            else:
                state.toggle_set_complete(action.exercise_id, action.set_index)
        elif action.type == "next_exercise":
            state.next_exercise()
        elif action.type == "prev_exercise":
            state.prev_exercise()
        elif action.type == "toggle_timer":
            state.toggle_timer()
        elif action.type == "reset_timer":
            state.reset_timer()
        elif action.type == "tick":
            state.tick(action.seconds)
        self._persist()
        return state

    def finish(self, *, confirm_incomplete: bool = False, training_date: date | None = None) -> int:
        state = self._require_state()
        written = finalize_session(
            self.store,
            self.snapshots,
            state,
            self.user_id,
            confirm_incomplete=confirm_incomplete,
            training_date=training_date,
        )
        self.state = None
        return written

    def discard(self, workout_id: int, user_id: str) -> None:
        self.workout_id, self.user_id = workout_id, user_id
        self.snapshots.clear(self.workout_id, self.user_id)
        self.state = None

    # -- derived values ------------------------------------------------------

    @property
    def overall_progress(self) -> int:
        return self._require_state().overall_progress()

    def exercise_progress(self, exercise_id: int) -> int:
        return self._require_state().exercise_progress(exercise_id)

    @property
    def formatted_timer(self) -> str:
        return self._require_state().formatted_timer

    @property
    def has_unsaved_session(self) -> bool:
        return self.snapshots.exists(self.workout_id, self.user_id)
