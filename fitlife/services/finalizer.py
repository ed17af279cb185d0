"""Turns completed sets into exercise history rows."""

import logging
from collections.abc import Mapping, Sequence
from datetime import date

from fitlife.services.row_store import Row, RowStore
from fitlife.services.snapshots import SessionSnapshots
from fitlife.services.workout_session import ExerciseSet, SessionState

log = logging.getLogger(__name__)

HISTORY_TABLE = "exercisehistory"


class NoCompletedSets(Exception):
    def __init__(self):
        super().__init__("Mark at least one set as completed before saving.")


class ConfirmationRequired(Exception):
    def __init__(self, remaining: int):
        super().__init__(f"{remaining} set(s) are not completed. Confirm to finish the workout anyway.")
        self.remaining = remaining


def history_rows(
    sets_by_exercise: Mapping[int, Sequence[ExerciseSet]], user_id: str, training_date: date
) -> list[Row]:
    """One history row per completed set; incomplete sets are skipped."""
    return [
        {
            "user_id": user_id,
            "exercise_id": exercise_id,
            "training_date": training_date,
            "set_index": s.set_index,
            "reps": s.reps,
            "load": s.load,
        }
        for exercise_id, sets in sets_by_exercise.items()
        for s in sets
        if s.completed
    ]


def finalize_session(
    store: RowStore,
    snapshots: SessionSnapshots,
    state: SessionState,
    user_id: str,
    *,
    confirm_incomplete: bool = False,
    training_date: date | None = None,
) -> int:
    """Write the session's completed sets and drop its snapshot.

    Raises ``NoCompletedSets`` or ``ConfirmationRequired`` before touching the
    store. A ``RowStoreError`` from the insert leaves the snapshot in place so
    the caller can retry. Returns the number of rows written.
    """
    completed = state.completed_count()
    if completed == 0:
        raise NoCompletedSets()
    if not state.all_completed() and not confirm_incomplete:
        raise ConfirmationRequired(len(state.all_sets()) - completed)

    rows = history_rows(state.exercise_sets, user_id, training_date or date.today())
    store.insert(HISTORY_TABLE, rows)
    snapshots.clear(state.workout_id, user_id)
    log.info("Finished workout %s for user %s with %d set(s)", state.workout_id, user_id, len(rows))
    return len(rows)


def quick_log(
    store: RowStore,
    sets_by_exercise: Mapping[int, Sequence[ExerciseSet]],
    user_id: str,
    training_date: date,
) -> int:
    """Back-fill history for a past workout without running a live session."""
    rows = history_rows(sets_by_exercise, user_id, training_date)
    if not rows:
        raise NoCompletedSets()
    store.insert(HISTORY_TABLE, rows)
    log.info("Quick-logged %d set(s) for user %s on %s", len(rows), user_id, training_date)
    return len(rows)
