"""Live workout session: start or restore, apply actions, finish."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import SQLModel

from fitlife.deps import SnapshotsDep, StoreDep, UserDep
from fitlife.routers.workouts import get_owned_workout
from fitlife.services.finalizer import ConfirmationRequired, NoCompletedSets
from fitlife.services.plan_loader import PlannedExercise, load_exercises
from fitlife.services.session_controller import SessionAction, SessionNotStarted, WorkoutSessionController
from fitlife.services.workout_session import SessionError

router = APIRouter()


class SetRead(SQLModel):
    set_index: int
    reps: int
    load: float
    completed: bool
    last_reps: int | None
    last_load: float | None


class SessionExerciseRead(SQLModel):
    exercise_id: int
    name: str | None = None
    planned_reps: str | None = None
    notes: str | None = None
    progress: int
    sets: list[SetRead]


class SessionRead(SQLModel):
    workout_id: int
    restored: bool
    started_at: str  # ISO format
    current_exercise_index: int
    current_exercise_id: int | None
    timer_seconds: int
    timer_running: bool
    timer: str  # MM:SS
    overall_progress: int
    has_unsaved_session: bool
    exercises: list[SessionExerciseRead]


class FinishBody(SQLModel):
    confirm_incomplete: bool = False
    training_date: date | None = None


class FinishRead(SQLModel):
    written: int


def get_controller(store: StoreDep, snapshots: SnapshotsDep) -> WorkoutSessionController:
    return WorkoutSessionController(store, snapshots)


ControllerDep = Annotated[WorkoutSessionController, Depends(get_controller)]


def _build_session_read(controller: WorkoutSessionController, plan: list[PlannedExercise]) -> SessionRead:
    state = controller.state
    by_id = {exercise.id: exercise for exercise in plan}
    exercises = []
    for exercise_id, sets in state.exercise_sets.items():
        planned = by_id.get(exercise_id)
        exercises.append(
            SessionExerciseRead(
                exercise_id=exercise_id,
                name=planned.name if planned else None,
                planned_reps=planned.planned_reps if planned else None,
                notes=planned.notes if planned else None,
                progress=state.exercise_progress(exercise_id),
                sets=[
                    SetRead(
                        set_index=s.set_index,
                        reps=s.reps,
                        load=s.load,
                        completed=s.completed,
                        last_reps=s.last_reps,
                        last_load=s.last_load,
                    )
                    for s in sets
                ],
            )
        )
    return SessionRead(
        workout_id=state.workout_id,
        restored=controller.restored,
        started_at=state.started_at.isoformat(),
        current_exercise_index=state.current_exercise_index,
        current_exercise_id=state.current_exercise_id,
        timer_seconds=state.timer_seconds,
        timer_running=state.timer_running,
        timer=state.formatted_timer,
        overall_progress=state.overall_progress(),
        has_unsaved_session=controller.has_unsaved_session,
        exercises=exercises,
    )


def _resume(controller: WorkoutSessionController, workout_id: int, user_id: str) -> None:
    try:
        controller.resume(workout_id, user_id)
    except SessionNotStarted as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.post("/{workout_id}/session", response_model=SessionRead)
def start_session(workout_id: int, store: StoreDep, user_id: UserDep, controller: ControllerDep):
    """Restore the saved session for this workout or start a new one."""
    get_owned_workout(store, workout_id, user_id)
    controller.start(workout_id, user_id)
    if not controller.plan:
        controller.discard(workout_id, user_id)
        raise HTTPException(status_code=400, detail="This workout has no exercises")
    return _build_session_read(controller, controller.plan)


@router.get("/{workout_id}/session", response_model=SessionRead)
def read_session(workout_id: int, store: StoreDep, user_id: UserDep, controller: ControllerDep):
    get_owned_workout(store, workout_id, user_id)
    _resume(controller, workout_id, user_id)
    return _build_session_read(controller, load_exercises(store, workout_id))


@router.post("/{workout_id}/session/actions", response_model=SessionRead)
def apply_action(workout_id: int, action: SessionAction, store: StoreDep, user_id: UserDep, controller: ControllerDep):
    _resume(controller, workout_id, user_id)
    try:
        controller.mutate(action)
    except SessionError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _build_session_read(controller, load_exercises(store, workout_id))


@router.post("/{workout_id}/session/finish", response_model=FinishRead)
def finish_session(workout_id: int, body: FinishBody, user_id: UserDep, controller: ControllerDep):
    _resume(controller, workout_id, user_id)
    try:
        written = controller.finish(confirm_incomplete=body.confirm_incomplete, training_date=body.training_date)
    except NoCompletedSets as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ConfirmationRequired as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return FinishRead(written=written)


@router.delete("/{workout_id}/session", status_code=204)
def discard_session(workout_id: int, user_id: UserDep, controller: ControllerDep):
    controller.discard(workout_id, user_id)
