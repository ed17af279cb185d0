from datetime import date

from fastapi import APIRouter, Query
from sqlmodel import SQLModel

from fitlife.deps import StoreDep, UserDep
from fitlife.routers.history import fetch_history, window_start
from fitlife.services import metrics

router = APIRouter()

DaysQuery = Query(30, ge=1, le=3650)


class DatedValueRead(SQLModel):
    date: str
    value: float


class LoadPointRead(SQLModel):
    date: str
    exercise: str
    load: float


class ExerciseStatRead(SQLModel):
    exercise: str
    value: float


class SummaryRead(SQLModel):
    bmi: float | None
    bmi_category: str | None
    weight_change: float
    weight_change_percent: float
    total_workouts: int
    total_volume: float
    week_over_week_volume: float
    average_strength_growth: float
    best_evolution: ExerciseStatRead | None
    most_consistent: ExerciseStatRead | None
    highest_volume: ExerciseStatRead | None


def _stat(stat: metrics.ExerciseStat | None) -> ExerciseStatRead | None:
    return ExerciseStatRead(exercise=stat.exercise, value=stat.value) if stat else None


@router.get("/summary", response_model=SummaryRead)
def get_summary(store: StoreDep, user_id: UserDep, days: int = DaysQuery):
    since = window_start(days)
    profiles = store.select("profile", {"user_id": user_id})
    profile = profiles[0] if profiles else {}
    weights = [
        row["weight"]
        for row in store.select("weightentry", {"user_id": user_id}, order=[("date", "asc"), ("id", "asc")])
        if row["date"] >= since
    ]
    history = fetch_history(store, user_id, since)

    bmi = metrics.bmi(profile.get("weight"), profile.get("height"))
    change = metrics.weight_change(weights)
    return SummaryRead(
        bmi=bmi,
        bmi_category=metrics.bmi_category(bmi) if bmi is not None else None,
        weight_change=change.value,
        weight_change_percent=change.percent,
        total_workouts=metrics.total_workouts(history),
        total_volume=metrics.total_volume(history),
        week_over_week_volume=metrics.week_over_week_volume(history, date.today()),
        average_strength_growth=metrics.average_strength_growth(history),
        best_evolution=_stat(metrics.best_evolution(history)),
        most_consistent=_stat(metrics.most_consistent(history)),
        highest_volume=_stat(metrics.highest_volume(history)),
    )


@router.get("/volume", response_model=list[DatedValueRead])
def get_volume(store: StoreDep, user_id: UserDep, days: int = DaysQuery):
    history = fetch_history(store, user_id, window_start(days))
    return [DatedValueRead(date=v.date, value=v.value) for v in metrics.volume_by_date(history)]


@router.get("/frequency", response_model=list[DatedValueRead])
def get_frequency(store: StoreDep, user_id: UserDep, days: int = DaysQuery):
    history = fetch_history(store, user_id, window_start(days))
    return [DatedValueRead(date=v.date, value=v.value) for v in metrics.weekly_frequency(history)]


@router.get("/loads", response_model=list[LoadPointRead])
def get_loads(store: StoreDep, user_id: UserDep, days: int = DaysQuery, exercise: str | None = None):
    history = fetch_history(store, user_id, window_start(days))
    return [LoadPointRead(**point) for point in metrics.max_load_by_date(history, exercise)]
