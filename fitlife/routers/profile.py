from datetime import date, datetime, timezone

from fastapi import APIRouter, HTTPException, Query
from sqlmodel import Field, SQLModel

from fitlife.deps import StoreDep, UserDep
from fitlife.routers.history import window_start
from fitlife.services import metrics
from fitlife.services.row_store import RowStore

router = APIRouter()


class ProfileRead(SQLModel):
    name: str
    age: int | None
    height: float | None
    weight: float | None
    sex: str | None
    goal: str | None
    bmi: float | None
    bmi_category: str | None
    weight_trend: str | None
    weight_trend_diff: float | None


class ProfileWrite(SQLModel):
    name: str
    age: int | None = Field(default=None, ge=1, le=120)
    height: float | None = Field(default=None, gt=0, le=300)
    weight: float | None = Field(default=None, gt=0, le=500)
    sex: str | None = None
    goal: str | None = None


class WeightRead(SQLModel):
    date: str  # ISO format
    weight: float
    bmi: float | None


def _weights(store: RowStore, user_id: str) -> list[dict]:
    return store.select("weightentry", {"user_id": user_id}, order=[("date", "asc"), ("id", "asc")])


def _build_profile_read(profile: dict, weights: list[float]) -> ProfileRead:
    bmi = metrics.bmi(profile["weight"], profile["height"])
    trend = metrics.weight_trend(weights)
    return ProfileRead(
        name=profile["name"],
        age=profile["age"],
        height=profile["height"],
        weight=profile["weight"],
        sex=profile["sex"],
        goal=profile["goal"],
        bmi=bmi,
        bmi_category=metrics.bmi_category(bmi) if bmi is not None else None,
        weight_trend=trend[0] if trend else None,
        weight_trend_diff=trend[1] if trend else None,
    )


@router.get("", response_model=ProfileRead)
def get_profile(store: StoreDep, user_id: UserDep):
    rows = store.select("profile", {"user_id": user_id})
    if not rows:
        raise HTTPException(status_code=404, detail="Profile not found")
    return _build_profile_read(rows[0], [w["weight"] for w in _weights(store, user_id)])


@router.put("", response_model=ProfileRead)
def save_profile(body: ProfileWrite, store: StoreDep, user_id: UserDep):
    """Create or update the profile; a changed weight is also added to the weight history."""
    name = body.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name is required")
    previous = store.select("profile", {"user_id": user_id})
    previous_weight = previous[0]["weight"] if previous else None

    profile = store.upsert(
        "profile",
        {**body.model_dump(), "name": name, "user_id": user_id, "updated_at": datetime.now(timezone.utc)},
        conflict_keys=("user_id",),
    )
    if body.weight is not None and body.weight != previous_weight:
        store.insert("weightentry", {"user_id": user_id, "date": date.today(), "weight": body.weight})

    return _build_profile_read(profile, [w["weight"] for w in _weights(store, user_id)])


@router.get("/weights", response_model=list[WeightRead])
def list_weights(store: StoreDep, user_id: UserDep, days: int | None = Query(None, ge=1, le=3650)):
    rows = store.select("profile", {"user_id": user_id})
    height = rows[0]["height"] if rows else None
    since = window_start(days)
    return [
        WeightRead(date=w["date"].isoformat(), weight=w["weight"], bmi=metrics.bmi(w["weight"], height))
        for w in _weights(store, user_id)
        if since is None or w["date"] >= since
    ]
