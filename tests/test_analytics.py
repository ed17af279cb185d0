from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from factories import add_exercise, add_history, add_workout
from fitlife.models import Profile, WeightEntry


@pytest.fixture(name="history")
def history_fixture(session: Session):
    today = date.today()
    workout = add_workout(session)
    squat = add_exercise(session, workout, "Squat", order_index=1)
    curl = add_exercise(session, workout, "Curl", order_index=2)
    add_history(session, squat, today - timedelta(days=14), 1, reps=5, load=100.0)
    add_history(session, curl, today - timedelta(days=14), 1, reps=10, load=20.0)
    add_history(session, squat, today - timedelta(days=7), 1, reps=5, load=110.0)
    add_history(session, squat, today, 1, reps=5, load=120.0)
    # outside the default 30-day window
    add_history(session, squat, today - timedelta(days=90), 1, reps=5, load=60.0)
    # another user's training
    add_history(session, curl, today, 1, reps=10, load=99.0, user_id="user-2")
    return {"squat": squat.id, "curl": curl.id}


def test_summary(client: TestClient, session: Session, history):
    session.add(Profile(user_id="user-1", name="Ana", height=180.0, weight=81.0))
    session.add(WeightEntry(user_id="user-1", date=date.today() - timedelta(days=20), weight=80.0))
    session.add(WeightEntry(user_id="user-1", date=date.today(), weight=81.0))
    session.commit()

    response = client.get("/api/analytics/summary")

    assert response.status_code == 200
    data = response.json()
    assert data["bmi"] == 25.0
    assert data["bmi_category"] == "overweight"
    assert data["weight_change"] == 1.0
    assert data["weight_change_percent"] == 1.2
    assert data["total_workouts"] == 3
    assert data["total_volume"] == 500 + 200 + 550 + 600
    assert data["average_strength_growth"] == 20.0
    assert data["best_evolution"] == {"exercise": "Squat", "value": 20.0}
    assert data["most_consistent"] == {"exercise": "Squat", "value": 3.0}
    assert data["highest_volume"] == {"exercise": "Squat", "value": 1650.0}


def test_summary_without_data(client: TestClient):
    data = client.get("/api/analytics/summary").json()
    assert data["bmi"] is None
    assert data["total_workouts"] == 0
    assert data["best_evolution"] is None


def test_volume_and_frequency(client: TestClient, history):
    volume = client.get("/api/analytics/volume").json()
    assert [v["value"] for v in volume] == [700.0, 550.0, 600.0]

    frequency = client.get("/api/analytics/frequency", params={"days": 365}).json()
    assert sum(f["value"] for f in frequency) == 4


def test_loads_for_one_exercise(client: TestClient, history):
    loads = client.get("/api/analytics/loads", params={"exercise": "Squat"}).json()
    assert [point["load"] for point in loads] == [100.0, 110.0, 120.0]
    assert {point["exercise"] for point in loads} == {"Squat"}


def test_history_window_and_filter(client: TestClient, history):
    assert len(client.get("/api/history").json()) == 4
    assert len(client.get("/api/history", params={"days": 365}).json()) == 5
    curls = client.get("/api/history", params={"exercise_id": history["curl"]}).json()
    assert [(c["exercise_name"], c["load"]) for c in curls] == [("Curl", 20.0)]


def test_invalid_window_is_rejected(client: TestClient):
    assert client.get("/api/analytics/volume", params={"days": 0}).status_code == 422
