import json
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from factories import add_exercise, add_history, add_workout
from fitlife.services.snapshots import MemorySnapshotStore, snapshot_key


@pytest.fixture(name="workout")
def workout_fixture(session: Session):
    workout = add_workout(session)
    bench = add_exercise(session, workout, "Bench", order_index=1, planned_sets=3, planned_load=60.0)
    row = add_exercise(session, workout, "Row", order_index=2, planned_sets=3)
    add_history(session, bench, date(2024, 5, 1), 1, reps=10, load=57.5)
    return {"id": workout.id, "bench": bench.id, "row": row.id}


def _url(workout: dict, suffix: str = "") -> str:
    return f"/api/workouts/{workout['id']}/session{suffix}"


def _act(client: TestClient, workout: dict, **action) -> dict:
    response = client.post(_url(workout, "/actions"), json=action)
    assert response.status_code == 200, response.text
    return response.json()


def test_start_builds_session_from_plan(client: TestClient, workout: dict, snapshot_store: MemorySnapshotStore):
    response = client.post(_url(workout))

    assert response.status_code == 200
    data = response.json()
    assert data["restored"] is False
    assert data["current_exercise_id"] == workout["bench"]
    assert data["timer"] == "00:00"
    assert data["overall_progress"] == 0
    assert data["has_unsaved_session"] is True
    bench, row = data["exercises"]
    assert bench["name"] == "Bench"
    assert [s["set_index"] for s in bench["sets"]] == [1, 2, 3]
    assert bench["sets"][0]["load"] == 60.0
    assert (bench["sets"][0]["last_reps"], bench["sets"][0]["last_load"]) == (10, 57.5)
    assert bench["sets"][1]["last_reps"] is None
    assert row["sets"][0]["load"] == 0.0
    assert snapshot_key(workout["id"], "user-1") in snapshot_store.data


def test_start_again_restores_progress(client: TestClient, workout: dict):
    client.post(_url(workout))
    _act(client, workout, type="update_set", exercise_id=workout["bench"], set_index=0, field="reps", value="12")
    _act(client, workout, type="next_exercise")

    data = client.post(_url(workout)).json()

    assert data["restored"] is True
    assert data["current_exercise_index"] == 1
    assert data["exercises"][0]["sets"][0]["reps"] == 12


def test_completing_first_exercise_reports_progress(client: TestClient, workout: dict):
    client.post(_url(workout))
    for index in range(3):
        data = _act(client, workout, type="toggle_set", exercise_id=workout["bench"], set_index=index)

    assert data["overall_progress"] == 50
    assert [e["progress"] for e in data["exercises"]] == [100, 0]
    assert data["timer_running"] is True


def test_timer_ticks_while_running(client: TestClient, workout: dict):
    client.post(_url(workout))
    _act(client, workout, type="toggle_timer")
    data = _act(client, workout, type="tick", seconds=125)
    assert data["timer"] == "02:05"

    data = _act(client, workout, type="reset_timer")
    assert (data["timer_seconds"], data["timer_running"]) == (0, False)


def test_action_errors(client: TestClient, workout: dict):
    response = client.post(_url(workout, "/actions"), json={"type": "next_exercise"})
    assert response.status_code == 404

    client.post(_url(workout))
    response = client.post(
        _url(workout, "/actions"), json={"type": "toggle_set", "exercise_id": workout["bench"], "set_index": 9}
    )
    assert response.status_code == 400

    response = client.post(_url(workout, "/actions"), json={"type": "jump"})
    assert response.status_code == 422


def test_get_session(client: TestClient, workout: dict):
    assert client.get(_url(workout)).status_code == 404

    client.post(_url(workout))
    response = client.get(_url(workout))

    assert response.status_code == 200
    assert response.json()["restored"] is True


def test_finish_without_completed_sets(client: TestClient, workout: dict):
    client.post(_url(workout))
    response = client.post(_url(workout, "/finish"), json={})
    assert response.status_code == 400
    assert response.json()["detail"] == "Mark at least one set as completed before saving."


def test_finish_needs_confirmation_when_sets_remain(client: TestClient, workout: dict):
    client.post(_url(workout))
    _act(client, workout, type="toggle_set", exercise_id=workout["row"], set_index=0)

    response = client.post(_url(workout, "/finish"), json={})
    assert response.status_code == 409
    assert client.get(_url(workout)).status_code == 200

    response = client.post(_url(workout, "/finish"), json={"confirm_incomplete": True, "training_date": "2024-06-01"})
    assert response.status_code == 200
    assert response.json() == {"written": 1}

    assert client.get(_url(workout)).status_code == 404
    history = client.get("/api/history", params={"days": 3650, "exercise_id": workout["row"]}).json()
    assert [(h["training_date"], h["set_index"]) for h in history] == [("2024-06-01", 1)]


def test_discard_session(client: TestClient, workout: dict, snapshot_store: MemorySnapshotStore):
    client.post(_url(workout))
    response = client.delete(_url(workout))
    assert response.status_code == 204
    assert snapshot_store.data == {}


def test_snapshot_for_another_workout_is_ignored(
    client: TestClient, workout: dict, snapshot_store: MemorySnapshotStore
):
    snapshot_store.set(
        snapshot_key(workout["id"], "user-1"),
        json.dumps(
            {
                "workoutId": workout["id"] + 100,
                "currentExerciseIndex": 0,
                "exerciseSets": {},
                "timer": 0,
                "sessionStartTime": "2024-06-01T10:00:00+00:00",
            }
        ),
    )

    data = client.post(_url(workout)).json()

    assert data["restored"] is False
    assert len(data["exercises"]) == 2


def test_workout_without_exercises_cannot_start(client: TestClient, session: Session, snapshot_store):
    workout = add_workout(session)
    response = client.post(f"/api/workouts/{workout.id}/session")
    assert response.status_code == 400
    assert snapshot_store.data == {}


def test_other_users_workout_cannot_start(client: TestClient, session: Session):
    workout = add_workout(session, user_id="user-2")
    assert client.post(f"/api/workouts/{workout.id}/session").status_code == 404


def test_deleting_a_workout_drops_its_session(client: TestClient, workout: dict, snapshot_store: MemorySnapshotStore):
    client.post(_url(workout))
    _act(client, workout, type="toggle_set", exercise_id=workout["bench"], set_index=0)

    assert client.delete(f"/api/workouts/{workout['id']}").status_code == 204
    assert snapshot_store.data == {}

    created = client.post(
        "/api/workouts/", json={"name": "Upper B", "weekdays": [2], "exercises": [{"name": "Press", "planned_sets": 2}]}
    ).json()
    assert created["id"] != workout["id"]
    data = client.post(f"/api/workouts/{created['id']}/session").json()

    assert data["restored"] is False
    assert data["overall_progress"] == 0
    assert [e["name"] for e in data["exercises"]] == ["Press"]
