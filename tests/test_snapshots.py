import json
from concurrent.futures import ThreadPoolExecutor

from fitlife.services.snapshots import (
    FileSnapshotStore,
    MemorySnapshotStore,
    SessionSnapshots,
    snapshot_key,
)
from fitlife.services.workout_session import ExerciseSet, SessionState


def _state(workout_id: int = 7) -> SessionState:
    return SessionState(
        workout_id=workout_id,
        exercise_sets={3: [ExerciseSet(set_index=1, reps=8, load=40.0), ExerciseSet(set_index=2)]},
        current_exercise_index=0,
        timer_seconds=12,
    )


def test_snapshot_key_format():
    assert snapshot_key(7, "user-1") == "workout_session_7_user-1"


def test_save_writes_camel_case_json(snapshot_store: MemorySnapshotStore, snapshots: SessionSnapshots):
    snapshots.save(_state(), "user-1")

    data = json.loads(snapshot_store.data["workout_session_7_user-1"])
    assert data["workoutId"] == 7
    assert data["currentExerciseIndex"] == 0
    assert data["timer"] == 12
    assert data["exerciseSets"]["3"][0] == {
        "series": 1,
        "reps": 8,
        "load": 40.0,
        "completed": False,
        "lastReps": None,
        "lastLoad": None,
    }
    assert "sessionStartTime" in data


def test_load_round_trips_state(snapshots: SessionSnapshots):
    state = _state()
    snapshots.save(state, "user-1")
    assert snapshots.load(7, "user-1") == state
    assert snapshots.exists(7, "user-1")
    assert not snapshots.exists(7, "user-2")


def test_load_missing_returns_none(snapshots: SessionSnapshots):
    assert snapshots.load(7, "user-1") is None


def test_load_ignores_snapshot_of_another_workout(snapshot_store: MemorySnapshotStore, snapshots: SessionSnapshots):
    data = _state(workout_id=8).to_snapshot()
    snapshot_store.set(snapshot_key(7, "user-1"), json.dumps(data))

    assert snapshots.load(7, "user-1") is None


def test_load_treats_corrupt_snapshot_as_missing(snapshot_store: MemorySnapshotStore, snapshots: SessionSnapshots):
    snapshot_store.set(snapshot_key(7, "user-1"), "{not json")
    assert snapshots.load(7, "user-1") is None

    snapshot_store.set(snapshot_key(7, "user-1"), json.dumps({"workoutId": 7}))
    assert snapshots.load(7, "user-1") is None

    valid = _state().to_snapshot()
    for bad_sets in ([], "3", {"3": "not-a-list"}, {"3": [5]}, {"3": [{"reps": 8}]}):
        snapshot_store.set(snapshot_key(7, "user-1"), json.dumps({**valid, "exerciseSets": bad_sets}))
        assert snapshots.load(7, "user-1") is None

    snapshot_store.set(snapshot_key(7, "user-1"), json.dumps([valid]))
    assert snapshots.load(7, "user-1") is None


def test_load_coerces_loosely_typed_set_values(snapshot_store: MemorySnapshotStore, snapshots: SessionSnapshots):
    data = _state().to_snapshot()
    data["timerRunning"] = "false"
    data["exerciseSets"]["3"][0].update(completed="false", lastReps="ten", lastLoad="52.5")
    data["exerciseSets"]["3"][1].update(completed="true", lastReps=-1, lastLoad="NaN")
    snapshot_store.set(snapshot_key(7, "user-1"), json.dumps(data))

    state = snapshots.load(7, "user-1")

    first, second = state.exercise_sets[3]
    assert (first.completed, first.last_reps, first.last_load) == (False, None, 52.5)
    assert (second.completed, second.last_reps, second.last_load) == (True, None, None)
    assert state.timer_running is False
    assert state.overall_progress() == 50


def test_clear_removes_snapshot(snapshots: SessionSnapshots):
    snapshots.save(_state(), "user-1")
    snapshots.clear(7, "user-1")
    assert snapshots.load(7, "user-1") is None
    # clearing twice is harmless
    snapshots.clear(7, "user-1")


def test_file_store_persists_between_instances(tmp_path):
    directory = tmp_path / "sessions"
    state = _state()
    SessionSnapshots(FileSnapshotStore(directory)).save(state, "user-1")

    restored = SessionSnapshots(FileSnapshotStore(directory)).load(7, "user-1")

    assert restored == state
    assert len(list(directory.glob("*.json"))) == 1


def test_file_store_concurrent_writes_to_one_key(tmp_path):
    store = FileSnapshotStore(tmp_path)
    key = snapshot_key(7, "user-1")
    values = [json.dumps({"write": n}) for n in range(200)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda value: store.set(key, value), values))

    assert store.get(key) in values
    assert list(tmp_path.glob("*.tmp")) == []
    assert len(list(tmp_path.glob("*.json"))) == 1


def test_file_store_remove_missing_key(tmp_path):
    store = FileSnapshotStore(tmp_path)
    store.remove("workout_session_1_nobody")
    assert store.get("workout_session_1_nobody") is None
