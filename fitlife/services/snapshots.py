"""Local key-value persistence for in-progress workout sessions."""

import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path

from fitlife.services.workout_session import SessionState

log = logging.getLogger(__name__)

KEY_PREFIX = "workout_session"


class SnapshotStore:
    """Device-local string store: ``get`` / ``set`` / ``remove``."""

    def get(self, key: str) -> str | None:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemorySnapshotStore(SnapshotStore):
    def __init__(self):
        self.data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class FileSnapshotStore(SnapshotStore):
    """One JSON file per key inside ``directory``."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        # Keys carry user ids, so never use them as file names directly
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        # One temp file per write; concurrent writers to a key race only on the final replace
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=self.directory, prefix=f"{path.stem}.", suffix=".tmp", delete=False
        ) as tmp:
            tmp.write(value)
        try:
            os.replace(tmp.name, path)
        except OSError:
            Path(tmp.name).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def snapshot_key(workout_id: int, user_id: str) -> str:
    return f"{KEY_PREFIX}_{workout_id}_{user_id}"


class SessionSnapshots:
    """Saves and restores one session snapshot per (workout, user)."""

    def __init__(self, store: SnapshotStore):
        self.store = store

    def exists(self, workout_id: int, user_id: str) -> bool:
        return self.store.get(snapshot_key(workout_id, user_id)) is not None

    def load(self, workout_id: int, user_id: str) -> SessionState | None:
        """Return the saved state for this workout, or None.

        Unreadable snapshots and snapshots recorded for another workout are
        treated as missing.
        """
        raw = self.store.get(snapshot_key(workout_id, user_id))
        if raw is None:
            return None
        try:
            state = SessionState.from_snapshot(json.loads(raw))
        except (ValueError, TypeError, KeyError) as exc:
            log.error("Could not restore session for workout %s: %s", workout_id, exc)
            return None
        if state.workout_id != workout_id:
            log.info("Ignoring snapshot for workout %s under key of workout %s", state.workout_id, workout_id)
            return None
        return state

    def save(self, state: SessionState, user_id: str) -> None:
        self.store.set(snapshot_key(state.workout_id, user_id), json.dumps(state.to_snapshot()))

    def clear(self, workout_id: int, user_id: str) -> None:
        self.store.remove(snapshot_key(workout_id, user_id))
