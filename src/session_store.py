"""File-backed key/value store for lesson requests."""

import fcntl
import json
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import config


class SessionStore:
    """
    Stores one JSON document per session key.

    The store owns no schema: callers decide what a value contains.
    """

    def __init__(self, directory: Path = config.SESSIONS_DIR):
        """
        Initialize the session store.

        Args:
            directory: Directory holding one <key>.json file per session
        """
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not re.fullmatch(r"[\w.-]+", key) or key.startswith("."):
            raise ValueError(f"Invalid session key: {key!r}")
        return self.directory / f"{key}.json"

    @contextmanager
    def _file_lock(self, key: str):
        """Context manager for file locking using fcntl."""
        lock_path = self._path(key).with_suffix(".lock")
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def load(self, key: str) -> Optional[dict]:
        """Load the value stored under `key`, or None if there is none."""
        path = self._path(key)
        if not path.exists():
            return None
        with self._file_lock(key):
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)

    def save(self, key: str, value: dict) -> None:
        """Store `value` under `key`, replacing any previous value."""
        path = self._path(key)
        with self._file_lock(key):
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2, ensure_ascii=False)
