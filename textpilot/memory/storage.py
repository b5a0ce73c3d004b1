"""Durability backends mirroring conversation memory.

Contract:
    `get(key) -> value | None` and `set(key, value) -> None` over JSON-compatible
    values. Conversation memory overwrites its single key wholesale on every
    mutation; backends never receive partial updates.

Backends:
    - `JsonFileStorage`: one JSON object on disk holding every key. Writes use a
      temporary file plus `os.replace`, so a crash mid-write leaves the previous
      snapshot intact.
    - `InMemoryStorage`: process-lifetime dict; memory is gone when the process
      exits, matching a browser-session scope.

Failure behavior:
    Backends raise on I/O errors. Callers decide how to recover; conversation
    memory logs and continues (best-effort persistence).
"""

import copy
import json
import logging
import os
import threading
from typing import Any, Protocol


logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Minimal key/value interface required by conversation memory."""

    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


def atomic_json_save(path: str, data: Any) -> None:
    """Persist JSON data atomically via temporary file replacement.

    Side effects:
        Writes `<path>.tmp`, then atomically replaces `path`. Creates missing
        parent directories.
    """
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


class JsonFileStorage:
    """Key/value store backed by a single JSON object file.

    Args:
        path: Destination file. Missing files read as empty.

    Edge cases:
        - A file that is not valid JSON, or not a JSON object, reads as empty for
          `get` and is replaced on the next `set`.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _read_all(self) -> dict[str, Any]:
        if not os.path.exists(self.path):
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError):
            logger.exception("Failed to read storage file %s", self.path)
            return {}

        if not isinstance(data, dict):
            logger.warning("Ignoring storage file %s: expected a JSON object", self.path)
            return {}

        return data

    def get(self, key: str) -> Any:
        with self._lock:
            return self._read_all().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            atomic_json_save(self.path, data)


class InMemoryStorage:
    """Dict-backed store; values are deep-copied in and out."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Any:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
