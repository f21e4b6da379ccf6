"""Persisted key/value state shared by the quota ledger and the learning store.

Every read-modify-write goes through :meth:`StateStore.update`, which retries a
``compare_and_swap`` until it lands, so concurrent writers never lose updates.
"""

from __future__ import annotations

import copy
import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable

QUOTA_KEY = "translation_quota"
QUALITY_DB_KEY = "translation_quality_db"
QUALITY_SETTINGS_KEY = "quality_validation_settings"
FEEDBACK_KEY = "translation_feedbacks"

_MAX_CAS_ATTEMPTS = 64


class StateStoreError(Exception):
    """Raised when the state store cannot serve a request."""


class StateStoreCorruptedError(StateStoreError):
    """Raised when a persisted document cannot be decoded."""


class StateStore(ABC):
    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def compare_and_swap(self, key: str, expected: Any, new: Any) -> bool:
        raise NotImplementedError

    def update(
        self,
        key: str,
        mutator: Callable[[Any], Any],
        default_factory: Callable[[], Any],
    ) -> Any:
        for _ in range(_MAX_CAS_ATTEMPTS):
            current = self.get(key)
            working = copy.deepcopy(current) if current is not None else default_factory()
            updated = mutator(working)
            if self.compare_and_swap(key, current, updated):
                return updated
        raise StateStoreError(f"update_contention:{key}")


class InMemoryStateStore(StateStore):
    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._lock = threading.RLock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._values:
                return default
            return copy.deepcopy(self._values[key])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = copy.deepcopy(value)

    def compare_and_swap(self, key: str, expected: Any, new: Any) -> bool:
        with self._lock:
            if self._values.get(key) != expected:
                return False
            self._values[key] = copy.deepcopy(new)
            return True


class JsonFileStateStore(StateStore):
    """One JSON document per key, replaced atomically on every write."""

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _path_for(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    def _read(self, key: str) -> Any:
        path = self._path_for(key)
        if not path.exists():
            return None
        raw = path.read_text(encoding="utf-8")
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StateStoreCorruptedError(f"corrupted_state:{path.name}:{exc}") from exc

    def _write(self, key: str, value: Any) -> None:
        path = self._path_for(key)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", dir=self._directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(value, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            value = self._read(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._write(key, value)

    def compare_and_swap(self, key: str, expected: Any, new: Any) -> bool:
        with self._lock:
            if self._read(key) != expected:
                return False
            self._write(key, new)
            return True


def build_state_store(mode: str, path: str | None) -> StateStore:
    if mode == "memory":
        return InMemoryStateStore()

    if mode == "json":
        if not path:
            raise ValueError("state_store_path is required for STATE_STORE_MODE=json")
        return JsonFileStateStore(path)

    raise ValueError("unsupported state store mode. Expected 'memory' or 'json'.")
