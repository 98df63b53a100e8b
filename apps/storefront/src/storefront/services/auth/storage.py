"""Persistence backends for the signed-in session."""

from __future__ import annotations

import json
from pathlib import Path
from threading import Lock
from typing import MutableMapping, Protocol

from loguru import logger


class SessionStorage(Protocol):
    """String key/value storage surviving process restarts."""

    def get(self, key: str) -> str | None:
        """Return the stored value or ``None`` when absent."""

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    def remove(self, key: str) -> None:
        """Delete ``key`` if present."""


class MemorySessionStorage(SessionStorage):
    def __init__(self, initial: MutableMapping[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)


class FileSessionStorage(SessionStorage):
    """JSON file storage; a corrupt file reads as empty and is rewritten on next save."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = Lock()

    def _read(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable session file", path=str(self._path))
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(key): str(value) for key, value in data.items()}

    def _write(self, values: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(values), encoding="utf-8")
        tmp_path.chmod(0o600)
        tmp_path.replace(self._path)

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            values = self._read()
            values[key] = value
            self._write(values)

    def remove(self, key: str) -> None:
        with self._lock:
            values = self._read()
            if key in values:
                del values[key]
                self._write(values)
