"""Key-value persistence and naming utilities."""

from __future__ import annotations

import os
import tempfile
from datetime import datetime
from typing import Dict, Optional

from .errors import StorageError


def timestamp_slug(dt: datetime | None = None) -> str:
    now = dt or datetime.now()
    return now.strftime("%Y-%m-%d")


def export_filename(dt: datetime | None = None) -> str:
    return f"talknotes_{timestamp_slug(dt)}.json"


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def default_data_dir() -> str:
    return os.path.join(os.path.expanduser("~"), ".talknotes")


class KeyValueStore:
    """Durable string store addressed by key."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStore(KeyValueStore):
    """One ``<key>.json`` file per key inside ``directory``."""

    def __init__(self, directory: str):
        self.directory = directory
        ensure_dir(directory)

    def path_for(self, key: str) -> str:
        safe = key.strip().replace(os.sep, "_").replace(" ", "-")
        if not safe:
            raise StorageError("Storage key must not be empty.")
        return os.path.join(self.directory, f"{safe}.json")

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as handle:
                return handle.read()
        except OSError as exc:
            raise StorageError(f"Could not read {path}", detail=str(exc)) from exc

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=".tmp-", suffix=".json", dir=self.directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_path, path)
        except OSError as exc:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f"Could not write {path}", detail=str(exc)) from exc
