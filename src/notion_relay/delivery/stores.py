"""
Key-value stores backing the sent-record cache.

- VolatileFileStore: entries carry their own expiry and live under the
  system temp directory, so they may vanish at any time.
- DurableFileStore: a JSON file in the relay state directory with no size
  limit and no expiry.

Both raise OSError / ValueError on I/O or parse problems; callers decide
whether that is fatal.
"""

import json
import os
import tempfile
import time
from typing import Callable, Dict, Optional


def _atomic_write_json(path: str, data: Dict):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)
    os.replace(tmp_path, path)


class VolatileFileStore:
    """Expiring string values, one JSON file per key."""

    def __init__(self, directory: str = None, clock: Callable[[], float] = time.time):
        self.directory = directory or os.path.join(tempfile.gettempdir(), "notion_relay")
        self._clock = clock

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            entry = json.load(f)
        if not isinstance(entry, dict):
            raise ValueError(f"{path} does not contain a JSON object")
        expires_at = entry.get("expires_at", 0)
        if not isinstance(expires_at, (int, float)):
            raise ValueError(f"{path}: expires_at is not a number")
        if self._clock() >= expires_at:
            self.delete(key)
            return None
        value = entry.get("value")
        if value is not None and not isinstance(value, str):
            raise ValueError(f"{path}: value is not a string")
        return value

    def put(self, key: str, value: str, expiry: float):
        """Store value for `expiry` seconds."""
        _atomic_write_json(self._path(key), {"value": value, "expires_at": self._clock() + expiry})

    def delete(self, key: str):
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass


class DurableFileStore:
    """String values kept in a single JSON object on disk."""

    def __init__(self, directory: str, filename: str = "properties.json"):
        self.path = os.path.join(directory, filename)

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"{self.path}: {key} is not a string")
        return value

    def put(self, key: str, value: str):
        data = self._read_all()
        data[key] = value
        _atomic_write_json(self.path, data)

    def delete(self, key: str):
        data = self._read_all()
        if data.pop(key, None) is not None:
            _atomic_write_json(self.path, data)
