from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Optional, Protocol


class KeyValueStore(Protocol):
    """String-keyed, string-valued synchronous storage."""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Process-local store, mostly useful for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class JsonFileKeyValueStore:
    """
    Key-value store persisted as a single JSON object on disk.

    Every ``set_item`` re-reads the file, updates one key and rewrites the whole
    object through a temporary file, so the last writer wins when several
    processes share the file.
    """

    def __init__(self, path: Path):
        """Ensure the backing directory exists and record the JSON filepath."""
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as handle:
            text = handle.read()
        if not text.strip():
            return {}
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return {str(key): str(value) for key, value in data.items()}

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)
        os.replace(tmp_path, self.path)
