"""
JSON file persistence for attempt records, sessions and results.
"""
import os
import json
import logging
import tempfile
import threading
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("json_store")


def _atomic_write(path: str, data: Any) -> None:
    """Write JSON to a temp file in the same directory, then rename over the target."""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


class JsonDocumentStore:
    """
    A single JSON document on disk, read and rewritten as a whole.

    All access goes through one lock, so concurrent writers in the same
    process always see each other's writes.
    """

    def __init__(self, path: str, default: Optional[Callable[[], Any]] = None):
        self.path = path
        self._default = default or dict
        self._lock = threading.Lock()

    def _read_unlocked(self) -> Any:
        if not os.path.exists(self.path):
            return self._default()
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def read(self) -> Any:
        with self._lock:
            return self._read_unlocked()

    def update(self, mutate: Callable[[Any], Any]) -> Any:
        """
        Read-modify-write under the store lock.

        Args:
            mutate: Receives the current document and changes it in place.
                    Its return value is passed back to the caller.
        """
        with self._lock:
            document = self._read_unlocked()
            result = mutate(document)
            _atomic_write(self.path, document)
            return result


class JsonDirectoryStore:
    """One JSON file per key inside a directory."""

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(self.directory, exist_ok=True)

    def _path(self, key: str) -> str:
        if os.sep in key or key.startswith("."):
            raise ValueError(f"Invalid record key: {key!r}")
        return os.path.join(self.directory, f"{key}.json")

    def save(self, key: str, data: Dict[str, Any]) -> None:
        _atomic_write(self._path(key), data)
        logger.debug(f"Saved record {key}")

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def keys(self) -> List[str]:
        if not os.path.exists(self.directory):
            return []
        return sorted(
            name[:-5] for name in os.listdir(self.directory)
            if name.endswith(".json") and not name.startswith(".")
        )
