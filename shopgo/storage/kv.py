"""
Persistent key-value storage for client state.

Holds string blobs (JSON) that must survive a restart of the host app:
guest cart, last-known user profile, wishlist membership, recently viewed.
Hosts without a writable state directory get the no-op store.
"""

import json
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from shopgo.errors import StorageError
from shopgo.logging import get_logger

logger = get_logger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class PersistentKeyValueStore(ABC):
    """get/set/remove of string blobs."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...


class NullKeyValueStore(PersistentKeyValueStore):
    """No-op store for contexts without durable storage."""

    def get(self, key: str) -> Optional[str]:
        return None

    def set(self, key: str, value: str) -> None:
        return None

    def remove(self, key: str) -> None:
        return None


class MemoryKeyValueStore(PersistentKeyValueStore):
    """Process-local store. Used in tests and as a degraded fallback."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class FileKeyValueStore(PersistentKeyValueStore):
    """
    One file per key inside a state directory.

    Writes go through a temp file + os.replace so a crash never leaves a
    half-written blob behind. OSErrors surface as StorageError.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {key}: {type(e).__name__}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {type(e).__name__}") from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {key}: {type(e).__name__}") from e


def create_store(directory: Optional[Path]) -> PersistentKeyValueStore:
    """File store for a configured directory, no-op store otherwise."""
    if directory is None:
        return NullKeyValueStore()
    return FileKeyValueStore(directory)


def read_json(store: PersistentKeyValueStore, key: str) -> Any:
    """
    Read and decode a JSON blob.

    Missing, unreadable or unparseable blobs all come back as None; callers
    still have to validate the shape of what they get.
    """
    try:
        raw = store.get(key)
    except StorageError as e:
        logger.warning("Storage read failed for %s: %s", key, e.message)
        return None
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        logger.warning("Corrupted blob under %s: %s", key, type(e).__name__)
        return None


def write_json(store: PersistentKeyValueStore, key: str, value: Any) -> bool:
    """Encode and store a blob. Returns False when the store rejected it."""
    try:
        store.set(key, json.dumps(value, separators=(",", ":")))
        return True
    except StorageError as e:
        logger.warning("Storage write failed for %s, keeping state in memory: %s", key, e.message)
        return False


def remove_key(store: PersistentKeyValueStore, key: str) -> bool:
    """Delete a blob. Returns False when the store rejected it."""
    try:
        store.remove(key)
        return True
    except StorageError as e:
        logger.warning("Storage remove failed for %s: %s", key, e.message)
        return False
