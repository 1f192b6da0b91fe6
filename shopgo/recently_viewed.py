"""Recently viewed products (device-local, most recent first)."""
from typing import List

from shopgo.logging import get_logger
from shopgo.storage import PersistentKeyValueStore, StorageKeys, read_json, write_json

logger = get_logger(__name__)

MAX_RECENTLY_VIEWED = 10


class RecentlyViewedStore:
    """Keeps the last MAX_RECENTLY_VIEWED product ids, no duplicates."""

    def __init__(self, storage: PersistentKeyValueStore, key: str = StorageKeys.RECENTLY_VIEWED):
        self._storage = storage
        self._key = key
        self._ids: List[int] = self._load()

    def _load(self) -> List[int]:
        data = read_json(self._storage, self._key)
        ids = data.get("productIds") if isinstance(data, dict) else None
        if not isinstance(ids, list):
            return []
        try:
            return [int(pid) for pid in ids][:MAX_RECENTLY_VIEWED]
        except (TypeError, ValueError):
            logger.warning("Recently viewed blob holds invalid ids, ignoring it")
            return []

    @property
    def product_ids(self) -> List[int]:
        return list(self._ids)

    def add(self, product_id: int) -> None:
        """Move (or insert) a product to the front."""
        self._ids = [product_id] + [pid for pid in self._ids if pid != product_id]
        self._ids = self._ids[:MAX_RECENTLY_VIEWED]
        write_json(self._storage, self._key, {"productIds": self._ids})
