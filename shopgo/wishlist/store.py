"""Wishlist membership set, persisted as last-known state for display."""
from typing import Callable, FrozenSet, Iterable

from shopgo.logging import get_logger
from shopgo.storage import PersistentKeyValueStore, StorageKeys, read_json, remove_key, write_json

logger = get_logger(__name__)


class WishlistMembership:
    """
    Set of product ids; optimistic target for wishlist toggles.

    Snapshots are frozensets, so restore() puts back exactly what was there.
    """

    def __init__(self, storage: PersistentKeyValueStore, key: str = StorageKeys.WISHLIST):
        self._storage = storage
        self._key = key
        self._ids: FrozenSet[int] = self._load()
        self.version = 0

    def _load(self) -> FrozenSet[int]:
        data = read_json(self._storage, self._key)
        if data is None:
            return frozenset()
        ids = data.get("productIds") if isinstance(data, dict) else None
        if not isinstance(ids, list):
            logger.warning("Wishlist blob has unexpected shape, ignoring it")
            return frozenset()
        try:
            return frozenset(int(pid) for pid in ids)
        except (TypeError, ValueError):
            logger.warning("Wishlist blob holds invalid product ids, ignoring it")
            return frozenset()

    def _persist(self) -> None:
        if not self._ids:
            remove_key(self._storage, self._key)
            return
        write_json(self._storage, self._key, {"productIds": sorted(self._ids)})

    @property
    def product_ids(self) -> FrozenSet[int]:
        return self._ids

    def contains(self, product_id: int) -> bool:
        return product_id in self._ids

    def set_ids(self, ids: Iterable[int]) -> None:
        self._ids = frozenset(ids)
        self.version += 1
        self._persist()

    # ==================== OPTIMISTIC TARGET ====================

    def snapshot(self) -> FrozenSet[int]:
        return self._ids

    def apply(self, mutation: Callable[[FrozenSet[int]], FrozenSet[int]]) -> None:
        self.set_ids(mutation(self._ids))

    def restore(self, snapshot: FrozenSet[int]) -> None:
        self.set_ids(snapshot)


def toggled(product_id: int) -> Callable[[FrozenSet[int]], FrozenSet[int]]:
    """Mutation adding or removing one product id."""
    def mutation(ids: FrozenSet[int]) -> FrozenSet[int]:
        if product_id in ids:
            return ids - {product_id}
        return ids | {product_id}
    return mutation
