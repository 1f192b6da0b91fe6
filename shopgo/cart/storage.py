"""Guest cart: in-memory line list mirrored to the persistent store."""
from typing import List, Optional

from shopgo.logging import get_logger, sanitize_id_for_logging
from shopgo.storage import PersistentKeyValueStore, StorageKeys, read_json, remove_key, write_json

from .models import CartLine

logger = get_logger(__name__)


class GuestCartStore:
    """
    Anonymous cart owned by the client.

    Every mutation rewrites the whole blob. Storage failures are logged and
    the cart keeps working in memory.
    """

    def __init__(self, storage: PersistentKeyValueStore, key: str = StorageKeys.GUEST_CART):
        self._storage = storage
        self._key = key
        self._items: List[CartLine] = self._load()

    def _load(self) -> List[CartLine]:
        data = read_json(self._storage, self._key)
        if data is None:
            # Missing or unparseable; an unparseable blob must not linger
            remove_key(self._storage, self._key)
            return []
        if not isinstance(data, list):
            logger.warning("Guest cart blob is not a list, starting empty")
            remove_key(self._storage, self._key)
            return []
        try:
            items = [CartLine.from_dict(entry) for entry in data]
        except (KeyError, TypeError, ValueError) as e:
            # Corrupted data - clear it and start empty
            logger.warning("Corrupted guest cart entry: %s", type(e).__name__)
            remove_key(self._storage, self._key)
            return []
        # Unique by id, first occurrence wins
        seen = set()
        unique = []
        for item in items:
            if item.id in seen:
                continue
            seen.add(item.id)
            unique.append(item)
        return unique

    def _persist(self) -> None:
        if not self._items:
            remove_key(self._storage, self._key)
            return
        write_json(self._storage, self._key, [item.to_dict() for item in self._items])

    @property
    def items(self) -> List[CartLine]:
        return list(self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    def get(self, line_id: str) -> Optional[CartLine]:
        return next((item for item in self._items if item.id == line_id), None)

    def add_item(self, line: CartLine) -> None:
        """Prepend a line. A line with the same id is replaced."""
        self._items = [line] + [item for item in self._items if item.id != line.id]
        self._persist()

    def remove_item(self, line_id: str) -> None:
        self._items = [item for item in self._items if item.id != line_id]
        self._persist()

    def update_quantity(self, line_id: str, quantity: int) -> None:
        """Set a line's quantity; 0 or less removes the line."""
        if quantity <= 0:
            self.remove_item(line_id)
            return
        if self.get(line_id) is None:
            logger.debug("Guest line %s not found", sanitize_id_for_logging(line_id))
            return
        self._items = [
            item.with_quantity(quantity) if item.id == line_id else item
            for item in self._items
        ]
        self._persist()

    def clear(self) -> None:
        """Empty the cart and delete the blob (no empty-list write)."""
        self._items = []
        remove_key(self._storage, self._key)
