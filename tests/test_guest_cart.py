"""
Tests for the guest cart store
"""

import json
from decimal import Decimal

import pytest

from shopgo.cart import CartLine, GuestCartStore
from shopgo.errors import StorageError
from shopgo.storage import MemoryKeyValueStore, StorageKeys


def make_line(line_id="guest-1", product_id=7, price="10.00", quantity=1):
    return CartLine(
        id=line_id,
        product_id=product_id,
        title="Backpack",
        image="backpack.png",
        unit_price=price,
        quantity=quantity,
    )


class BrokenStore(MemoryKeyValueStore):
    """Store whose writes always fail."""

    def set(self, key, value):
        raise StorageError("disk full")

    def remove(self, key):
        raise StorageError("disk full")


class TestGuestCartStore:
    """Tests for GuestCartStore."""

    def test_add_prepends(self, storage):
        store = GuestCartStore(storage)

        store.add_item(make_line("guest-1", 7))
        store.add_item(make_line("guest-2", 9))

        assert [item.id for item in store.items] == ["guest-2", "guest-1"]

    def test_add_same_id_replaces(self, storage):
        store = GuestCartStore(storage)
        store.add_item(make_line("guest-1", quantity=1))

        store.add_item(make_line("guest-1", quantity=4))

        assert len(store.items) == 1
        assert store.items[0].quantity == 4

    def test_every_mutation_is_persisted(self, storage):
        store = GuestCartStore(storage)
        store.add_item(make_line("guest-1", quantity=2))

        restored = GuestCartStore(storage)

        assert restored.items == store.items

    def test_zero_quantity_removes_line(self, storage):
        store = GuestCartStore(storage)
        store.add_item(make_line("guest-1"))
        store.add_item(make_line("guest-2", 9))

        store.update_quantity("guest-1", 0)

        assert [item.id for item in store.items] == ["guest-2"]

    def test_negative_quantity_removes_line(self, storage):
        store = GuestCartStore(storage)
        store.add_item(make_line("guest-1"))

        store.update_quantity("guest-1", -3)

        assert store.is_empty

    def test_update_unknown_line_is_noop(self, storage):
        store = GuestCartStore(storage)
        store.add_item(make_line("guest-1"))

        store.update_quantity("guest-missing", 5)

        assert store.items[0].quantity == 1

    def test_subtotals_track_quantity(self, storage):
        store = GuestCartStore(storage)
        store.add_item(make_line("guest-1", price="3.99"))

        store.update_quantity("guest-1", 3)

        assert store.get("guest-1").subtotal == Decimal("11.97")

    def test_clear_removes_key(self, storage):
        store = GuestCartStore(storage)
        store.add_item(make_line("guest-1"))

        store.clear()

        assert store.is_empty
        assert StorageKeys.GUEST_CART not in storage.data

    def test_removing_last_line_removes_key(self, storage):
        store = GuestCartStore(storage)
        store.add_item(make_line("guest-1"))

        store.remove_item("guest-1")

        assert StorageKeys.GUEST_CART not in storage.data

    def test_stored_subtotal_is_ignored(self):
        blob = [{"id": "guest-1", "productId": 7, "title": "Backpack", "image": "", "price": "10.00", "quantity": 2, "subtotal": "999"}]
        storage = MemoryKeyValueStore({StorageKeys.GUEST_CART: json.dumps(blob)})

        store = GuestCartStore(storage)

        assert store.items[0].subtotal == Decimal("20.00")

    @pytest.mark.parametrize("raw", [
        "{not json",
        json.dumps({"items": []}),
        json.dumps([{"id": "guest-1"}]),
        json.dumps([{"id": "guest-1", "productId": 7, "price": "1", "quantity": 0}]),
        json.dumps([{"id": "guest-1", "productId": 7, "price": "garbage", "quantity": 2}]),
        json.dumps([{"id": "guest-1", "productId": 7, "price": "Infinity", "quantity": 2}]),
        json.dumps([{"id": "guest-1", "productId": 7, "price": "NaN", "quantity": 2}]),
        json.dumps([{"id": "guest-1", "productId": 7, "price": None, "quantity": 2}]),
    ])
    def test_corrupt_blob_starts_empty(self, raw):
        storage = MemoryKeyValueStore({StorageKeys.GUEST_CART: raw})

        store = GuestCartStore(storage)

        assert store.is_empty
        assert StorageKeys.GUEST_CART not in storage.data

    def test_duplicate_ids_are_dropped(self):
        entry = {"id": "guest-1", "productId": 7, "title": "", "image": "", "price": "1", "quantity": 1}
        storage = MemoryKeyValueStore({StorageKeys.GUEST_CART: json.dumps([entry, dict(entry, quantity=5)])})

        store = GuestCartStore(storage)

        assert len(store.items) == 1
        assert store.items[0].quantity == 1

    def test_storage_failure_keeps_cart_in_memory(self):
        store = GuestCartStore(BrokenStore())

        store.add_item(make_line("guest-1"))
        store.update_quantity("guest-1", 2)

        assert store.items[0].quantity == 2
