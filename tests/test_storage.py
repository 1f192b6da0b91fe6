"""
Tests for persistent storage and recently viewed products
"""

import json

import pytest

from shopgo.errors import StorageError
from shopgo.recently_viewed import MAX_RECENTLY_VIEWED, RecentlyViewedStore
from shopgo.storage import (
    FileKeyValueStore,
    MemoryKeyValueStore,
    NullKeyValueStore,
    StorageKeys,
    create_store,
    read_json,
    remove_key,
    write_json,
)


class FailingStore(MemoryKeyValueStore):
    def get(self, key):
        raise StorageError("unreadable")

    def set(self, key, value):
        raise StorageError("read-only")

    def remove(self, key):
        raise StorageError("read-only")


class TestFileKeyValueStore:
    """One file per key."""

    def test_set_get_remove(self, tmp_path):
        store = FileKeyValueStore(tmp_path / "state")

        store.set(StorageKeys.AUTH, '{"user": null}')

        assert store.get(StorageKeys.AUTH) == '{"user": null}'
        assert (tmp_path / "state" / "shopgo-auth.json").exists()

        store.remove(StorageKeys.AUTH)
        assert store.get(StorageKeys.AUTH) is None

    def test_missing_key(self, tmp_path):
        store = FileKeyValueStore(tmp_path)

        assert store.get("absent") is None
        store.remove("absent")

    def test_overwrite_leaves_no_temp_files(self, tmp_path):
        store = FileKeyValueStore(tmp_path)

        store.set("k", "one")
        store.set("k", "two")

        assert store.get("k") == "two"
        assert [p.name for p in tmp_path.iterdir()] == ["k.json"]

    @pytest.mark.parametrize("key", ["../escape", "a/b", ""])
    def test_unsafe_keys_rejected(self, tmp_path, key):
        with pytest.raises(ValueError):
            FileKeyValueStore(tmp_path).get(key)

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = FileKeyValueStore(blocker / "state")

        with pytest.raises(StorageError):
            store.set("k", "v")


class TestStoreHelpers:
    def test_create_store(self, tmp_path):
        assert isinstance(create_store(None), NullKeyValueStore)
        assert isinstance(create_store(tmp_path), FileKeyValueStore)

    def test_null_store_forgets(self):
        store = NullKeyValueStore()
        store.set("k", "v")

        assert store.get("k") is None

    def test_json_round_trip(self):
        store = MemoryKeyValueStore()

        assert write_json(store, "k", {"a": [1, 2]}) is True
        assert read_json(store, "k") == {"a": [1, 2]}

    def test_read_json_tolerates_garbage(self):
        assert read_json(MemoryKeyValueStore({"k": "{oops"}), "k") is None
        assert read_json(MemoryKeyValueStore(), "k") is None

    def test_helpers_swallow_storage_errors(self):
        store = FailingStore()

        assert read_json(store, "k") is None
        assert write_json(store, "k", [1]) is False
        assert remove_key(store, "k") is False


class TestRecentlyViewed:
    """Most recent first, capped, no duplicates."""

    def test_most_recent_first_without_duplicates(self, storage):
        viewed = RecentlyViewedStore(storage)

        for product_id in (1, 2, 3, 2):
            viewed.add(product_id)

        assert viewed.product_ids == [2, 3, 1]

    def test_capped(self, storage):
        viewed = RecentlyViewedStore(storage)

        for product_id in range(MAX_RECENTLY_VIEWED + 5):
            viewed.add(product_id)

        assert len(viewed.product_ids) == MAX_RECENTLY_VIEWED
        assert viewed.product_ids[0] == MAX_RECENTLY_VIEWED + 4

    def test_persisted(self, storage):
        RecentlyViewedStore(storage).add(42)

        assert RecentlyViewedStore(storage).product_ids == [42]
        assert json.loads(storage.data[StorageKeys.RECENTLY_VIEWED]) == {"productIds": [42]}
