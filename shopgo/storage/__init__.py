"""Persistent client-side storage."""
from .keys import StorageKeys
from .kv import (
    FileKeyValueStore,
    MemoryKeyValueStore,
    NullKeyValueStore,
    PersistentKeyValueStore,
    create_store,
    read_json,
    remove_key,
    write_json,
)

__all__ = [
    "StorageKeys",
    "PersistentKeyValueStore",
    "FileKeyValueStore",
    "MemoryKeyValueStore",
    "NullKeyValueStore",
    "create_store",
    "read_json",
    "write_json",
    "remove_key",
]
