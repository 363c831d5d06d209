"""
Storage engine internals.

This package provides the pieces a MicroKV store is built from:

    StorageMap         insertion-ordered key -> blob map with wiping clear()
    ReadOnlyStorageMap read-only facade handed out under the shared lock
    ReadWriteLock      reader/writer lock that poisons on failed writers
    StoreRecord        durable fields of a store file
    read_record / write_record   store file load and atomic save

Usage:
    from microkv.storage import StorageMap, ReadWriteLock

    lock = ReadWriteLock()
    storage = StorageMap()
    with lock.write():
        storage.put("key", b"blob")
"""

from microkv.storage.file_format import (
    StoreRecord,
    decode_record,
    encode_record,
    read_record,
    write_record,
)
from microkv.storage.rwlock import ReadWriteLock
from microkv.storage.storage_map import ReadOnlyStorageMap, StorageMap

__all__ = [
    "StorageMap",
    "ReadOnlyStorageMap",
    "ReadWriteLock",
    "StoreRecord",
    "decode_record",
    "encode_record",
    "read_record",
    "write_record",
]
