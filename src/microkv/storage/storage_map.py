"""
Ordered key to blob map backing a store.

Blobs are kept in ``bytearray`` buffers so clear() can zero them before
they are released. Python dicts preserve insertion order, which gives O(1)
point operations and insertion-ordered iteration; sorted enumeration works
on a copy of the keys and never reorders the map.

StorageMap itself does no locking. The owning store guards it with a
ReadWriteLock and hands out a ReadOnlyStorageMap under the shared lock.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from microkv.crypto.secret import zero_out


class StorageMap:
    """Insertion-ordered mapping of string keys to byte blobs."""

    def __init__(self, items: Iterable[tuple[str, bytes]] | None = None) -> None:
        self._data: dict[str, bytearray] = {}
        if items is not None:
            for key, blob in items:
                self.put(key, blob)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def get(self, key: str) -> bytes | None:
        """Return a copy of the blob stored under key, or None."""
        blob = self._data.get(key)
        if blob is None:
            return None
        return bytes(blob)

    def put(self, key: str, blob: bytes) -> None:
        """
        Store a blob under key.

        An existing entry is removed first, so re-putting a key moves it to
        the end of the insertion order.
        """
        old = self._data.pop(key, None)
        if old is not None:
            zero_out(old)
        self._data[key] = bytearray(blob)

    def delete(self, key: str) -> bool:
        """Remove key. Returns True if it was present."""
        blob = self._data.pop(key, None)
        if blob is None:
            return False
        zero_out(blob)
        return True

    def exists(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> list[str]:
        """Keys in insertion order."""
        return list(self._data)

    def sorted_keys(self) -> list[str]:
        """Keys in lexicographic order; the map itself is not reordered."""
        return sorted(self._data)

    def items(self) -> list[tuple[str, bytes]]:
        """Snapshot of (key, blob) pairs in insertion order."""
        return [(key, bytes(blob)) for key, blob in self._data.items()]

    def clear(self, prefix: str | None = None) -> int:
        """
        Zero and remove entries.

        Args:
            prefix: If given, only keys starting with it are removed.

        Returns:
            Number of entries removed.
        """
        if prefix is None:
            doomed = list(self._data)
        else:
            doomed = [key for key in self._data if key.startswith(prefix)]

        for key in doomed:
            zero_out(self._data[key])

        if prefix is None:
            self._data.clear()
        else:
            for key in doomed:
                del self._data[key]
        return len(doomed)


class ReadOnlyStorageMap:
    """Read-only facade over a StorageMap, handed out under a read lock."""

    __slots__ = ("_map",)

    def __init__(self, storage_map: StorageMap) -> None:
        self._map = storage_map

    def __len__(self) -> int:
        return len(self._map)

    def __contains__(self, key: object) -> bool:
        return key in self._map

    def __iter__(self) -> Iterator[str]:
        return iter(self._map.keys())

    def get(self, key: str) -> bytes | None:
        return self._map.get(key)

    def exists(self, key: str) -> bool:
        return self._map.exists(key)

    def keys(self) -> list[str]:
        return self._map.keys()

    def sorted_keys(self) -> list[str]:
        return self._map.sorted_keys()

    def items(self) -> list[tuple[str, bytes]]:
        return self._map.items()
