"""
Namespaced views over a store.

A NamespaceView scopes every key it is given by prefixing it with the
namespace tag and the ``@`` delimiter, so several logical sub-stores can
share one StorageMap. The namespace is only an addressing convention:
values are serialized and encrypted exactly as they are for the default
(empty) namespace, which matches every key in the store.

Key rules:
    - A namespace may not contain the delimiter.
    - A key in the default namespace may not contain the delimiter,
      otherwise it could alias a key from a named namespace.
    - Keys in a named namespace may contain the delimiter; the first
      delimiter in a stored key always ends the namespace tag.

A view does not own its store. It holds a weak reference and refuses to
operate once the store has been closed or garbage collected.
"""

from __future__ import annotations

import logging
import weakref
from typing import TYPE_CHECKING, Any

from microkv.errors import InvalidKeyError, KeyNotFoundError
from microkv.serialization import dumps_value, loads_value

if TYPE_CHECKING:
    from microkv.store import MicroKV

logger = logging.getLogger(__name__)

DELIMITER = "@"

_MISSING = object()


def format_key(namespace: str, key: str) -> str:
    """Build the composite storage key for a namespace and logical key."""
    if not namespace:
        return key
    return f"{namespace}{DELIMITER}{key}"


class NamespaceView:
    """
    Scoped get/put/delete/list operations over a store's shared map.

    Usage:
        kv = MicroKV.new("app").with_pwd_clear(password)
        licenses = kv.namespace("licenses")
        licenses.put("seat-1", {"owner": "ops"})
        licenses.get("seat-1")          # {"owner": "ops"}
        kv.get("seat-1")                # None, different namespace

    Attributes:
        namespace: The namespace tag ("" for the default namespace).
    """

    def __init__(self, namespace: str, store: MicroKV) -> None:
        if DELIMITER in namespace:
            raise InvalidKeyError(
                f"namespace may not contain '{DELIMITER}': {namespace!r}"
            )
        self.namespace = namespace
        self._store_ref = weakref.ref(store)

    def __repr__(self) -> str:
        return f"NamespaceView(namespace={self.namespace!r})"

    @property
    def prefix(self) -> str:
        """Key prefix matched by this namespace ("" matches everything)."""
        return format_key(self.namespace, "") if self.namespace else ""

    def key(self, key: str) -> str:
        """
        Return the composite storage key for a logical key.

        Raises:
            InvalidKeyError: If a default-namespace key contains the delimiter.
        """
        if not self.namespace and DELIMITER in key:
            raise InvalidKeyError(
                f"keys outside a namespace may not contain '{DELIMITER}': {key!r}"
            )
        return format_key(self.namespace, key)

    def get(self, key: str, expected_type: type | None = None) -> Any:
        """
        Decrypt and return the value stored under key, or None if absent.

        Raises:
            CryptoError: If the value fails authentication.
            SerializationError: If the value does not decode to expected_type.
            PoisonError: If the lock is poisoned.
        """
        value = self._fetch(key, expected_type)
        return None if value is _MISSING else value

    def get_unwrap(self, key: str, expected_type: type | None = None) -> Any:
        """
        Like get(), but a missing key is an error.

        Raises:
            KeyNotFoundError: If key is not present.
        """
        value = self._fetch(key, expected_type)
        if value is _MISSING:
            raise KeyNotFoundError(f"key not found in storage: {key}")
        return value

    def put(self, key: str, value: Any) -> None:
        """
        Serialize, encrypt and store a value, replacing any existing one.

        The write lock is held only for the map update; when auto-commit is
        enabled the store is committed after the lock is released.
        """
        store = self._store
        data_key = self.key(key)
        blob = store._seal(dumps_value(value))

        with store._lock.write():
            store._storage.put(data_key, blob)

        self._after_write(store)

    def delete(self, key: str) -> bool:
        """Remove key. Returns True if it was present."""
        store = self._store
        data_key = self.key(key)

        with store._lock.write():
            removed = store._storage.delete(data_key)

        self._after_write(store)
        return removed

    def exists(self, key: str) -> bool:
        store = self._store
        data_key = self.key(key)
        with store._lock.read():
            return store._storage.exists(data_key)

    def keys(self) -> list[str]:
        """
        Storage keys in this namespace, in insertion order.

        Keys are returned in their full composite form. Key iteration is
        offered, value iteration is not.
        """
        store = self._store
        with store._lock.read():
            keys = store._storage.keys()
        return self._filter(keys)

    def sorted_keys(self) -> list[str]:
        """Storage keys in this namespace, lexicographically sorted."""
        store = self._store
        with store._lock.read():
            keys = store._storage.sorted_keys()
        return self._filter(keys)

    def clear(self) -> None:
        """
        Zero and remove every entry in this namespace.

        The default namespace clears the whole store. The backing file is
        not touched unless auto-commit is enabled.
        """
        store = self._store
        with store._lock.write():
            removed = store._storage.clear(self.prefix or None)

        logger.debug("Cleared %d entries from namespace %r", removed, self.namespace)
        self._after_write(store)

    @property
    def _store(self) -> MicroKV:
        store = self._store_ref()
        if store is None or store.closed:
            raise ValueError("operation on a closed store")
        return store

    def _fetch(self, key: str, expected_type: type | None) -> Any:
        store = self._store
        data_key = self.key(key)

        with store._lock.read():
            blob = store._storage.get(data_key)

        if blob is None:
            return _MISSING
        return loads_value(store._unseal(blob), expected_type)

    def _filter(self, keys: list[str]) -> list[str]:
        prefix = self.prefix
        if not prefix:
            return keys
        return [k for k in keys if k.startswith(prefix)]

    def _after_write(self, store: MicroKV) -> None:
        if store.is_auto_commit():
            store.commit()
