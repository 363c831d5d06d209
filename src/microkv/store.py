"""
MicroKV store handle.

This module provides the MicroKV class, the owner of a single encrypted
key-value store:

    - an insertion-ordered StorageMap guarded by a ReadWriteLock
    - the store's 24-byte public nonce, generated once and persisted
    - an optional password secret, held in memory only
    - the backing file path and the auto-commit flag

Lifecycle:
    store = MicroKV.new("demo")            # empty, unencrypted, fresh nonce
    store = MicroKV.open("demo")           # map + nonce restored from disk
    store.with_pwd_clear(password)         # attach a password (builder)
    store.put("k1", 42); store.commit()    # use and persist
    store.close()                          # wipe the password secret

Stores are also context managers; leaving the ``with`` block closes them
on every exit path. The backing file is only ever removed by destruct().

Thread Safety:
    Reads take the lock in shared mode and writes take it exclusively.
    Serialization, encryption and commit I/O happen outside the lock.
    Commits on one handle are serialized; two handles on the same file
    are not coordinated.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from microkv.config.settings import DEFAULT_WORKSPACE_DIR
from microkv.crypto.codec import NONCE_SIZE, generate_nonce, hash_password, seal, unseal
from microkv.crypto.secret import SecretBuffer
from microkv.errors import FileError, SerializationError
from microkv.namespace import NamespaceView
from microkv.storage.file_format import StoreRecord, read_record, write_record
from microkv.storage.rwlock import ReadWriteLock
from microkv.storage.storage_map import ReadOnlyStorageMap, StorageMap

logger = logging.getLogger(__name__)

FILE_EXTENSION = ".kv"


def get_db_path(name: str, base_dir: Path | str | None = None) -> Path:
    """
    Build the absolute path of a store file.

    Args:
        name: Database name.
        base_dir: Directory holding store files. Defaults to ~/.microkv

    Returns:
        ``<base_dir>/<name>.kv``
    """
    base = Path(base_dir).expanduser() if base_dir is not None else DEFAULT_WORKSPACE_DIR
    return (base / f"{name}{FILE_EXTENSION}").absolute()


class MicroKV:
    """
    Encrypted, persistent key-value store.

    The unscoped get/put/delete/list methods operate on the default
    namespace and behave exactly like ``store.namespace("")``.

    Example:
        with MicroKV.new("demo", base_dir=tmp).with_pwd_clear("p@ss") as kv:
            kv.put("k1", 42)
            kv.get("k1", int)               # 42
            kv.put("k1", "overwritten")
            kv.keys()                       # ["k1"]
            kv.commit()

    Attributes:
        path: Backing file path.
    """

    def __init__(
        self,
        path: Path | str,
        storage: StorageMap | None = None,
        nonce: bytes | None = None,
    ) -> None:
        """
        Initialize a store handle.

        Most callers should use new(), open() or open_or_new() instead.

        Args:
            path: Backing file path.
            storage: Existing map contents. Defaults to an empty map.
            nonce: Public nonce. A fresh one is generated if not provided.
        """
        if nonce is None:
            nonce = generate_nonce()
        if len(nonce) != NONCE_SIZE:
            raise SerializationError(f"nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")

        self.path = Path(path)
        self._storage = storage if storage is not None else StorageMap()
        self._lock = ReadWriteLock()
        self._commit_lock = threading.Lock()
        self._nonce = bytes(nonce)
        self._password: SecretBuffer | None = None
        self._auto_commit = False
        self._closed = False
        self._default = NamespaceView("", self)

    @classmethod
    def new(cls, name: str, base_dir: Path | str | None = None) -> MicroKV:
        """Create an empty, unencrypted store with a fresh nonce."""
        path = get_db_path(name, base_dir)
        logger.debug("Creating new store at %s", path)
        return cls(path)

    @classmethod
    def open(cls, name: str, base_dir: Path | str | None = None) -> MicroKV:
        """
        Open a previously committed store.

        The map and the nonce are restored from disk. The password is not
        stored in the file; attach it with with_pwd_clear()/with_pwd_hash().

        Raises:
            FileError: If the store file is missing or unreadable.
            SerializationError: If the file contents do not parse.
        """
        path = get_db_path(name, base_dir)
        record = read_record(path)
        if record.path != str(path):
            logger.debug("Store file %s was written as %s", path, record.path)

        logger.debug("Opened store %s with %d entries", path, len(record.entries))
        return cls(path, StorageMap(record.entries), record.nonce)

    @classmethod
    def open_or_new(cls, name: str, base_dir: Path | str | None = None) -> MicroKV:
        """Open the store if its file exists, otherwise create a new one."""
        if get_db_path(name, base_dir).exists():
            return cls.open(name, base_dir)
        return cls.new(name, base_dir)

    get_db_path = staticmethod(get_db_path)

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"{len(self._storage)} entries"
        return f"MicroKV(path={str(self.path)!r}, {state})"

    def __enter__(self) -> MicroKV:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        # __init__ may have failed before _closed was set
        if not getattr(self, "_closed", True):
            self.close()

    @property
    def nonce(self) -> bytes:
        """The store's public nonce."""
        return self._nonce

    @property
    def closed(self) -> bool:
        return self._closed

    def is_encrypted(self) -> bool:
        """True if a password secret is attached."""
        return self._password is not None

    # Builder methods

    def with_pwd_clear(self, password: str) -> MicroKV:
        """
        Attach a cleartext password, hashed with SHA-256 to a 32-byte secret.

        Use this when the password is not itself pseudorandom, e.g. when it
        was typed at a prompt. Values already encrypted under a different
        password become unreadable; this does not re-encrypt them.
        """
        self._set_password(hash_password(password))
        return self

    def with_pwd_hash(self, pwd: bytes) -> MicroKV:
        """
        Attach a pre-hashed 32-byte secret.

        Use this when the secret was generated pseudorandomly or hashed by
        another one-way function. A secret of the wrong length is accepted
        here and rejected with CryptoError on first use.
        """
        self._set_password(SecretBuffer(pwd))
        return self

    def set_auto_commit(self, auto_commit: bool) -> MicroKV:
        """Toggle committing to disk after every put/delete/clear."""
        self._auto_commit = auto_commit
        return self

    def is_auto_commit(self) -> bool:
        return self._auto_commit

    # Default namespace operations

    def get(self, key: str, expected_type: type | None = None) -> Any:
        """Decrypt and return the value under key, or None if absent."""
        return self._default.get(key, expected_type)

    def get_unwrap(self, key: str, expected_type: type | None = None) -> Any:
        """Decrypt and return the value under key; KeyNotFoundError if absent."""
        return self._default.get_unwrap(key, expected_type)

    def put(self, key: str, value: Any) -> None:
        """Serialize, encrypt and store a value."""
        self._default.put(key, value)

    def delete(self, key: str) -> bool:
        """Remove key. Returns True if it was present."""
        return self._default.delete(key)

    def exists(self, key: str) -> bool:
        return self._default.exists(key)

    def keys(self) -> list[str]:
        """All storage keys in insertion order, namespaced ones included."""
        return self._default.keys()

    def sorted_keys(self) -> list[str]:
        """All storage keys in lexicographic order."""
        return self._default.sorted_keys()

    def clear(self) -> None:
        """Zero and remove every entry. The backing file is left alone."""
        self._default.clear()

    def namespace(self, namespace: str) -> NamespaceView:
        """
        Return a view scoped to a namespace.

        The view must not outlive this store; using it after close() raises
        ValueError.
        """
        return NamespaceView(namespace, self)

    # Direct lock access

    @contextmanager
    def lock_read(self) -> Generator[ReadOnlyStorageMap, None, None]:
        """
        Hold the shared lock and yield a read-only view of the raw map.

        Values are the stored blobs (ciphertext when a password is set).
        """
        self._check_open()
        with self._lock.read():
            yield ReadOnlyStorageMap(self._storage)

    @contextmanager
    def lock_write(self) -> Generator[StorageMap, None, None]:
        """
        Hold the exclusive lock and yield the raw map for bulk changes.

        An exception escaping the block poisons the lock.
        """
        self._check_open()
        with self._lock.write():
            yield self._storage

    # Persistence

    def commit(self) -> None:
        """
        Write the whole store to its backing file.

        The map is snapshotted under the shared lock, which is released
        before any I/O. The file is replaced atomically and the parent
        directory is created if missing. The password is never written.

        Raises:
            FileError: If the file cannot be written. Memory is unchanged.
        """
        self._check_open()
        with self._commit_lock:
            with self._lock.read():
                entries = self._storage.items()

            record = StoreRecord(path=str(self.path), entries=entries, nonce=self._nonce)
            write_record(self.path, record)
        logger.debug("Committed %d entries to %s", len(entries), self.path)

    def destruct(self) -> None:
        """
        Wipe every value, delete the backing file and close the store.

        Raises:
            FileError: If the file exists but cannot be removed.
        """
        self._check_open()
        with self._lock.write():
            self._storage.clear()

        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise FileError(f"cannot delete store file {self.path}: {e}") from e

        logger.debug("Destroyed store %s", self.path)
        self.close()

    def close(self) -> None:
        """Wipe the password secret and mark the store closed."""
        if self._closed:
            return
        if self._password is not None:
            self._password.wipe()
            self._password = None
        self._closed = True

    # Internal helpers used by NamespaceView

    def _set_password(self, secret: SecretBuffer) -> None:
        self._check_open()
        previous = self._password
        self._password = secret
        if previous is not None:
            previous.wipe()

    def _seal(self, plaintext: bytes) -> bytes:
        return seal(plaintext, self._password, self._nonce)

    def _unseal(self, blob: bytes) -> bytes:
        return unseal(blob, self._password, self._nonce)

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("operation on a closed store")
