"""
On-disk record format for a store file.

A store file holds one record with the store's durable fields, in order:

    path     u64 length + UTF-8 bytes
    entries  u64 count, then per entry:
                 u64 length + UTF-8 key
                 u64 length + blob bytes
    nonce    NONCE_SIZE raw bytes

All integers are little-endian. The password secret is never written.

Writes go to a temporary file in the target directory, which is then
renamed over the store file, so a crash mid-write leaves the previous
contents intact rather than a truncated file.
"""

from __future__ import annotations

import logging
import os
import struct
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from microkv.crypto.codec import NONCE_SIZE
from microkv.errors import FileError, SerializationError

logger = logging.getLogger(__name__)

_U64 = struct.Struct("<Q")


@dataclass
class StoreRecord:
    """Durable fields of a store, as read from or written to disk."""

    path: str
    entries: list[tuple[str, bytes]] = field(default_factory=list)
    nonce: bytes = b""


def encode_record(record: StoreRecord) -> bytes:
    """Serialize a StoreRecord to bytes."""
    if len(record.nonce) != NONCE_SIZE:
        raise SerializationError(
            f"nonce must be {NONCE_SIZE} bytes, got {len(record.nonce)}"
        )

    parts: list[bytes] = []
    _write_bytes(parts, record.path.encode("utf-8"))
    parts.append(_U64.pack(len(record.entries)))
    for key, blob in record.entries:
        _write_bytes(parts, key.encode("utf-8"))
        _write_bytes(parts, bytes(blob))
    parts.append(bytes(record.nonce))
    return b"".join(parts)


def decode_record(data: bytes) -> StoreRecord:
    """
    Parse bytes produced by encode_record().

    Raises:
        SerializationError: If the data is truncated, has trailing bytes,
            or contains invalid UTF-8.
    """
    reader = _Reader(data)
    try:
        path = reader.read_bytes().decode("utf-8")
        count = reader.read_u64()
        entries = []
        for _ in range(count):
            key = reader.read_bytes().decode("utf-8")
            entries.append((key, reader.read_bytes()))
        nonce = reader.read_exact(NONCE_SIZE)
    except UnicodeDecodeError as e:
        raise SerializationError("store file contains invalid UTF-8") from e

    if reader.remaining:
        raise SerializationError(
            f"store file has {reader.remaining} unexpected trailing bytes"
        )
    return StoreRecord(path=path, entries=entries, nonce=nonce)


def read_record(path: Path) -> StoreRecord:
    """
    Load and decode a store file.

    Raises:
        FileError: If the file is missing or unreadable.
        SerializationError: If the contents do not parse.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise FileError(f"cannot read store file {path}: {e}") from e
    logger.debug("Read %d bytes from %s", len(data), path)
    return decode_record(data)


def write_record(path: Path, record: StoreRecord) -> None:
    """
    Encode a record and atomically replace the file at path.

    Creates the parent directory if needed and restricts the file to
    owner read/write.

    Raises:
        FileError: If the directory or file cannot be written.
    """
    data = encode_record(record)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileError(f"cannot create directory {path.parent}: {e}") from e

    try:
        temp_fd, temp_path = tempfile.mkstemp(
            prefix=f".{path.name}.",
            suffix=".tmp",
            dir=str(path.parent),
        )
    except OSError as e:
        raise FileError(f"cannot create temporary file in {path.parent}: {e}") from e

    try:
        with os.fdopen(temp_fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        try:
            os.chmod(temp_path, 0o600)
        except OSError:
            logger.warning("Could not restrict permissions on %s", temp_path)

        os.replace(temp_path, path)
    except Exception as e:
        # Clean up temp file on error
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        if isinstance(e, OSError):
            raise FileError(f"cannot write store file {path}: {e}") from e
        raise

    logger.debug("Wrote %d bytes to %s", len(data), path)


def _write_bytes(parts: list[bytes], data: bytes) -> None:
    parts.append(_U64.pack(len(data)))
    parts.append(data)


class _Reader:
    """Cursor over a byte string that raises SerializationError on underrun."""

    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def read_exact(self, n: int) -> bytes:
        if n > self.remaining:
            raise SerializationError(
                f"store file truncated: wanted {n} bytes at offset {self._pos}, "
                f"{self.remaining} left"
            )
        chunk = bytes(self._data[self._pos:self._pos + n])
        self._pos += n
        return chunk

    def read_u64(self) -> int:
        (value,) = _U64.unpack(self.read_exact(_U64.size))
        return int(value)

    def read_bytes(self) -> bytes:
        return self.read_exact(self.read_u64())
