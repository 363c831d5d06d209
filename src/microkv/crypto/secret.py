"""
Zeroable in-memory secret storage.

Python does not give us locked pages, and immutable ``bytes`` objects can't
be wiped. SecretBuffer keeps the secret in a ``bytearray`` so it can be
overwritten in place when the owning store is closed. Copies handed to the
cipher backend may still linger until garbage collected; wiping here is a
best-effort reduction of the exposure window.
"""

from __future__ import annotations


class SecretBuffer:
    """
    Fixed-length secret held in a mutable, wipeable buffer.

    Attributes:
        wiped: True once ``wipe()`` has been called.
    """

    __slots__ = ("_buf", "wiped")

    def __init__(self, data: bytes | bytearray) -> None:
        self._buf = bytearray(data)
        self.wiped = False

    def __len__(self) -> int:
        return len(self._buf)

    def __repr__(self) -> str:
        state = "wiped" if self.wiped else f"{len(self._buf)} bytes"
        return f"SecretBuffer(<{state}>)"

    def expose(self) -> bytes:
        """Return a copy of the secret bytes for handing to the cipher."""
        return bytes(self._buf)

    def wipe(self) -> None:
        """Overwrite the secret with zeros."""
        # flag before zeroing; derive_key() checks it after copying
        self.wiped = True
        for i in range(len(self._buf)):
            self._buf[i] = 0


def zero_out(buf: bytearray) -> None:
    """Overwrite a mutable byte buffer with zeros in place."""
    buf[:] = bytes(len(buf))
