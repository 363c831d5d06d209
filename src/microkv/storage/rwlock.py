"""
Reader/writer lock with poisoning.

Many readers may hold the lock at once; a writer holds it alone. Waiting
writers block new readers so a steady stream of reads cannot starve them.

If an exception escapes a ``write()`` section, the protected data may have
been left half-modified. The lock is then marked poisoned and every later
acquisition, read or write, raises PoisonError until ``clear_poison()`` is
called. Exceptions inside ``read()`` sections do not poison.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator
from contextlib import contextmanager

from microkv.errors import PoisonError

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Writer-preferring reader/writer lock built on a Condition."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0
        self._poisoned = False

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    def clear_poison(self) -> None:
        """Mark the lock usable again after a failed writer."""
        with self._cond:
            self._poisoned = False

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            if self._poisoned:
                raise PoisonError("cannot acquire read lock: lock is poisoned")
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            if self._poisoned:
                self._cond.notify_all()
                raise PoisonError("cannot acquire write lock: lock is poisoned")
            self._writer = True

    def release_write(self, poison: bool = False) -> None:
        with self._cond:
            self._writer = False
            if poison:
                self._poisoned = True
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Generator[None, None, None]:
        """Hold the lock in shared mode for the duration of the block."""
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Generator[None, None, None]:
        """Hold the lock exclusively; an escaping exception poisons it."""
        self.acquire_write()
        try:
            yield
        except BaseException:
            logger.debug("Writer raised while holding lock, poisoning it")
            self.release_write(poison=True)
            raise
        else:
            self.release_write()
