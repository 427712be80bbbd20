"""Reference-counted worker pool used for archive reads."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

LOGGER = logging.getLogger(__name__)


class DecompressionPool:
    """Thread pool whose lifetime follows the number of active users.

    The executor starts when the first user acquires the pool and shuts down
    when the last user releases it, so a queue drain that holds the pool keeps
    one executor alive across every item it processes.
    """

    def __init__(self, max_workers: int = 5) -> None:
        self._max_workers = max(1, max_workers)
        self._lock = threading.Lock()
        self._users = 0
        self._executor: Optional[ThreadPoolExecutor] = None
        self._starts = 0

    @property
    def users(self) -> int:
        """Return the number of active users."""
        return self._users

    @property
    def running(self) -> bool:
        """Return True while an executor is alive."""
        return self._executor is not None

    @property
    def starts(self) -> int:
        """Return how many executors have been started."""
        return self._starts

    def acquire(self) -> None:
        with self._lock:
            self._users += 1
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="mangadrop-extract"
                )
                self._starts += 1
                LOGGER.debug("Started decompression pool (%d workers)", self._max_workers)

    def release(self) -> None:
        with self._lock:
            if self._users == 0:
                raise RuntimeError("DecompressionPool.release() called without a matching acquire().")
            self._users -= 1
            if self._users == 0 and self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None
                LOGGER.debug("Stopped decompression pool")

    @contextmanager
    def session(self) -> Iterator["DecompressionPool"]:
        """Hold the pool for the duration of a ``with`` block."""
        self.acquire()
        try:
            yield self
        finally:
            self.release()

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        with self._lock:
            if self._executor is None:
                raise RuntimeError("DecompressionPool has no active users.")
            return self._executor.submit(fn, *args)


__all__ = ["DecompressionPool"]
