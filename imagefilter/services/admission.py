"""
Admission control: bounds how many requests run the pipeline at once.

Waiting requests block on a counting semaphore but keep watching their
cancel token, so a client that goes away never holds up the queue.
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from ..core import AdmissionCancelled, CancelToken


class AdmissionController:
    """Counting semaphore with cancellable waits and thread-safe counters."""

    def __init__(self, max_concurrent: int, poll_interval: float = 0.05):
        if max_concurrent <= 0:
            raise ValueError("max_concurrent must be positive")
        self.max_concurrent = max_concurrent
        self.poll_interval = poll_interval
        self._slots = threading.BoundedSemaphore(max_concurrent)
        self._lock = threading.Lock()
        self._in_flight = 0
        self._peak = 0

    @classmethod
    def create(cls, max_concurrent: int) -> Optional["AdmissionController"]:
        """Controller for max_concurrent slots; None means unlimited (0)."""
        if max_concurrent == 0:
            return None
        return cls(max_concurrent)

    def acquire(self, cancel: CancelToken) -> None:
        """
        Wait for a free slot.

        Raises:
            AdmissionCancelled: if cancel fires before a slot is free
        """
        while True:
            if cancel.cancelled:
                raise AdmissionCancelled("request cancelled while waiting for a slot")
            if self._slots.acquire(timeout=self.poll_interval):
                break

        with self._lock:
            self._in_flight += 1
            self._peak = max(self._peak, self._in_flight)

    def release(self) -> None:
        """Give a slot back. Call exactly once per successful acquire()."""
        with self._lock:
            self._in_flight -= 1
        self._slots.release()

    @contextmanager
    def admit(self, cancel: CancelToken) -> Iterator[None]:
        """Hold a slot for the duration of the block."""
        self.acquire(cancel)
        try:
            yield
        finally:
            self.release()

    @property
    def in_flight(self) -> int:
        """Requests currently holding a slot."""
        with self._lock:
            return self._in_flight

    @property
    def peak(self) -> int:
        """Highest in_flight value observed."""
        with self._lock:
            return self._peak
