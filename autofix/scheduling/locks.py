from contextlib import contextmanager
from datetime import date
from threading import Lock
from typing import Iterator


class DateLockRegistry:
    """One lock per calendar date so bookings for the same day commit serially.

    A date's lock is dropped once no thread holds or waits for it.
    """

    def __init__(self) -> None:
        self._registry_lock = Lock()
        self._locks: dict[date, Lock] = {}
        self._holders: dict[date, int] = {}

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)

    def _acquire_entry(self, day: date) -> Lock:
        with self._registry_lock:
            lock = self._locks.get(day)
            if lock is None:
                lock = Lock()
                self._locks[day] = lock
            self._holders[day] = self._holders.get(day, 0) + 1
            return lock

    def _release_entry(self, day: date) -> None:
        with self._registry_lock:
            remaining = self._holders[day] - 1
            if remaining:
                self._holders[day] = remaining
            else:
                del self._holders[day]
                del self._locks[day]

    @contextmanager
    def hold(self, day: date) -> Iterator[None]:
        lock = self._acquire_entry(day)
        try:
            with lock:
                yield
        finally:
            self._release_entry(day)


booking_locks = DateLockRegistry()
