import threading
import time
from datetime import date

import pytest

from autofix.scheduling.locks import DateLockRegistry


def test_registry_forgets_dates_nobody_holds() -> None:
    registry = DateLockRegistry()

    with registry.hold(date(2024, 6, 1)):
        with registry.hold(date(2024, 6, 2)):
            assert len(registry) == 2
        assert len(registry) == 1

    assert len(registry) == 0


def test_registry_releases_entry_when_body_raises() -> None:
    registry = DateLockRegistry()

    with pytest.raises(RuntimeError):
        with registry.hold(date(2024, 6, 1)):
            raise RuntimeError('boom')

    assert len(registry) == 0
    with registry.hold(date(2024, 6, 1)):
        pass


def test_hold_serializes_writers_for_the_same_date() -> None:
    registry = DateLockRegistry()
    active = 0
    max_active = 0
    counter_lock = threading.Lock()

    def writer() -> None:
        nonlocal active, max_active
        with registry.hold(date(2024, 6, 1)):
            with counter_lock:
                active += 1
                max_active = max(max_active, active)
            time.sleep(0.01)
            with counter_lock:
                active -= 1

    threads = [threading.Thread(target=writer) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert max_active == 1


def test_hold_does_not_block_other_dates() -> None:
    registry = DateLockRegistry()
    entered = threading.Event()

    def other_day_writer() -> None:
        with registry.hold(date(2024, 6, 2)):
            entered.set()

    with registry.hold(date(2024, 6, 1)):
        thread = threading.Thread(target=other_day_writer)
        thread.start()
        assert entered.wait(timeout=2)
    thread.join()


def test_waiting_writer_keeps_the_date_registered_until_done() -> None:
    registry = DateLockRegistry()
    waiting_started = threading.Event()
    finished = threading.Event()

    def waiting_writer() -> None:
        waiting_started.set()
        with registry.hold(date(2024, 6, 1)):
            finished.set()

    with registry.hold(date(2024, 6, 1)):
        thread = threading.Thread(target=waiting_writer)
        thread.start()
        assert waiting_started.wait(timeout=2)
        time.sleep(0.01)
        assert not finished.is_set()
    thread.join()

    assert finished.is_set()
    assert len(registry) == 0
