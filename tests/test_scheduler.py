import threading
import time

import pytest

from eeg_bandpower.engine.scheduler import PeriodicScheduler
from helpers import wait_for


def test_start_stop_lifecycle():
    ticks = []
    scheduler = PeriodicScheduler(0.01, lambda: ticks.append(time.monotonic()))
    assert not scheduler.is_running

    assert scheduler.start()
    assert not scheduler.start()
    assert scheduler.is_running
    assert wait_for(lambda: len(ticks) >= 3)

    assert scheduler.stop() is not None
    assert scheduler.stop() is None
    assert not scheduler.is_running

    count = len(ticks)
    time.sleep(0.05)
    assert len(ticks) == count


def test_restart_after_stop():
    ticks = []
    scheduler = PeriodicScheduler(0.01, lambda: ticks.append(1))
    scheduler.start()
    assert wait_for(lambda: len(ticks) >= 1)
    scheduler.stop()

    ticks.clear()
    scheduler.start()
    assert wait_for(lambda: len(ticks) >= 1)
    scheduler.stop()


def test_errors_do_not_stop_the_loop():
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) % 2:
            raise RuntimeError("tick failed")

    scheduler = PeriodicScheduler(0.005, flaky)
    scheduler.start()
    try:
        assert wait_for(lambda: len(calls) >= 4)
    finally:
        scheduler.stop()
    assert scheduler.error_count >= 2


def test_ticks_never_overlap():
    active = []
    overlaps = []
    lock = threading.Lock()

    def slow():
        with lock:
            active.append(1)
            if len(active) > 1:
                overlaps.append(len(active))
        time.sleep(0.03)
        with lock:
            active.pop()

    scheduler = PeriodicScheduler(0.005, slow)
    scheduler.start()
    try:
        assert wait_for(lambda: scheduler.tick_count >= 3)
    finally:
        scheduler.stop()
    assert not overlaps
    assert scheduler.skipped_ticks > 0


def test_stop_from_inside_callback():
    holder = {}

    def stop_self():
        holder["scheduler"].stop()

    scheduler = PeriodicScheduler(0.005, stop_self)
    holder["scheduler"] = scheduler
    scheduler.start()
    assert wait_for(lambda: not scheduler.is_running)
    assert wait_for(lambda: scheduler.tick_count == 1)


def test_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        PeriodicScheduler(0, lambda: None)


def test_restart_does_not_wait_for_a_self_stopped_tick():
    stopped = threading.Event()
    calls = []
    holder = {}

    def stop_then_linger():
        calls.append(1)
        if len(calls) == 1:
            holder["scheduler"].stop()
            stopped.set()
            time.sleep(0.3)

    scheduler = PeriodicScheduler(0.005, stop_then_linger)
    holder["scheduler"] = scheduler
    scheduler.start()
    assert stopped.wait(2.0)

    began = time.monotonic()
    assert scheduler.start()
    assert time.monotonic() - began < 0.2
    try:
        assert wait_for(lambda: len(calls) >= 2)
    finally:
        scheduler.stop()
