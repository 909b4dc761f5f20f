"""Debounced regeneration: coalescing, spacing and exclusivity."""
import threading
import time

import pytest

from typegen.watch_core.scheduler import RegenerationScheduler

pytestmark = pytest.mark.unit


def test_burst_of_requests_collapses_into_one_run(clock):
    calls = []
    sched = RegenerationScheduler(lambda: calls.append(1), delay=1.0, timer_factory=clock)

    for _ in range(10):
        sched.request_regeneration()

    # every request re-armed the timer; only the last one is live
    assert len(clock.timers) == 10
    assert len(clock.active) == 1
    assert sched.pending

    clock.elapse()
    assert calls == [1]
    assert sched.runs == 1
    assert not sched.pending


def test_requests_spaced_beyond_the_window_each_run(clock):
    calls = []
    sched = RegenerationScheduler(lambda: calls.append(1), timer_factory=clock)

    for _ in range(3):
        sched.request_regeneration()
        clock.elapse()

    assert len(calls) == 3


def test_flush_runs_pending_request_immediately(clock):
    calls = []
    sched = RegenerationScheduler(lambda: calls.append(1), timer_factory=clock)

    assert sched.flush() is False
    sched.request_regeneration()
    assert sched.flush() is True
    assert calls == [1]
    # the armed timer was cancelled by flush
    clock.elapse()
    assert calls == [1]


def test_cancel_drops_pending_request(clock):
    calls = []
    sched = RegenerationScheduler(lambda: calls.append(1), timer_factory=clock)
    sched.request_regeneration()
    sched.cancel()
    clock.elapse()
    assert calls == []
    assert not sched.pending


def test_request_during_run_is_merged_into_one_follow_up(clock):
    active = []
    max_active = []
    state = {"n": 0}

    def callback():
        active.append(1)
        max_active.append(len(active))
        state["n"] += 1
        if state["n"] == 1:
            # a burst arrives and its window elapses while we are still running
            sched.request_regeneration()
            sched.request_regeneration()
            clock.elapse()
        active.pop()

    sched = RegenerationScheduler(callback, timer_factory=clock)
    sched.request_regeneration()
    clock.elapse()

    assert state["n"] == 2
    assert max(max_active) == 1
    assert sched.runs == 2


def test_request_during_run_without_timer_firing_runs_later(clock):
    state = {"n": 0}

    def callback():
        state["n"] += 1
        if state["n"] == 1:
            sched.request_regeneration()

    sched = RegenerationScheduler(callback, timer_factory=clock)
    sched.request_regeneration()
    clock.elapse()
    assert state["n"] == 1
    assert sched.pending

    clock.elapse()
    assert state["n"] == 2


def test_callback_failure_is_logged_and_does_not_stop_later_runs(clock, caplog):
    outcomes = iter([RuntimeError("boom"), None])

    def callback():
        err = next(outcomes)
        if err:
            raise err

    sched = RegenerationScheduler(callback, timer_factory=clock)
    sched.request_regeneration()
    clock.elapse()
    assert "Regeneration failed" in caplog.text

    sched.request_regeneration()
    clock.elapse()
    assert sched.runs == 2


def test_real_timer_coalesces_burst():
    done = threading.Event()
    calls = []

    def callback():
        calls.append(time.monotonic())
        done.set()

    sched = RegenerationScheduler(callback, delay=0.1)
    for _ in range(5):
        sched.request_regeneration()
        time.sleep(0.01)

    assert done.wait(2.0)
    time.sleep(0.3)
    assert len(calls) == 1


class _HookedLock:
    """Processing lock that runs ``on_release`` once, just before releasing."""

    def __init__(self, on_release):
        self._lock = threading.Lock()
        self._on_release = on_release

    def acquire(self, blocking=True):
        return self._lock.acquire(blocking)

    def release(self):
        hook, self._on_release = self._on_release, None
        if hook is not None:
            hook()
        self._lock.release()


def test_timer_firing_while_a_run_winds_down_is_not_lost(clock):
    calls = []
    sched = RegenerationScheduler(lambda: calls.append(1), timer_factory=clock)

    def late_request():
        sched.request_regeneration()
        clock.elapse()

    sched._processing_lock = _HookedLock(late_request)
    sched.request_regeneration()
    clock.elapse()
    assert calls == [1]
    assert len(clock.active) == 1

    clock.elapse()
    assert calls == [1, 1]
    assert not sched.pending
    assert clock.active == []


def test_follow_up_timer_is_dropped_when_the_rerun_consumes_it(clock):
    state = {"n": 0}

    def callback():
        state["n"] += 1
        if state["n"] == 1:
            sched.request_regeneration()
            clock.elapse()

    sched = RegenerationScheduler(callback, timer_factory=clock)
    sched.request_regeneration()
    clock.elapse()

    assert state["n"] == 2
    assert clock.active == []
    assert not sched.pending
