"""Debounced regeneration scheduler used by the watcher."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional, Protocol

from .config import DELAY_SECS, LOGGER


class TimerLike(Protocol):
    def start(self) -> None:
        ...

    def cancel(self) -> None:
        ...


TimerFactory = Callable[[float, Callable[[], None]], TimerLike]


class RegenerationScheduler:
    """Collapses bursts of requests into one trailing-edge run.

    Every request re-arms a single timer. When it fires, the callback runs
    exclusively: a timer firing while a run is in progress is folded into
    exactly one follow-up run after the current one completes, so two runs
    never overlap.
    """

    def __init__(
        self,
        callback: Callable[[], Any],
        delay: float = DELAY_SECS,
        timer_factory: TimerFactory = threading.Timer,
    ):
        self._callback = callback
        self._delay = delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Optional[TimerLike] = None
        self._requested = False
        self._rerun = False
        self._running = False
        # Serialize runs so the output file has a single writer at a time
        self._processing_lock = threading.Lock()
        self.runs = 0

    @property
    def pending(self) -> bool:
        return self._requested

    @property
    def running(self) -> bool:
        return self._running

    def request_regeneration(self) -> None:
        with self._lock:
            self._requested = True
            if self._timer is not None:
                self._timer.cancel()
            self._arm()

    def _arm(self) -> None:
        timer = self._timer_factory(self._delay, self._fire)
        if isinstance(timer, threading.Thread):
            timer.daemon = True
        self._timer = timer
        timer.start()

    def cancel(self) -> None:
        """Drop any pending request without running it."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._requested = False

    def flush(self) -> bool:
        """Run now if a request is pending. Returns True if a run happened."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            if not self._requested:
                return False
        return self._run()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
            if not self._requested:
                return
        self._run()

    def _run(self) -> bool:
        if not self._processing_lock.acquire(blocking=False):
            with self._lock:
                self._requested = True
                self._rerun = True
                if self._timer is None:
                    # the active run may already be past its rerun check
                    self._arm()
            return False
        try:
            while True:
                with self._lock:
                    # this run consumes every request made so far
                    if self._timer is not None:
                        self._timer.cancel()
                        self._timer = None
                    self._requested = False
                    self._rerun = False
                    self._running = True
                try:
                    self._callback()
                except Exception as exc:
                    LOGGER.error(
                        "Regeneration failed in RegenerationScheduler._run",
                        extra={"extra_fields": {"error": str(exc), "phase": "regenerate"}},
                        exc_info=True,
                    )
                finally:
                    self.runs += 1
                with self._lock:
                    self._running = False
                    if not self._rerun:
                        break
        finally:
            self._processing_lock.release()
        return True


__all__ = ["RegenerationScheduler", "TimerLike", "TimerFactory"]
