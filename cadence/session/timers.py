"""Cancelable background timers for the session lifecycle."""

from __future__ import annotations

import threading
from threading import Timer
from typing import Callable

from cadence.utils.logging import error, session_log


def _safe_call(name: str, callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception as e:
        error(f"Timer '{name}' callback failed: {e}")


class PeriodicTimer:
    """Run a callback every ``interval`` seconds on a daemon thread until cancelled.

    An optional ``delay`` postpones the first firing (watchdog grace period).
    """

    def __init__(self, name: str, interval: float, callback: Callable[[], None], delay: float = 0.0):
        self.name = name
        self.interval = interval
        self.delay = delay
        self.callback = callback
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name=f"cadence-{self.name}", daemon=True)
        self._thread.start()
        session_log(f"timer {self.name} started (interval={self.interval}s, delay={self.delay}s)")

    def _run(self) -> None:
        if self.delay > 0 and self._stop.wait(self.delay):
            return
        while not self._stop.wait(self.interval):
            _safe_call(self.name, self.callback)

    def cancel(self) -> None:
        if self._stop.is_set():
            return
        self._stop.set()
        session_log(f"timer {self.name} cancelled")
        # Cancelling from the timer's own callback must not join itself
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)


class DebouncedTimer:
    """One-shot timer that restarts its countdown each time it is armed."""

    def __init__(self, name: str, delay: float, callback: Callable[[], None]):
        self.name = name
        self.delay = delay
        self.callback = callback
        self._timer: Timer | None = None
        self._lock = threading.Lock()

    @property
    def armed(self) -> bool:
        return self._timer is not None

    def arm(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            t = Timer(self.delay, self._fire)
            t.daemon = True
            t.start()
            self._timer = t
        session_log(f"timer {self.name} armed ({self.delay}s)")

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        _safe_call(self.name, self.callback)

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
