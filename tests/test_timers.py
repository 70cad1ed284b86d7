"""Tests for the background periodic and debounced timers."""

from __future__ import annotations

import threading
import time

from cadence.session.timers import DebouncedTimer, PeriodicTimer


class TestPeriodicTimer:
    def test_fires_until_cancelled(self):
        fired = threading.Event()
        calls = []

        def cb():
            calls.append(1)
            if len(calls) >= 3:
                fired.set()

        t = PeriodicTimer("test", 0.01, cb)
        t.start()
        assert fired.wait(2.0)
        t.cancel()
        assert not t.running
        count = len(calls)
        time.sleep(0.05)
        assert len(calls) == count

    def test_delay_postpones_first_call(self):
        calls = []
        t = PeriodicTimer("test", 0.01, lambda: calls.append(1), delay=10.0)
        t.start()
        time.sleep(0.05)
        t.cancel()
        assert calls == []

    def test_callback_error_keeps_running(self):
        fired = threading.Event()
        calls = []

        def cb():
            calls.append(1)
            if len(calls) == 1:
                raise ValueError("first call fails")
            fired.set()

        t = PeriodicTimer("test", 0.01, cb)
        t.start()
        assert fired.wait(2.0)
        t.cancel()


class TestDebouncedTimer:
    def test_rearm_restarts_countdown(self):
        fired = threading.Event()
        t = DebouncedTimer("grace", 0.2, fired.set)
        t.arm()
        time.sleep(0.1)
        t.arm()
        time.sleep(0.15)
        assert not fired.is_set()
        assert fired.wait(2.0)
        assert not t.armed

    def test_cancel(self):
        fired = threading.Event()
        t = DebouncedTimer("grace", 0.05, fired.set)
        t.arm()
        t.cancel()
        assert not fired.wait(0.2)
