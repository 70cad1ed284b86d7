"""Shared test fixtures.

Provides:
- a manually advanced clock so session timing is deterministic
- an AppConfig with background timers disabled
- a ReadingSession factory wired to both
"""

from __future__ import annotations

import pytest


PASSAGE = "the quick brown fox jumps over the lazy dog"


class ManualClock:
    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def cfg():
    from cadence.utils.config import AppConfig, merge_cli_overrides
    return merge_cli_overrides(AppConfig(), {"session.run_timers": False})


@pytest.fixture
def make_session(cfg, clock):
    """Build a loaded (not yet started) session: make_session(text, free_speech=False, **kwargs)."""
    from cadence.session.engine import ReadingSession

    created = []

    def _make(text: str = PASSAGE, free_speech: bool = False, **kwargs):
        s = ReadingSession(kwargs.pop("cfg", cfg), clock=clock, **kwargs)
        s.load_passage(text, free_speech=free_speech)
        created.append(s)
        return s

    yield _make

    for s in created:
        s.finish()


# ── Logging isolation ────────────────────────────────────────────────────────

@pytest.fixture
def log_dir(tmp_path, monkeypatch):
    """Point file logging at tmp_path and run from there."""
    import cadence.utils.logging as log_mod
    monkeypatch.setattr(log_mod, "LOG_DIR", tmp_path / "logs")
    # Restore module-level loggers and verbosity after setup_logging() rebinds them
    for name in ("_file_logger", "_session_logger", "_current_verbosity"):
        monkeypatch.setattr(log_mod, name, getattr(log_mod, name))
    monkeypatch.chdir(tmp_path)
    return tmp_path / "logs"
