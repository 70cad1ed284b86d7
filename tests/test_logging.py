"""Tests for file logging and the session correlation id."""

from __future__ import annotations

from cadence.utils.logging import (
    Verbosity,
    get_app_logger,
    get_session_id,
    info,
    session_log,
    set_session_id,
    setup_logging,
)


def _flush():
    import logging
    for name in ("cadence.app", "cadence.session"):
        for h in logging.getLogger(name).handlers:
            h.flush()


class TestSessionId:
    def test_generated_when_empty(self):
        sid = set_session_id()
        assert len(sid) == 12
        assert get_session_id() == sid

    def test_explicit(self):
        assert set_session_id("abc123") == "abc123"
        assert get_session_id() == "abc123"


class TestFileLogging:
    def test_app_log_prefixed(self, log_dir):
        setup_logging(Verbosity.SILENT)
        set_session_id("s1")
        info("session started")
        _flush()
        text = (log_dir / "app.log").read_text(encoding="utf-8")
        assert "[session=s1] session started" in text
        assert get_app_logger().name == "cadence.app"

    def test_session_log_separate(self, log_dir):
        setup_logging(Verbosity.SILENT)
        set_session_id("s2")
        session_log("lookahead +1")
        _flush()
        assert "lookahead +1" in (log_dir / "session.log").read_text(encoding="utf-8")
        assert "lookahead +1" not in (log_dir / "app.log").read_text(encoding="utf-8")

    def test_explicit_log_dir(self, log_dir, tmp_path):
        target = tmp_path / "elsewhere"
        setup_logging(Verbosity.SILENT, log_dir=target)
        assert (target / "app.log").exists()
