"""Tests for ReadingSession: lifecycle, timers, live projections, finalize."""

from __future__ import annotations

import json
import threading

import pytest

from cadence.analysis.alignment import WordAlignmentState as S
from cadence.analysis.flow import FlowEventKind as K
from cadence.session.engine import ReadingSession
from cadence.session.models import SessionPhase, SessionStateError
from cadence.utils.config import AlignmentConfig, AppConfig, SessionConfig

SHORT = "the quick brown fox"


class TestLifecycle:
    def test_start_records(self, make_session):
        s = make_session()
        assert s.phase == SessionPhase.IDLE
        s.start()
        assert s.phase == SessionPhase.RECORDING
        assert s.session_id

    def test_double_start_rejected(self, make_session):
        s = make_session()
        s.start()
        with pytest.raises(SessionStateError):
            s.start()

    def test_start_after_finish_rejected(self, make_session):
        s = make_session()
        s.start()
        s.finish()
        with pytest.raises(SessionStateError):
            s.start()

    def test_updates_before_start_ignored(self, make_session):
        s = make_session(SHORT)
        s.on_transcript_update("the quick")
        assert all(w.state == S.PENDING for w in s.snapshot().words)

    def test_updates_after_finish_ignored(self, make_session, clock):
        s = make_session(SHORT)
        s.start()
        clock.advance(5)
        s.on_transcript_update("the")
        s.finish()
        s.on_transcript_update("the quick brown fox")
        assert s.snapshot().transcript == "the"

    def test_reset_reloads_passage(self, make_session, clock):
        s = make_session(SHORT)
        s.start()
        s.on_transcript_update("the quick")
        s.finish()
        s.reset()
        assert s.phase == SessionPhase.IDLE
        assert s.result is None
        assert all(w.state == S.PENDING for w in s.snapshot().words)
        s.start()
        assert s.phase == SessionPhase.RECORDING

    def test_load_passage_replaces_state(self, make_session):
        s = make_session(SHORT)
        s.start()
        tokens = s.load_passage("a new passage")
        assert [t.normalized for t in tokens] == ["a", "new", "passage"]
        assert s.phase == SessionPhase.IDLE
        assert len(s.snapshot().words) == 3

    def test_elapsed_follows_clock(self, make_session, clock):
        s = make_session()
        assert s.elapsed == 0.0
        s.start()
        clock.advance(12.5)
        assert s.elapsed == 12.5


class TestFinishGrace:
    def test_end_of_passage_finishes_after_grace(self, make_session, clock):
        s = make_session(SHORT)
        s.start()
        clock.advance(10)
        s.on_transcript_update("the quick brown fox")
        clock.advance(0.5)
        s.tick()
        assert s.phase == SessionPhase.RECORDING
        clock.advance(1.0)
        s.tick()
        assert s.phase == SessionPhase.FINISHED
        assert s.result is not None

    def test_further_speech_rearms(self, make_session, clock):
        s = make_session(SHORT)
        s.start()
        clock.advance(10)
        s.on_transcript_update("the quick brown")
        clock.advance(1.0)
        s.on_transcript_update("the quick brown fox")
        clock.advance(0.5)
        s.tick()
        assert s.phase == SessionPhase.RECORDING
        clock.advance(0.8)
        s.tick()
        assert s.phase == SessionPhase.FINISHED
        assert s.result.metrics.accuracy_percent == 100.0

    def test_repeated_transcript_does_not_postpone(self, make_session, clock):
        s = make_session(SHORT)
        s.start()
        clock.advance(10)
        s.on_transcript_update("the quick brown fox")
        for _ in range(3):
            clock.advance(0.5)
            s.on_transcript_update("the quick brown fox")
            s.tick()
        assert s.phase == SessionPhase.FINISHED
        assert s.result.metrics.duration == 11.5

    def test_shorter_transcript_does_not_postpone(self, make_session, clock):
        s = make_session(SHORT)
        s.start()
        clock.advance(10)
        s.on_transcript_update("the quick brown fox")
        clock.advance(1.0)
        s.on_transcript_update("the quick brown")
        clock.advance(0.3)
        s.tick()
        assert s.phase == SessionPhase.FINISHED

    def test_no_grace_before_end(self, make_session, clock):
        s = make_session(SHORT)
        s.start()
        s.on_transcript_update("the quick")
        clock.advance(10)
        s.tick()
        assert s.phase == SessionPhase.RECORDING


class TestSilenceWatchdog:
    def test_never_before_grace(self, make_session, clock):
        s = make_session()
        s.start()
        s.on_transcript_update("the quick")
        clock.advance(4.5)
        assert not s.check_silence()

    def test_never_without_speech(self, make_session, clock):
        s = make_session()
        s.start()
        clock.advance(60)
        assert not s.check_silence()
        assert s.phase == SessionPhase.RECORDING

    def test_finishes_after_silence(self, make_session, clock):
        s = make_session()
        s.start()
        clock.advance(10)
        s.on_transcript_update("the quick")
        clock.advance(3.0)
        assert not s.check_silence()
        clock.advance(1.5)
        assert s.check_silence()
        assert s.phase == SessionPhase.FINISHED

    def test_voice_activity_postpones(self, make_session, clock):
        s = make_session()
        s.start()
        clock.advance(10)
        s.on_transcript_update("the quick")
        clock.advance(3.0)
        s.on_amplitude(0.3)
        clock.advance(3.0)
        assert not s.check_silence()
        clock.advance(1.5)
        assert s.check_silence()


class TestFinish:
    def test_idempotent(self, make_session, clock):
        s = make_session(SHORT)
        s.start()
        clock.advance(30)
        s.on_transcript_update("the quick brown fox")
        first = s.finish(80)
        assert s.finish(10) is first
        assert s.stop() is first
        assert first.score.eye_points == 20

    def test_eye_contact_provider(self, make_session, clock):
        s = make_session(SHORT, eye_contact_provider=lambda: 80.0)
        s.start()
        clock.advance(30)
        s.on_transcript_update("the quick brown fox")
        assert s.finish().score.eye_points == 20

    def test_eye_contact_defaults_to_zero(self, make_session, clock):
        s = make_session(SHORT)
        s.start()
        clock.advance(30)
        s.on_transcript_update("the quick brown fox")
        assert s.finish().score.eye_points == 0

    def test_reading_metrics(self, make_session, clock):
        s = make_session(SHORT)
        s.start()
        clock.advance(30)
        s.on_transcript_update("the brown fox")
        m = s.finish().metrics
        assert m.alignment_accuracy == 75.0
        assert m.accuracy_percent == 75.0
        assert m.missed_words == ("quick",)
        assert m.stumbled_words == ("quick",)
        assert m.wpm == 6
        assert m.duration == 30.0
        assert m.transcript == "the brown fox"

    def test_fuzzy_accuracy_forgives_near_misses(self, make_session, clock):
        s = make_session(SHORT)
        s.start()
        clock.advance(30)
        s.on_transcript_update("the quik brown fox")
        m = s.finish().metrics
        assert m.alignment_accuracy == 75.0
        assert m.accuracy_percent == 100.0

    def test_unspoken_words_skipped(self, make_session, clock):
        s = make_session(SHORT)
        s.start()
        clock.advance(20)
        s.on_transcript_update("the quick")
        result = s.finish()
        assert [w.state for w in result.words] == [S.CORRECT, S.CORRECT, S.SKIPPED, S.SKIPPED]
        assert result.metrics.skipped_words == ("brown", "fox")

    def test_no_speech(self, make_session, clock):
        s = make_session()
        s.start()
        clock.advance(30)
        result = s.finish(100)
        assert not result.metrics.speech_detected
        assert result.score.total == 0
        assert result.insight[0] == "No Speech Detected"
        assert result.metrics.rhythm_stability == -1.0

    def test_finish_before_start(self, make_session):
        result = make_session().finish()
        assert result.metrics.duration == 0.0
        assert result.metrics.wpm == 0

    def test_result_serializable(self, make_session, clock):
        s = make_session()
        s.start()
        clock.advance(30)
        s.on_transcript_update("the quick um brown fox jumps over the lazy dog")
        s.on_word_timestamps([i * 0.4 for i in range(10)])
        d = s.finish(50).to_dict()
        json.dumps(d)
        assert d["metrics"]["filler_count"] == 1
        assert d["metrics"]["rhythm_stability"] == 100.0


class TestEmptyPassage:
    def test_finishes_one_grace_after_first_words(self, make_session, clock):
        s = make_session("")
        assert s.reading_mode
        s.start()
        clock.advance(10)
        s.on_transcript_update("hello there everyone")
        clock.advance(1.5)
        s.tick()
        assert s.phase == SessionPhase.FINISHED
        m = s.result.metrics
        assert m.accuracy_percent == 100.0
        assert m.alignment_accuracy == 100.0

    def test_no_grace_before_any_words(self, make_session, clock):
        s = make_session("")
        s.start()
        s.on_transcript_update("")
        clock.advance(5)
        s.tick()
        assert s.phase == SessionPhase.RECORDING


class TestFreeSpeech:
    def test_measures_speech(self, make_session, clock):
        s = make_session("", free_speech=True)
        assert not s.reading_mode
        s.start()
        clock.advance(30)
        s.on_transcript_update("um so today I want to talk about habits um")
        m = s.finish().metrics
        assert m.accuracy_percent == 100.0
        assert m.wpm == 16
        assert m.filler_count == 2

    def test_passage_ignored(self, make_session):
        s = make_session(SHORT, free_speech=True)
        assert s.reference == []
        assert s.passage_text == ""

    def test_no_grace_timer(self, make_session, clock):
        s = make_session("", free_speech=True)
        s.start()
        s.on_transcript_update("hello there")
        clock.advance(5)
        s.tick()
        assert s.phase == SessionPhase.RECORDING

    def test_reset_keeps_mode(self, make_session):
        s = make_session("", free_speech=True)
        s.start()
        s.reset()
        assert not s.reading_mode


class TestLiveProjection:
    def test_filler_events(self, make_session, clock):
        s = make_session()
        s.start()
        clock.advance(10)
        s.on_transcript_update("um I think")
        s.on_transcript_update("um I think uh")
        s.on_transcript_update("um I think uh")
        snap = s.snapshot()
        fillers = [e.word for e in snap.flow_events if e.kind == K.FILLER]
        assert fillers == ["um", "uh"]
        assert snap.live_filler_count == 2

    def test_context_filler_event(self, make_session, clock):
        s = make_session()
        s.start()
        clock.advance(10)
        s.on_transcript_update("um like")
        fillers = [e.word for e in s.snapshot().flow_events if e.kind == K.FILLER]
        assert fillers == ["um", "like"]

    def test_cognitive_load_break(self, make_session, clock):
        s = make_session()
        s.start()
        clock.advance(5)
        s.on_transcript_update("um uh um")
        snap = s.snapshot()
        assert snap.cognitive_load_warning
        assert any(e.kind == K.FLOW_BREAK for e in snap.flow_events)

    def test_live_wpm_and_cursor(self, make_session, clock):
        s = make_session()
        s.start()
        clock.advance(3)
        s.on_transcript_update("the quick brown")
        snap = s.snapshot()
        assert snap.current_index == 3
        assert snap.live_wpm == 60
        assert snap.words[3].state == S.ACTIVE

    def test_longest_timestamps_kept(self, make_session, clock):
        s = make_session()
        s.start()
        s.on_word_timestamps([i * 0.4 for i in range(10)])
        s.on_word_timestamps([0.0, 0.4])
        assert s.snapshot().rhythm_stability == 100.0

    def test_rolling_wpm(self, make_session, clock):
        s = make_session()
        s.start()
        clock.advance(5)
        s.on_word_timestamps([i * 0.5 for i in range(11)])
        assert s.snapshot().rolling_wpm == 132


class TestSubscription:
    def test_snapshots_delivered(self, make_session, clock):
        s = make_session()
        received = []
        unsubscribe = s.subscribe(received.append)
        s.start()
        s.on_transcript_update("the")
        assert received[-1].phase == SessionPhase.RECORDING
        assert received[-1].words[0].state == S.CORRECT
        count = len(received)
        unsubscribe()
        s.on_transcript_update("the quick")
        assert len(received) == count

    def test_finish_published(self, make_session, clock):
        s = make_session()
        received = []
        s.subscribe(received.append)
        s.start()
        clock.advance(10)
        s.finish()
        assert received[-1].phase == SessionPhase.FINISHED
        assert received[-1].result is s.result

    def test_failing_subscriber_isolated(self, make_session):
        s = make_session()

        def boom(_snap):
            raise RuntimeError("listener bug")

        good = []
        s.subscribe(boom)
        s.subscribe(good.append)
        s.start()
        s.on_transcript_update("the quick")
        assert good[-1].words[1].state == S.CORRECT


class TestBackgroundTimers:
    def test_grace_timer_finishes_session(self):
        cfg = AppConfig(
            alignment=AlignmentConfig(finish_grace_sec=0.05),
            session=SessionConfig(tick_interval_sec=0.02, watchdog_grace_sec=30.0),
        )
        s = ReadingSession(cfg)
        s.load_passage(SHORT)
        done = threading.Event()
        s.subscribe(lambda snap: done.set() if snap.phase == SessionPhase.FINISHED else None)
        s.start()
        s.on_transcript_update("the quick brown fox")
        assert done.wait(5.0)
        assert s.result is not None
        assert s.result.metrics.alignment_accuracy == 100.0

    def test_timers_cancelled_on_finish(self):
        cfg = AppConfig(session=SessionConfig(tick_interval_sec=0.02, watchdog_grace_sec=30.0))
        s = ReadingSession(cfg)
        s.load_passage(SHORT)
        s.start()
        ticker = s._ticker
        assert ticker is not None and ticker.running
        s.finish()
        assert not ticker.running
