"""ReadingSession: the single owner of one practice session's mutable state.

The speech recognizer, audio tap and eye tracker are external collaborators.
They push cumulative transcripts, word timestamps and amplitude samples in;
the UI reads immutable ``SessionSnapshot`` objects out, either by polling
``snapshot()`` or through ``subscribe()``. Every mutation happens under one
re-entrant lock, so updates arriving from different threads are applied one
at a time in arrival order.

Two modes:
- reading: the passage is aligned word by word (an empty passage is read
  vacuously and finishes one grace window after the first words)
- free speech: opted into via ``load_passage(text, free_speech=True)``;
  no alignment, only fillers, pacing and rhythm are measured
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Sequence

from cadence.analysis.alignment import AlignmentMatcher
from cadence.analysis.fillers import FillerClassifier, FillerReport
from cadence.analysis.flow import FlowEventKind, FlowTracker
from cadence.analysis.fuzzy import passage_accuracy
from cadence.analysis.scoring import coach_insight, has_real_speech, score_session
from cadence.analysis.text_stats import top_repeated_words
from cadence.analysis.timing import (
    SpontaneityTracker,
    compute_wpm,
    rhythm_stability,
    rolling_wpm,
)
from cadence.analysis.tokenizer import ReferenceToken, load_passage, normalized_tokens
from cadence.session.models import (
    SessionMetrics,
    SessionPhase,
    SessionResult,
    SessionSnapshot,
    SessionStateError,
)
from cadence.session.timers import DebouncedTimer, PeriodicTimer
from cadence.utils.config import AppConfig
from cadence.utils.logging import debug, error, info, session_log, set_session_id

Subscriber = Callable[[SessionSnapshot], None]


class ReadingSession:
    def __init__(
        self,
        cfg: AppConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        eye_contact_provider: Callable[[], float] | None = None,
    ):
        self.cfg = cfg or AppConfig()
        self.eye_contact_provider = eye_contact_provider
        self.session_id = ""
        self._clock = clock
        self._lock = threading.RLock()
        self._subscribers: list[Subscriber] = []
        self._classifier = FillerClassifier(self.cfg.fillers)

        self._passage_text = ""
        self._free_speech = False
        self._reference: list[ReferenceToken] = []
        self._ticker: PeriodicTimer | None = None
        self._watchdog: PeriodicTimer | None = None
        self._grace = DebouncedTimer("finish-grace", self.cfg.alignment.finish_grace_sec, self._on_grace_expired)
        self._clear_state()

    def _clear_state(self) -> None:
        self._matcher = AlignmentMatcher(self._reference, self.cfg.alignment.max_lookahead)
        self._flow = FlowTracker(self.cfg.flow)
        self._spontaneity = SpontaneityTracker(self.cfg.timing)
        self._phase = SessionPhase.IDLE
        self._start: float | None = None
        self._elapsed = 0.0
        self._transcript = ""
        self._tokens: list[str] = []
        self._timestamps: list[float] = []
        self._last_voice: float | None = None
        self._finish_deadline: float | None = None
        self._live_fillers: FillerReport | None = None
        self._hard_seen = 0
        self._excess_seen: dict[str, int] = {}
        self._rolling_wpm = 0
        self._result: SessionResult | None = None

    # ── Read-only views ─────────────────────────────────────────────────────

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def reading_mode(self) -> bool:
        return not self._free_speech

    @property
    def reference(self) -> list[ReferenceToken]:
        return list(self._reference)

    @property
    def passage_text(self) -> str:
        return self._passage_text

    @property
    def result(self) -> SessionResult | None:
        return self._result

    @property
    def elapsed(self) -> float:
        with self._lock:
            return self._elapsed_now()

    def _elapsed_now(self) -> float:
        if self._start is None:
            return 0.0
        if self._phase == SessionPhase.FINISHED:
            return self._elapsed
        return max(0.0, self._clock() - self._start)

    def _live_wpm(self) -> int:
        if self.reading_mode:
            return compute_wpm(self._matcher.correct_count(), self._elapsed)
        if self._live_fillers is None:
            return 0
        return compute_wpm(self._live_fillers.speech_word_count, self._elapsed)

    def _snapshot_locked(self) -> SessionSnapshot:
        return SessionSnapshot(
            phase=self._phase,
            elapsed=self._elapsed,
            words=tuple(self._matcher.words),
            current_index=self._matcher.current_index,
            live_filler_count=self._live_fillers.filler_count if self._live_fillers else 0,
            live_wpm=self._live_wpm(),
            rolling_wpm=self._rolling_wpm,
            rhythm_stability=rhythm_stability(self._timestamps, self.cfg.timing),
            flow_events=tuple(self._flow.events),
            cognitive_load_warning=self._flow.cognitive_load_warning,
            is_speaking=self._flow.is_speaking,
            transcript=self._transcript,
            result=self._result,
        )

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._snapshot_locked()

    # ── Subscription ────────────────────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a snapshot listener. Returns a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, snap: SessionSnapshot) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for cb in subscribers:
            try:
                cb(snap)
            except Exception as e:
                error(f"Session subscriber failed: {e}")

    # ── Lifecycle ───────────────────────────────────────────────────────────

    def load_passage(self, text: str, free_speech: bool = False) -> list[ReferenceToken]:
        """Replace the passage and discard everything recorded so far.

        With ``free_speech`` the passage is ignored and the session only
        measures fillers, pacing and rhythm until it is stopped.
        """
        self._cancel_timers()
        with self._lock:
            self._free_speech = free_speech
            self._passage_text = "" if free_speech else (text or "")
            self._reference = load_passage(self._passage_text)
            self._clear_state()
            snap = self._snapshot_locked()
        debug(f"Passage loaded: {len(self._reference)} words, free speech {free_speech}")
        self._notify(snap)
        return list(self._reference)

    def start(self) -> None:
        with self._lock:
            if self._phase != SessionPhase.IDLE:
                raise SessionStateError(f"Cannot start a session that is {self._phase.value}")
            self.session_id = set_session_id()
            self._start = self._clock()
            self._last_voice = self._start
            self._phase = SessionPhase.RECORDING
            mode = "reading" if self.reading_mode else "free speech"
            info(f"Session started ({mode}, {len(self._reference)} words)")

            if self.cfg.session.run_timers:
                scfg = self.cfg.session
                self._ticker = PeriodicTimer("ticker", scfg.tick_interval_sec, self.tick)
                self._watchdog = PeriodicTimer(
                    "watchdog", scfg.watchdog_interval_sec, self.check_silence, delay=scfg.watchdog_grace_sec
                )
                self._ticker.start()
                self._watchdog.start()
            snap = self._snapshot_locked()
        self._notify(snap)

    def reset(self) -> None:
        """Cancel timers and reload the current passage for another attempt."""
        self.load_passage(self._passage_text, self._free_speech)

    def _cancel_timers(self) -> None:
        self._grace.cancel()
        for timer in (self._ticker, self._watchdog):
            if timer is not None:
                timer.cancel()
        self._ticker = None
        self._watchdog = None

    # ── Collaborator inputs ─────────────────────────────────────────────────

    def _ignored(self, what: str) -> bool:
        if self._phase != SessionPhase.RECORDING:
            session_log(f"ignored {what} while {self._phase.value}")
            return True
        return False

    def on_transcript_update(self, full_text: str) -> None:
        """Apply the recognizer's cumulative transcript."""
        with self._lock:
            if self._ignored("transcript update"):
                return
            self._elapsed = self._elapsed_now()
            tokens = normalized_tokens(full_text)
            grew = len(tokens) > len(self._tokens)
            if grew:
                self._last_voice = self._clock()
            self._transcript = full_text
            self._tokens = tokens

            if self.reading_mode:
                result = self._matcher.ingest(full_text)
                # Repeated partials without new words must not postpone the finish
                if self._finish_deadline is None:
                    if result.reached_end:
                        self._arm_finish_grace()
                elif grew:
                    self._arm_finish_grace()

            self._update_live_fillers()
            clean = sum(1 for t in tokens if not self._classifier.is_hard_filler(t))
            self._flow.observe_clean_words(clean, self._elapsed)
            snap = self._snapshot_locked()
        self._notify(snap)

    def _arm_finish_grace(self) -> None:
        self._finish_deadline = self._clock() + self.cfg.alignment.finish_grace_sec
        if self.cfg.session.run_timers:
            self._grace.arm()
        session_log(f"end of passage reached, finish due in {self.cfg.alignment.finish_grace_sec}s")

    def _update_live_fillers(self) -> None:
        minutes = max(self.cfg.fillers.live_min_minutes, self._elapsed / 60.0)
        report = self._classifier.classify(self._tokens, minutes)

        if report.hard_filler_count > self._hard_seen:
            hard_words = [t for t in self._tokens if self._classifier.is_hard_filler(t)]
            for word in hard_words[self._hard_seen:]:
                self._flow.record_filler(word, self._elapsed)
            self._hard_seen = report.hard_filler_count

        for word, excess in report.context_excess.items():
            seen = self._excess_seen.get(word, 0)
            for _ in range(excess - seen):
                self._flow.record_filler(word, self._elapsed)
            self._excess_seen[word] = max(seen, excess)

        self._live_fillers = report

    def on_word_timestamps(self, timestamps: Sequence[float]) -> None:
        """Accept the recognizer's per-word timestamps; the longest array seen wins."""
        with self._lock:
            if self._ignored("timestamps"):
                return
            if len(timestamps) <= len(self._timestamps):
                return
            self._timestamps = list(timestamps)
            self._elapsed = self._elapsed_now()
            words = self._tokens if len(self._tokens) == len(self._timestamps) else None
            self._rolling_wpm = rolling_wpm(
                self._timestamps, words, self._classifier.hard_fillers, self.cfg.timing
            )
            self._spontaneity.observe(self._elapsed, self._rolling_wpm)
            snap = self._snapshot_locked()
        self._notify(snap)

    def on_amplitude(self, level: float) -> None:
        """Feed a normalised 0..1 microphone level."""
        with self._lock:
            if self._ignored("amplitude"):
                return
            self._elapsed = self._elapsed_now()
            events_before = len(self._flow.events)
            speaking_before = self._flow.is_speaking
            if self._flow.observe_amplitude(level, self._elapsed):
                self._last_voice = self._clock()
            if len(self._flow.events) == events_before and self._flow.is_speaking == speaking_before:
                return
            snap = self._snapshot_locked()
        self._notify(snap)

    # ── Timers ──────────────────────────────────────────────────────────────

    def tick(self) -> SessionSnapshot | None:
        """Recompute elapsed time; finalize once the end-of-passage grace has run out."""
        with self._lock:
            if self._phase != SessionPhase.RECORDING:
                return None
            self._elapsed = self._elapsed_now()
            self._flow.tick(self._elapsed)
            due = self._finish_deadline is not None and self._clock() >= self._finish_deadline
            snap = self._snapshot_locked()
        if due:
            self.finish()
            return self.snapshot()
        self._notify(snap)
        return snap

    def check_silence(self) -> bool:
        """Auto-finalize after prolonged silence, but never before any speech."""
        with self._lock:
            if self._phase != SessionPhase.RECORDING or self._start is None:
                return False
            now = self._clock()
            if now - self._start < self.cfg.session.watchdog_grace_sec:
                return False
            if not self._tokens:
                return False
            silent_for = now - (self._last_voice if self._last_voice is not None else self._start)
            if silent_for < self.cfg.session.silence_threshold_sec:
                return False
        info(f"Silence for {silent_for:.1f}s, finishing session")
        self.finish()
        return True

    def _on_grace_expired(self) -> None:
        with self._lock:
            if self._phase != SessionPhase.RECORDING:
                return
        session_log("finish grace expired")
        self.finish()

    # ── Finalize ────────────────────────────────────────────────────────────

    def finish(self, eye_contact_percent: float | None = None) -> SessionResult:
        """Finalize once; later calls return the same result."""
        with self._lock:
            if self._result is not None:
                return self._result
            if eye_contact_percent is None:
                eye_contact_percent = self.eye_contact_provider() if self.eye_contact_provider else 0.0
            self._elapsed = self._elapsed_now()
            self._phase = SessionPhase.FINISHED
            self._result = self._build_result(float(eye_contact_percent))
            result = self._result
            snap = self._snapshot_locked()

        self._cancel_timers()
        m = result.metrics
        info(f"Session finished: score {result.score.total}, {m.wpm} WPM, "
             f"{m.filler_count} fillers, {m.accuracy_percent:.0f}% accuracy")
        self._notify(snap)
        return result

    def stop(self, eye_contact_percent: float | None = None) -> SessionResult:
        return self.finish(eye_contact_percent)

    def _build_result(self, eye_contact_percent: float) -> SessionResult:
        duration = self._elapsed
        tokens = list(self._tokens)
        fillers = self._classifier.classify(tokens, duration / 60.0)
        summary = self._matcher.finish(duration)

        if self.reading_mode:
            fuzzy = passage_accuracy([t.normalized for t in self._reference], tokens, self.cfg.fuzzy)
            wpm = summary.wpm
            accuracy = fuzzy.accuracy_percent
            missed = tuple(fuzzy.missed_words)
        else:
            wpm = fillers.speech_wpm
            accuracy = 100.0
            missed = ()

        speech_detected = bool(tokens) and has_real_speech(wpm, duration, self.cfg.scoring)
        rhythm = rhythm_stability(self._timestamps, self.cfg.timing)
        eye = max(0.0, min(100.0, eye_contact_percent))

        metrics = SessionMetrics(
            wpm=wpm,
            filler_count=fillers.filler_count,
            filler_words=tuple(fillers.filler_words),
            accuracy_percent=accuracy,
            missed_words=missed,
            rhythm_stability=rhythm,
            duration=duration,
            transcript=self._transcript,
            alignment_accuracy=summary.accuracy_percent,
            stumbled_words=tuple(summary.stumbled_words),
            skipped_words=tuple(summary.skipped_words),
            top_repeated_words=tuple(top_repeated_words(tokens)),
            spontaneity=self._spontaneity.score,
            speech_detected=speech_detected,
        )
        score = score_session(wpm, fillers.filler_count, eye, rhythm, duration, self.cfg.scoring)
        flow_breaks = self._flow.count(FlowEventKind.FLOW_BREAK)
        return SessionResult(
            metrics=metrics,
            score=score,
            flow_events=tuple(self._flow.events),
            words=tuple(self._matcher.words),
            insight=coach_insight(wpm, fillers.filler_count, accuracy, flow_breaks, speech_detected),
            passage=self._passage_text,
        )
