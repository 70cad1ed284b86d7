"""Tests for two-tier filler classification."""

from __future__ import annotations

from cadence.analysis.fillers import FillerClassifier
from cadence.analysis.tokenizer import normalized_tokens
from cadence.utils.config import FillerConfig


def _classify(text: str, minutes: float, cfg: FillerConfig | None = None):
    return FillerClassifier(cfg).classify(normalized_tokens(text), minutes)


class TestHardFillers:
    def test_every_occurrence_counts(self):
        report = _classify("Um, I think, uh, we should um go", 1.0)
        assert report.hard_filler_count == 3
        assert report.filler_count == 3
        assert report.filler_words == ["um", "uh", "um"]

    def test_custom_set(self):
        report = _classify("ähm the plan", 1.0, FillerConfig(hard_fillers=["ähm"]))
        assert report.hard_filler_count == 1


class TestContextFillers:
    def test_only_excess_counts(self):
        text = "so we start so we continue so we finish"
        report = _classify(text, 1.0)
        assert report.context_excess == {"so": 1}
        assert report.filler_count == 1

    def test_under_allowance_not_counted(self):
        report = _classify("so we start so we finish", 1.0)
        assert report.context_excess == {}
        assert report.filler_count == 0

    def test_latest_occurrences_flagged(self):
        report = _classify("um so a so b so c", 1.0)
        assert report.filler_words == ["um", "so"]

    def test_multi_word_phrase(self):
        report = _classify("you know it is, you know, fine", 1.0)
        assert report.context_excess == {"you know": 1}

    def test_zero_minutes_flags_everything(self):
        report = _classify("like this", 0.0)
        assert report.context_excess == {"like": 1}

    def test_stats_reported(self):
        report = _classify("so so so", 1.0)
        stat = next(s for s in report.context_stats if s.word == "so")
        assert stat.count == 3
        assert stat.excess == 1


class TestSpeechRate:
    def test_hard_fillers_excluded_context_kept(self):
        report = _classify("um like like like like", 1.0)
        assert report.speech_word_count == 4
        assert report.speech_wpm == 4

    def test_zero_minutes_gives_zero_wpm(self):
        assert _classify("hello there", 0.0).speech_wpm == 0

    def test_to_dict(self):
        d = _classify("um hello", 0.5).to_dict()
        assert d["filler_count"] == 1
        assert d["speech_word_count"] == 1
