"""Configuration management with YAML support and pydantic models."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class AlignmentConfig(BaseModel):
    # Adjustable policy knobs, not fixed rules of the matcher.
    max_lookahead: int = Field(default=2, ge=0, le=10)
    finish_grace_sec: float = Field(default=1.2, ge=0.0)


class FillerConfig(BaseModel):
    hard_fillers: list[str] = ["um", "uh", "er", "hmm", "umm", "erm", "uhh"]
    context_thresholds: dict[str, float] = {
        "like": 1.5,
        "so": 2.0,
        "right": 1.5,
        "okay": 1.5,
        "ok": 1.5,
        "actually": 1.0,
        "basically": 1.0,
        "literally": 0.8,
        "anyway": 1.0,
        "you know": 1.0,
        "i mean": 1.0,
        "kind of": 1.0,
        "sort of": 1.0,
        "honestly": 1.0,
        "seriously": 0.8,
        "whatever": 0.5,
    }
    live_min_minutes: float = Field(default=0.1, gt=0.0)


class FuzzyConfig(BaseModel):
    min_length: int = 3
    prefix_ratio: float = Field(default=0.8, ge=0.0, le=1.0)
    short_word_max_len: int = 6
    short_word_distance: int = 1
    long_word_distance: int = 2
    max_missed_reported: int = 15


class TimingConfig(BaseModel):
    min_timestamps: int = 8
    max_timestamps: int = 60
    min_gap_sec: float = 0.05
    max_gap_sec: float = 1.5
    min_valid_gaps: int = 5
    cv_weight: float = 65.0
    stability_floor: float = 5.0
    rolling_min_window_sec: float = 3.0
    rolling_max_window_sec: float = 15.0
    rolling_min_span_sec: float = 1.0
    spontaneity_interval_sec: float = 8.0
    spontaneity_history: int = 8
    spontaneity_multiplier: float = 500.0


class ScoringConfig(BaseModel):
    min_speech_sec: float = 8.0
    wpm_reliable_sec: float = 25.0
    short_session_sec: float = 20.0
    short_session_cap: int = 60
    neutral_rhythm: float = 68.0
    filler_allowance_per_min: float = 1.5
    filler_tolerance_per_min: float = 4.5
    filler_min_minutes: float = 0.5


class FlowConfig(BaseModel):
    strong_moment_debounce_sec: float = 0.5
    event_debounce_sec: float = 1.5
    cognitive_load_window_sec: float = 12.0
    cognitive_load_fillers: int = 3
    words_per_strong_moment: int = Field(default=6, ge=1)
    max_strong_moments_per_update: int = 3
    hesitation_pause_sec: float = 1.8
    voice_threshold: float = 0.06
    speaking_release_sec: float = 2.0


class SessionConfig(BaseModel):
    tick_interval_sec: float = Field(default=0.2, gt=0.0)
    watchdog_grace_sec: float = 5.0
    watchdog_interval_sec: float = Field(default=1.0, gt=0.0)
    silence_threshold_sec: float = 4.0
    run_timers: bool = True


class AppConfig(BaseModel):
    alignment: AlignmentConfig = AlignmentConfig()
    fillers: FillerConfig = FillerConfig()
    fuzzy: FuzzyConfig = FuzzyConfig()
    timing: TimingConfig = TimingConfig()
    scoring: ScoringConfig = ScoringConfig()
    flow: FlowConfig = FlowConfig()
    session: SessionConfig = SessionConfig()


def load_config(path: str | Path | None = None) -> AppConfig:
    if path is None:
        candidates = [Path("cadence.yaml"), Path("config.yaml"), Path("config.yml")]
        for c in candidates:
            if c.exists():
                path = c
                break
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            return AppConfig(**data)
    return AppConfig()


def merge_cli_overrides(cfg: AppConfig, overrides: dict[str, Any]) -> AppConfig:
    data = cfg.model_dump()
    for key, val in overrides.items():
        if val is None:
            continue
        parts = key.split(".")
        d = data
        for p in parts[:-1]:
            d = d.setdefault(p, {})
        d[parts[-1]] = val
    return AppConfig(**data)


DEFAULT_CONFIG_YAML = """\
# cadence configuration

alignment:
  max_lookahead: 2           # reference words a spoken word may jump ahead
  finish_grace_sec: 1.2      # wait for trailing recognizer output before finalizing

fillers:
  hard_fillers: [um, uh, er, hmm, umm, erm, uhh]
  context_thresholds:        # allowed occurrences per minute before flagging
    like: 1.5
    so: 2.0
    right: 1.5
    okay: 1.5
    ok: 1.5
    actually: 1.0
    basically: 1.0
    literally: 0.8
    anyway: 1.0
    you know: 1.0
    i mean: 1.0
    kind of: 1.0
    sort of: 1.0
    honestly: 1.0
    seriously: 0.8
    whatever: 0.5
  live_min_minutes: 0.1

fuzzy:
  min_length: 3
  prefix_ratio: 0.8
  short_word_max_len: 6
  short_word_distance: 1
  long_word_distance: 2
  max_missed_reported: 15

timing:
  min_timestamps: 8
  max_timestamps: 60
  min_gap_sec: 0.05
  max_gap_sec: 1.5
  min_valid_gaps: 5
  cv_weight: 65.0
  stability_floor: 5.0

scoring:
  min_speech_sec: 8.0
  wpm_reliable_sec: 25.0
  short_session_sec: 20.0
  short_session_cap: 60
  neutral_rhythm: 68.0       # banding only, never reported

flow:
  cognitive_load_window_sec: 12.0
  cognitive_load_fillers: 3
  hesitation_pause_sec: 1.8
  voice_threshold: 0.06

session:
  tick_interval_sec: 0.2
  watchdog_grace_sec: 5.0
  watchdog_interval_sec: 1.0
  silence_threshold_sec: 4.0
  run_timers: true
"""
