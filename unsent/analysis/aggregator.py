"""
Metric Aggregator — reduces an event-log snapshot into timing distributions,
emotional indicators, content-shape patterns and behavioral signatures.

Every function here is a pure reduction over the events it is given: no state
is kept between calls, so the same snapshot always yields the same metrics.
An empty snapshot is a valid input and produces neutral values.
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import numpy as np

from ..capture.events import EventType, InteractionEvent
from .metrics import (
    AdvancedBehavioralMetrics,
    BehavioralSignatures,
    ContentPatterns,
    EmotionalIndicators,
    RealTimeStats,
    TimingPatterns,
)

# Upper edges of the pause histogram buckets (ms); a final bucket catches the rest.
PAUSE_BUCKET_EDGES_MS = [250.0, 500.0, 1000.0, 2000.0, 5000.0]
PAUSE_BUCKET_LABELS = ["<250", "250-500", "500-1000", "1000-2000", "2000-5000", ">=5000"]

PEAK_HOURS = 3


def _clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    if value != value:  # NaN
        return lo
    return max(lo, min(float(value), hi))


def _of_type(events: Sequence[InteractionEvent], event_type: EventType) -> List[InteractionEvent]:
    return [e for e in events if e.type == event_type]


def _intervals(events: Sequence[InteractionEvent]) -> np.ndarray:
    """Forward gaps (ms) between consecutive events; out-of-order pairs are dropped."""
    if len(events) < 2:
        return np.zeros(0)
    stamps = np.array([e.timestamp for e in events], dtype=float)
    gaps = np.diff(stamps)
    return gaps[gaps >= 0]


def _histogram(gaps: Sequence[float]) -> List[int]:
    if not gaps:
        return [0] * len(PAUSE_BUCKET_LABELS)
    idx = np.searchsorted(PAUSE_BUCKET_EDGES_MS, np.asarray(gaps, dtype=float), side="right")
    counts = np.bincount(idx, minlength=len(PAUSE_BUCKET_LABELS))
    return [int(c) for c in counts]


def _coefficient_of_variation(values: np.ndarray) -> float:
    if values.size < 2:
        return 0.0
    mean = float(values.mean())
    if mean <= 0:
        return 0.0
    return float(values.std()) / mean


def _session_bounds(
    events: Sequence[InteractionEvent],
    session_start: Optional[float],
    now: Optional[float],
) -> tuple:
    if session_start is None:
        session_start = events[0].timestamp if events else 0.0
    if now is None:
        now = events[-1].timestamp if events else session_start
    return session_start, now


# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

def compute_timing_patterns(events: Sequence[InteractionEvent]) -> TimingPatterns:
    keystrokes = _of_type(events, EventType.KEYSTROKE)
    return TimingPatterns(
        keystroke_intervals=[float(g) for g in _intervals(keystrokes)],
        word_pause_distribution=_histogram(_word_pauses(events)),
        sentence_pause_distribution=_histogram(_sentence_pauses(events)),
        peak_typing_hours=_peak_hours(keystrokes),
    )


def _word_pauses(events: Sequence[InteractionEvent]) -> List[float]:
    """Gap between a word boundary and the first keystroke of the next word."""
    gaps: List[float] = []
    pending: Optional[float] = None
    for e in events:
        if e.type == EventType.WORD_BOUNDARY:
            pending = e.timestamp
        elif e.type == EventType.KEYSTROKE and pending is not None:
            if e.timestamp >= pending:
                gaps.append(e.timestamp - pending)
            pending = None
    return gaps


def _sentence_pauses(events: Sequence[InteractionEvent]) -> List[float]:
    """Gap between sentence-ending punctuation and the next non-terminal keystroke."""
    gaps: List[float] = []
    pending: Optional[float] = None
    for e in events:
        if e.type != EventType.KEYSTROKE:
            continue
        if e.metadata.get("is_sentence_end"):
            pending = e.timestamp       # "?!" / "..." keep extending the terminator
        elif pending is not None:
            if e.timestamp >= pending:
                gaps.append(e.timestamp - pending)
            pending = None
    return gaps


def _peak_hours(keystrokes: Sequence[InteractionEvent]) -> List[int]:
    hours = []
    for e in keystrokes:
        try:
            hours.append(datetime.fromtimestamp(e.timestamp / 1000.0, tz=timezone.utc).hour)
        except (OverflowError, OSError, ValueError):
            continue
    if not hours:
        return []
    counts = np.bincount(hours, minlength=24)
    ranked = sorted((h for h in range(24) if counts[h] > 0), key=lambda h: (-counts[h], h))
    return ranked[:PEAK_HOURS]


# ---------------------------------------------------------------------------
# Emotional indicators
# ---------------------------------------------------------------------------

def deletion_rate(events: Sequence[InteractionEvent]) -> float:
    keystrokes = len(_of_type(events, EventType.KEYSTROKE))
    deletions = len(_of_type(events, EventType.DELETION))
    return _clamp(deletions / max(keystrokes, 1))


def typing_variability(events: Sequence[InteractionEvent]) -> float:
    """Coefficient of variation of keystroke intervals, capped at 1."""
    return _clamp(_coefficient_of_variation(_intervals(_of_type(events, EventType.KEYSTROKE))))


def mouse_erraticness(events: Sequence[InteractionEvent]) -> float:
    moves = _of_type(events, EventType.MOUSE_MOVEMENT)
    if not moves:
        return 0.0
    erratic = sum(1 for e in moves if e.metadata.get("is_erratic"))
    return _clamp(erratic / len(moves))


def focus_stability(
    events: Sequence[InteractionEvent],
    session_start: Optional[float] = None,
    now: Optional[float] = None,
) -> float:
    """1 - blurs per session minute, floored at 0. No blurs means fully stable."""
    blurs = sum(
        1 for e in events
        if e.type == EventType.FOCUS_CHANGE and e.metadata.get("type") == "blur"
    )
    if blurs == 0:
        return 1.0
    start, end = _session_bounds(events, session_start, now)
    minutes = (end - start) / 60000.0
    if minutes <= 0:
        return 0.0
    return _clamp(1.0 - blurs / minutes)


def compute_emotional_indicators(
    events: Sequence[InteractionEvent],
    session_start: Optional[float] = None,
    now: Optional[float] = None,
) -> EmotionalIndicators:
    deletions = deletion_rate(events)
    variability = typing_variability(events)
    erraticness = mouse_erraticness(events)
    stability = focus_stability(events, session_start, now)

    return EmotionalIndicators(
        stress_level=_clamp((deletions + variability + erraticness) / 3.0),
        confidence_score=_clamp(1.0 - deletions),
        emotional_volatility=variability,
        cognitive_load=_clamp(1.0 - stability),
    )


# ---------------------------------------------------------------------------
# Content shape
# ---------------------------------------------------------------------------

def compute_content_patterns(events: Sequence[InteractionEvent]) -> ContentPatterns:
    word_lengths: List[int] = []
    sentence_lengths: List[int] = []
    punctuation: Counter = Counter()

    current_word = 0
    words_in_sentence = 0
    run_label: Optional[str] = None
    run_len = 0

    def close_word():
        nonlocal current_word, words_in_sentence
        if current_word > 0:
            word_lengths.append(current_word)
            words_in_sentence += 1
        current_word = 0

    for e in events:
        if e.type == EventType.KEYSTROKE:
            label = e.metadata.get("punctuation")
            if label:
                if label == run_label:
                    run_len += 1
                else:
                    run_label, run_len = label, 1
                punctuation[label] += 1
                if run_len == 2 and label in ("exclamation", "question"):
                    punctuation[f"repeated_{label}"] += 1
                if run_len == 3 and label == "period":
                    punctuation["ellipsis"] += 1
            else:
                run_label, run_len = None, 0

            if e.metadata.get("is_alpha") or e.metadata.get("is_numeric"):
                current_word += 1
            if e.metadata.get("is_sentence_end"):
                close_word()
                if words_in_sentence > 0:
                    sentence_lengths.append(words_in_sentence)
                words_in_sentence = 0

        elif e.type == EventType.WORD_BOUNDARY:
            close_word()
            run_label, run_len = None, 0

        elif e.type == EventType.DELETION:
            current_word = max(current_word - 1, 0)
            run_label, run_len = None, 0

    close_word()
    if words_in_sentence > 0:
        sentence_lengths.append(words_in_sentence)

    lengths = np.asarray(word_lengths, dtype=float)
    return ContentPatterns(
        average_word_length=round(float(lengths.mean()), 4) if lengths.size else 0.0,
        sentence_complexity=round(float(np.mean(sentence_lengths)), 4) if sentence_lengths else 0.0,
        vocabulary_variability=round(_clamp(_coefficient_of_variation(lengths)), 4),
        punctuation_patterns=[label for label, _ in punctuation.most_common()],
    )


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------

def generate_behavioral_signatures(
    events: Sequence[InteractionEvent], session_token: str
) -> BehavioralSignatures:
    """
    Placeholder signatures.

    The rhythm and fingerprint strings are slices of a random token minted
    once per session; they are stable for the session but carry no
    behavioral information. Baseline and adaptation rate are fixed at 0.5.
    """
    return BehavioralSignatures(
        unique_typing_rhythm=f"timing_signature_{session_token[:9]}",
        interaction_fingerprint=f"interaction_signature_{session_token[9:18]}",
        emotional_baseline=0.5,
        adaptation_rate=0.5,
    )


# ---------------------------------------------------------------------------
# Combined views
# ---------------------------------------------------------------------------

def compute_advanced_metrics(
    events: Sequence[InteractionEvent],
    session_token: str = "",
    session_start: Optional[float] = None,
    now: Optional[float] = None,
) -> AdvancedBehavioralMetrics:
    return AdvancedBehavioralMetrics(
        timing_patterns=compute_timing_patterns(events),
        emotional_indicators=compute_emotional_indicators(events, session_start, now),
        content_patterns=compute_content_patterns(events),
        behavioral_signatures=generate_behavioral_signatures(events, session_token),
    )


def current_typing_speed(events: Sequence[InteractionEvent], window: int = 10) -> float:
    """Characters per second over the last *window* keystrokes."""
    recent = _of_type(events, EventType.KEYSTROKE)[-window:]
    gaps = _intervals(recent)
    if gaps.size == 0:
        return 0.0
    avg = float(gaps.mean())
    return 1000.0 / avg if avg > 0 else 0.0


def compute_real_time_stats(
    events: Sequence[InteractionEvent],
    pause_count: int = 0,
    delete_count: int = 0,
    session_start: Optional[float] = None,
    now: Optional[float] = None,
    typing_window: int = 10,
) -> RealTimeStats:
    start, end = _session_bounds(events, session_start, now)
    duration = (end - start) / 1000.0
    return RealTimeStats(
        typing_speed=round(current_typing_speed(events, typing_window), 4),
        pause_count=pause_count,
        delete_count=delete_count,
        session_duration=int(math.floor(duration)) if duration > 0 else 0,
        event_count=len(events),
        stress_level=compute_emotional_indicators(events, session_start, now).stress_level,
        focus_stability=focus_stability(events, session_start, now),
    )
