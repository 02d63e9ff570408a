"""
Behavioral metric records produced by the aggregator.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import List


@dataclass
class TimingPatterns:
    keystroke_intervals: List[float] = field(default_factory=list)          # ms
    word_pause_distribution: List[int] = field(default_factory=list)        # histogram counts
    sentence_pause_distribution: List[int] = field(default_factory=list)    # histogram counts
    peak_typing_hours: List[int] = field(default_factory=list)              # UTC hours, busiest first


@dataclass
class EmotionalIndicators:
    """All values in [0, 1]."""
    stress_level: float = 0.0
    confidence_score: float = 1.0
    emotional_volatility: float = 0.0
    cognitive_load: float = 0.0


@dataclass
class ContentPatterns:
    """Content shape only, derived from key classes, never from characters."""
    average_word_length: float = 0.0
    sentence_complexity: float = 0.0       # words per sentence
    vocabulary_variability: float = 0.0    # 0-1
    punctuation_patterns: List[str] = field(default_factory=list)


@dataclass
class BehavioralSignatures:
    # Placeholder values: the signatures are session-scoped random tokens,
    # not derived from behavior.
    unique_typing_rhythm: str = ""
    interaction_fingerprint: str = ""
    emotional_baseline: float = 0.5
    adaptation_rate: float = 0.5


@dataclass
class AdvancedBehavioralMetrics:
    timing_patterns: TimingPatterns
    emotional_indicators: EmotionalIndicators
    content_patterns: ContentPatterns
    behavioral_signatures: BehavioralSignatures

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RealTimeStats:
    typing_speed: float = 0.0        # characters per second
    pause_count: int = 0
    delete_count: int = 0
    session_duration: int = 0        # whole seconds
    event_count: int = 0
    stress_level: float = 0.0
    focus_stability: float = 1.0

    def to_dict(self) -> dict:
        return asdict(self)
