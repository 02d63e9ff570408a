"""
Message Scorer — deterministic mapping from one message's text and
composition time onto a 0-100 emotional score and a stage.

Five factors are computed independently, each with its own cap:

  keyword matches       ≤ 20   stage keywords found in the text
  sentiment intensity   ≤ 15   repeated punctuation, shouting, intensifiers
  message length        ≤ 10   stepped by word count
  emotional vocabulary  ≤ 10   words from a fixed emotional lexicon
  time spent            ≤ 10   stepped by composition seconds

Keyword matches count every occurrence, so a keyword repeated three times
scores three matches.

The score is their sum clamped to [0, 100]. `intensity` normalizes the same
sum against its theoretical maximum (65) and is reported separately.
"""

from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass, field
from typing import List, Sequence, Tuple

from .stages import EMOTION_STAGES, EmotionStage, EmotionStageConfig, stage_by_score, stage_progress

KEYWORD_POINTS = 2
KEYWORD_CAP = 20
INTENSITY_CAP = 15
EMOTIONAL_WORD_POINTS = 2
EMOTIONAL_WORD_CAP = 10
MAX_FACTOR_TOTAL = KEYWORD_CAP + INTENSITY_CAP + 10 + EMOTIONAL_WORD_CAP + 10

# (pattern, points per match), matched against the text as typed (case kept)
_INTENSITY_PATTERNS: Tuple[Tuple["re.Pattern[str]", int], ...] = (
    (re.compile(r"!{2,}"), 3),
    (re.compile(r"\?{2,}"), 2),
    (re.compile(r"[A-Z]{3,}"), 4),
    (re.compile(r"\.\.\."), 1),
    (re.compile(r"\b(very|super|extremely|completely|totally|so|really)\b", re.IGNORECASE), 2),
    (re.compile(r"\b(always|never|everything|nothing|forever|everyone|nobody)\b", re.IGNORECASE), 1),
)

EMOTIONAL_LEXICON = frozenset({
    "love", "hate", "pain", "happy", "sad", "angry", "furious",
    "sorry", "guilt", "fear", "hope", "hopeless", "empty",
    "cry", "laugh", "heart", "soul", "life", "death", "remember",
    "forget", "miss", "need", "want", "wish", "dream",
})

# Word-count and seconds steps: (upper bound exclusive, points)
_LENGTH_STEPS = ((10, 1), (50, 3), (100, 5), (200, 7))
_LENGTH_MAX = 10
_TIME_STEPS = ((30, 1), (120, 3), (300, 5), (600, 7))
_TIME_MAX = 10

_TOKEN_STRIP = "\"'.,;:!?()[]{}<>*_-…“”‘’"


@dataclass
class ScoreFactors:
    keyword_matches: int = 0
    sentiment_intensity: int = 0
    message_length: int = 0
    emotional_words: int = 0
    time_spent: int = 0

    def total(self) -> int:
        return (
            self.keyword_matches
            + self.sentiment_intensity
            + self.message_length
            + self.emotional_words
            + self.time_spent
        )


@dataclass
class EmotionAnalysis:
    score: int
    stage: EmotionStage
    keywords: List[str] = field(default_factory=list)
    intensity: float = 0.0
    progress_to_next: float = 0.0
    factors: ScoreFactors = field(default_factory=ScoreFactors)

    def to_dict(self) -> dict:
        out = asdict(self)
        out["stage"] = self.stage.value
        return out


# ---------------------------------------------------------------------------
# Factors
# ---------------------------------------------------------------------------

def keyword_matches(lowered: str, stages: Sequence[EmotionStageConfig] = EMOTION_STAGES) -> int:
    count = sum(lowered.count(kw) for stage in stages for kw in stage.keywords if kw)
    return min(count * KEYWORD_POINTS, KEYWORD_CAP)


def sentiment_intensity(text: str) -> int:
    points = sum(len(p.findall(text)) * pts for p, pts in _INTENSITY_PATTERNS)
    return min(points, INTENSITY_CAP)


def length_score(word_count: int) -> int:
    for bound, pts in _LENGTH_STEPS:
        if word_count < bound:
            return pts
    return _LENGTH_MAX


def emotional_words(tokens: Sequence[str]) -> int:
    count = sum(1 for t in tokens if t.strip(_TOKEN_STRIP) in EMOTIONAL_LEXICON)
    return min(count * EMOTIONAL_WORD_POINTS, EMOTIONAL_WORD_CAP)


def time_spent_score(seconds: float) -> int:
    seconds = normalize_seconds(seconds)
    for bound, pts in _TIME_STEPS:
        if seconds < bound:
            return pts
    return _TIME_MAX


def normalize_seconds(seconds) -> float:
    """Negative, NaN or non-numeric composition times count as zero."""
    try:
        value = float(seconds)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value) or value < 0:
        return 0.0
    return value


def score_factors(
    text: str, time_spent: float = 0, stages: Sequence[EmotionStageConfig] = EMOTION_STAGES
) -> ScoreFactors:
    text = text or ""
    lowered = text.lower()
    tokens = lowered.split()
    return ScoreFactors(
        keyword_matches=keyword_matches(lowered, stages),
        sentiment_intensity=sentiment_intensity(text),
        message_length=length_score(len(tokens)),
        emotional_words=emotional_words(tokens),
        time_spent=time_spent_score(time_spent),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def analyze_message(
    text: str,
    time_spent: float = 0,
    stages: Sequence[EmotionStageConfig] = EMOTION_STAGES,
) -> EmotionAnalysis:
    """Score one message. Never raises for string input."""
    factors = score_factors(text, time_spent, stages)
    raw = factors.total()
    score = int(max(0, min(raw, 100)))
    stage = stage_by_score(score, stages)
    lowered = (text or "").lower()

    return EmotionAnalysis(
        score=score,
        stage=stage.id,
        keywords=[kw for kw in stage.keywords if kw and kw in lowered],
        intensity=round(min(raw / MAX_FACTOR_TOTAL * 100.0, 100.0), 2),
        progress_to_next=round(stage_progress(score, stage.id, stages), 2),
        factors=factors,
    )
