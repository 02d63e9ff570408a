"""
Pydantic schemas for the FastAPI local API.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

# ── Sessions / events ──────────────────────────────────────────────────────

class SessionOut(BaseModel):
    session_id: str
    started_at: float
    active: bool


class InteractionEventIn(BaseModel):
    type: str = Field(..., description="keydown | mousemove | scroll | blur | focus | session/conversation marker")
    timestamp: Optional[float] = Field(None, description="Epoch milliseconds; defaults to now")
    data: Dict[str, Any] = Field(default_factory=dict)


class EventAcceptedOut(BaseModel):
    status: str
    recorded: bool


class BatchAcceptedOut(BaseModel):
    accepted: int
    recorded: int
    total: int


# ── Metrics ────────────────────────────────────────────────────────────────

class RealTimeStatsOut(BaseModel):
    typing_speed: float
    pause_count: int
    delete_count: int
    session_duration: int
    event_count: int
    stress_level: float = Field(..., ge=0.0, le=1.0)
    focus_stability: float = Field(..., ge=0.0, le=1.0)


class TimingPatternsOut(BaseModel):
    keystroke_intervals: List[float]
    word_pause_distribution: List[int]
    sentence_pause_distribution: List[int]
    peak_typing_hours: List[int]


class EmotionalIndicatorsOut(BaseModel):
    stress_level: float = Field(..., ge=0.0, le=1.0)
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    emotional_volatility: float = Field(..., ge=0.0, le=1.0)
    cognitive_load: float = Field(..., ge=0.0, le=1.0)


class ContentPatternsOut(BaseModel):
    average_word_length: float
    sentence_complexity: float
    vocabulary_variability: float = Field(..., ge=0.0, le=1.0)
    punctuation_patterns: List[str]


class BehavioralSignaturesOut(BaseModel):
    unique_typing_rhythm: str
    interaction_fingerprint: str
    emotional_baseline: float
    adaptation_rate: float


class AdvancedMetricsOut(BaseModel):
    timing_patterns: TimingPatternsOut
    emotional_indicators: EmotionalIndicatorsOut
    content_patterns: ContentPatternsOut
    behavioral_signatures: BehavioralSignaturesOut


class LatestMetricsOut(BaseModel):
    analyzed_at: Optional[float] = Field(None, description="Epoch ms of the last periodic pass")
    metrics: Optional[AdvancedMetricsOut] = None


class ExhaustOut(BaseModel):
    exhaust: Dict[str, Any]
    profile: Dict[str, Any]


# ── Scoring ────────────────────────────────────────────────────────────────

class AnalyzeMessageIn(BaseModel):
    text: str = ""
    time_spent_seconds: float = 0.0


class ScoreFactorsOut(BaseModel):
    keyword_matches: int
    sentiment_intensity: int
    message_length: int
    emotional_words: int
    time_spent: int


class EmotionAnalysisOut(BaseModel):
    score: int = Field(..., ge=0, le=100)
    stage: str
    keywords: List[str]
    intensity: float = Field(..., ge=0.0, le=100.0)
    progress_to_next: float = Field(..., ge=0.0, le=100.0)
    factors: ScoreFactorsOut


class ConversationScoreIn(BaseModel):
    current_score: float = Field(0.0, ge=0.0, le=100.0)
    new_message_score: float = Field(..., ge=0.0, le=100.0)
    message_count: int = Field(..., ge=0)


class ConversationScoreOut(BaseModel):
    score: int = Field(..., ge=0, le=100)
    stage: str
    weight: float
    ready_for_closure: bool


class ClosureOut(BaseModel):
    score: float
    message_count: int
    ready_for_closure: bool


# ── Stages ─────────────────────────────────────────────────────────────────

class StageOut(BaseModel):
    id: str
    name: str
    poetic_name: str
    description: str
    color: str
    gradient: str
    range: List[int]
    keywords: List[str]
    fragments: List[str]
    threshold: int


class FragmentOut(BaseModel):
    stage: Optional[str]
    fragment: str
