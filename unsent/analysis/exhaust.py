"""
Digital Exhaust — content-free summary of a session's interaction exhaust
and a rule-based reading of it.

Profiles:
  DEEP_PROCESSOR     — long contemplative pauses combined with heavy self-editing
  EMOTIONAL_REACTOR  — fast, urgent typing bursts
  BALANCED_EXPLORER  — none of the above dominates
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence

from ..capture.events import EventType, InteractionEvent
from .aggregator import deletion_rate

HESITATION_GAP_MS = 500.0       # keystroke gap counted as a pause
LONG_PAUSE_MS = 2000.0          # pause counted as hesitation


class PsychologicalProfile(str, Enum):
    ANALYZING = "analyzing"
    DEEP_PROCESSOR = "deep_processor"
    EMOTIONAL_REACTOR = "emotional_reactor"
    BALANCED_EXPLORER = "balanced_explorer"


@dataclass
class TypingPatterns:
    average_speed: float = 0.0        # characters per second across the session
    pause_frequency: float = 0.0      # pauses per keystroke
    deletion_rate: float = 0.0
    session_duration: float = 0.0     # ms between first and last event


@dataclass
class InteractionMetrics:
    time_of_day: Optional[int] = None   # UTC hour of the latest event
    session_frequency: int = 0          # sessions reported by the caller


@dataclass
class EmotionalSignatures:
    urgency_level: float = 0.0
    hesitation_score: float = 0.0
    completion_rate: float = 0.0
    revision_count: int = 0


@dataclass
class AnonymizedPatterns:
    conversation_length: int = 0
    stage_progression: List[str] = field(default_factory=list)
    time_to_completion: float = 0.0
    interaction_depth: int = 0


@dataclass
class DigitalExhaust:
    typing_patterns: TypingPatterns
    interaction_metrics: InteractionMetrics
    emotional_signatures: EmotionalSignatures
    anonymized_patterns: AnonymizedPatterns

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ExhaustProfile:
    psychological_profile: PsychologicalProfile = PsychologicalProfile.ANALYZING
    emotional_state: str = "processing"
    behavioral_patterns: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        out = asdict(self)
        out["psychological_profile"] = self.psychological_profile.value
        return out


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def summarize_exhaust(
    events: Sequence[InteractionEvent], session_frequency: int = 0
) -> DigitalExhaust:
    keystrokes = [e for e in events if e.type == EventType.KEYSTROKE]
    deletions = [e for e in events if e.type == EventType.DELETION]

    gaps = [
        b.timestamp - a.timestamp
        for a, b in zip(keystrokes, keystrokes[1:])
        if b.timestamp >= a.timestamp
    ]
    pauses = [g for g in gaps if g >= HESITATION_GAP_MS]
    long_pauses = [g for g in pauses if g >= LONG_PAUSE_MS]

    speed = _average_speed(keystrokes)
    time_of_day = None
    if events:
        try:
            time_of_day = datetime.fromtimestamp(events[-1].timestamp / 1000.0, tz=timezone.utc).hour
        except (OverflowError, OSError, ValueError):
            time_of_day = None

    return DigitalExhaust(
        typing_patterns=TypingPatterns(
            average_speed=round(speed, 4),
            pause_frequency=round(len(pauses) / max(len(keystrokes), 1), 4),
            deletion_rate=round(deletion_rate(events), 4),
            session_duration=_span(events),
        ),
        interaction_metrics=InteractionMetrics(
            time_of_day=time_of_day,
            session_frequency=max(int(session_frequency), 0),
        ),
        emotional_signatures=EmotionalSignatures(
            urgency_level=round(min(speed / 10.0, 1.0), 4),
            hesitation_score=round(len(long_pauses) / max(len(pauses), 1), 4),
            completion_rate=round(_completion_rate(events), 4),
            revision_count=len(deletions),
        ),
        anonymized_patterns=AnonymizedPatterns(
            conversation_length=len(keystrokes),
            stage_progression=[
                str(e.metadata.get("stage", "unknown"))
                for e in events
                if e.type == EventType.CONVERSATION_STAGE_CHANGE
            ],
            time_to_completion=_time_to_completion(events),
            interaction_depth=len({e.type for e in events}),
        ),
    )


def _span(events: Sequence[InteractionEvent]) -> float:
    if len(events) < 2:
        return 0.0
    return max(events[-1].timestamp - events[0].timestamp, 0.0)


def _average_speed(keystrokes: Sequence[InteractionEvent]) -> float:
    span = _span(keystrokes)
    if span <= 0:
        return 0.0
    return len(keystrokes) / (span / 1000.0)


def _completion_rate(events: Sequence[InteractionEvent]) -> float:
    starts = sum(1 for e in events if e.type == EventType.CONVERSATION_START)
    ends = sum(1 for e in events if e.type == EventType.CONVERSATION_COMPLETE)
    return min(ends / max(starts, 1), 1.0)


def _time_to_completion(events: Sequence[InteractionEvent]) -> float:
    start = next((e.timestamp for e in events if e.type == EventType.CONVERSATION_START), None)
    end = next((e.timestamp for e in events if e.type == EventType.CONVERSATION_COMPLETE), None)
    if start is None or end is None or end < start:
        return 0.0
    return end - start


# ---------------------------------------------------------------------------
# Interpretation
# ---------------------------------------------------------------------------

def analyze_exhaust(exhaust: DigitalExhaust) -> ExhaustProfile:
    """Rule-based reading of *exhaust*; later rules override the emotional state."""
    profile = ExhaustProfile()
    typing = exhaust.typing_patterns
    signatures = exhaust.emotional_signatures

    if typing.pause_frequency > 0.3:
        profile.behavioral_patterns.append("high_contemplation")
        profile.emotional_state = "reflective"

    if typing.deletion_rate > 0.2:
        profile.behavioral_patterns.append("self_editing_tendency")
        profile.emotional_state = "uncertain"

    if signatures.urgency_level > 0.7:
        profile.behavioral_patterns.append("emotional_urgency")
        profile.emotional_state = "intense"

    if exhaust.interaction_metrics.session_frequency > 5:
        profile.behavioral_patterns.append("compulsive_revisiting")
        profile.recommendations.append("Consider pacing your excavation")

    if signatures.hesitation_score > 0.8:
        profile.behavioral_patterns.append("psychological_resistance")
        profile.recommendations.append("You are approaching a significant pattern")

    patterns = profile.behavioral_patterns
    if "high_contemplation" in patterns and "self_editing_tendency" in patterns:
        profile.psychological_profile = PsychologicalProfile.DEEP_PROCESSOR
    elif "emotional_urgency" in patterns:
        profile.psychological_profile = PsychologicalProfile.EMOTIONAL_REACTOR
    else:
        profile.psychological_profile = PsychologicalProfile.BALANCED_EXPLORER

    return profile
