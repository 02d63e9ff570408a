"""
Stage/Score Accumulator — folds message scores into a conversation's
running score and gates closure.

The running score is a count-weighted moving average: the new message gets
weight min(message_count * 0.1, 1.0), so trust in fresh signal grows with
the conversation and saturates after ten messages.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Sequence

from .scorer import EmotionAnalysis
from .stages import EMOTION_STAGES, EmotionStage, EmotionStageConfig, clamp_score, stage_by_score

WEIGHT_PER_MESSAGE = 0.1
MAX_WEIGHT = 1.0
CLOSURE_MIN_SCORE = 90
CLOSURE_MIN_MESSAGES = 5


def message_weight(message_count: int) -> float:
    return max(0.0, min(message_count * WEIGHT_PER_MESSAGE, MAX_WEIGHT))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def update_conversation_score(current_score: float, new_message_score: float, message_count: int) -> int:
    weight = message_weight(message_count)
    blended = clamp_score(current_score) * (1 - weight) + clamp_score(new_message_score) * weight
    return int(clamp_score(_round_half_up(blended)))


def is_ready_for_closure(score: float, message_count: int) -> bool:
    """Both a high running score and enough messages are required."""
    return score >= CLOSURE_MIN_SCORE and message_count >= CLOSURE_MIN_MESSAGES


@dataclass
class ConversationScore:
    """
    Running score for one conversation. The caller owns and persists it;
    any stage may follow any other as the average moves.
    """
    score: int = 0
    message_count: int = 0
    stage: EmotionStage = EmotionStage.DENIAL
    stage_history: List[EmotionStage] = field(default_factory=lambda: [EmotionStage.DENIAL])

    def record(
        self, analysis: EmotionAnalysis, stages: Sequence[EmotionStageConfig] = EMOTION_STAGES
    ) -> bool:
        """Fold *analysis* in. Returns True when the stage changed."""
        self.message_count += 1
        self.score = update_conversation_score(self.score, analysis.score, self.message_count)
        new_stage = stage_by_score(self.score, stages).id
        changed = new_stage != self.stage
        if changed:
            self.stage = new_stage
            self.stage_history.append(new_stage)
        return changed

    @property
    def ready_for_closure(self) -> bool:
        return is_ready_for_closure(self.score, self.message_count)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "message_count": self.message_count,
            "stage": self.stage.value,
            "stage_history": [s.value for s in self.stage_history],
            "ready_for_closure": self.ready_for_closure,
        }
