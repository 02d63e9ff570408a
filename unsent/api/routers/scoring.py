"""
/scoring — score a message and fold it into a conversation's running score.

Nothing here is stored: callers persist the returned analysis and running
score on their own conversation records.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from ...api.schemas import (
    AnalyzeMessageIn,
    ClosureOut,
    ConversationScoreIn,
    ConversationScoreOut,
    EmotionAnalysisOut,
)
from ...scoring.accumulator import is_ready_for_closure, message_weight, update_conversation_score
from ...scoring.scorer import analyze_message
from ...scoring.stages import stage_by_score

router = APIRouter(prefix="/scoring", tags=["scoring"])


def _get_stages(request: Request):
    return request.app.state.stages


@router.post("/analyze", response_model=EmotionAnalysisOut)
def analyze(body: AnalyzeMessageIn, stages=Depends(_get_stages)):
    """Score one message from its text and composition time."""
    return EmotionAnalysisOut(**analyze_message(body.text, body.time_spent_seconds, stages).to_dict())


@router.post("/conversation", response_model=ConversationScoreOut)
def conversation_score(body: ConversationScoreIn, stages=Depends(_get_stages)):
    """Fold a new message score into the conversation's running score."""
    score = update_conversation_score(body.current_score, body.new_message_score, body.message_count)
    return ConversationScoreOut(
        score=score,
        stage=stage_by_score(score, stages).id.value,
        weight=message_weight(body.message_count),
        ready_for_closure=is_ready_for_closure(score, body.message_count),
    )


@router.get("/closure", response_model=ClosureOut)
def closure(
    score: float = Query(..., ge=0.0, le=100.0),
    message_count: int = Query(..., ge=0),
):
    return ClosureOut(
        score=score,
        message_count=message_count,
        ready_for_closure=is_ready_for_closure(score, message_count),
    )
