"""Tests for the conversation score accumulator."""

import pytest

from unsent.scoring.accumulator import (
    ConversationScore,
    is_ready_for_closure,
    message_weight,
    update_conversation_score,
)
from unsent.scoring.scorer import EmotionAnalysis
from unsent.scoring.stages import EmotionStage, stage_by_score


def _analysis(score: int) -> EmotionAnalysis:
    return EmotionAnalysis(score=score, stage=stage_by_score(score).id)


class TestWeight:
    def test_monotone_and_saturating(self):
        weights = [message_weight(n) for n in range(0, 20)]
        assert weights == sorted(weights)
        assert weights[0] == 0.0
        assert weights[10] == pytest.approx(1.0)
        assert all(w == 1.0 for w in weights[10:])

    def test_negative_count_has_no_weight(self):
        assert message_weight(-3) == 0.0


class TestUpdate:
    def test_first_message_moves_a_tenth(self):
        assert update_conversation_score(0, 100, 1) == 10

    def test_half_up_rounding(self):
        # 0 * 0.5 + 25 * 0.5 = 12.5 → 13
        assert update_conversation_score(0, 25, 5) == 13

    def test_saturated_weight_takes_new_score(self):
        assert update_conversation_score(80, 30, 12) == 30

    def test_zero_count_keeps_current(self):
        assert update_conversation_score(42, 100, 0) == 42

    @pytest.mark.parametrize("current, new", [(-50, 500), (1000, -1), (float("nan"), 50)])
    def test_result_always_in_range(self, current, new):
        for count in range(0, 15):
            assert 0 <= update_conversation_score(current, new, count) <= 100

    def test_converges_to_constant_message_score(self):
        score = 0
        for count in range(1, 12):
            score = update_conversation_score(score, 55, count)
        assert score == 55


class TestClosure:
    @pytest.mark.parametrize("score, count, ready", [
        (89, 10, False),
        (90, 4, False),
        (90, 5, True),
        (100, 50, True),
        (0, 0, False),
    ])
    def test_both_conditions_required(self, score, count, ready):
        assert is_ready_for_closure(score, count) is ready


class TestConversationScore:
    def test_starts_in_denial(self):
        conv = ConversationScore()
        assert conv.score == 0
        assert conv.stage == EmotionStage.DENIAL
        assert conv.stage_history == [EmotionStage.DENIAL]

    def test_count_incremented_before_update(self):
        conv = ConversationScore()
        conv.record(_analysis(50))
        assert conv.message_count == 1
        assert conv.score == 5

    def test_stage_change_reported(self):
        conv = ConversationScore(score=35, message_count=9, stage=EmotionStage.ANGER)
        changed = conv.record(_analysis(50))    # weight 1.0 → 50
        assert changed is True
        assert conv.stage == EmotionStage.BARGAINING
        assert conv.stage_history[-1] == EmotionStage.BARGAINING

    def test_stage_can_move_backwards(self):
        conv = ConversationScore(
            score=70, message_count=10, stage=EmotionStage.DEPRESSION,
            stage_history=[EmotionStage.DENIAL, EmotionStage.DEPRESSION],
        )
        conv.record(_analysis(25))
        assert conv.stage == EmotionStage.ANGER
        assert conv.stage_history == [
            EmotionStage.DENIAL, EmotionStage.DEPRESSION, EmotionStage.ANGER,
        ]

    def test_no_change_not_appended(self):
        conv = ConversationScore()
        assert conv.record(_analysis(2)) is False
        assert conv.stage_history == [EmotionStage.DENIAL]

    def test_closure_after_enough_high_messages(self):
        conv = ConversationScore(score=95, message_count=4, stage=EmotionStage.ACCEPTANCE)
        assert conv.ready_for_closure is False
        conv.record(_analysis(95))
        assert conv.message_count == 5
        assert conv.ready_for_closure is True

    def test_to_dict(self):
        out = ConversationScore().to_dict()
        assert out == {
            "score": 0,
            "message_count": 0,
            "stage": "denial",
            "stage_history": ["denial"],
            "ready_for_closure": False,
        }
