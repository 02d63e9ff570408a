"""Tests for the emotion stage table."""

import json
import random
from dataclasses import replace

import pytest

from unsent.scoring.stages import (
    EMOTION_STAGES,
    STAGE_ORDER,
    EmotionStage,
    StageConfigError,
    get_stage,
    load_stage_table,
    next_stage,
    random_fragment,
    stage_by_score,
    stage_color,
    stage_progress,
    validate_stages,
)


class TestStageTable:
    def test_five_ordered_stages(self):
        assert tuple(s.id for s in EMOTION_STAGES) == STAGE_ORDER
        assert len(EMOTION_STAGES) == 5

    def test_ranges_partition_0_to_100(self):
        assert EMOTION_STAGES[0].range[0] == 0
        assert EMOTION_STAGES[-1].range[1] == 100
        for prev, cur in zip(EMOTION_STAGES, EMOTION_STAGES[1:]):
            assert cur.range[0] == prev.range[1] + 1

    def test_default_table_validates(self):
        assert validate_stages(EMOTION_STAGES) == EMOTION_STAGES


class TestStageByScore:
    def test_every_integer_score_has_exactly_one_stage(self):
        for score in range(0, 101):
            owners = [s for s in EMOTION_STAGES if s.range[0] <= score <= s.range[1]]
            assert len(owners) == 1
            assert stage_by_score(score) is owners[0]

    @pytest.mark.parametrize("score, stage", [
        (0, EmotionStage.DENIAL),
        (20, EmotionStage.DENIAL),
        (20.5, EmotionStage.DENIAL),
        (21, EmotionStage.ANGER),
        (60, EmotionStage.BARGAINING),
        (61, EmotionStage.DEPRESSION),
        (81, EmotionStage.ACCEPTANCE),
        (100, EmotionStage.ACCEPTANCE),
    ])
    def test_boundaries(self, score, stage):
        assert stage_by_score(score).id == stage

    @pytest.mark.parametrize("score, stage", [
        (-10, EmotionStage.DENIAL),
        (150, EmotionStage.ACCEPTANCE),
        (float("nan"), EmotionStage.DENIAL),
    ])
    def test_out_of_range_is_clamped(self, score, stage):
        assert stage_by_score(score).id == stage


class TestProgress:
    def test_monotone_within_stage(self):
        for stage in EMOTION_STAGES:
            lo, hi = stage.range
            values = [stage_progress(s, stage.id) for s in range(lo, hi + 1)]
            assert values == sorted(values)
            assert values[0] == 0.0
            assert values[-1] == 100.0

    def test_resets_at_next_stage(self):
        assert stage_progress(40, EmotionStage.ANGER) == 100.0
        assert stage_progress(41, EmotionStage.BARGAINING) == 0.0

    def test_unknown_stage(self):
        assert stage_progress(50, "grief") == 0.0


class TestHelpers:
    def test_next_stage(self):
        assert next_stage(EmotionStage.DENIAL) == EmotionStage.ANGER
        assert next_stage("depression") == EmotionStage.ACCEPTANCE
        assert next_stage(EmotionStage.ACCEPTANCE) is None
        assert next_stage("grief") is None

    def test_get_stage_by_string(self):
        assert get_stage("anger").name == "Anger"
        assert get_stage("grief") is None

    def test_colors(self):
        assert stage_color("anger") == "#ff6b6b"
        assert stage_color("grief") == EMOTION_STAGES[0].color

    def test_fragment_for_stage(self):
        rng = random.Random(7)
        fragment = random_fragment("acceptance", rng=rng)
        assert fragment in get_stage("acceptance").fragments

    def test_fragment_any_stage(self):
        pool = {f for s in EMOTION_STAGES for f in s.fragments}
        assert random_fragment(rng=random.Random(1)) in pool


class TestValidation:
    def test_gap_rejected(self):
        broken = list(EMOTION_STAGES)
        broken[1] = replace(broken[1], range=(22, 40))
        with pytest.raises(StageConfigError):
            validate_stages(broken)

    def test_overlap_rejected(self):
        broken = list(EMOTION_STAGES)
        broken[2] = replace(broken[2], range=(40, 60))
        with pytest.raises(StageConfigError):
            validate_stages(broken)

    def test_wrong_count_rejected(self):
        with pytest.raises(StageConfigError):
            validate_stages(EMOTION_STAGES[:4])

    def test_wrong_order_rejected(self):
        swapped = list(EMOTION_STAGES)
        swapped[0], swapped[1] = swapped[1], swapped[0]
        with pytest.raises(StageConfigError):
            validate_stages(swapped)

    def test_must_end_at_100(self):
        broken = list(EMOTION_STAGES)
        broken[4] = replace(broken[4], range=(81, 99))
        with pytest.raises(StageConfigError):
            validate_stages(broken)


class TestLoadStageTable:
    def test_no_file_returns_default(self):
        assert load_stage_table(None) == EMOTION_STAGES

    def test_content_override(self, tmp_path):
        path = tmp_path / "stages.json"
        path.write_text(json.dumps({
            "anger": {"keywords": ["Livid", "seething"], "poetic_name": "The Ember"},
        }))
        stages = load_stage_table(path)
        anger = get_stage("anger", stages)
        assert anger.keywords == ("livid", "seething")
        assert anger.poetic_name == "The Ember"
        assert get_stage("denial", stages) == get_stage("denial")

    def test_range_override_validated(self, tmp_path):
        path = tmp_path / "stages.json"
        path.write_text(json.dumps({"anger": {"range": [21, 45]}}))
        with pytest.raises(StageConfigError):
            load_stage_table(path)

    def test_consistent_range_override_accepted(self, tmp_path):
        path = tmp_path / "stages.json"
        path.write_text(json.dumps({
            "denial": {"range": [0, 10]},
            "anger": {"range": [11, 40]},
        }))
        stages = load_stage_table(path)
        assert stage_by_score(15, stages).id == EmotionStage.ANGER

    @pytest.mark.parametrize("patch", [
        {"anger": {"keywords": "rage"}},
        {"denial": {"fragments": "The fog."}},
        {"anger": {"threshold": "high"}},
        {"anger": {"threshold": None}},
    ])
    def test_mistyped_override_rejected(self, tmp_path, patch):
        path = tmp_path / "stages.json"
        path.write_text(json.dumps(patch))
        with pytest.raises(StageConfigError):
            load_stage_table(path)

    def test_malformed_file_rejected(self, tmp_path):
        path = tmp_path / "stages.json"
        path.write_text("{not json")
        with pytest.raises(StageConfigError):
            load_stage_table(path)

    def test_missing_file_rejected(self, tmp_path):
        with pytest.raises(StageConfigError):
            load_stage_table(tmp_path / "absent.json")
