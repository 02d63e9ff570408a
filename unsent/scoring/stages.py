"""
Emotion stage table — the five ordered stages and their score ranges.

The table is process-wide and read-only. Its content (names, keywords,
fragments) may be overridden from a JSON file, but the structure is fixed:
exactly five stages, in canonical order, whose integer ranges partition
[0, 100]. A table that breaks this is a deployment error and is rejected at
startup with StageConfigError.
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

SCORE_MIN = 0
SCORE_MAX = 100


class EmotionStage(str, Enum):
    DENIAL = "denial"
    ANGER = "anger"
    BARGAINING = "bargaining"
    DEPRESSION = "depression"
    ACCEPTANCE = "acceptance"


STAGE_ORDER: Tuple[EmotionStage, ...] = tuple(EmotionStage)


class StageConfigError(ValueError):
    """The stage table does not partition [0, 100] into the five ordered stages."""


@dataclass(frozen=True)
class EmotionStageConfig:
    id: EmotionStage
    name: str
    poetic_name: str
    description: str
    color: str
    gradient: str
    range: Tuple[int, int]          # inclusive (min, max)
    keywords: Tuple[str, ...]
    fragments: Tuple[str, ...]
    threshold: int

    @property
    def min_score(self) -> int:
        return self.range[0]

    @property
    def max_score(self) -> int:
        return self.range[1]

    def to_dict(self) -> dict:
        return {
            "id": self.id.value,
            "name": self.name,
            "poetic_name": self.poetic_name,
            "description": self.description,
            "color": self.color,
            "gradient": self.gradient,
            "range": list(self.range),
            "keywords": list(self.keywords),
            "fragments": list(self.fragments),
            "threshold": self.threshold,
        }


EMOTION_STAGES: Tuple[EmotionStageConfig, ...] = (
    EmotionStageConfig(
        id=EmotionStage.DENIAL,
        name="Denial",
        poetic_name="The Fog",
        description="Nothing feels real. Time is slowed. You move through memories like smoke.",
        color="#64b5f6",
        gradient="from-blue-400 to-cyan-400",
        range=(0, 20),
        keywords=(
            "not real", "impossible", "mistake", "dream", "wake up", "temporary",
            "coming back", "not happening", "can't be true", "must be wrong",
            "doesn't feel real", "like a dream", "surreal", "disconnected",
        ),
        fragments=(
            "Reality is just a suggestion whispered in the dark.",
            "Some truths are too heavy for the mind to hold at once.",
            "The fog protects what the heart cannot yet bear to see.",
            "Time moves differently in the space between what was and what is.",
            "Even the impossible becomes possible when you refuse to believe.",
        ),
        threshold=20,
    ),
    EmotionStageConfig(
        id=EmotionStage.ANGER,
        name="Anger",
        poetic_name="The Flame",
        description=(
            "There's heat behind the silence. Words burn behind your teeth. "
            "Rage is a form of love, twisted."
        ),
        color="#ff6b6b",
        gradient="from-red-400 to-orange-400",
        range=(21, 40),
        keywords=(
            "angry", "furious", "rage", "hate", "betrayed", "unfair", "wrong",
            "lied", "hurt", "pain", "destroyed", "ruined", "never forgive",
            "how dare", "selfish", "cruel", "bastard", "bitch", "asshole",
        ),
        fragments=(
            "The fire in your chest is love looking for somewhere to go.",
            "Anger is just pain wearing a mask of strength.",
            "Some flames burn everything down. Others light the way forward.",
            "The heat you feel is the ghost of what you once cherished.",
            "Rage is the heart's way of protecting what it cannot bear to lose.",
        ),
        threshold=40,
    ),
    EmotionStageConfig(
        id=EmotionStage.BARGAINING,
        name="Bargaining",
        poetic_name="The Loop",
        description=(
            "What if? What if I had said it? What if they stayed? "
            "Your mind loops, desperate for a door."
        ),
        color="#ffd54f",
        gradient="from-yellow-400 to-amber-400",
        range=(41, 60),
        keywords=(
            "what if", "if only", "maybe", "could have", "should have", "would have",
            "different", "change", "undo", "go back", "try again", "one more chance",
            "please", "negotiate", "compromise", "trade", "anything",
        ),
        fragments=(
            "The past is a door that only opens from the other side.",
            "Your mind builds bridges to places that no longer exist.",
            "What if is the cruelest question the heart can ask.",
            "Time is not a river you can swim upstream.",
            "The loop is a cage built from the blueprints of regret.",
        ),
        threshold=60,
    ),
    EmotionStageConfig(
        id=EmotionStage.DEPRESSION,
        name="Depression",
        poetic_name="The Hollow",
        description="Everything echoes. The world shrinks. You sit inside yourself and hear nothing back.",
        color="#78909c",
        gradient="from-gray-400 to-slate-400",
        range=(61, 80),
        keywords=(
            "empty", "hollow", "numb", "nothing", "pointless", "alone", "isolated",
            "dark", "heavy", "tired", "exhausted", "give up", "hopeless",
            "meaningless", "void", "silence", "echo", "distant",
        ),
        fragments=(
            "The hollow is not emptiness. It is the space where healing begins.",
            "Even the deepest well eventually finds water.",
            "Silence is not the absence of sound. It is the pause between breaths.",
            "The echo you hear is your own voice calling you home.",
            "In the hollow, you learn the difference between alone and lonely.",
        ),
        threshold=80,
    ),
    EmotionStageConfig(
        id=EmotionStage.ACCEPTANCE,
        name="Acceptance",
        poetic_name="The Shore",
        description="After the storm, you arrive somewhere new. You still carry it, but it carries you too.",
        color="#81c784",
        gradient="from-green-400 to-emerald-400",
        range=(81, 100),
        keywords=(
            "accept", "peace", "understand", "forgive", "let go", "release",
            "grateful", "learned", "grown", "stronger", "okay", "ready",
            "closure", "complete", "whole", "free", "light", "shore",
        ),
        fragments=(
            "The shore is not the end of the storm. It is the beginning of calm.",
            "You carry the ocean with you, but you are no longer drowning.",
            "Forgiveness is not forgetting. It is choosing to remember differently.",
            "The lighthouse was always there. You just had to learn to see it.",
            "Some journeys end not with arrival, but with the courage to rest.",
        ),
        threshold=100,
    ),
)


# ---------------------------------------------------------------------------
# Validation / loading
# ---------------------------------------------------------------------------

def validate_stages(stages: Sequence[EmotionStageConfig]) -> Tuple[EmotionStageConfig, ...]:
    """Return *stages* as a tuple, or raise StageConfigError."""
    stages = tuple(stages)
    if len(stages) != len(STAGE_ORDER):
        raise StageConfigError(f"expected {len(STAGE_ORDER)} stages, got {len(stages)}")

    ids = tuple(s.id for s in stages)
    if ids != STAGE_ORDER:
        raise StageConfigError(f"stages out of order: {[i.value for i in ids]}")

    if stages[0].min_score != SCORE_MIN:
        raise StageConfigError(f"first stage must start at {SCORE_MIN}")
    if stages[-1].max_score != SCORE_MAX:
        raise StageConfigError(f"last stage must end at {SCORE_MAX}")

    for prev, cur in zip(stages, stages[1:]):
        if cur.min_score != prev.max_score + 1:
            raise StageConfigError(
                f"{prev.id.value} {prev.range} and {cur.id.value} {cur.range} "
                "leave a gap or overlap"
            )
    for s in stages:
        if s.min_score >= s.max_score:
            raise StageConfigError(f"{s.id.value} has an empty range {s.range}")
    return stages


def load_stage_table(path: Optional[Path | str] = None) -> Tuple[EmotionStageConfig, ...]:
    """
    Build the stage table, applying content overrides from a JSON file.

    The file maps stage ids to partial entries, e.g.
    {"anger": {"keywords": ["furious", "rage"], "range": [21, 40]}}.
    Unknown ids and keys are ignored.
    """
    if path is None:
        return validate_stages(EMOTION_STAGES)

    path = Path(path)
    try:
        overrides = json.loads(path.read_text())
    except (OSError, ValueError) as exc:
        raise StageConfigError(f"cannot read stage table {path}: {exc}") from exc
    if not isinstance(overrides, dict):
        raise StageConfigError(f"stage table {path} must be a JSON object")

    stages = []
    for stage in EMOTION_STAGES:
        patch = overrides.get(stage.id.value) or {}
        changes = {}
        for key in ("name", "poetic_name", "description", "color", "gradient"):
            if key in patch:
                changes[key] = str(patch[key])
        for key in ("keywords", "fragments"):
            if key in patch:
                values = patch[key]
                if not isinstance(values, list):
                    raise StageConfigError(f"{key} for {stage.id.value} must be a list, got {values!r}")
                changes[key] = tuple(str(v).lower() if key == "keywords" else str(v) for v in values)
        if "range" in patch:
            try:
                lo, hi = patch["range"]
                changes["range"] = (int(lo), int(hi))
            except (TypeError, ValueError) as exc:
                raise StageConfigError(f"bad range for {stage.id.value}: {patch['range']!r}") from exc
        if "threshold" in patch:
            try:
                changes["threshold"] = int(patch["threshold"])
            except (TypeError, ValueError) as exc:
                raise StageConfigError(
                    f"bad threshold for {stage.id.value}: {patch['threshold']!r}"
                ) from exc
        stages.append(replace(stage, **changes))

    logger.info("Loaded stage table overrides from %s", path)
    return validate_stages(stages)


# Checked at import so a broken table fails fast
validate_stages(EMOTION_STAGES)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def clamp_score(score: float) -> float:
    if score != score:  # NaN
        return float(SCORE_MIN)
    return max(float(SCORE_MIN), min(float(score), float(SCORE_MAX)))


def stage_by_score(
    score: float, stages: Sequence[EmotionStageConfig] = EMOTION_STAGES
) -> EmotionStageConfig:
    """
    The stage whose range holds *score*.

    Total over [0, 100]: a fractional score between two integer ranges
    (e.g. 20.5) belongs to the lower stage.
    """
    s = clamp_score(score)
    for stage in reversed(stages):
        if s >= stage.min_score:
            return stage
    return stages[0]


def get_stage(
    stage_id: EmotionStage | str, stages: Sequence[EmotionStageConfig] = EMOTION_STAGES
) -> Optional[EmotionStageConfig]:
    for stage in stages:
        if stage.id == stage_id:
            return stage
    return None


def next_stage(stage_id: EmotionStage | str) -> Optional[EmotionStage]:
    try:
        idx = STAGE_ORDER.index(EmotionStage(stage_id))
    except ValueError:
        return None
    return STAGE_ORDER[idx + 1] if idx + 1 < len(STAGE_ORDER) else None


def stage_progress(
    score: float,
    stage_id: EmotionStage | str,
    stages: Sequence[EmotionStageConfig] = EMOTION_STAGES,
) -> float:
    """How far *score* sits through the stage's range, as 0-100."""
    stage = get_stage(stage_id, stages)
    if stage is None:
        return 0.0
    lo, hi = stage.range
    if hi <= lo:
        return 0.0
    return max(0.0, min((clamp_score(score) - lo) / (hi - lo) * 100.0, 100.0))


def stage_color(stage_id: EmotionStage | str) -> str:
    stage = get_stage(stage_id)
    return stage.color if stage else EMOTION_STAGES[0].color


def stage_gradient(stage_id: EmotionStage | str) -> str:
    stage = get_stage(stage_id)
    return stage.gradient if stage else EMOTION_STAGES[0].gradient


def random_fragment(
    stage_id: Optional[EmotionStage | str] = None,
    stages: Sequence[EmotionStageConfig] = EMOTION_STAGES,
    rng: Optional[random.Random] = None,
) -> str:
    """A narrative fragment for *stage_id*, or from any stage when omitted."""
    rng = rng or random
    if stage_id is not None:
        stage = get_stage(stage_id, stages)
        if stage and stage.fragments:
            return rng.choice(stage.fragments)
    pool = [f for s in stages for f in s.fragments]
    return rng.choice(pool) if pool else ""


def stage_table(stages: Sequence[EmotionStageConfig] = EMOTION_STAGES) -> Dict[str, dict]:
    return {s.id.value: s.to_dict() for s in stages}
