"""Data shapes for transcripts, hint logs, sub-scores and feedback reports.

Inputs and the terminal report are pydantic models so they validate and
serialize the camelCase JSON interchange shape. Intermediate values produced
inside a single analysis run (labels, sub-scores) are frozen dataclasses.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Speaker(str, Enum):
    """Who authored a turn."""

    USER = "user"
    COUNTERPART = "counterpart"
    SYSTEM = "system"


# Role names used by the chat collaborator
_SPEAKER_ALIASES = {
    "learner": Speaker.USER,
    "stakeholder": Speaker.COUNTERPART,
    "ai": Speaker.COUNTERPART,
    "assistant": Speaker.COUNTERPART,
}


class HintEventType(str, Enum):
    """What the trainee did with a coaching hint."""

    SHOWN = "shown"
    CLICKED = "clicked"
    EDITED = "edited"
    ASKED = "asked"


class AnalysisMode(str, Enum):
    PRACTICE = "practice"
    ASSESS = "assess"


class AnalysisSource(str, Enum):
    """Which tier of the fallback chain produced a report."""

    REMOTE = "remote"
    LOCAL = "local"
    DEFAULT = "default"


class SubScoreKind(str, Enum):
    COVERAGE = "coverage"
    TECHNIQUE = "technique"
    INDEPENDENCE = "independence"


class EvidenceKind(str, Enum):
    DIRECT_QUESTION = "direct_question"
    FOLLOW_UP = "follow_up"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# =============================================================================
# Inputs
# =============================================================================

class Turn(_CamelModel):
    """One message in a practice or assessment conversation."""

    index: int
    speaker: Speaker
    text: str = ""
    timestamp_millis: int = 0

    @field_validator("speaker", mode="before")
    @classmethod
    def _map_role_names(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            return _SPEAKER_ALIASES.get(lowered, lowered)
        return value

    @field_validator("text", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return "" if value is None else str(value)


class HintEvent(_CamelModel):
    """A coaching-hint interaction logged during the live meeting."""

    session_id: str = ""
    area_id: str | None = None
    event_type: HintEventType
    payload_text: str | None = None
    timestamp_millis: int = 0


# =============================================================================
# Intermediate values
# =============================================================================

@dataclass(frozen=True)
class TurnLabel:
    """Heuristic labels for one turn. Non-user turns carry all-false labels."""

    turn_index: int
    speaker: Speaker
    is_question: bool = False
    is_open_question: bool = False
    is_follow_up: bool = False
    mentions_solution_language: bool = False
    has_greeting: bool = False
    matched_areas: frozenset[str] = frozenset()

    @property
    def is_user(self) -> bool:
        return self.speaker is Speaker.USER

    @property
    def is_closed_question(self) -> bool:
        return self.is_question and not self.is_open_question


@dataclass(frozen=True)
class TechniqueMetrics:
    open_ratio: float = 0.0
    follow_up_ratio: float = 0.0
    talk_balance: float = 0.0
    early_solutioning: bool = False
    closed_count: int = 0
    question_count: int = 0
    greeted: bool = False


@dataclass(frozen=True)
class SubScore:
    """Output of one scorer. ``per_area`` is empty for technique."""

    kind: SubScoreKind
    aggregate: float
    per_area: Mapping[str, float] = field(default_factory=dict)
    metrics: TechniqueMetrics | None = None


# =============================================================================
# Feedback report
# =============================================================================

class TechniqueReport(_CamelModel):
    open_ratio: float = 0.0
    follow_up_ratio: float = 0.0
    talk_balance: float = 0.0
    early_solutioning: bool = False
    closed_count: int = 0
    question_count: int = 0
    greeted: bool = False
    score: float = 0.0


class ClosedQuestionRewrite(_CamelModel):
    turn_index: int
    original: str
    rewrite: str


class MiniLesson(_CamelModel):
    area_id: str
    tip: str


class Coaching(_CamelModel):
    closed_question_rewrites: list[ClosedQuestionRewrite] = Field(default_factory=list)
    mini_lessons: list[MiniLesson] = Field(default_factory=list)


class Evidence(_CamelModel):
    area_id: str
    turn_index: int
    kind: EvidenceKind


class FeedbackReport(_CamelModel):
    """The scored outcome of one completed session. Immutable once built."""

    session_id: str
    stage_id: str
    mode: AnalysisMode
    source: AnalysisSource
    coverage_scores: dict[str, float]
    technique: TechniqueReport
    independence: dict[str, float]
    overall: float
    passed: bool
    covered_areas: list[str]
    missed_areas: list[str]
    next_time_scripts: list[str] = Field(default_factory=list)
    coaching: Coaching = Field(default_factory=Coaching)
    evidence: list[Evidence] = Field(default_factory=list)


class AnalysisRequest(_CamelModel):
    """Stateless analysis input: ``{sessionId?, stageId, mode, turns, hints}``."""

    session_id: str = ""
    stage_id: str
    mode: AnalysisMode = AnalysisMode.ASSESS
    turns: list[Turn] = Field(default_factory=list)
    hints: list[HintEvent] = Field(default_factory=list)
