"""Coverage, technique and independence scorers.

The three scorers share no state and may run in any order. Each returns a
``SubScore`` whose values lie in [0, 1].
"""

import logging
from collections.abc import Iterable, Sequence

from ba_training.analysis.catalog import StageDefinition
from ba_training.analysis.schemas import (
    Evidence,
    EvidenceKind,
    HintEvent,
    HintEventType,
    Speaker,
    SubScore,
    SubScoreKind,
    TechniqueMetrics,
    Turn,
    TurnLabel,
)
from ba_training.analysis.text import count_words

logger = logging.getLogger(__name__)

# Coverage
COVERAGE_HIT = 1.0
COVERAGE_FLOOR = 0.1  # "not demonstrated", kept above zero on purpose
COVERAGE_CUTOFF = 0.5

# Technique
OPEN_WEIGHT = 0.4
FOLLOW_UP_WEIGHT = 0.3
TALK_BALANCE_WEIGHT = 0.3
IDEAL_COUNTERPART_SHARE = 0.5
EARLY_SOLUTIONING_PENALTY = 0.2
EARLY_SOLUTIONING_MIN_AREAS = 3

# Independence: cost of each hint interaction against its area
HINT_COSTS: dict[HintEventType, float] = {
    HintEventType.SHOWN: 0.1,
    HintEventType.CLICKED: 0.2,
    HintEventType.EDITED: 0.25,
    HintEventType.ASKED: 0.4,
}


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def mean(values: Iterable[float]) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0


def _user_questions(labels: Iterable[TurnLabel]) -> list[TurnLabel]:
    return [label for label in labels if label.is_user and label.is_question]


# =============================================================================
# Coverage
# =============================================================================

def score_coverage(labels: Sequence[TurnLabel], stage: StageDefinition) -> SubScore:
    """An area is covered once any user question touches one of its keywords."""
    touched: set[str] = set()
    for label in _user_questions(labels):
        touched |= label.matched_areas

    per_area = {
        area_id: COVERAGE_HIT if area_id in touched else COVERAGE_FLOOR
        for area_id in stage.area_ids
    }
    return SubScore(
        kind=SubScoreKind.COVERAGE,
        aggregate=mean(per_area.values()),
        per_area=per_area,
    )


def covered_areas(coverage: SubScore, stage: StageDefinition) -> list[str]:
    return [a for a in stage.area_ids if coverage.per_area.get(a, 0.0) >= COVERAGE_CUTOFF]


def missed_areas(coverage: SubScore, stage: StageDefinition) -> list[str]:
    return [a for a in stage.area_ids if coverage.per_area.get(a, 0.0) < COVERAGE_CUTOFF]


def collect_evidence(labels: Sequence[TurnLabel], stage: StageDefinition) -> list[Evidence]:
    """Which user questions covered which areas, in transcript order."""
    evidence = []
    for label in _user_questions(labels):
        kind = EvidenceKind.FOLLOW_UP if label.is_follow_up else EvidenceKind.DIRECT_QUESTION
        for area_id in stage.area_ids:
            if area_id in label.matched_areas:
                evidence.append(Evidence(area_id=area_id, turn_index=label.turn_index, kind=kind))
    return evidence


# =============================================================================
# Technique
# =============================================================================

def talk_balance_score(user_words: int, counterpart_words: int) -> float:
    """
    Score how evenly the conversation was shared.

    Symmetric around ``IDEAL_COUNTERPART_SHARE``: 1.0 for an even split,
    falling linearly to 0.0 when one side does all the talking. An empty
    conversation scores 0.
    """
    total = user_words + counterpart_words
    if total == 0:
        return 0.0
    share = counterpart_words / total
    return clamp(1.0 - abs(share - IDEAL_COUNTERPART_SHARE) / 0.5)


def detect_early_solutioning(labels: Sequence[TurnLabel], stage: StageDefinition) -> bool:
    """Solution talk before enough of the problem space was explored.

    Only checked in exploratory stages. A question that reaches an area not
    yet covered is exploring the problem, so its own wording ("what should
    we keep in mind?") never counts as solution talk.
    """
    if not stage.exploratory:
        return False

    needed = min(EARLY_SOLUTIONING_MIN_AREAS, len(stage.required_areas))
    covered: set[str] = set()
    for label in labels:
        if not label.is_user:
            continue
        new_areas = label.matched_areas - covered if label.is_question else frozenset()
        if label.mentions_solution_language and not new_areas and len(covered) < needed:
            return True
        covered |= new_areas
    return False


def technique_composite(metrics: TechniqueMetrics) -> float:
    composite = (
        OPEN_WEIGHT * metrics.open_ratio
        + FOLLOW_UP_WEIGHT * metrics.follow_up_ratio
        + TALK_BALANCE_WEIGHT * metrics.talk_balance
    )
    if metrics.early_solutioning:
        composite -= EARLY_SOLUTIONING_PENALTY
    return clamp(composite)


def score_technique(
    labels: Sequence[TurnLabel],
    stage: StageDefinition,
    turns: Sequence[Turn],
) -> SubScore:
    questions = _user_questions(labels)
    question_count = len(questions)
    open_count = sum(1 for label in questions if label.is_open_question)
    follow_up_count = sum(1 for label in questions if label.is_follow_up)

    open_ratio = open_count / question_count if question_count else 0.0
    follow_up_ratio = follow_up_count / question_count if question_count else 0.0

    user_words = sum(count_words(t.text) for t in turns if t.speaker is Speaker.USER)
    counterpart_words = sum(count_words(t.text) for t in turns if t.speaker is Speaker.COUNTERPART)
    talk_balance = talk_balance_score(user_words, counterpart_words)

    metrics = TechniqueMetrics(
        open_ratio=open_ratio,
        follow_up_ratio=follow_up_ratio,
        talk_balance=talk_balance,
        early_solutioning=detect_early_solutioning(labels, stage),
        closed_count=question_count - open_count,
        question_count=question_count,
        greeted=any(label.has_greeting for label in labels if label.is_user),
    )
    return SubScore(kind=SubScoreKind.TECHNIQUE, aggregate=technique_composite(metrics), metrics=metrics)


# =============================================================================
# Independence
# =============================================================================

def score_independence(hint_events: Iterable[HintEvent], stage: StageDefinition) -> SubScore:
    """
    Reduce each area's score by the hints the trainee leaned on.

    Hints tied to no area spread their cost evenly over all required areas.
    Hints naming an area outside this stage are ignored.
    """
    area_ids = stage.area_ids
    penalties = {area_id: 0.0 for area_id in area_ids}

    for event in hint_events:
        cost = HINT_COSTS[event.event_type]
        if event.area_id is None:
            for area_id in area_ids:
                penalties[area_id] += cost / len(area_ids)
        elif event.area_id in penalties:
            penalties[event.area_id] += cost
        else:
            logger.warning(
                f"[Independence] Ignoring {event.event_type.value} hint for area "
                f"{event.area_id!r} not in stage {stage.stage_id!r}"
            )

    per_area = {area_id: clamp(1.0 - penalties[area_id]) for area_id in area_ids}
    return SubScore(
        kind=SubScoreKind.INDEPENDENCE,
        aggregate=mean(per_area.values()),
        per_area=per_area,
    )
