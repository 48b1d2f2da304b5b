"""Combine sub-scores into a verdict and write the coaching text."""

from collections.abc import Sequence
from dataclasses import dataclass

from ba_training.analysis.catalog import StageDefinition
from ba_training.analysis.errors import ContractError
from ba_training.analysis.schemas import (
    AnalysisMode,
    AnalysisSource,
    ClosedQuestionRewrite,
    Coaching,
    FeedbackReport,
    MiniLesson,
    SubScore,
    SubScoreKind,
    TechniqueMetrics,
    TechniqueReport,
    Turn,
    TurnLabel,
)
from ba_training.analysis.scoring import (
    COVERAGE_FLOOR,
    clamp,
    collect_evidence,
    covered_areas,
    detect_early_solutioning,
    missed_areas,
)
from ba_training.analysis.text import rewrite_to_open

MAX_SCRIPTS = 5
MAX_CLOSED_REWRITES = 3
MAX_MINI_LESSONS = 3
# Covered areas whose independence drops below this still get a lesson
WEAK_INDEPENDENCE = 0.6
INDEPENDENCE_FLOOR = 0.0

OPEN_QUESTION_TIP = "Ask open-ended questions that start with What, How, Why, or Tell me about..."
FOLLOW_UP_TIP = "Use follow-up questions to dig deeper into what the stakeholder just told you."
EARLY_SOLUTIONING_TIP = (
    "Hold back on solutions until you understand the problem: explore pain points, "
    "blockers and impact first."
)
INTRODUCTION_TIP = "Start by introducing yourself and the purpose of the meeting."


@dataclass(frozen=True)
class Weights:
    coverage: float
    technique: float
    independence: float


# Hints are expected while practising, so independence only counts in assessments
WEIGHTS: dict[AnalysisMode, Weights] = {
    AnalysisMode.ASSESS: Weights(coverage=0.7, technique=0.2, independence=0.1),
    AnalysisMode.PRACTICE: Weights(coverage=0.75, technique=0.25, independence=0.0),
}


def _r(value: float) -> float:
    return round(value, 4)


def _check_sub_score(sub: SubScore, kind: SubScoreKind, stage: StageDefinition) -> None:
    if sub.kind is not kind:
        raise ContractError(f"Expected a {kind.value} sub-score, got {sub.kind.value}")
    if kind is SubScoreKind.TECHNIQUE:
        return
    if set(sub.per_area) != set(stage.area_ids):
        raise ContractError(
            f"{kind.value} areas {sorted(sub.per_area)} do not match stage "
            f"{stage.stage_id!r} areas {sorted(stage.area_ids)}"
        )


def overall_score(
    coverage: SubScore,
    technique: SubScore,
    independence: SubScore,
    mode: AnalysisMode,
) -> float:
    weights = WEIGHTS[mode]
    return _r(clamp(
        weights.coverage * coverage.aggregate
        + weights.technique * technique.aggregate
        + weights.independence * independence.aggregate
    ))


def next_time_scripts(
    missed: Sequence[str],
    stage: StageDefinition,
    metrics: TechniqueMetrics,
) -> list[str]:
    """One open question per missed area, then technique tips, up to ``MAX_SCRIPTS``."""
    scripts = [stage.area(area_id).sample_questions[0] for area_id in missed]

    tips = []
    if metrics.question_count == 0 or metrics.open_ratio < 0.6:
        tips.append(OPEN_QUESTION_TIP)
    if metrics.follow_up_ratio < 0.3:
        tips.append(FOLLOW_UP_TIP)
    if metrics.early_solutioning:
        tips.append(EARLY_SOLUTIONING_TIP)
    if not metrics.greeted:
        tips.append(INTRODUCTION_TIP)

    return (scripts + tips)[:MAX_SCRIPTS]


def closed_question_rewrites(
    labels: Sequence[TurnLabel],
    turns: Sequence[Turn],
) -> list[ClosedQuestionRewrite]:
    text_by_index = {turn.index: turn.text for turn in turns}
    rewrites = []
    for label in labels:
        if len(rewrites) >= MAX_CLOSED_REWRITES:
            break
        if label.is_user and label.is_closed_question:
            original = text_by_index.get(label.turn_index, "")
            rewrites.append(
                ClosedQuestionRewrite(
                    turn_index=label.turn_index,
                    original=original,
                    rewrite=rewrite_to_open(original),
                )
            )
    return rewrites


def mini_lessons(
    missed: Sequence[str],
    independence: SubScore,
    stage: StageDefinition,
) -> list[MiniLesson]:
    weak = list(missed) + [
        area_id
        for area_id in stage.area_ids
        if area_id not in missed and independence.per_area[area_id] < WEAK_INDEPENDENCE
    ]
    return [
        MiniLesson(area_id=area_id, tip=stage.area(area_id).lesson)
        for area_id in weak[:MAX_MINI_LESSONS]
    ]


def compose(
    coverage: SubScore,
    technique: SubScore,
    independence: SubScore,
    stage: StageDefinition,
    mode: AnalysisMode,
    *,
    labels: Sequence[TurnLabel],
    turns: Sequence[Turn],
    session_id: str,
    source: AnalysisSource = AnalysisSource.LOCAL,
    scripts: Sequence[str] | None = None,
) -> FeedbackReport:
    """
    Build the feedback report for one session.

    ``scripts`` overrides the generated next-time scripts (the remote tier
    may supply its own).

    Raises:
        ContractError: if a sub-score does not cover exactly the stage's areas.
    """
    _check_sub_score(coverage, SubScoreKind.COVERAGE, stage)
    _check_sub_score(technique, SubScoreKind.TECHNIQUE, stage)
    _check_sub_score(independence, SubScoreKind.INDEPENDENCE, stage)

    metrics = technique.metrics or TechniqueMetrics()
    overall = overall_score(coverage, technique, independence, mode)
    covered = covered_areas(coverage, stage)
    missed = missed_areas(coverage, stage)

    return FeedbackReport(
        session_id=session_id,
        stage_id=stage.stage_id,
        mode=mode,
        source=source,
        coverage_scores={a: _r(coverage.per_area[a]) for a in stage.area_ids},
        technique=TechniqueReport(
            open_ratio=_r(metrics.open_ratio),
            follow_up_ratio=_r(metrics.follow_up_ratio),
            talk_balance=_r(metrics.talk_balance),
            early_solutioning=metrics.early_solutioning,
            closed_count=metrics.closed_count,
            question_count=metrics.question_count,
            greeted=metrics.greeted,
            score=_r(technique.aggregate),
        ),
        independence={a: _r(independence.per_area[a]) for a in stage.area_ids},
        overall=overall,
        passed=overall >= stage.pass_threshold,
        covered_areas=covered,
        missed_areas=missed,
        next_time_scripts=(
            list(scripts)[:MAX_SCRIPTS] if scripts else next_time_scripts(missed, stage, metrics)
        ),
        coaching=Coaching(
            closed_question_rewrites=closed_question_rewrites(labels, turns),
            mini_lessons=mini_lessons(missed, independence, stage),
        ),
        evidence=collect_evidence(labels, stage),
    )


def default_report(
    stage: StageDefinition,
    mode: AnalysisMode,
    *,
    session_id: str,
    labels: Sequence[TurnLabel] = (),
    turns: Sequence[Turn] = (),
) -> FeedbackReport:
    """
    The low-confidence report for a transcript too short to judge.

    Coverage sits at its floor for every area, technique and independence at
    zero. What the trainee did say still shows up: the question counts,
    greeting and early-solutioning flags come from ``labels``, and closed
    questions get rewrites.
    """
    coverage = SubScore(
        kind=SubScoreKind.COVERAGE,
        aggregate=COVERAGE_FLOOR,
        per_area={area_id: COVERAGE_FLOOR for area_id in stage.area_ids},
    )
    user_labels = [label for label in labels if label.is_user]
    questions = [label for label in user_labels if label.is_question]
    metrics = TechniqueMetrics(
        early_solutioning=detect_early_solutioning(labels, stage),
        closed_count=sum(1 for label in questions if label.is_closed_question),
        question_count=len(questions),
        greeted=any(label.has_greeting for label in user_labels),
    )
    technique = SubScore(kind=SubScoreKind.TECHNIQUE, aggregate=0.0, metrics=metrics)
    independence = SubScore(
        kind=SubScoreKind.INDEPENDENCE,
        aggregate=INDEPENDENCE_FLOOR,
        per_area={area_id: INDEPENDENCE_FLOOR for area_id in stage.area_ids},
    )
    return compose(
        coverage,
        technique,
        independence,
        stage,
        mode,
        labels=labels,
        turns=turns,
        session_id=session_id,
        source=AnalysisSource.DEFAULT,
    )
