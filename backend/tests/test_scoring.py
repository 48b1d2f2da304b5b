"""
Tests for the coverage, technique and independence scorers.
"""

import logging

import pytest

from ba_training.analysis.catalog import get_stage
from ba_training.analysis.classifier import classify
from ba_training.analysis.schemas import EvidenceKind, Speaker, SubScoreKind, TechniqueMetrics
from ba_training.analysis.scoring import (
    COVERAGE_FLOOR,
    EARLY_SOLUTIONING_PENALTY,
    collect_evidence,
    covered_areas,
    detect_early_solutioning,
    missed_areas,
    score_coverage,
    score_independence,
    score_technique,
    talk_balance_score,
    technique_composite,
)


# =============================================================================
# Coverage
# =============================================================================

class TestCoverage:
    """Tests for per-area coverage."""

    @pytest.mark.unit
    def test_partial_coverage(self, problem_stage, partial_coverage_turns):
        coverage = score_coverage(classify(partial_coverage_turns, problem_stage), problem_stage)

        assert coverage.kind is SubScoreKind.COVERAGE
        assert coverage.per_area["pain_points"] == 1.0
        assert coverage.per_area["customer_impact"] == 1.0
        assert coverage.per_area["blockers"] == COVERAGE_FLOOR
        assert coverage.aggregate == pytest.approx((2 + 3 * COVERAGE_FLOOR) / 5)

    @pytest.mark.unit
    def test_covered_and_missed_partition_areas(self, problem_stage, partial_coverage_turns):
        coverage = score_coverage(classify(partial_coverage_turns, problem_stage), problem_stage)
        covered = covered_areas(coverage, problem_stage)
        missed = missed_areas(coverage, problem_stage)

        assert covered == ["pain_points", "customer_impact"]
        assert missed == ["blockers", "handoffs", "constraints"]
        assert sorted(covered + missed) == sorted(problem_stage.area_ids)

    @pytest.mark.unit
    def test_statements_do_not_cover(self, problem_stage, build_turns):
        turns = build_turns(
            "I know the budget is tight.",
            (Speaker.COUNTERPART, "Customers complain about delays."),
        )
        coverage = score_coverage(classify(turns, problem_stage), problem_stage)
        assert covered_areas(coverage, problem_stage) == []

    @pytest.mark.unit
    def test_full_coverage(self, problem_stage, full_coverage_turns):
        coverage = score_coverage(classify(full_coverage_turns, problem_stage), problem_stage)
        assert coverage.aggregate == 1.0

    @pytest.mark.unit
    def test_evidence(self, problem_stage, full_coverage_turns):
        evidence = collect_evidence(classify(full_coverage_turns, problem_stage), problem_stage)
        by_area = {e.area_id: e for e in evidence}

        assert by_area["pain_points"].turn_index == 2
        assert by_area["pain_points"].kind is EvidenceKind.DIRECT_QUESTION
        assert by_area["blockers"].kind is EvidenceKind.FOLLOW_UP


# =============================================================================
# Technique
# =============================================================================

class TestTalkBalance:
    """Tests for the talk balance curve."""

    @pytest.mark.unit
    @pytest.mark.parametrize("user,counterpart,expected", [
        (50, 50, 1.0),
        (25, 75, 0.5),
        (75, 25, 0.5),
        (100, 0, 0.0),
        (0, 100, 0.0),
        (0, 0, 0.0),
    ])
    def test_curve(self, user, counterpart, expected):
        assert talk_balance_score(user, counterpart) == pytest.approx(expected)


class TestTechnique:
    """Tests for the technique composite."""

    @pytest.mark.unit
    def test_open_questions_without_counterpart(self, problem_stage, partial_coverage_turns):
        technique = score_technique(
            classify(partial_coverage_turns, problem_stage), problem_stage, partial_coverage_turns
        )
        metrics = technique.metrics

        assert metrics.open_ratio == 1.0
        assert metrics.question_count == 2
        assert metrics.closed_count == 0
        assert metrics.follow_up_ratio == 0.0
        assert metrics.talk_balance == 0.0
        assert metrics.greeted
        assert technique.aggregate == pytest.approx(0.4)

    @pytest.mark.unit
    def test_closed_questions_reduce_open_ratio(self, problem_stage, closed_question_turns):
        technique = score_technique(
            classify(closed_question_turns, problem_stage), problem_stage, closed_question_turns
        )
        assert technique.metrics.open_ratio == 0.0
        assert technique.metrics.closed_count == 3

    @pytest.mark.unit
    def test_strong_technique(self, problem_stage, full_coverage_turns):
        technique = score_technique(
            classify(full_coverage_turns, problem_stage), problem_stage, full_coverage_turns
        )
        assert technique.metrics.open_ratio == 1.0
        assert technique.metrics.follow_up_ratio == pytest.approx(0.8)
        assert not technique.metrics.early_solutioning
        assert technique.aggregate > 0.8

    @pytest.mark.unit
    def test_no_questions(self, problem_stage, build_turns):
        turns = build_turns("Thanks.", "Okay.")
        technique = score_technique(classify(turns, problem_stage), problem_stage, turns)
        assert technique.metrics.question_count == 0
        assert technique.metrics.open_ratio == 0.0
        assert technique.aggregate == 0.0

    @pytest.mark.unit
    def test_early_solutioning_penalty(self):
        metrics = TechniqueMetrics(open_ratio=1.0, follow_up_ratio=1.0, talk_balance=1.0)
        penalized = TechniqueMetrics(
            open_ratio=1.0, follow_up_ratio=1.0, talk_balance=1.0, early_solutioning=True
        )
        assert technique_composite(metrics) == pytest.approx(1.0)
        assert technique_composite(penalized) == pytest.approx(1.0 - EARLY_SOLUTIONING_PENALTY)

    @pytest.mark.unit
    def test_composite_never_negative(self):
        assert technique_composite(TechniqueMetrics(early_solutioning=True)) == 0.0


class TestEarlySolutioning:
    """Tests for solution talk before the problem is explored."""

    @pytest.mark.unit
    def test_solution_first(self, problem_stage, early_solution_turns):
        labels = classify(early_solution_turns, problem_stage)
        assert detect_early_solutioning(labels, problem_stage)

    @pytest.mark.unit
    def test_solution_after_exploring(self, problem_stage, build_turns):
        turns = build_turns(
            "What is the biggest problem?",
            "What slows the work down?",
            "How does it affect customers?",
            "What would a good solution look like?",
        )
        assert not detect_early_solutioning(classify(turns, problem_stage), problem_stage)

    @pytest.mark.unit
    def test_question_reaching_new_area_is_exploring(self, problem_stage, build_turns):
        turns = build_turns("What limitations should we keep in mind?")
        assert not detect_early_solutioning(classify(turns, problem_stage), problem_stage)

    @pytest.mark.unit
    def test_solution_question_on_covered_area_is_early(self, problem_stage, build_turns):
        turns = build_turns(
            "What is the biggest problem?",
            "Should we fix the problem with a new tool?",
        )
        assert detect_early_solutioning(classify(turns, problem_stage), problem_stage)

    @pytest.mark.unit
    def test_not_checked_in_design_stages(self, build_turns):
        stage = get_stage("to_be")
        turns = build_turns("We should implement a new system.", "What is the goal?")
        assert not detect_early_solutioning(classify(turns, stage), stage)


# =============================================================================
# Independence
# =============================================================================

class TestIndependence:
    """Tests for hint-based independence."""

    @pytest.mark.unit
    def test_no_hints(self, problem_stage):
        independence = score_independence([], problem_stage)
        assert independence.kind is SubScoreKind.INDEPENDENCE
        assert independence.aggregate == 1.0
        assert set(independence.per_area) == set(problem_stage.area_ids)

    @pytest.mark.unit
    def test_hint_costs_by_area(self, problem_stage, build_hints):
        hints = build_hints(("asked", "pain_points"), ("shown", "blockers"), ("clicked", "blockers"))
        independence = score_independence(hints, problem_stage)

        assert independence.per_area["pain_points"] == pytest.approx(0.6)
        assert independence.per_area["blockers"] == pytest.approx(0.7)
        assert independence.per_area["handoffs"] == 1.0

    @pytest.mark.unit
    def test_unscoped_hint_spreads_cost(self, problem_stage, build_hints):
        independence = score_independence(build_hints(("edited", None)), problem_stage)
        for area_id in problem_stage.area_ids:
            assert independence.per_area[area_id] == pytest.approx(1.0 - 0.25 / 5)

    @pytest.mark.unit
    def test_per_area_floor_is_zero(self, problem_stage, build_hints):
        hints = build_hints(*[("asked", "constraints")] * 4)
        assert score_independence(hints, problem_stage).per_area["constraints"] == 0.0

    @pytest.mark.unit
    def test_unknown_area_ignored(self, problem_stage, build_hints, caplog):
        with caplog.at_level(logging.WARNING, logger="ba_training.analysis.scoring"):
            independence = score_independence(build_hints(("asked", "architecture")), problem_stage)

        assert independence.aggregate == 1.0
        assert "architecture" in caplog.text
