"""Session feedback analyzer with an optional Claude-assisted tier.

Analysis runs through three tiers, each returning a report or None:

1. ``try_remote`` asks Claude for coverage and technique judgements and merges
   them with the local heuristics.
2. ``try_local`` runs the deterministic heuristic pipeline.
3. ``default_report`` always succeeds.
"""

import asyncio
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Any

from anthropic import AsyncAnthropic
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ba_training.analysis.catalog import StageDefinition, get_stage
from ba_training.analysis.classifier import classify, order_turns, user_turn_count
from ba_training.analysis.composer import compose, default_report
from ba_training.analysis.errors import ContractError
from ba_training.analysis.schemas import (
    AnalysisMode,
    AnalysisRequest,
    AnalysisSource,
    FeedbackReport,
    HintEvent,
    SubScore,
    SubScoreKind,
    TechniqueMetrics,
    Turn,
    TurnLabel,
)
from ba_training.analysis.scoring import (
    COVERAGE_FLOOR,
    COVERAGE_HIT,
    mean,
    score_coverage,
    score_independence,
    score_technique,
    technique_composite,
)
from ba_training.config import settings
from ba_training.prompts import FEEDBACK_SYSTEM_PROMPT, get_feedback_prompt
from ba_training.services.base import BaseAnalyzer

logger = logging.getLogger(__name__)


def _to_unit(value: Any) -> float | None:
    """Clamp a model-supplied score to [0, 100] and scale it to [0, 1].

    The prompt asks for whole numbers on the 0-100 scale, so a whole ``1``
    is one percent, not a full score. Only non-whole values below 1 (``0.75``)
    are read as fractions. Anything that is not a finite number becomes None.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    value = max(0.0, min(100.0, float(value)))
    return value if value < 1.0 and not value.is_integer() else value / 100.0


class RemoteFeedback(BaseModel):
    """Sanitized view of the model's JSON answer. Every field is optional."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    coverage_scores: dict[str, float] = Field(default_factory=dict)
    covered_areas: list[str] = Field(default_factory=list)
    missed_areas: list[str] = Field(default_factory=list)
    technique_score: float | None = None
    open_ratio: float | None = None
    follow_up_ratio: float | None = None
    talk_balance: float | None = None
    early_solutioning: bool | None = None
    next_time_scripts: list[str] = Field(default_factory=list)

    @field_validator("coverage_scores", mode="before")
    @classmethod
    def _sanitize_scores(cls, value):
        if not isinstance(value, Mapping):
            return {}
        scores = {}
        for area_id, raw in value.items():
            score = _to_unit(raw)
            if score is not None:
                scores[str(area_id)] = score
        return scores

    @field_validator("technique_score", "open_ratio", "follow_up_ratio", "talk_balance", mode="before")
    @classmethod
    def _sanitize_number(cls, value):
        return _to_unit(value)

    @field_validator("early_solutioning", mode="before")
    @classmethod
    def _sanitize_flag(cls, value):
        return value if isinstance(value, bool) else None

    @field_validator("covered_areas", "missed_areas", "next_time_scripts", mode="before")
    @classmethod
    def _sanitize_strings(cls, value):
        if not isinstance(value, list):
            return []
        return [str(item).strip() for item in value if item is not None and str(item).strip()]


class FeedbackAnalyzer(BaseAnalyzer):
    """Turns a finished session into a ``FeedbackReport``."""

    def __init__(
        self,
        client: AsyncAnthropic | None = None,
        model: str | None = None,
        remote_enabled: bool | None = None,
        timeout_seconds: float | None = None,
        max_tokens: int | None = None,
        min_user_turns: int | None = None,
    ) -> None:
        super().__init__(client=client, model=model)
        self.remote_enabled = (
            settings.remote_analysis_enabled if remote_enabled is None else remote_enabled
        )
        self.timeout_seconds = timeout_seconds or settings.feedback_llm_timeout_seconds
        self.max_tokens = max_tokens or settings.feedback_llm_max_tokens
        self.min_user_turns = (
            settings.min_user_turns if min_user_turns is None else min_user_turns
        )

    async def analyze(
        self,
        session_id: str,
        stage_id: str,
        mode: AnalysisMode | str,
        turns: Iterable[Turn],
        hint_events: Iterable[HintEvent] = (),
    ) -> FeedbackReport:
        """
        Analyze a completed session.

        Always returns a well-formed report, except for an unknown stage
        (``UnknownStageError``) or a catalog/code mismatch (``ContractError``).
        """
        stage = get_stage(stage_id)
        mode = AnalysisMode(mode)
        turns = order_turns(turns)
        hint_events = list(hint_events)
        labels = classify(turns, stage)

        user_turns = user_turn_count(turns)
        logger.info(
            f"[FeedbackAnalyzer] Analyzing session {session_id}: stage={stage.stage_id} "
            f"mode={mode.value} turns={len(turns)} user_turns={user_turns} hints={len(hint_events)}"
        )

        if user_turns == 0 or user_turns < self.min_user_turns:
            logger.info(
                f"[FeedbackAnalyzer] Session {session_id} has {user_turns} user turns "
                f"(minimum {self.min_user_turns}), using default report"
            )
            return default_report(stage, mode, session_id=session_id, labels=labels, turns=turns)

        report = (
            await self.try_remote(stage, mode, session_id, turns, hint_events, labels)
            or self.try_local(stage, mode, session_id, turns, hint_events, labels)
            or default_report(stage, mode, session_id=session_id, labels=labels, turns=turns)
        )
        logger.info(
            f"[FeedbackAnalyzer] Session {session_id} scored {report.overall} "
            f"(passed={report.passed}, source={report.source.value})"
        )
        return report

    async def analyze_payload(self, payload: Mapping[str, Any] | AnalysisRequest) -> FeedbackReport:
        """Analyze the camelCase JSON interchange shape."""
        request = (
            payload if isinstance(payload, AnalysisRequest)
            else AnalysisRequest.model_validate(payload)
        )
        return await self.analyze(
            session_id=request.session_id,
            stage_id=request.stage_id,
            mode=request.mode,
            turns=request.turns,
            hint_events=request.hints,
        )

    # =========================================================================
    # Tiers
    # =========================================================================

    async def try_remote(
        self,
        stage: StageDefinition,
        mode: AnalysisMode,
        session_id: str,
        turns: list[Turn],
        hint_events: list[HintEvent],
        labels: list[TurnLabel],
    ) -> FeedbackReport | None:
        if not self.remote_enabled or not self.has_client:
            return None

        prompt = get_feedback_prompt(stage, turns)
        try:
            data = await asyncio.wait_for(
                self._call_claude_json(prompt, self.max_tokens, FEEDBACK_SYSTEM_PROMPT),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"[FeedbackAnalyzer] Remote analysis timed out after {self.timeout_seconds}s "
                f"for session {session_id}, falling back to local"
            )
            return None
        except Exception as e:
            logger.warning(
                f"[FeedbackAnalyzer] Remote analysis failed for session {session_id}: "
                f"{type(e).__name__}: {e}"
            )
            return None

        if data is None:
            logger.warning(f"[FeedbackAnalyzer] Remote analysis for session {session_id} returned no JSON object")
            return None

        try:
            remote = RemoteFeedback.model_validate(data)
        except ValidationError as e:
            logger.warning(f"[FeedbackAnalyzer] Remote analysis had an unusable shape: {e.error_count()} errors")
            return None

        return self._merge_remote(remote, stage, mode, session_id, turns, hint_events, labels)

    def try_local(
        self,
        stage: StageDefinition,
        mode: AnalysisMode,
        session_id: str,
        turns: list[Turn],
        hint_events: list[HintEvent],
        labels: list[TurnLabel],
    ) -> FeedbackReport | None:
        try:
            return compose(
                score_coverage(labels, stage),
                score_technique(labels, stage, turns),
                score_independence(hint_events, stage),
                stage,
                mode,
                labels=labels,
                turns=turns,
                session_id=session_id,
                source=AnalysisSource.LOCAL,
            )
        except ContractError:
            raise
        except Exception:
            logger.exception(f"[FeedbackAnalyzer] Local analysis failed for session {session_id}")
            return None

    # =========================================================================
    # Remote merge
    # =========================================================================

    def _merge_remote(
        self,
        remote: RemoteFeedback,
        stage: StageDefinition,
        mode: AnalysisMode,
        session_id: str,
        turns: list[Turn],
        hint_events: list[HintEvent],
        labels: list[TurnLabel],
    ) -> FeedbackReport:
        """Fill the gaps in the model's answer from the local heuristics."""
        local_coverage = score_coverage(labels, stage)
        local_technique = score_technique(labels, stage, turns)

        per_area = {}
        for area_id in stage.area_ids:
            if area_id in remote.coverage_scores:
                per_area[area_id] = remote.coverage_scores[area_id]
            elif area_id in remote.covered_areas:
                per_area[area_id] = COVERAGE_HIT
            elif area_id in remote.missed_areas:
                per_area[area_id] = COVERAGE_FLOOR
            else:
                per_area[area_id] = local_coverage.per_area[area_id]

        ignored = set(remote.coverage_scores) - set(stage.area_ids)
        if ignored:
            logger.info(f"[FeedbackAnalyzer] Ignoring {len(ignored)} remote areas outside stage {stage.stage_id}")

        coverage = SubScore(
            kind=SubScoreKind.COVERAGE,
            aggregate=mean(per_area.values()),
            per_area=per_area,
        )

        local_metrics = local_technique.metrics or TechniqueMetrics()
        metrics = replace(
            local_metrics,
            open_ratio=_pick(remote.open_ratio, local_metrics.open_ratio),
            follow_up_ratio=_pick(remote.follow_up_ratio, local_metrics.follow_up_ratio),
            talk_balance=_pick(remote.talk_balance, local_metrics.talk_balance),
            early_solutioning=_pick(remote.early_solutioning, local_metrics.early_solutioning),
        )
        technique = SubScore(
            kind=SubScoreKind.TECHNIQUE,
            aggregate=_pick(remote.technique_score, technique_composite(metrics)),
            metrics=metrics,
        )

        return compose(
            coverage,
            technique,
            score_independence(hint_events, stage),
            stage,
            mode,
            labels=labels,
            turns=turns,
            session_id=session_id,
            source=AnalysisSource.REMOTE,
            scripts=remote.next_time_scripts,
        )


def _pick(value, fallback):
    return fallback if value is None else value
