"""Heuristic feedback analysis for BA practice sessions."""

from ba_training.analysis.catalog import RequiredArea, StageDefinition, get_stage, list_stages
from ba_training.analysis.classifier import classify, user_turn_count
from ba_training.analysis.composer import compose, default_report
from ba_training.analysis.errors import (
    AnalysisError,
    CatalogError,
    ContractError,
    UnknownStageError,
)
from ba_training.analysis.schemas import (
    AnalysisMode,
    AnalysisSource,
    FeedbackReport,
    HintEvent,
    HintEventType,
    Speaker,
    SubScore,
    SubScoreKind,
    Turn,
    TurnLabel,
)
from ba_training.analysis.scoring import score_coverage, score_independence, score_technique

__all__ = [
    # Catalog
    "RequiredArea",
    "StageDefinition",
    "get_stage",
    "list_stages",
    # Pipeline
    "classify",
    "user_turn_count",
    "score_coverage",
    "score_technique",
    "score_independence",
    "compose",
    "default_report",
    # Data shapes
    "AnalysisMode",
    "AnalysisSource",
    "FeedbackReport",
    "HintEvent",
    "HintEventType",
    "Speaker",
    "SubScore",
    "SubScoreKind",
    "Turn",
    "TurnLabel",
    # Errors
    "AnalysisError",
    "CatalogError",
    "ContractError",
    "UnknownStageError",
]
