"""Services for the BA training feedback service."""

from ba_training.services.base import BaseAnalyzer
from ba_training.services.feedback_analyzer import FeedbackAnalyzer, RemoteFeedback
from ba_training.services.feedback_repository import FeedbackRepository, repository_scope
from ba_training.services.session_store import (
    InvalidTransitionError,
    SessionError,
    SessionNotFoundError,
    SessionStatus,
    SessionStore,
    TrainingSession,
)
from ba_training.services.training_service import TrainingService

__all__ = [
    # Base classes
    "BaseAnalyzer",
    # Analysis
    "FeedbackAnalyzer",
    "RemoteFeedback",
    # Sessions
    "SessionStore",
    "SessionStatus",
    "TrainingSession",
    "TrainingService",
    "SessionError",
    "SessionNotFoundError",
    "InvalidTransitionError",
    # Persistence
    "FeedbackRepository",
    "repository_scope",
]
