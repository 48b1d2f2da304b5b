"""Database models for the BA training feedback service."""

from ba_training.models.base import Base, get_db, init_db, AsyncSessionLocal
from ba_training.models.feedback import FeedbackRecord

__all__ = [
    "Base",
    "get_db",
    "init_db",
    "AsyncSessionLocal",
    "FeedbackRecord",
]
