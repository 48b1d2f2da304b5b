"""Feedback record model for persisted session reports."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ba_training.models.base import Base


class FeedbackRecord(Base):
    """A feedback report produced for one training session attempt."""

    __tablename__ = "feedback_reports"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    session_id: Mapped[str] = mapped_column(String(36), nullable=False)
    stage_id: Mapped[str] = mapped_column(String(64), nullable=False)
    mode: Mapped[str] = mapped_column(String(20), nullable=False)
    # Which analysis tier produced the report: remote, local or default
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    overall: Mapped[float] = mapped_column(Float, nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    # Full camelCase report as returned by the API
    report: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    __table_args__ = (
        Index("ix_feedback_reports_session_created", "session_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<FeedbackRecord(session_id={self.session_id}, stage_id={self.stage_id}, "
            f"overall={self.overall}, passed={self.passed})>"
        )
