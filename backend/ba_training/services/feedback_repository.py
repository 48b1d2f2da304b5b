"""Persistence for feedback reports."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ba_training.analysis.schemas import FeedbackReport
from ba_training.models.base import AsyncSessionLocal
from ba_training.models.feedback import FeedbackRecord

logger = logging.getLogger(__name__)


class FeedbackRepository:
    """Stores and reads back reports, one row per analysis."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def save(self, report: FeedbackReport) -> FeedbackRecord:
        record = FeedbackRecord(
            session_id=report.session_id,
            stage_id=report.stage_id,
            mode=report.mode.value,
            source=report.source.value,
            overall=report.overall,
            passed=report.passed,
            report=report.model_dump(mode="json", by_alias=True),
        )
        self.db.add(record)
        await self.db.flush()
        logger.debug(f"[FeedbackRepository] Saved report {record.id} for session {report.session_id}")
        return record

    async def latest(self, session_id: str) -> FeedbackReport | None:
        """The most recently saved report for a session, if any."""
        result = await self.db.execute(
            select(FeedbackRecord)
            .where(FeedbackRecord.session_id == session_id)
            .order_by(FeedbackRecord.created_at.desc())
            .limit(1)
        )
        record = result.scalar_one_or_none()
        return FeedbackReport.model_validate(record.report) if record else None

    async def list_for_session(self, session_id: str, limit: int = 50) -> list[FeedbackReport]:
        """Saved reports for a session, oldest first."""
        result = await self.db.execute(
            select(FeedbackRecord)
            .where(FeedbackRecord.session_id == session_id)
            .order_by(FeedbackRecord.created_at.asc())
            .limit(limit)
        )
        return [FeedbackReport.model_validate(r.report) for r in result.scalars().all()]


def repository_scope(
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
):
    """Build a factory of committing ``FeedbackRepository`` scopes.

    Usage:
        factory = repository_scope()
        async with factory() as repo:
            await repo.save(report)
    """

    @asynccontextmanager
    async def scope() -> AsyncIterator[FeedbackRepository]:
        async with session_factory() as db:
            try:
                yield FeedbackRepository(db)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    return scope
