"""Drives a training session through its lifecycle and produces feedback.

Lifecycle: ``pre_brief -> live_meeting -> post_brief -> completed``. The
analyzer runs once, on the move into ``post_brief``, and the report is cached
on the session. A retake is a brand new session with its own report.
"""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from ba_training.analysis.schemas import (
    AnalysisMode,
    FeedbackReport,
    HintEvent,
    HintEventType,
    Speaker,
    Turn,
)
from ba_training.services.feedback_analyzer import FeedbackAnalyzer
from ba_training.services.feedback_repository import FeedbackRepository
from ba_training.services.session_store import (
    InvalidTransitionError,
    SessionNotFoundError,
    SessionStatus,
    SessionStore,
    TrainingSession,
)

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[], AbstractAsyncContextManager[FeedbackRepository]]

_FEEDBACK_STATUSES = (SessionStatus.POST_BRIEF, SessionStatus.COMPLETED)


class TrainingService:
    """Session lifecycle operations on top of a ``SessionStore``."""

    def __init__(
        self,
        store: SessionStore,
        analyzer: FeedbackAnalyzer,
        repository_factory: RepositoryFactory | None = None,
    ) -> None:
        self.store = store
        self.analyzer = analyzer
        self.repository_factory = repository_factory

    def start_session(
        self,
        stage_id: str,
        mode: AnalysisMode | str = AnalysisMode.PRACTICE,
        project_id: str | None = None,
    ) -> TrainingSession:
        return self.store.create(stage_id, mode, project_id=project_id)

    def get_session(self, session_id: str) -> TrainingSession:
        return self.store.require(session_id)

    def start_meeting(self, session_id: str) -> TrainingSession:
        return self.store.transition(session_id, SessionStatus.LIVE_MEETING)

    def add_turn(
        self,
        session_id: str,
        speaker: Speaker | str,
        text: str,
        timestamp_millis: int | None = None,
    ) -> Turn:
        return self.store.append_turn(session_id, speaker, text, timestamp_millis)

    def record_hint(
        self,
        session_id: str,
        event_type: HintEventType | str,
        area_id: str | None = None,
        payload_text: str | None = None,
        timestamp_millis: int | None = None,
    ) -> HintEvent:
        return self.store.record_hint(
            session_id,
            event_type,
            area_id=area_id,
            payload_text=payload_text,
            timestamp_millis=timestamp_millis,
        )

    async def end_meeting(self, session_id: str) -> FeedbackReport:
        """End the live meeting and analyze it.

        Only the caller that wins the transition into ``post_brief`` runs the
        analyzer; a second call raises ``InvalidTransitionError``.
        """
        session = self.store.transition(session_id, SessionStatus.POST_BRIEF)
        return await self._analyze_and_cache(session)

    async def get_feedback(self, session_id: str) -> FeedbackReport:
        """The cached report, analyzing on demand if the session has none yet.

        Sessions the store no longer knows (after a restart) fall back to the
        latest persisted report.
        """
        session = self.store.get(session_id)
        if session is None:
            return await self._load_persisted(session_id)
        if session.report is not None:
            return session.report
        if session.status not in _FEEDBACK_STATUSES:
            raise InvalidTransitionError(
                f"No feedback for session {session_id} while it is {session.status.value}"
            )
        logger.info(f"[TrainingService] No cached report for session {session_id}, analyzing on demand")
        return await self._analyze_and_cache(session)

    def complete(self, session_id: str) -> TrainingSession:
        return self.store.transition(session_id, SessionStatus.COMPLETED)

    def retake(self, session_id: str) -> TrainingSession:
        """Start a fresh attempt at the same stage."""
        previous = self.store.require(session_id)
        if previous.status not in _FEEDBACK_STATUSES:
            raise InvalidTransitionError(
                f"Session {session_id} cannot be retaken while it is {previous.status.value}"
            )
        session = self.store.create(
            previous.stage_id,
            previous.mode,
            project_id=previous.project_id,
            attempt=previous.attempt + 1,
            retake_of=previous.id,
        )
        logger.info(
            f"[TrainingService] Retake of {previous.id} started as {session.id} "
            f"(attempt {session.attempt})"
        )
        return session

    async def _analyze_and_cache(self, session: TrainingSession) -> FeedbackReport:
        report = await self.analyzer.analyze(
            session_id=session.id,
            stage_id=session.stage_id,
            mode=session.mode,
            turns=session.turns,
            hint_events=session.hint_events,
        )
        cached = self.store.attach_report(session.id, report)
        if cached is report:
            await self._persist(report)
        return cached

    async def _load_persisted(self, session_id: str) -> FeedbackReport:
        if self.repository_factory is None:
            raise SessionNotFoundError(session_id)
        async with self.repository_factory() as repository:
            report = await repository.latest(session_id)
        if report is None:
            raise SessionNotFoundError(session_id)
        logger.info(f"[TrainingService] Loaded persisted report for session {session_id}")
        return report

    async def _persist(self, report: FeedbackReport) -> None:
        if self.repository_factory is None:
            return
        try:
            async with self.repository_factory() as repository:
                await repository.save(report)
        except Exception:
            logger.exception(f"[TrainingService] Failed to persist report for session {report.session_id}")
