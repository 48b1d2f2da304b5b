"""In-memory store for training sessions and their lifecycle."""

import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from threading import Lock

from ba_training.analysis.catalog import get_stage
from ba_training.analysis.schemas import (
    AnalysisMode,
    FeedbackReport,
    HintEvent,
    HintEventType,
    Speaker,
    Turn,
)

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    PRE_BRIEF = "pre_brief"
    LIVE_MEETING = "live_meeting"
    POST_BRIEF = "post_brief"
    COMPLETED = "completed"


# Each status may only move to the next one
_NEXT_STATUS = {
    SessionStatus.PRE_BRIEF: SessionStatus.LIVE_MEETING,
    SessionStatus.LIVE_MEETING: SessionStatus.POST_BRIEF,
    SessionStatus.POST_BRIEF: SessionStatus.COMPLETED,
}


class SessionError(Exception):
    """Base class for session store errors."""


class SessionNotFoundError(SessionError, KeyError):
    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Training session not found: {self.session_id}"


class InvalidTransitionError(SessionError):
    """The session's current status does not allow the requested action."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _now_millis() -> int:
    return int(time.time() * 1000)


@dataclass
class TrainingSession:
    """One attempt at a training stage by a trainee."""

    id: str
    stage_id: str
    mode: AnalysisMode
    project_id: str | None = None
    status: SessionStatus = SessionStatus.PRE_BRIEF
    turns: list[Turn] = field(default_factory=list)
    hint_events: list[HintEvent] = field(default_factory=list)
    report: FeedbackReport | None = None
    attempt: int = 1
    retake_of: str | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def snapshot(self) -> "TrainingSession":
        # Turns, hints and reports are frozen, so copying the lists is enough
        return replace(self, turns=list(self.turns), hint_events=list(self.hint_events))


class SessionStore:
    """
    Thread-safe registry of training sessions keyed by id.

    Callers only ever see snapshot copies; all mutation goes through the store
    methods under its lock.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._sessions: dict[str, TrainingSession] = {}

    def create(
        self,
        stage_id: str,
        mode: AnalysisMode | str = AnalysisMode.PRACTICE,
        project_id: str | None = None,
        attempt: int = 1,
        retake_of: str | None = None,
    ) -> TrainingSession:
        """Register a new session in ``pre_brief``. Raises ``UnknownStageError``."""
        stage = get_stage(stage_id)
        session = TrainingSession(
            id=str(uuid.uuid4()),
            stage_id=stage.stage_id,
            mode=AnalysisMode(mode),
            project_id=project_id,
            attempt=attempt,
            retake_of=retake_of,
        )
        with self._lock:
            self._sessions[session.id] = session
            logger.info(
                f"[SessionStore] Created session {session.id} for stage {stage_id} "
                f"(attempt {attempt})"
            )
            return session.snapshot()

    def get(self, session_id: str) -> TrainingSession | None:
        with self._lock:
            session = self._sessions.get(session_id)
            return session.snapshot() if session else None

    def require(self, session_id: str) -> TrainingSession:
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def _require_locked(self, session_id: str) -> TrainingSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def _require_live(self, session: TrainingSession, action: str) -> None:
        if session.status is not SessionStatus.LIVE_MEETING:
            raise InvalidTransitionError(
                f"Cannot {action} while session {session.id} is {session.status.value}"
            )

    def append_turn(
        self,
        session_id: str,
        speaker: Speaker | str,
        text: str,
        timestamp_millis: int | None = None,
    ) -> Turn:
        """Add a turn to a live meeting. Indices are assigned in arrival order."""
        with self._lock:
            session = self._require_locked(session_id)
            self._require_live(session, "add a turn")
            turn = Turn(
                index=len(session.turns),
                speaker=speaker,
                text=text,
                timestamp_millis=_now_millis() if timestamp_millis is None else timestamp_millis,
            )
            session.turns.append(turn)
            session.updated_at = _now()
            return turn

    def record_hint(
        self,
        session_id: str,
        event_type: HintEventType | str,
        area_id: str | None = None,
        payload_text: str | None = None,
        timestamp_millis: int | None = None,
    ) -> HintEvent:
        with self._lock:
            session = self._require_locked(session_id)
            self._require_live(session, "record a hint")
            event = HintEvent(
                session_id=session_id,
                area_id=area_id,
                event_type=event_type,
                payload_text=payload_text,
                timestamp_millis=_now_millis() if timestamp_millis is None else timestamp_millis,
            )
            session.hint_events.append(event)
            session.updated_at = _now()
            return event

    def transition(self, session_id: str, status: SessionStatus | str) -> TrainingSession:
        """Move a session to the next status in its lifecycle.

        Exactly one caller wins a given transition; any other raises
        ``InvalidTransitionError``.
        """
        status = SessionStatus(status)
        with self._lock:
            session = self._require_locked(session_id)
            if _NEXT_STATUS.get(session.status) is not status:
                raise InvalidTransitionError(
                    f"Session {session_id} cannot move from {session.status.value} to {status.value}"
                )
            session.status = status
            session.updated_at = _now()
            logger.info(f"[SessionStore] Session {session_id} -> {status.value}")
            return session.snapshot()

    def attach_report(self, session_id: str, report: FeedbackReport) -> FeedbackReport:
        """Cache a report on the session unless one is already there.

        Returns whichever report the session ends up holding.
        """
        with self._lock:
            session = self._require_locked(session_id)
            if session.report is None:
                session.report = report
                session.updated_at = _now()
            return session.report

    def list_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)
