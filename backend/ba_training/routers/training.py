"""Training session API endpoints: stages, session lifecycle and feedback."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from ba_training.analysis.catalog import StageDefinition, get_stage, list_stages
from ba_training.analysis.errors import UnknownStageError
from ba_training.analysis.schemas import (
    AnalysisMode,
    AnalysisRequest,
    FeedbackReport,
    HintEvent,
    HintEventType,
    Speaker,
    Turn,
)
from ba_training.models.base import get_db
from ba_training.services.feedback_repository import FeedbackRepository
from ba_training.services.session_store import (
    InvalidTransitionError,
    SessionNotFoundError,
    SessionStatus,
    TrainingSession,
)
from ba_training.services.training_service import TrainingService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/training", tags=["training"])


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AreaInfo(_ApiModel):
    """A must-cover area of a stage."""

    area_id: str
    label: str
    keywords: list[str]
    lesson: str
    sample_questions: list[str]


class StageSummary(_ApiModel):
    stage_id: str
    name: str
    objective: str
    pass_threshold: float
    area_ids: list[str]


class StageDetail(StageSummary):
    areas: list[AreaInfo]


class CreateSessionRequest(_ApiModel):
    """Request to start a new training session."""

    stage_id: str
    mode: AnalysisMode = AnalysisMode.PRACTICE
    project_id: str | None = None


class AddTurnRequest(_ApiModel):
    speaker: Speaker = Speaker.USER
    text: str
    timestamp_millis: int | None = None


class RecordHintRequest(_ApiModel):
    event_type: HintEventType
    area_id: str | None = None
    payload_text: str | None = None
    timestamp_millis: int | None = None


class SessionResponse(_ApiModel):
    """Response describing a training session."""

    id: str
    stage_id: str
    mode: AnalysisMode
    project_id: str | None
    status: SessionStatus
    attempt: int
    retake_of: str | None
    turns: list[Turn]
    hint_count: int
    has_report: bool
    created_at: datetime
    updated_at: datetime


def _stage_summary(stage: StageDefinition) -> StageSummary:
    return StageSummary(
        stage_id=stage.stage_id,
        name=stage.name,
        objective=stage.objective,
        pass_threshold=stage.pass_threshold,
        area_ids=list(stage.area_ids),
    )


def _session_response(session: TrainingSession) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        stage_id=session.stage_id,
        mode=session.mode,
        project_id=session.project_id,
        status=session.status,
        attempt=session.attempt,
        retake_of=session.retake_of,
        turns=session.turns,
        hint_count=len(session.hint_events),
        has_report=session.report is not None,
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


@contextmanager
def _domain_errors() -> Iterator[None]:
    """Translate domain errors into HTTP errors."""
    try:
        yield
    except (UnknownStageError, SessionNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


def get_training_service(request: Request) -> TrainingService:
    """Dependency that provides the app's training service."""
    return request.app.state.training_service


# =============================================================================
# Stages
# =============================================================================

@router.get("/stages", response_model=list[StageSummary])
async def get_stages() -> list[StageSummary]:
    return [_stage_summary(stage) for stage in list_stages()]


@router.get("/stages/{stage_id}", response_model=StageDetail)
async def get_stage_detail(stage_id: str) -> StageDetail:
    with _domain_errors():
        stage = get_stage(stage_id)

    return StageDetail(
        **_stage_summary(stage).model_dump(),
        areas=[
            AreaInfo(
                area_id=area.area_id,
                label=area.label,
                keywords=list(area.keywords),
                lesson=area.lesson,
                sample_questions=list(area.sample_questions),
            )
            for area in stage.required_areas
        ],
    )


# =============================================================================
# Sessions
# =============================================================================

@router.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    data: CreateSessionRequest,
    service: TrainingService = Depends(get_training_service),
) -> SessionResponse:
    with _domain_errors():
        session = service.start_session(data.stage_id, data.mode, project_id=data.project_id)
    return _session_response(session)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    service: TrainingService = Depends(get_training_service),
) -> SessionResponse:
    with _domain_errors():
        session = service.get_session(session_id)
    return _session_response(session)


@router.post("/sessions/{session_id}/start", response_model=SessionResponse)
async def start_meeting(
    session_id: str,
    service: TrainingService = Depends(get_training_service),
) -> SessionResponse:
    with _domain_errors():
        session = service.start_meeting(session_id)
    return _session_response(session)


@router.post("/sessions/{session_id}/messages", response_model=Turn, status_code=status.HTTP_201_CREATED)
async def add_message(
    session_id: str,
    data: AddTurnRequest,
    service: TrainingService = Depends(get_training_service),
) -> Turn:
    with _domain_errors():
        return service.add_turn(session_id, data.speaker, data.text, data.timestamp_millis)


@router.post("/sessions/{session_id}/hints", response_model=HintEvent, status_code=status.HTTP_201_CREATED)
async def record_hint(
    session_id: str,
    data: RecordHintRequest,
    service: TrainingService = Depends(get_training_service),
) -> HintEvent:
    with _domain_errors():
        return service.record_hint(
            session_id,
            data.event_type,
            area_id=data.area_id,
            payload_text=data.payload_text,
            timestamp_millis=data.timestamp_millis,
        )


@router.post("/sessions/{session_id}/end", response_model=FeedbackReport)
async def end_meeting(
    session_id: str,
    service: TrainingService = Depends(get_training_service),
) -> FeedbackReport:
    """End the live meeting and return the session's feedback report."""
    with _domain_errors():
        return await service.end_meeting(session_id)


@router.post("/sessions/{session_id}/complete", response_model=SessionResponse)
async def complete_session(
    session_id: str,
    service: TrainingService = Depends(get_training_service),
) -> SessionResponse:
    with _domain_errors():
        session = service.complete(session_id)
    return _session_response(session)


@router.post("/sessions/{session_id}/retake", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def retake_session(
    session_id: str,
    service: TrainingService = Depends(get_training_service),
) -> SessionResponse:
    with _domain_errors():
        session = service.retake(session_id)
    return _session_response(session)


@router.get("/sessions/{session_id}/feedback", response_model=FeedbackReport)
async def get_feedback(
    session_id: str,
    service: TrainingService = Depends(get_training_service),
) -> FeedbackReport:
    with _domain_errors():
        return await service.get_feedback(session_id)


@router.get("/sessions/{session_id}/history", response_model=list[FeedbackReport])
async def get_feedback_history(
    session_id: str,
    db: AsyncSession = Depends(get_db),
) -> list[FeedbackReport]:
    """Persisted reports for a session, oldest first."""
    return await FeedbackRepository(db).list_for_session(session_id)


# =============================================================================
# Stateless analysis
# =============================================================================

@router.post("/analyze", response_model=FeedbackReport)
async def analyze_transcript(
    data: AnalysisRequest,
    service: TrainingService = Depends(get_training_service),
) -> FeedbackReport:
    """Analyze a transcript and hint log without creating a session."""
    with _domain_errors():
        return await service.analyzer.analyze_payload(data)
