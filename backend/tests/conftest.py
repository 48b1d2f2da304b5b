"""
Pytest configuration and shared fixtures for BA training tests.

This module provides:
- Async database session fixtures (in-memory SQLite)
- Mock Anthropic client
- Transcript builders and the reference practice transcripts
"""

import os

# Settings are read at import time, so the test environment must be in place
# before anything from ba_training is imported.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["REMOTE_ANALYSIS_ENABLED"] = "false"

from collections.abc import AsyncGenerator, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ba_training.analysis.catalog import StageDefinition, get_stage
from ba_training.analysis.schemas import HintEvent, HintEventType, Speaker, Turn
from ba_training.models.base import Base
from ba_training.models.feedback import FeedbackRecord  # noqa: F401
from ba_training.services.feedback_analyzer import FeedbackAnalyzer


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def async_engine():
    """Create an async engine with in-memory SQLite for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a transactional database session for tests.

    Each test gets a fresh session that's rolled back after the test.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture(scope="function")
async def db(db_session: AsyncSession) -> AsyncSession:
    """Alias for db_session for convenience."""
    return db_session


# =============================================================================
# Mock API Clients
# =============================================================================

def make_anthropic_response(text: str) -> MagicMock:
    response = MagicMock()
    response.content = [MagicMock(text=text)]
    return response


@pytest.fixture
def mock_anthropic_client():
    """Mock Anthropic client for testing."""
    mock_client = AsyncMock()
    mock_client.messages.create = AsyncMock(return_value=make_anthropic_response("Mock response"))
    return mock_client


@pytest.fixture
def anthropic_reply(mock_anthropic_client) -> Callable[[str], AsyncMock]:
    """Set the text the mock client answers with and return the client."""
    def reply(text: str) -> AsyncMock:
        mock_anthropic_client.messages.create = AsyncMock(
            return_value=make_anthropic_response(text)
        )
        return mock_anthropic_client

    return reply


# =============================================================================
# Analysis Fixtures
# =============================================================================

@pytest.fixture
def local_analyzer() -> FeedbackAnalyzer:
    """Analyzer restricted to the local heuristic tier."""
    return FeedbackAnalyzer(remote_enabled=False)


@pytest.fixture
def problem_stage() -> StageDefinition:
    return get_stage("problem_exploration")


@pytest.fixture
def build_turns() -> Callable[..., list[Turn]]:
    """
    Build a transcript from ``(speaker, text)`` pairs, or from bare strings
    which are taken as user turns.
    """
    def build(*entries) -> list[Turn]:
        turns = []
        for index, entry in enumerate(entries):
            speaker, text = (Speaker.USER, entry) if isinstance(entry, str) else entry
            turns.append(Turn(index=index, speaker=speaker, text=text, timestamp_millis=index * 1000))
        return turns

    return build


@pytest.fixture
def build_hints() -> Callable[..., list[HintEvent]]:
    """Build hint events from ``(event_type, area_id)`` pairs."""
    def build(*entries) -> list[HintEvent]:
        return [
            HintEvent(session_id="s-test", area_id=area_id, event_type=HintEventType(event_type))
            for event_type, area_id in entries
        ]

    return build


@pytest.fixture
def partial_coverage_turns(build_turns) -> list[Turn]:
    """Greets, then asks about pain points and customers only."""
    return build_turns(
        "Hi, thanks for your time",
        "What are the biggest pain points in your process?",
        "How does that affect your customers?",
    )


@pytest.fixture
def full_coverage_turns(build_turns) -> list[Turn]:
    """Five open questions, one per area, each building on the last answer."""
    u, c = Speaker.USER, Speaker.COUNTERPART
    return build_turns(
        (u, "Hello, I'm the business analyst on this project."),
        (c, "Nice to meet you."),
        (u, "What is the biggest problem you deal with each week?"),
        (c, "The biggest problem is that approvals get stuck waiting for sign-off."),
        (u, "Why do approvals get stuck?"),
        (c, "Finance reviews every request by hand and the handoff to procurement takes days."),
        (u, "How does the handoff to procurement work?"),
        (c, "Procurement has a small budget for tooling, so everything is done in spreadsheets."),
        (u, "What budget limits does procurement work within?"),
        (c, "Suppliers complain, and some customers wait two weeks for their orders."),
        (u, "How are customers affected when orders wait two weeks?"),
        (c, "They get frustrated and some of them cancel their orders entirely."),
    )


@pytest.fixture
def closed_question_turns(build_turns) -> list[Turn]:
    return build_turns("Do you have problems?", "Is it slow?", "Can you fix it?")


@pytest.fixture
def early_solution_turns(build_turns) -> list[Turn]:
    return build_turns(
        "I think we should implement a new system",
        "What are the biggest pain points in your process?",
        "What slows your work down?",
    )
