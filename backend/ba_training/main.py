"""Main FastAPI application for the BA training feedback service."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ba_training.config import settings

# Configure logging to output to stdout
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)
from ba_training.analysis.catalog import list_stages
from ba_training.models import init_db, AsyncSessionLocal
from ba_training.routers import training_router
from ba_training.services import (
    FeedbackAnalyzer,
    SessionStore,
    TrainingService,
    repository_scope,
)


def check_api_keys():
    """Report which analysis tiers are available."""
    logger.info(f"[Config] Database URL: {settings.database_url}")

    if settings.anthropic_api_key and settings.remote_analysis_enabled:
        # Mask the key for security
        masked = settings.anthropic_api_key[:8] + "..." + settings.anthropic_api_key[-4:]
        logger.info(f"[Config] Anthropic API key: {masked} (model {settings.model_feedback})")
    elif not settings.remote_analysis_enabled:
        logger.info("[Config] Remote analysis disabled, using local heuristics only")
    else:
        logger.warning("[Config] ANTHROPIC_API_KEY is not set! Feedback uses local heuristics only.")
        logger.warning("[Config] Add ANTHROPIC_API_KEY to your .env file at the project root.")


def build_training_service() -> TrainingService:
    return TrainingService(
        store=SessionStore(),
        analyzer=FeedbackAnalyzer(),
        repository_factory=repository_scope(AsyncSessionLocal),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Initialize database
    await init_db()

    # Check API keys are configured
    check_api_keys()

    app.state.training_service = build_training_service()
    logger.info(f"[Startup] Loaded {len(list_stages())} training stages")

    yield


app = FastAPI(
    title="BA Training Feedback Service",
    description="Scores Business Analyst practice sessions and coaches the next attempt",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(training_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint returning API info."""
    return {
        "name": "BA Training Feedback Service API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    service: TrainingService | None = getattr(app.state, "training_service", None)
    return {
        "status": "healthy",
        "sessions": len(service.store.list_ids()) if service else 0,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ba_training.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
