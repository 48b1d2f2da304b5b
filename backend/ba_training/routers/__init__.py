"""API routers for the BA training feedback service."""

from ba_training.routers.training import router as training_router

__all__ = [
    "training_router",
]
