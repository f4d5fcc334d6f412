"""
Health check router for observability.
"""
from fastapi import APIRouter, Depends

from decision_engine.api.dependencies import get_session_locks, get_session_repository
from decision_engine.config import get_settings
from decision_engine.core.locks import KeyedLock
from decision_engine.repositories.memory import InMemorySessionRepository

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health Check")
async def health_check() -> dict:
    """Basic health check endpoint."""
    return {"status": "healthy"}


@router.get("/health/ready", summary="Readiness Check")
async def readiness_check(
    session_repo: InMemorySessionRepository = Depends(get_session_repository),
    locks: KeyedLock = Depends(get_session_locks),
) -> dict:
    """
    Readiness check for Kubernetes.
    Returns session store size and the elimination settings in effect.
    """
    settings = get_settings()

    return {
        "status": "ready",
        "sessions": {
            "stored": session_repo.size(),
            "locks_held": locks.size(),
        },
        "elimination": {
            "default_turn_timeout_minutes": settings.DEFAULT_TURN_TIMEOUT_MINUTES,
            "max_participants": settings.MAX_PARTICIPANTS,
            "seeded": settings.RANDOM_SEED is not None,
        },
    }
