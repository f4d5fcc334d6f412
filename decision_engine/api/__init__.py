"""API package - FastAPI routes and dependencies."""
from .dependencies import get_decision_service
from .routers import filters_router, health_router, sessions_router

__all__ = ["filters_router", "get_decision_service", "health_router", "sessions_router"]
