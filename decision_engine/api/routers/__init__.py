"""API routers package."""
from .filters import router as filters_router
from .health import router as health_router
from .sessions import router as sessions_router

__all__ = ["filters_router", "health_router", "sessions_router"]
