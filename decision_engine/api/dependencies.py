"""
Dependency injection container.
Creates and wires all application components.
Uses FastAPI's dependency injection system.
"""
import random
from functools import lru_cache

from fastapi import Depends

from decision_engine.config import get_settings
from decision_engine.core.clock import Clock, SystemClock
from decision_engine.core.locks import KeyedLock
from decision_engine.repositories.memory import (
    InMemoryCandidateRepository,
    InMemoryDecisionResultSink,
    InMemoryMembershipRepository,
    InMemorySessionRepository,
)
from decision_engine.services.decision import DecisionService
from decision_engine.services.filter_engine import FilterEngine
from decision_engine.services.notifications import LoggingNotificationHook
from decision_engine.services.parameters import ParameterSuggester
from decision_engine.services.turns import TurnCoordinator


# =============================================================================
# Singleton Instances (Application Lifetime)
# =============================================================================


@lru_cache()
def get_session_repository() -> InMemorySessionRepository:
    """Get singleton session repository."""
    return InMemorySessionRepository()


@lru_cache()
def get_candidate_repository() -> InMemoryCandidateRepository:
    """Get singleton candidate repository."""
    return InMemoryCandidateRepository()


@lru_cache()
def get_membership_repository() -> InMemoryMembershipRepository:
    """Get singleton membership repository."""
    return InMemoryMembershipRepository()


@lru_cache()
def get_notification_hook() -> LoggingNotificationHook:
    return LoggingNotificationHook()


@lru_cache()
def get_result_sink() -> InMemoryDecisionResultSink:
    return InMemoryDecisionResultSink()


@lru_cache()
def get_clock() -> Clock:
    return SystemClock()


@lru_cache()
def get_session_locks() -> KeyedLock:
    """Get singleton per-session lock registry."""
    return KeyedLock()


@lru_cache()
def get_filter_engine() -> FilterEngine:
    settings = get_settings()
    return FilterEngine(default_timezone=settings.DEFAULT_VENUE_TIMEZONE)


@lru_cache()
def get_parameter_suggester() -> ParameterSuggester:
    settings = get_settings()
    return ParameterSuggester(
        max_k=settings.MAX_SUGGESTED_K,
        min_final_size=settings.MIN_FINAL_SET_SIZE,
        max_final_size=settings.MAX_FINAL_SET_SIZE,
        max_participants=settings.MAX_PARTICIPANTS,
    )


@lru_cache()
def get_turn_coordinator() -> TurnCoordinator:
    """Get singleton coordinator, seeded from settings when a seed is set."""
    settings = get_settings()
    return TurnCoordinator(rng=random.Random(settings.RANDOM_SEED))


# =============================================================================
# Request-Scoped Dependencies (Per-Request Lifetime)
# =============================================================================


def get_decision_service(
    session_repo: InMemorySessionRepository = Depends(get_session_repository),
    candidate_repo: InMemoryCandidateRepository = Depends(get_candidate_repository),
    membership_repo: InMemoryMembershipRepository = Depends(get_membership_repository),
    notifier: LoggingNotificationHook = Depends(get_notification_hook),
    result_sink: InMemoryDecisionResultSink = Depends(get_result_sink),
    clock: Clock = Depends(get_clock),
    locks: KeyedLock = Depends(get_session_locks),
    filter_engine: FilterEngine = Depends(get_filter_engine),
    suggester: ParameterSuggester = Depends(get_parameter_suggester),
    coordinator: TurnCoordinator = Depends(get_turn_coordinator),
) -> DecisionService:
    """
    Get decision service with all dependencies wired.
    Each collaborator is its own dependency so tests can override it.
    """
    return DecisionService(
        session_repo=session_repo,
        candidate_repo=candidate_repo,
        membership_repo=membership_repo,
        notifier=notifier,
        result_sink=result_sink,
        filter_engine=filter_engine,
        suggester=suggester,
        coordinator=coordinator,
        clock=clock,
        locks=locks,
        default_turn_timeout_minutes=get_settings().DEFAULT_TURN_TIMEOUT_MINUTES,
    )


# =============================================================================
# Cleanup Functions
# =============================================================================


def clear_caches() -> None:
    """Clear all cached singleton instances (for testing)."""
    get_session_repository.cache_clear()
    get_candidate_repository.cache_clear()
    get_membership_repository.cache_clear()
    get_notification_hook.cache_clear()
    get_result_sink.cache_clear()
    get_clock.cache_clear()
    get_session_locks.cache_clear()
    get_filter_engine.cache_clear()
    get_parameter_suggester.cache_clear()
    get_turn_coordinator.cache_clear()
