"""
Pytest configuration and fixtures.
"""
import random
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from decision_engine.api.dependencies import (
    get_candidate_repository,
    get_clock,
    get_membership_repository,
    get_result_sink,
    get_session_locks,
    get_session_repository,
    get_turn_coordinator,
)
from decision_engine.core.clock import ManualClock
from decision_engine.core.locks import KeyedLock
from decision_engine.main import app
from decision_engine.models.schemas import AlgorithmParams
from decision_engine.repositories.memory import (
    InMemoryCandidateRepository,
    InMemoryDecisionResultSink,
    InMemoryMembershipRepository,
    InMemorySessionRepository,
)
from decision_engine.services.decision import DecisionService
from decision_engine.services.filter_engine import FilterEngine
from decision_engine.services.parameters import ParameterSuggester
from decision_engine.services.turns import TurnCoordinator

# Saturday 2024-01-06 12:00 UTC (07:00 in New York)
START = datetime(2024, 1, 6, 12, 0, tzinfo=timezone.utc)


class RecordingNotificationHook:
    """NotificationHook that keeps every event."""

    def __init__(self):
        self.events = []

    async def publish(self, event):
        self.events.append(event)


@pytest.fixture
def clock():
    """Fixture for a controllable clock."""
    return ManualClock(START)


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def coordinator(rng):
    return TurnCoordinator(rng=rng)


@pytest.fixture
def session_repo():
    return InMemorySessionRepository()


@pytest.fixture
def candidate_repo():
    return InMemoryCandidateRepository()


@pytest.fixture
def membership_repo():
    repo = InMemoryMembershipRepository()
    repo.set_members("group_pair", ["alice", "bob"])
    return repo


@pytest.fixture
def result_sink():
    return InMemoryDecisionResultSink()


@pytest.fixture
def notifier():
    return RecordingNotificationHook()


@pytest.fixture
def decision_service(
    session_repo,
    candidate_repo,
    membership_repo,
    notifier,
    result_sink,
    coordinator,
    clock,
):
    """DecisionService wired with in-memory collaborators."""
    return DecisionService(
        session_repo=session_repo,
        candidate_repo=candidate_repo,
        membership_repo=membership_repo,
        notifier=notifier,
        result_sink=result_sink,
        filter_engine=FilterEngine(),
        suggester=ParameterSuggester(),
        coordinator=coordinator,
        clock=clock,
        locks=KeyedLock(),
        default_turn_timeout_minutes=10,
    )


@pytest.fixture
def test_client(
    session_repo,
    candidate_repo,
    membership_repo,
    result_sink,
    coordinator,
    clock,
):
    """
    TestClient fixture with dependency overrides.
    Uses in-memory repositories and a manual clock for isolation.
    """
    locks = KeyedLock()
    app.dependency_overrides[get_session_repository] = lambda: session_repo
    app.dependency_overrides[get_candidate_repository] = lambda: candidate_repo
    app.dependency_overrides[get_membership_repository] = lambda: membership_repo
    app.dependency_overrides[get_result_sink] = lambda: result_sink
    app.dependency_overrides[get_turn_coordinator] = lambda: coordinator
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_session_locks] = lambda: locks

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def pair_params():
    """K=2, N=2 over ten candidates leaves six for the draw."""
    return AlgorithmParams(k=2, n=2, m=6, initial_count=10)


@pytest.fixture
def ten_candidates():
    return [f"c{i}" for i in range(10)]

