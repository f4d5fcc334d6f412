"""
Collaborator interfaces (abstractions).
Using Protocol for structural subtyping (duck typing with type hints).
These define the contracts that data access implementations must follow.
"""
from typing import List, Optional, Protocol, runtime_checkable

from decision_engine.models.schemas import (
    Candidate,
    DecisionResult,
    EliminationSession,
    SessionEvent,
)


@runtime_checkable
class CandidateRepository(Protocol):
    """
    Read-only source of eligible candidates for a group.
    Production: list/item service.
    Testing: In-memory mock implementation.
    """

    async def get_candidates(self, group_id: str) -> List[Candidate]:
        """
        Fetch the group's candidates with filter metadata.

        Args:
            group_id: Group identifier

        Returns:
            List of candidates (may be empty)
        """
        ...


@runtime_checkable
class MembershipRepository(Protocol):
    """
    Group membership lookup. The member count is N.
    """

    async def get_members(self, group_id: str) -> List[str]:
        """
        Fetch active member user IDs.

        Returns:
            Member IDs, empty if the group is unknown
        """
        ...


@runtime_checkable
class SessionRepository(Protocol):
    """
    Versioned storage for elimination sessions.
    """

    async def get(self, session_id: str) -> Optional[EliminationSession]:
        """Load a session, None if unknown."""
        ...

    async def add(self, session: EliminationSession) -> None:
        """Store a new session."""
        ...

    async def save(self, session: EliminationSession, expected_version: int) -> None:
        """
        Replace a stored session.

        Raises:
            VersionConflictError: if the stored version is not expected_version
        """
        ...


@runtime_checkable
class NotificationHook(Protocol):
    """
    Outbound hook called on every state transition.
    Delivery is fire-and-forget.
    """

    async def publish(self, event: SessionEvent) -> None:
        ...


@runtime_checkable
class DecisionResultSink(Protocol):
    """
    Receives the summary of each completed decision (activity log).
    """

    async def record(self, result: DecisionResult) -> None:
        ...
