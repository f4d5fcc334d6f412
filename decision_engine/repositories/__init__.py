"""Repository implementations package."""
from .memory import (
    DEMO_GROUP_ID,
    InMemoryCandidateRepository,
    InMemoryDecisionResultSink,
    InMemoryMembershipRepository,
    InMemorySessionRepository,
)

__all__ = [
    "DEMO_GROUP_ID",
    "InMemoryCandidateRepository",
    "InMemoryDecisionResultSink",
    "InMemoryMembershipRepository",
    "InMemorySessionRepository",
]
