"""Models package - domain entities and interfaces."""
from .interfaces import (
    CandidateRepository,
    DecisionResultSink,
    MembershipRepository,
    NotificationHook,
    SessionRepository,
)
from .schemas import (
    AlgorithmParams,
    ApplyFiltersRequest,
    Candidate,
    CreateSessionRequest,
    DecisionResult,
    EliminateRequest,
    Elimination,
    EliminationSession,
    EliminationStatus,
    ErrorResponse,
    EventType,
    FilterConfiguration,
    FilterItem,
    FilterOutcome,
    FilterReport,
    FilterResult,
    FilterType,
    GeoPoint,
    OpeningPeriod,
    ParameterSuggestionResponse,
    RelaxationSuggestion,
    SessionEvent,
    SessionStatus,
    SkipLedger,
    SkippedTurn,
    SkipType,
)

__all__ = [
    # Interfaces
    "CandidateRepository",
    "DecisionResultSink",
    "MembershipRepository",
    "NotificationHook",
    "SessionRepository",
    # Schemas
    "AlgorithmParams",
    "ApplyFiltersRequest",
    "Candidate",
    "CreateSessionRequest",
    "DecisionResult",
    "EliminateRequest",
    "Elimination",
    "EliminationSession",
    "EliminationStatus",
    "ErrorResponse",
    "EventType",
    "FilterConfiguration",
    "FilterItem",
    "FilterOutcome",
    "FilterReport",
    "FilterResult",
    "FilterType",
    "GeoPoint",
    "OpeningPeriod",
    "ParameterSuggestionResponse",
    "RelaxationSuggestion",
    "SessionEvent",
    "SessionStatus",
    "SkipLedger",
    "SkippedTurn",
    "SkipType",
]
