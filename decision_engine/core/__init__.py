"""Core infrastructure components."""
from .clock import Clock, ManualClock, SystemClock
from .exceptions import (
    AlreadyDeferredError,
    AppException,
    CandidateNotFoundError,
    DecisionError,
    EliminationIncompleteError,
    InternalConsistencyError,
    InvalidParametersError,
    NoCandidatesRemainingError,
    NotFoundError,
    NotParticipantError,
    NotYourTurnError,
    SessionAlreadyTerminalError,
    SessionNotFoundError,
    SkipLimitExceededError,
    ValidationError,
    VersionConflictError,
)
from .locks import KeyedLock

__all__ = [
    "AlreadyDeferredError",
    "AppException",
    "CandidateNotFoundError",
    "Clock",
    "DecisionError",
    "EliminationIncompleteError",
    "InternalConsistencyError",
    "InvalidParametersError",
    "KeyedLock",
    "ManualClock",
    "NoCandidatesRemainingError",
    "NotFoundError",
    "NotParticipantError",
    "NotYourTurnError",
    "SessionAlreadyTerminalError",
    "SessionNotFoundError",
    "SkipLimitExceededError",
    "SystemClock",
    "ValidationError",
    "VersionConflictError",
]
