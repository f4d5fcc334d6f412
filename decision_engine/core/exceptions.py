"""
Custom exception hierarchy for centralized error handling.
All exceptions map to appropriate HTTP status codes.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to API response format."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(AppException):
    """Invalid input data."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=404,
            error_code="NOT_FOUND",
            details={"resource": resource, "identifier": identifier},
        )


# =============================================================================
# Decision Errors (caller/state mismatches, never retried by the engine)
# =============================================================================


class DecisionError(AppException):
    """A request that does not fit the current session state."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 409,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class NotYourTurnError(DecisionError):
    """Someone other than the turn holder tried to act."""

    def __init__(self, user_id: str, turn_holder: Optional[str]) -> None:
        super().__init__(
            message=f"It is not {user_id}'s turn",
            error_code="NOT_YOUR_TURN",
            details={"user_id": user_id, "turn_holder": turn_holder},
        )


class SkipLimitExceededError(DecisionError):
    """User has used all their quick-skips."""

    def __init__(self, user_id: str, limit: int) -> None:
        super().__init__(
            message=f"{user_id} has used all {limit} quick-skips",
            error_code="SKIP_LIMIT_EXCEEDED",
            details={"user_id": user_id, "limit": limit},
        )


class AlreadyDeferredError(DecisionError):
    """This exact turn has already been deferred once."""

    def __init__(self, user_id: str, round_number: int, turn_index: int) -> None:
        super().__init__(
            message=f"Turn {turn_index} of round {round_number} was already deferred",
            error_code="ALREADY_DEFERRED",
            details={
                "user_id": user_id,
                "round": round_number,
                "turn_index": turn_index,
            },
        )


class CandidateNotFoundError(DecisionError):
    """Targeted candidate is not among the remaining candidates."""

    def __init__(self, candidate_id: str) -> None:
        super().__init__(
            message=f"Candidate not in play: {candidate_id}",
            error_code="CANDIDATE_NOT_FOUND",
            status_code=404,
            details={"candidate_id": candidate_id},
        )


class NoCandidatesRemainingError(DecisionError):
    """Nothing left to draw a winner from."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            message="No candidates remaining to select from",
            error_code="NO_CANDIDATES_REMAINING",
            details={"session_id": session_id},
        )


class InvalidParametersError(DecisionError):
    """K/N/M do not describe a playable elimination."""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=f"Invalid algorithm parameters: {reason}",
            error_code="INVALID_PARAMETERS",
            status_code=422,
            details={"reason": reason, **(details or {})},
        )


class SessionNotFoundError(DecisionError):
    """No session with this identifier."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            message=f"Session not found: {session_id}",
            error_code="SESSION_NOT_FOUND",
            status_code=404,
            details={"session_id": session_id},
        )


class SessionAlreadyTerminalError(DecisionError):
    """Session is completed or cancelled and can no longer change."""

    def __init__(self, session_id: str, status: str) -> None:
        super().__init__(
            message=f"Session {session_id} is already {status}",
            error_code="SESSION_ALREADY_TERMINAL",
            details={"session_id": session_id, "status": status},
        )


class NotParticipantError(DecisionError):
    """User is not part of this session."""

    def __init__(self, user_id: str, session_id: str) -> None:
        super().__init__(
            message=f"{user_id} is not a participant of session {session_id}",
            error_code="NOT_PARTICIPANT",
            status_code=403,
            details={"user_id": user_id, "session_id": session_id},
        )


# =============================================================================
# Persistence & Consistency
# =============================================================================


class VersionConflictError(AppException):
    """Another writer saved the session first. Re-fetch and retry."""

    def __init__(self, session_id: str, expected: int, actual: int) -> None:
        super().__init__(
            message=f"Session {session_id} was modified concurrently",
            status_code=409,
            error_code="VERSION_CONFLICT",
            details={
                "session_id": session_id,
                "expected_version": expected,
                "actual_version": actual,
                "retryable": True,
            },
        )


class InternalConsistencyError(AppException):
    """Session state violates an engine invariant."""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=f"Internal consistency error: {reason}",
            status_code=500,
            error_code="INTERNAL_CONSISTENCY_ERROR",
            details={"reason": reason, **(details or {})},
        )


class EliminationIncompleteError(InternalConsistencyError):
    """Finalization requested while more than M candidates remain."""

    def __init__(self, remaining: int, target: int) -> None:
        super().__init__(
            reason="too many candidates remain for the final draw",
            details={"remaining": remaining, "target": target},
        )
