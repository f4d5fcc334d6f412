"""
Elimination session router.
Turn actions identify the caller with the X-User-ID header.
"""
import logging

from fastapi import APIRouter, Depends, Header, status

from decision_engine.api.dependencies import get_decision_service
from decision_engine.models.schemas import (
    CreateSessionRequest,
    EliminateRequest,
    EliminationSession,
    EliminationStatus,
    ErrorResponse,
)
from decision_engine.services.decision import DecisionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/sessions", tags=["sessions"])

_CONFLICT = {409: {"model": ErrorResponse, "description": "Action does not fit the session state"}}
_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Session or candidate not found"}}


@router.post(
    "",
    response_model=EliminationSession,
    status_code=status.HTTP_201_CREATED,
    summary="Create Elimination Session",
    description="""
    Start a KN+M elimination for a group.

    The group's members become the participants in a random order; each
    eliminates K candidates and the last M go to a random draw.
    """,
    responses={
        404: {"model": ErrorResponse, "description": "Group not found"},
        422: {"model": ErrorResponse, "description": "Invalid parameters"},
    },
)
async def create_session(
    request: CreateSessionRequest,
    service: DecisionService = Depends(get_decision_service),
) -> EliminationSession:
    return await service.create_session(
        group_id=request.group_id,
        candidate_ids=request.candidate_ids,
        params=request.params,
        turn_timeout_minutes=request.turn_timeout_minutes,
    )


@router.post(
    "/{session_id}/eliminations",
    response_model=EliminationSession,
    summary="Eliminate Candidate",
    responses={**_CONFLICT, **_NOT_FOUND},
)
async def eliminate(
    session_id: str,
    request: EliminateRequest,
    x_user_id: str = Header(..., alias="X-User-ID", min_length=1),
    service: DecisionService = Depends(get_decision_service),
) -> EliminationSession:
    return await service.eliminate(session_id, x_user_id, request.candidate_id)


@router.post(
    "/{session_id}/quick-skip",
    response_model=EliminationSession,
    summary="Quick-Skip Turn",
    description="Defer the current turn to catch-up. Limited to K per participant.",
    responses={**_CONFLICT, **_NOT_FOUND},
)
async def quick_skip(
    session_id: str,
    x_user_id: str = Header(..., alias="X-User-ID", min_length=1),
    service: DecisionService = Depends(get_decision_service),
) -> EliminationSession:
    return await service.quick_skip(session_id, x_user_id)


@router.get(
    "/{session_id}/status",
    response_model=EliminationStatus,
    summary="Session Status",
    responses={
        403: {"model": ErrorResponse, "description": "Caller is not a participant"},
        **_NOT_FOUND,
    },
)
async def get_status(
    session_id: str,
    x_user_id: str = Header(..., alias="X-User-ID", min_length=1),
    service: DecisionService = Depends(get_decision_service),
) -> EliminationStatus:
    return await service.get_status(session_id, x_user_id)


@router.post(
    "/{session_id}/cancel",
    response_model=EliminationSession,
    summary="Cancel Session",
    responses={**_CONFLICT, **_NOT_FOUND},
)
async def cancel(
    session_id: str,
    service: DecisionService = Depends(get_decision_service),
) -> EliminationSession:
    logger.info(f"Cancelling session {session_id}", extra={"session_id": session_id})
    return await service.cancel(session_id)
