"""
Filtering and parameter suggestion router.
"""
import logging

from fastapi import APIRouter, Depends, Query

from decision_engine.api.dependencies import get_decision_service
from decision_engine.core.exceptions import ValidationError
from decision_engine.models.schemas import (
    ApplyFiltersRequest,
    FilterReport,
    ParameterSuggestionResponse,
)
from decision_engine.services.decision import DecisionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["filters"])


@router.post(
    "/filters/apply",
    response_model=FilterReport,
    summary="Apply Filters",
    description="""
    Evaluate hard and soft filters against a candidate pool.

    The pool is either given inline (`candidates`) or loaded for `group_id`.

    **Ranking:**
    - Hard filters exclude candidates outright
    - Soft filters rank the rest by priority-weighted pass rate
    - When nothing passes, suggests which hard filter to relax
    """,
    responses={
        200: {"description": "Filter report returned"},
        400: {"description": "Malformed criteria or missing pool"},
    },
)
async def apply_filters(
    request: ApplyFiltersRequest,
    service: DecisionService = Depends(get_decision_service),
) -> FilterReport:
    if request.candidates is not None:
        return await service.apply_filters(request.candidates, request.configuration)
    if request.group_id:
        return await service.apply_group_filters(request.group_id, request.configuration)
    raise ValidationError("Either candidates or group_id is required")


@router.get(
    "/parameters/suggestions",
    response_model=ParameterSuggestionResponse,
    summary="Suggest Elimination Parameters",
    responses={
        200: {"description": "Viable (K, N, M) triples, or a single fallback"},
        422: {"description": "Participant count out of range"},
    },
)
async def suggest_parameters(
    candidate_count: int = Query(..., ge=0, description="Size of the filtered pool"),
    participant_count: int = Query(..., ge=1, description="Group size (N)"),
    service: DecisionService = Depends(get_decision_service),
) -> ParameterSuggestionResponse:
    suggestions = service.suggest_parameters(candidate_count, participant_count)
    return ParameterSuggestionResponse(
        suggestions=suggestions,
        requires_relaxation=any(s.is_fallback for s in suggestions),
    )
