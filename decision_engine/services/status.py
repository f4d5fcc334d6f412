"""
Read-only status projection of an elimination session.
"""
from datetime import datetime

from decision_engine.models.schemas import (
    EliminationSession,
    EliminationStatus,
    SessionStatus,
)
from decision_engine.services.turns import TurnCoordinator


def build_status(
    session: EliminationSession,
    user_id: str,
    now: datetime,
    coordinator: TurnCoordinator,
) -> EliminationStatus:
    """
    What `user_id` sees right now.

    Expects pending timeouts to have been applied already.
    """
    holder = coordinator.turn_holder(session)
    active = session.status.is_active
    ledger = session.skip_ledger
    skips_used = ledger.quick_skips_used(user_id)
    is_your_turn = active and holder == user_id

    deadline = coordinator.turn_deadline(session) if active else None
    remaining = 0.0
    if deadline is not None:
        remaining = max(0.0, (deadline - now).total_seconds())

    can_quick_skip = (
        is_your_turn
        and skips_used < session.params.k
        and not ledger.has_deferred(user_id, session.current_round, session.current_turn_index)
    )

    return EliminationStatus(
        session_id=session.id,
        status=session.status,
        current_candidates=list(session.current_candidates),
        current_turn_user=holder,
        is_your_turn=is_your_turn,
        current_round=session.current_round,
        turn_deadline=deadline,
        time_remaining_seconds=remaining,
        elimination_order=list(session.elimination_order),
        skipped_turns=list(ledger.skipped_users),
        can_quick_skip=can_quick_skip,
        skips_used=skips_used,
        skip_limit=session.params.k,
        is_catch_up=session.status == SessionStatus.CATCH_UP,
        final_selection=session.final_selection,
        runners_up=list(session.runners_up),
    )
