"""
Final draw and result assembly.
"""
import random
from typing import List, Optional, Tuple

from decision_engine.models.schemas import (
    DecisionResult,
    EliminationSession,
    SkipType,
)


class RandomSelector:
    """Uniform draw of the winner from the final set."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def draw(
        self,
        candidates: List[str],
        rng: Optional[random.Random] = None,
    ) -> Tuple[str, List[str]]:
        """
        Pick one winner.

        Returns:
            Tuple of (winner, runners_up) where runners_up keeps the input
            order without the winner
        """
        if not candidates:
            raise ValueError("cannot draw from an empty candidate set")
        winner = (rng or self._rng).choice(candidates)
        runners_up = [c for c in candidates if c != winner]
        return winner, runners_up


def build_decision_result(session: EliminationSession) -> DecisionResult:
    """Summary of a completed session for the activity log."""
    participants = list(session.elimination_order)
    ledger = session.skip_ledger

    eliminations = {u: 0 for u in participants}
    for record in session.eliminations:
        eliminations[record.user_id] = eliminations.get(record.user_id, 0) + 1

    return DecisionResult(
        session_id=session.id,
        group_id=session.group_id,
        winner=session.final_selection,
        runners_up=list(session.runners_up),
        participants=participants,
        elimination_counts=eliminations,
        quick_skip_counts={u: ledger.count(u, SkipType.QUICK_SKIP) for u in participants},
        timeout_skip_counts={u: ledger.count(u, SkipType.TIMEOUT_SKIP) for u in participants},
        forfeited_counts={u: ledger.count(u, SkipType.FORFEITED) for u in participants},
        params=session.params,
        completed_at=session.completed_at,
    )
