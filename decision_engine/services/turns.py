"""
Turn coordinator.
The only code that mutates an EliminationSession: eliminations, quick-skips,
lazy timeouts, catch-up replay and finalization.

Every public operation validates before it mutates, so a raised error leaves
the session untouched. Operations return the SessionEvents they produced.
"""
import logging
import random
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from decision_engine.core.exceptions import (
    AlreadyDeferredError,
    CandidateNotFoundError,
    EliminationIncompleteError,
    InternalConsistencyError,
    NoCandidatesRemainingError,
    NotYourTurnError,
    SessionAlreadyTerminalError,
    SkipLimitExceededError,
)
from decision_engine.models.schemas import (
    AlgorithmParams,
    Elimination,
    EliminationSession,
    EventType,
    SessionEvent,
    SessionStatus,
    SkippedTurn,
    SkipType,
)
from decision_engine.services.results import RandomSelector

logger = logging.getLogger(__name__)


class TurnCoordinator:
    """
    Drives the KN+M elimination state machine.

    Setup -> InProgress -> CatchUp -> Completed, with Cancelled reachable
    from any non-terminal state. Time is always passed in; randomness comes
    from the injected source.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        selector: Optional[RandomSelector] = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._selector = selector or RandomSelector(self._rng)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def open_session(
        self,
        group_id: str,
        participants: List[str],
        candidate_ids: List[str],
        params: AlgorithmParams,
        turn_timeout_minutes: int,
        now: datetime,
    ) -> Tuple[EliminationSession, List[SessionEvent]]:
        """Create a session in Setup and immediately commit a random order."""
        session = EliminationSession(
            group_id=group_id,
            params=params,
            elimination_order=list(participants),
            scheduled_rounds=params.k,
            turn_started_at=now,
            turn_timeout_minutes=turn_timeout_minutes,
            initial_candidates=list(candidate_ids),
            current_candidates=list(candidate_ids),
            created_at=now,
        )
        events = [self._event(session, EventType.CREATED, now)]
        events.extend(self.start(session, now))
        return session, events

    def start(self, session: EliminationSession, now: datetime) -> List[SessionEvent]:
        """Shuffle the elimination order and begin round 1."""
        if session.status != SessionStatus.SETUP:
            raise InternalConsistencyError(
                "only sessions in setup can be started",
                details={"status": session.status.value},
            )
        order = list(session.elimination_order)
        self._rng.shuffle(order)
        session.elimination_order = order
        session.current_turn_index = 0
        session.current_round = 1
        session.turn_started_at = now
        session.status = SessionStatus.IN_PROGRESS

        events = [
            self._event(session, EventType.STARTED, now, details={"order": order})
        ]
        if len(session.current_candidates) <= session.params.m:
            # Pool already small enough, no elimination needed
            self._complete(session, now, events)
        return events

    def cancel(self, session: EliminationSession, now: datetime) -> List[SessionEvent]:
        self._ensure_not_terminal(session)
        session.status = SessionStatus.CANCELLED
        session.cancelled_at = now
        session.catch_up_entry = None
        return [self._event(session, EventType.CANCELLED, now)]

    def finalize(self, session: EliminationSession, now: datetime) -> List[SessionEvent]:
        """
        Draw the winner explicitly.

        Raises:
            EliminationIncompleteError: more than M candidates remain
            NoCandidatesRemainingError: nothing left to draw
        """
        self._ensure_active(session)
        if len(session.current_candidates) > session.params.m:
            raise EliminationIncompleteError(
                remaining=len(session.current_candidates),
                target=session.params.m,
            )
        events: List[SessionEvent] = []
        self._complete(session, now, events)
        return events

    # -------------------------------------------------------------------------
    # Turn Actions
    # -------------------------------------------------------------------------

    def eliminate(
        self,
        session: EliminationSession,
        user_id: str,
        candidate_id: str,
        now: datetime,
    ) -> List[SessionEvent]:
        """Remove a candidate on the caller's turn."""
        self._ensure_active(session)
        holder = self.turn_holder(session)
        if user_id != holder:
            raise NotYourTurnError(user_id, holder)
        if candidate_id not in session.current_candidates:
            raise CandidateNotFoundError(candidate_id)

        catch_up = session.status == SessionStatus.CATCH_UP
        session.current_candidates = [
            c for c in session.current_candidates if c != candidate_id
        ]
        session.eliminations.append(
            Elimination(
                user_id=user_id,
                candidate_id=candidate_id,
                round=session.current_round,
                turn_index=session.current_turn_index,
                eliminated_at=now,
                catch_up=catch_up,
            )
        )
        if catch_up:
            session.skip_ledger.resolve(self._catch_up_index(session))

        events = [
            self._event(
                session,
                EventType.ELIMINATED,
                now,
                user_id=user_id,
                details={
                    "candidate_id": candidate_id,
                    "round": session.current_round,
                    "remaining": len(session.current_candidates),
                },
            )
        ]
        self._advance(session, now, events)
        return events

    def quick_skip(
        self,
        session: EliminationSession,
        user_id: str,
        now: datetime,
    ) -> List[SessionEvent]:
        """Defer the caller's turn to catch-up, using one of their K skips."""
        self._ensure_active(session)
        holder = self.turn_holder(session)
        if user_id != holder:
            raise NotYourTurnError(user_id, holder)

        ledger = session.skip_ledger
        limit = session.params.k
        if ledger.quick_skips_used(user_id) >= limit:
            raise SkipLimitExceededError(user_id, limit)
        if ledger.has_deferred(user_id, session.current_round, session.current_turn_index):
            raise AlreadyDeferredError(
                user_id, session.current_round, session.current_turn_index
            )

        ledger.append(
            SkippedTurn(
                user_id=user_id,
                round=session.current_round,
                turn_index=session.current_turn_index,
                skip_type=SkipType.QUICK_SKIP,
                recorded_at=now,
            )
        )
        events = [
            self._event(
                session,
                EventType.QUICK_SKIPPED,
                now,
                user_id=user_id,
                details={"skips_used": ledger.quick_skips_used(user_id), "limit": limit},
            )
        ]
        self._advance(session, now, events)
        return events

    def expire_turns(self, session: EliminationSession, now: datetime) -> List[SessionEvent]:
        """
        Apply every timeout that elapsed before `now`.

        Each expired turn's successor starts at the expired deadline, so a
        session left alone for a long time is brought fully up to date.
        Idempotent for a given `now`.
        """
        events: List[SessionEvent] = []
        while session.status.is_active:
            deadline = self.turn_deadline(session)
            if now < deadline:
                break
            if session.status == SessionStatus.CATCH_UP:
                self._forfeit(session, deadline, events)
            else:
                self._timeout_skip(session, deadline, events)
        return events

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def turn_holder(self, session: EliminationSession) -> Optional[str]:
        """Participant whose turn it is, None when the session is not active."""
        if not session.status.is_active:
            return None
        index = session.current_turn_index
        if not 0 <= index < len(session.elimination_order):
            raise InternalConsistencyError(
                "turn index out of range",
                details={"index": index, "participants": len(session.elimination_order)},
            )
        holder = session.elimination_order[index]
        if holder in session.forfeited_users:
            raise InternalConsistencyError(
                "turn held by a forfeited participant",
                details={"user_id": holder},
            )
        return holder

    @staticmethod
    def turn_deadline(session: EliminationSession) -> datetime:
        return session.turn_started_at + timedelta(minutes=session.turn_timeout_minutes)

    # -------------------------------------------------------------------------
    # Passive Actions
    # -------------------------------------------------------------------------

    def _timeout_skip(
        self,
        session: EliminationSession,
        at: datetime,
        events: List[SessionEvent],
    ) -> None:
        holder = self.turn_holder(session)
        session.skip_ledger.append(
            SkippedTurn(
                user_id=holder,
                round=session.current_round,
                turn_index=session.current_turn_index,
                skip_type=SkipType.TIMEOUT_SKIP,
                recorded_at=at,
            )
        )
        events.append(
            self._event(
                session,
                EventType.TIMEOUT_SKIPPED,
                at,
                user_id=holder,
                details={"round": session.current_round},
            )
        )
        logger.info(
            f"Turn timed out for {holder} in round {session.current_round}",
            extra={"session_id": session.id, "user_id": holder},
        )
        self._advance(session, at, events)

    def _forfeit(
        self,
        session: EliminationSession,
        at: datetime,
        events: List[SessionEvent],
    ) -> None:
        """Catch-up timeout: the holder loses every deferred turn at once."""
        holder = self.turn_holder(session)
        ledger = session.skip_ledger
        forfeited = 0
        for index, entry in ledger.unresolved():
            if entry.user_id != holder:
                continue
            ledger.append(
                SkippedTurn(
                    user_id=holder,
                    round=entry.round,
                    turn_index=entry.turn_index,
                    skip_type=SkipType.FORFEITED,
                    recorded_at=at,
                )
            )
            ledger.resolve(index)
            forfeited += 1

        session.forfeited_users.append(holder)
        events.append(
            self._event(
                session,
                EventType.FORFEITED,
                at,
                user_id=holder,
                details={"forfeited_turns": forfeited},
            )
        )
        logger.info(
            f"{holder} forfeited {forfeited} deferred turns",
            extra={"session_id": session.id, "user_id": holder},
        )
        self._advance(session, at, events)

    # -------------------------------------------------------------------------
    # Turn Advance
    # -------------------------------------------------------------------------

    def _advance(
        self,
        session: EliminationSession,
        at: datetime,
        events: List[SessionEvent],
    ) -> None:
        if len(session.current_candidates) <= session.params.m:
            self._complete(session, at, events)
            return

        if session.status == SessionStatus.CATCH_UP:
            self._next_catch_up_turn(session, at, events)
            return

        if not session.active_participants:
            self._next_catch_up_turn(session, at, events)
            return

        order = session.elimination_order
        index = session.current_turn_index
        while True:
            index = (index + 1) % len(order)
            if index == 0:
                session.current_round += 1
            if order[index] not in session.forfeited_users:
                break
        session.current_turn_index = index
        session.turn_started_at = at

        if session.current_round > session.scheduled_rounds:
            self._next_catch_up_turn(session, at, events)
            return

        events.append(self._turn_event(session, at))

    def _next_catch_up_turn(
        self,
        session: EliminationSession,
        at: datetime,
        events: List[SessionEvent],
    ) -> None:
        """Replay the oldest unresolved deferral, or move past catch-up."""
        pending = session.skip_ledger.unresolved()
        if pending:
            index, entry = pending[0]
            if not (
                0 <= entry.turn_index < len(session.elimination_order)
                and session.elimination_order[entry.turn_index] == entry.user_id
            ):
                raise InternalConsistencyError(
                    "skip log entry does not match the elimination order",
                    details={"entry": index, "user_id": entry.user_id},
                )
            if session.status != SessionStatus.CATCH_UP:
                session.status = SessionStatus.CATCH_UP
                events.append(
                    self._event(
                        session,
                        EventType.CATCH_UP_STARTED,
                        at,
                        details={"pending_turns": len(pending)},
                    )
                )
            session.catch_up_entry = index
            session.current_round = entry.round
            session.current_turn_index = entry.turn_index
            session.turn_started_at = at
            events.append(self._turn_event(session, at))
            return

        session.catch_up_entry = None
        active = session.active_participants
        if not active:
            logger.warning(
                f"No participants left with {len(session.current_candidates)} "
                f"candidates above target {session.params.m}, drawing from all",
                extra={"session_id": session.id},
            )
            self._complete(session, at, events)
            return

        # Forfeits (or a fallback M) left too many candidates: keep eliminating
        session.status = SessionStatus.IN_PROGRESS
        session.scheduled_rounds += 1
        session.current_round = session.scheduled_rounds
        session.current_turn_index = session.elimination_order.index(active[0])
        session.turn_started_at = at
        logger.warning(
            f"Extension round {session.current_round} needed, "
            f"{len(session.current_candidates)} candidates remain for M={session.params.m}",
            extra={"session_id": session.id},
        )
        events.append(
            self._event(
                session,
                EventType.EXTENSION_ROUND_STARTED,
                at,
                details={"round": session.current_round},
            )
        )
        events.append(self._turn_event(session, at))

    def _complete(
        self,
        session: EliminationSession,
        at: datetime,
        events: List[SessionEvent],
    ) -> None:
        if not session.current_candidates:
            raise NoCandidatesRemainingError(session.id)
        winner, runners_up = self._selector.draw(session.current_candidates)
        session.final_selection = winner
        session.runners_up = runners_up
        session.status = SessionStatus.COMPLETED
        session.completed_at = at
        session.catch_up_entry = None
        events.append(
            self._event(
                session,
                EventType.COMPLETED,
                at,
                details={"winner": winner, "runners_up": runners_up},
            )
        )
        logger.info(
            f"Decision completed with {len(session.current_candidates)} finalists",
            extra={"session_id": session.id, "group_id": session.group_id},
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _ensure_not_terminal(session: EliminationSession) -> None:
        if session.status.is_terminal:
            raise SessionAlreadyTerminalError(session.id, session.status.value)

    def _ensure_active(self, session: EliminationSession) -> None:
        self._ensure_not_terminal(session)
        if not session.status.is_active:
            raise InternalConsistencyError(
                "session has not been started",
                details={"status": session.status.value},
            )

    @staticmethod
    def _catch_up_index(session: EliminationSession) -> int:
        index = session.catch_up_entry
        if index is None or not 0 <= index < len(session.skip_ledger.skipped_users):
            raise InternalConsistencyError(
                "catch-up turn without a skip log entry",
                details={"catch_up_entry": index},
            )
        return index

    def _turn_event(self, session: EliminationSession, at: datetime) -> SessionEvent:
        return self._event(
            session,
            EventType.TURN_ADVANCED,
            at,
            user_id=session.elimination_order[session.current_turn_index],
            details={
                "round": session.current_round,
                "turn_index": session.current_turn_index,
                "catch_up": session.status == SessionStatus.CATCH_UP,
            },
        )

    @staticmethod
    def _event(
        session: EliminationSession,
        event_type: EventType,
        at: datetime,
        user_id: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> SessionEvent:
        return SessionEvent(
            type=event_type,
            session_id=session.id,
            group_id=session.group_id,
            occurred_at=at,
            user_id=user_id,
            details=details or {},
        )
