"""
Decision service - main business logic orchestrator.
Coordinates repositories, the filter engine and the turn coordinator.
Every session mutation runs under a per-session lock and is saved with
optimistic versioning.
"""
import logging
from typing import Awaitable, Callable, List, Optional

from decision_engine.core.clock import Clock
from decision_engine.core.exceptions import (
    DecisionError,
    NotFoundError,
    NotParticipantError,
    SessionNotFoundError,
    ValidationError,
)
from decision_engine.core.locks import KeyedLock
from decision_engine.core.telemetry import record_session_events
from decision_engine.models.interfaces import (
    CandidateRepository,
    DecisionResultSink,
    MembershipRepository,
    NotificationHook,
    SessionRepository,
)
from decision_engine.models.schemas import (
    AlgorithmParams,
    Candidate,
    EliminationSession,
    EliminationStatus,
    EventType,
    FilterConfiguration,
    FilterReport,
    SessionEvent,
)
from decision_engine.services.filter_engine import FilterEngine
from decision_engine.services.parameters import ParameterSuggester
from decision_engine.services.results import build_decision_result
from decision_engine.services.status import build_status
from decision_engine.services.turns import TurnCoordinator

logger = logging.getLogger(__name__)

SessionAction = Callable[[EliminationSession], List[SessionEvent]]


class DecisionService:
    """
    Group decision flow.

    Responsibilities:
    - Filter candidate pools and suggest parameters
    - Create sessions for a group
    - Apply turn actions, lazy timeouts included
    - Publish transitions and record completed decisions
    """

    def __init__(
            self,
            session_repo: SessionRepository,
            candidate_repo: CandidateRepository,
            membership_repo: MembershipRepository,
            notifier: NotificationHook,
            result_sink: DecisionResultSink,
            filter_engine: FilterEngine,
            suggester: ParameterSuggester,
            coordinator: TurnCoordinator,
            clock: Clock,
            locks: Optional[KeyedLock] = None,
            default_turn_timeout_minutes: int = 10,
    ) -> None:
        """
        Initialize decision service with dependencies.

        Args:
            session_repo: Versioned session storage
            candidate_repo: Source of a group's candidates
            membership_repo: Group membership lookup
            notifier: Receives every state transition
            result_sink: Receives completed decisions
            filter_engine: Hard/soft filter evaluation
            suggester: (K, N, M) suggestion and validation
            coordinator: Session state machine
            clock: Time source for timeouts and stamps
            locks: Per-session lock registry
            default_turn_timeout_minutes: Used when a request gives none
        """
        self._session_repo = session_repo
        self._candidate_repo = candidate_repo
        self._membership_repo = membership_repo
        self._notifier = notifier
        self._result_sink = result_sink
        self._filter_engine = filter_engine
        self._suggester = suggester
        self._coordinator = coordinator
        self._clock = clock
        self._locks = locks or KeyedLock()
        self._default_turn_timeout = default_turn_timeout_minutes

    # -------------------------------------------------------------------------
    # Filtering & Parameters
    # -------------------------------------------------------------------------

    async def apply_filters(
            self,
            candidates: List[Candidate],
            configuration: FilterConfiguration,
    ) -> FilterReport:
        """Filter and rank an explicit candidate list."""
        return self._filter_engine.evaluate(
            candidates, configuration, now=self._clock.now()
        )

    async def apply_group_filters(
            self,
            group_id: str,
            configuration: FilterConfiguration,
    ) -> FilterReport:
        """Filter and rank the group's candidates from the candidate source."""
        candidates = await self._candidate_repo.get_candidates(group_id)
        if not candidates:
            logger.warning(f"No candidates for group={group_id}", extra={"group_id": group_id})
        return await self.apply_filters(candidates, configuration)

    def suggest_parameters(
            self,
            candidate_count: int,
            participant_count: int,
    ) -> List[AlgorithmParams]:
        return self._suggester.suggest(candidate_count, participant_count)

    # -------------------------------------------------------------------------
    # Session Lifecycle
    # -------------------------------------------------------------------------

    async def create_session(
            self,
            group_id: str,
            candidate_ids: List[str],
            params: AlgorithmParams,
            turn_timeout_minutes: Optional[int] = None,
    ) -> EliminationSession:
        """
        Start an elimination for the group's current members.

        Raises:
            NotFoundError: group has no members
            ValidationError: duplicate candidate ids
            InvalidParametersError: params do not fit pool and group
        """
        members = await self._membership_repo.get_members(group_id)
        if not members:
            raise NotFoundError("Group", group_id)
        if len(set(candidate_ids)) != len(candidate_ids):
            raise ValidationError(
                "Candidate ids must be unique",
                details={"candidate_ids": candidate_ids},
            )

        params = params.model_copy(update={"initial_count": len(candidate_ids)})
        self._suggester.validate(params, len(candidate_ids), len(members))

        session, events = self._coordinator.open_session(
            group_id=group_id,
            participants=members,
            candidate_ids=candidate_ids,
            params=params,
            turn_timeout_minutes=turn_timeout_minutes or self._default_turn_timeout,
            now=self._clock.now(),
        )
        async with self._locks.hold(session.id):
            await self._session_repo.add(session)
            await self._after_commit(session, events)

        logger.info(
            f"Session created: k={params.k}, n={params.n}, m={params.m}, "
            f"candidates={len(candidate_ids)}",
            extra={"session_id": session.id, "group_id": group_id},
        )
        return session

    async def eliminate(
            self,
            session_id: str,
            user_id: str,
            candidate_id: str,
    ) -> EliminationSession:
        now = self._clock.now()
        return await self._mutate(
            session_id,
            lambda s: self._coordinator.eliminate(s, user_id, candidate_id, now),
        )

    async def quick_skip(self, session_id: str, user_id: str) -> EliminationSession:
        now = self._clock.now()
        return await self._mutate(
            session_id,
            lambda s: self._coordinator.quick_skip(s, user_id, now),
        )

    async def cancel(self, session_id: str) -> EliminationSession:
        now = self._clock.now()
        return await self._mutate(
            session_id,
            lambda s: self._coordinator.cancel(s, now),
        )

    async def get_status(self, session_id: str, user_id: str) -> EliminationStatus:
        """
        Status as seen by one participant.
        Applies pending timeouts first, so the query can change the session.
        """
        now = self._clock.now()

        def check_participant(session: EliminationSession) -> List[SessionEvent]:
            if user_id not in session.elimination_order:
                raise NotParticipantError(user_id, session_id)
            return []

        session = await self._mutate(session_id, check_participant)
        return build_status(session, user_id, now, self._coordinator)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _mutate(self, session_id: str, action: SessionAction) -> EliminationSession:
        """
        Load, bring timeouts up to date, apply `action`, save.

        A DecisionError from `action` still commits the timeouts applied
        before it, then propagates.
        """
        async with self._locks.hold(session_id):
            session = await self._session_repo.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            expected = session.version
            now = self._clock.now()

            events = self._coordinator.expire_turns(session, now)
            try:
                events.extend(action(session))
            except DecisionError:
                if events:
                    await self._commit(session, expected, events)
                raise

            if events:
                await self._commit(session, expected, events)
            return session

    async def _commit(
            self,
            session: EliminationSession,
            expected_version: int,
            events: List[SessionEvent],
    ) -> None:
        await self._session_repo.save(session, expected_version)
        await self._after_commit(session, events)

    async def _after_commit(
            self,
            session: EliminationSession,
            events: List[SessionEvent],
    ) -> None:
        record_session_events(events)
        for event in events:
            await self._publish(event)
        if any(e.type == EventType.COMPLETED for e in events):
            await self._result_sink.record(build_decision_result(session))

    async def _publish(self, event: SessionEvent) -> None:
        try:
            await self._notifier.publish(event)
        except Exception as e:
            logger.warning(
                f"Notification failed for {event.type.value}: {str(e)}",
                extra={"session_id": event.session_id, "group_id": event.group_id},
            )
