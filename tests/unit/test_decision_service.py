"""
Unit tests for DecisionService orchestration.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from decision_engine.core.exceptions import (
    InvalidParametersError,
    NotFoundError,
    NotParticipantError,
    NotYourTurnError,
    SessionAlreadyTerminalError,
    SessionNotFoundError,
    ValidationError,
    VersionConflictError,
)
from decision_engine.models.schemas import (
    AlgorithmParams,
    Candidate,
    EventType,
    FilterConfiguration,
    FilterItem,
    FilterType,
    SessionStatus,
    SkipType,
)
from decision_engine.repositories.memory import DEMO_GROUP_ID

# Matches the clock fixture start
START = datetime(2024, 1, 6, 12, 0, tzinfo=timezone.utc)


async def play_to_completion(service, session):
    while session.status.is_active:
        status = await service.get_status(session.id, session.elimination_order[0])
        session = await service.eliminate(
            session.id, status.current_turn_user, status.current_candidates[0]
        )
    return session


class TestCreateSession:
    @pytest.mark.asyncio
    async def test_create_session(self, decision_service, session_repo, ten_candidates):
        params = AlgorithmParams(k=2, n=2, m=6, initial_count=99)

        session = await decision_service.create_session("group_pair", ten_candidates, params)

        assert session.status == SessionStatus.IN_PROGRESS
        assert session.params.initial_count == 10
        assert session.turn_timeout_minutes == 10
        stored = await session_repo.get(session.id)
        assert stored == session

    @pytest.mark.asyncio
    async def test_unknown_group(self, decision_service, pair_params, ten_candidates):
        with pytest.raises(NotFoundError):
            await decision_service.create_session("group_unknown", ten_candidates, pair_params)

    @pytest.mark.asyncio
    async def test_n_must_match_group_size(self, decision_service, ten_candidates):
        params = AlgorithmParams(k=2, n=3, m=4, initial_count=10)

        with pytest.raises(InvalidParametersError):
            await decision_service.create_session("group_pair", ten_candidates, params)

    @pytest.mark.asyncio
    async def test_duplicate_candidates(self, decision_service, pair_params):
        with pytest.raises(ValidationError):
            await decision_service.create_session(
                "group_pair", ["c0", "c0"] + [f"c{i}" for i in range(1, 9)], pair_params
            )


class TestTurnActions:
    @pytest.mark.asyncio
    async def test_concurrent_eliminations_serialize(
        self, decision_service, pair_params, ten_candidates
    ):
        """Two requests from the turn holder: only the first one lands."""
        session = await decision_service.create_session(
            "group_pair", ten_candidates, pair_params
        )
        holder = session.elimination_order[0]

        results = await asyncio.gather(
            decision_service.eliminate(session.id, holder, "c0"),
            decision_service.eliminate(session.id, holder, "c1"),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], NotYourTurnError)
        status = await decision_service.get_status(session.id, holder)
        assert len(status.current_candidates) == 9

    @pytest.mark.asyncio
    async def test_quick_skip(self, decision_service, pair_params, ten_candidates):
        session = await decision_service.create_session(
            "group_pair", ten_candidates, pair_params
        )
        first, second = session.elimination_order

        session = await decision_service.quick_skip(session.id, first)

        assert session.skip_ledger.quick_skips_used(first) == 1
        status = await decision_service.get_status(session.id, second)
        assert status.is_your_turn is True
        assert status.can_quick_skip is True
        assert status.skips_used == 0
        assert status.skip_limit == 2

    @pytest.mark.asyncio
    async def test_completion_publishes_and_records(
        self, decision_service, notifier, result_sink, pair_params, ten_candidates
    ):
        session = await decision_service.create_session(
            "group_pair", ten_candidates, pair_params
        )

        session = await play_to_completion(decision_service, session)

        assert session.status == SessionStatus.COMPLETED
        types = [e.type for e in notifier.events]
        assert types[:2] == [EventType.CREATED, EventType.STARTED]
        assert types[-1] == EventType.COMPLETED
        assert types.count(EventType.ELIMINATED) == 4

        assert len(result_sink.results) == 1
        result = result_sink.results[0]
        assert result.winner == session.final_selection
        assert result.runners_up == session.runners_up
        assert result.elimination_counts == {"alice": 2, "bob": 2}

    @pytest.mark.asyncio
    async def test_failing_notifier_does_not_break_actions(
        self, decision_service, pair_params, ten_candidates
    ):
        class BrokenHook:
            async def publish(self, event):
                raise RuntimeError("transport down")

        decision_service._notifier = BrokenHook()

        session = await decision_service.create_session(
            "group_pair", ten_candidates, pair_params
        )
        session = await decision_service.eliminate(
            session.id, session.elimination_order[0], "c0"
        )

        assert len(session.current_candidates) == 9

    @pytest.mark.asyncio
    async def test_unknown_session(self, decision_service):
        with pytest.raises(SessionNotFoundError):
            await decision_service.eliminate("nope", "alice", "c0")


class TestLazyTimeouts:
    @pytest.mark.asyncio
    async def test_status_applies_timeouts(
        self, decision_service, session_repo, clock, pair_params, ten_candidates
    ):
        session = await decision_service.create_session(
            "group_pair", ten_candidates, pair_params
        )
        first, second = session.elimination_order

        status = await decision_service.get_status(session.id, first)
        assert status.time_remaining_seconds == 600.0

        clock.set(START + timedelta(minutes=4))
        status = await decision_service.get_status(session.id, first)
        assert status.time_remaining_seconds == 360.0

        clock.advance(minutes=6)
        status = await decision_service.get_status(session.id, first)

        assert status.current_turn_user == second
        assert [s.skip_type for s in status.skipped_turns] == [SkipType.TIMEOUT_SKIP]
        assert status.time_remaining_seconds == 600.0
        stored = await session_repo.get(session.id)
        assert stored.version == session.version + 1

    @pytest.mark.asyncio
    async def test_rejected_action_keeps_timeout(
        self, decision_service, session_repo, clock, pair_params, ten_candidates
    ):
        session = await decision_service.create_session(
            "group_pair", ten_candidates, pair_params
        )
        first = session.elimination_order[0]

        clock.advance(minutes=12)
        with pytest.raises(NotYourTurnError):
            await decision_service.eliminate(session.id, first, "c0")

        stored = await session_repo.get(session.id)
        assert len(stored.skip_ledger.skipped_users) == 1
        assert stored.skip_ledger.skipped_users[0].user_id == first

    @pytest.mark.asyncio
    async def test_status_requires_participant(
        self, decision_service, pair_params, ten_candidates
    ):
        session = await decision_service.create_session(
            "group_pair", ten_candidates, pair_params
        )

        with pytest.raises(NotParticipantError):
            await decision_service.get_status(session.id, "mallory")


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel(self, decision_service, notifier, pair_params, ten_candidates):
        session = await decision_service.create_session(
            "group_pair", ten_candidates, pair_params
        )

        session = await decision_service.cancel(session.id)

        assert session.status == SessionStatus.CANCELLED
        assert notifier.events[-1].type == EventType.CANCELLED
        with pytest.raises(SessionAlreadyTerminalError):
            await decision_service.cancel(session.id)


class TestSessionRepository:
    @pytest.mark.asyncio
    async def test_stale_save_conflicts(
        self, decision_service, session_repo, pair_params, ten_candidates
    ):
        session = await decision_service.create_session(
            "group_pair", ten_candidates, pair_params
        )
        copy_a = await session_repo.get(session.id)
        copy_b = await session_repo.get(session.id)

        await session_repo.save(copy_a, copy_a.version)

        with pytest.raises(VersionConflictError) as exc_info:
            await session_repo.save(copy_b, copy_b.version)
        assert exc_info.value.details["retryable"] is True


class TestFiltering:
    @pytest.mark.asyncio
    async def test_group_filters(self, decision_service):
        configuration = FilterConfiguration(
            filters=[
                FilterItem(
                    id="vegan",
                    type=FilterType.DIETARY,
                    is_hard=True,
                    criteria={"requirements": ["vegan"]},
                )
            ]
        )

        report = await decision_service.apply_group_filters(DEMO_GROUP_ID, configuration)

        assert report.admissible_ids == ["r03", "r06", "r11"]
        assert len(report.rejected) == 10

    @pytest.mark.asyncio
    async def test_group_filters_read_candidate_source(self, decision_service, candidate_repo):
        candidate_repo.set_candidates(
            "group_pair",
            [Candidate(id="tofu", dietary_tags=["vegan"]), Candidate(id="steak")],
        )
        configuration = FilterConfiguration(
            filters=[
                FilterItem(
                    id="vegan",
                    type=FilterType.DIETARY,
                    is_hard=True,
                    criteria={"requirements": ["vegan"]},
                )
            ]
        )

        report = await decision_service.apply_group_filters("group_pair", configuration)

        assert report.admissible_ids == ["tofu"]
        assert [r.candidate_id for r in report.rejected] == ["steak"]

    def test_suggest_parameters(self, decision_service):
        suggestions = decision_service.suggest_parameters(13, 3)

        assert [(s.k, s.m) for s in suggestions] == [(3, 4)]
