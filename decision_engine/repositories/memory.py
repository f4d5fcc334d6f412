"""
In-memory repository implementations.
Used for prototyping and testing.
Production would replace these with database-backed implementations.
"""
from threading import Lock
from typing import Dict, List, Optional

from decision_engine.core.exceptions import VersionConflictError
from decision_engine.models.schemas import (
    Candidate,
    DecisionResult,
    EliminationSession,
    GeoPoint,
    OpeningPeriod,
)

DEMO_GROUP_ID = "group_dinner"


def _every_day(open_: str, close: str) -> List[OpeningPeriod]:
    return [OpeningPeriod(day=d, open=open_, close=close) for d in range(7)]


class InMemorySessionRepository:
    """
    In-memory implementation of SessionRepository.

    Sessions are stored as JSON so callers never share mutable state with
    the store, and every save exercises the persisted layout.
    """

    def __init__(self) -> None:
        self._store: Dict[str, str] = {}
        self._versions: Dict[str, int] = {}
        self._lock = Lock()

    async def get(self, session_id: str) -> Optional[EliminationSession]:
        """Load a session by id."""
        with self._lock:
            raw = self._store.get(session_id)
        if raw is None:
            return None
        return EliminationSession.model_validate_json(raw)

    async def add(self, session: EliminationSession) -> None:
        """Store a new session."""
        with self._lock:
            if session.id in self._store:
                raise VersionConflictError(session.id, 0, self._versions[session.id])
            self._store[session.id] = session.model_dump_json()
            self._versions[session.id] = session.version

    async def save(self, session: EliminationSession, expected_version: int) -> None:
        """Replace a stored session if nobody else saved it meanwhile."""
        with self._lock:
            actual = self._versions.get(session.id)
            if actual is None or actual != expected_version:
                raise VersionConflictError(
                    session.id, expected_version, -1 if actual is None else actual
                )
            session.version = expected_version + 1
            self._store[session.id] = session.model_dump_json()
            self._versions[session.id] = session.version

    def size(self) -> int:
        with self._lock:
            return len(self._store)


class InMemoryCandidateRepository:
    """
    In-memory implementation of CandidateRepository.
    Simulates the list/item service for a demo group.
    """

    def __init__(self) -> None:
        self._candidates: Dict[str, List[Candidate]] = {}
        self._initialize_mock_data()

    def _initialize_mock_data(self) -> None:
        """Load mock restaurants for the demo group."""
        nyc = "America/New_York"
        restaurants = [
            Candidate(
                id="r01", name="Trattoria Roma", category="italian",
                dietary_tags=["vegetarian"], tags=["pasta", "date-night"],
                location=GeoPoint(latitude=40.7128, longitude=-74.0060),
                business_hours=_every_day("11:30", "22:00"), timezone=nyc,
            ),
            Candidate(
                id="r02", name="Taqueria Sol", category="mexican",
                dietary_tags=["vegetarian", "gluten-free"], tags=["casual"],
                location=GeoPoint(latitude=40.7589, longitude=-73.9851),
                business_hours=_every_day("10:00", "02:00"), timezone=nyc,
            ),
            Candidate(
                id="r03", name="Green Bowl", category="salads",
                dietary_tags=["vegan", "vegetarian", "gluten-free"], tags=["healthy", "quick"],
                location=GeoPoint(latitude=40.7306, longitude=-73.9866),
                business_hours=_every_day("08:00", "20:00"), timezone=nyc,
            ),
            Candidate(
                id="r04", name="Midnight Diner", category="american",
                tags=["late-night", "casual"],
                location=GeoPoint(latitude=40.7411, longitude=-73.9897),
                business_hours=_every_day("00:00", "24:00"), timezone=nyc,
            ),
            Candidate(
                id="r05", name="Sakura House", category="japanese",
                dietary_tags=["gluten-free"], tags=["sushi", "date-night"],
                location=GeoPoint(latitude=40.7527, longitude=-73.9772),
                business_hours=_every_day("17:00", "23:00"), timezone=nyc,
            ),
            Candidate(
                id="r06", name="Curry Corner", category="indian",
                dietary_tags=["vegetarian", "vegan"], tags=["spicy", "casual"],
                location=GeoPoint(latitude=40.7445, longitude=-73.9819),
            ),
            Candidate(
                id="r07", name="Pho Real", category="vietnamese",
                dietary_tags=["gluten-free"], tags=["noodles", "quick"],
                location=GeoPoint(latitude=40.7163, longitude=-73.9970),
                business_hours=_every_day("11:00", "21:30"), timezone=nyc,
            ),
            Candidate(
                id="r08", name="Le Petit Bistro", category="french",
                tags=["date-night", "wine"],
                location=GeoPoint(latitude=40.7359, longitude=-74.0036),
                business_hours=_every_day("18:00", "23:30"), timezone=nyc,
            ),
            Candidate(
                id="r09", name="Seoul Grill", category="korean",
                tags=["bbq", "group-friendly"],
                location=GeoPoint(latitude=40.7477, longitude=-73.9867),
                business_hours=_every_day("16:00", "01:00"), timezone=nyc,
            ),
            Candidate(
                id="r10", name="Pizza Slice", category="italian",
                dietary_tags=["vegetarian"], tags=["quick", "casual"],
                location=GeoPoint(latitude=40.7308, longitude=-73.9973),
            ),
            Candidate(
                id="r11", name="Falafel Stop", category="middle-eastern",
                dietary_tags=["vegan", "vegetarian"], tags=["quick"],
                location=GeoPoint(latitude=40.7295, longitude=-74.0001),
                business_hours=_every_day("10:00", "23:00"), timezone=nyc,
            ),
            Candidate(
                id="r12", name="Coastal Catch", category="seafood",
                dietary_tags=["gluten-free"], tags=["wine"],
                location=GeoPoint(latitude=34.0522, longitude=-118.2437),
                business_hours=_every_day("12:00", "22:00"), timezone="America/Los_Angeles",
            ),
            Candidate(
                id="r13", name="Dim Sum Palace", category="chinese",
                tags=["group-friendly", "brunch"],
                location=GeoPoint(latitude=40.7158, longitude=-73.9970),
                business_hours=_every_day("09:00", "15:00"), timezone=nyc,
            ),
        ]
        self._candidates[DEMO_GROUP_ID] = restaurants

    async def get_candidates(self, group_id: str) -> List[Candidate]:
        """Fetch the group's candidates."""
        return list(self._candidates.get(group_id, []))

    def set_candidates(self, group_id: str, candidates: List[Candidate]) -> None:
        self._candidates[group_id] = list(candidates)


class InMemoryMembershipRepository:
    """
    In-memory implementation of MembershipRepository.
    """

    def __init__(self) -> None:
        self._members: Dict[str, List[str]] = {
            DEMO_GROUP_ID: ["alice", "bob", "carol"],
        }

    async def get_members(self, group_id: str) -> List[str]:
        """Fetch active members of a group."""
        return list(self._members.get(group_id, []))

    def set_members(self, group_id: str, members: List[str]) -> None:
        self._members[group_id] = list(members)


class InMemoryDecisionResultSink:
    """
    In-memory implementation of DecisionResultSink.
    Stands in for the activity-log service.
    """

    def __init__(self) -> None:
        self._results: List[DecisionResult] = []
        self._lock = Lock()

    async def record(self, result: DecisionResult) -> None:
        with self._lock:
            self._results.append(result)

    @property
    def results(self) -> List[DecisionResult]:
        with self._lock:
            return list(self._results)
