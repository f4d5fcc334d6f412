"""
Domain models using Pydantic.
All data structures for filtering and turn-based elimination.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

HOURS_PATTERN = r"^(([01]\d|2[0-3]):[0-5]\d|24:00)$"


# =============================================================================
# Candidates
# =============================================================================


class GeoPoint(BaseModel):
    """WGS84 coordinate."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class OpeningPeriod(BaseModel):
    """
    One posted opening window, in venue-local time.
    A close earlier than open runs past midnight; "24:00" is next-day midnight.
    """

    day: int = Field(..., ge=0, le=6, description="Weekday the window opens, 0 = Monday")
    open: str = Field(..., pattern=HOURS_PATTERN, description="HH:MM")
    close: str = Field(..., pattern=HOURS_PATTERN, description="HH:MM")


class Candidate(BaseModel):
    """
    Eligible item supplied by the candidate source.
    Carries only the metadata the filters need.
    """

    id: str = Field(..., min_length=1, description="Unique candidate identifier")
    name: str = Field(default="", description="Display name")
    category: Optional[str] = Field(default=None, description="Cuisine or kind")
    dietary_tags: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    location: Optional[GeoPoint] = None
    business_hours: Optional[List[OpeningPeriod]] = Field(
        default=None,
        description="Posted hours; None means unknown (treated as always open)",
    )
    timezone: Optional[str] = Field(default=None, description="IANA zone of the venue")
    last_visited_at: Optional[datetime] = Field(
        default=None,
        description="Most recent group visit, from activity history",
    )


# =============================================================================
# Filtering
# =============================================================================


class FilterType(str, Enum):
    """Kinds of filter criteria."""

    CATEGORY = "category"
    DIETARY = "dietary"
    LOCATION = "location"
    RECENT_ACTIVITY = "recent_activity"
    OPENING_HOURS = "opening_hours"
    TAG = "tag"


class FilterItem(BaseModel):
    """A single user-supplied criterion."""

    id: str = Field(..., min_length=1)
    type: FilterType
    is_hard: bool = Field(default=False, description="Hard filters exclude outright")
    priority: int = Field(default=0, ge=0, description="0 = highest; soft filters only")
    criteria: Dict[str, Any] = Field(default_factory=dict)
    description: str = ""


class FilterConfiguration(BaseModel):
    """Filter set applied to one candidate pool."""

    filters: List[FilterItem] = Field(default_factory=list)
    check_time: Optional[datetime] = Field(
        default=None,
        description="Moment opening hours are checked against (default: now)",
    )

    @property
    def hard_filters(self) -> List[FilterItem]:
        return [f for f in self.filters if f.is_hard]

    @property
    def soft_filters(self) -> List[FilterItem]:
        """Soft filters by priority ascending, filter id as tie-break."""
        return sorted(
            (f for f in self.filters if not f.is_hard),
            key=lambda f: (f.priority, f.id),
        )


class FilterOutcome(BaseModel):
    """Result of one filter against one candidate."""

    filter_id: str
    passed: bool
    priority: int


class FilterResult(BaseModel):
    """Per-candidate evaluation record."""

    candidate_id: str
    hard_filter_outcomes: List[FilterOutcome] = Field(default_factory=list)
    passed_hard_filters: bool = True
    soft_filter_outcomes: List[FilterOutcome] = Field(default_factory=list)
    violation_count: int = 0
    priority_score: float = Field(default=0.0, ge=0.0, le=1.0)


class RelaxationSuggestion(BaseModel):
    """How many candidates come back if one hard filter is dropped."""

    filter_id: str
    description: str = ""
    restored_count: int


class FilterReport(BaseModel):
    """Output of the filter engine."""

    admissible: List[FilterResult] = Field(default_factory=list)
    rejected: List[FilterResult] = Field(default_factory=list)
    relaxation_suggestions: List[RelaxationSuggestion] = Field(default_factory=list)

    @property
    def admissible_ids(self) -> List[str]:
        return [r.candidate_id for r in self.admissible]


# =============================================================================
# Algorithm Parameters
# =============================================================================


class AlgorithmParams(BaseModel):
    """K eliminations per participant, N participants, M finalists."""

    k: int = Field(..., ge=0, description="Eliminations per participant")
    n: int = Field(..., ge=1, le=8, description="Participant count")
    m: int = Field(..., ge=0, description="Final set size before the draw")
    initial_count: int = Field(..., ge=0, description="Candidates at the start")
    is_fallback: bool = Field(
        default=False,
        description="Synthesized because no K was viable",
    )


# =============================================================================
# Elimination Session
# =============================================================================


class SessionStatus(str, Enum):
    """Elimination session lifecycle."""

    SETUP = "setup"
    IN_PROGRESS = "in_progress"
    CATCH_UP = "catch_up"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.CANCELLED)

    @property
    def is_active(self) -> bool:
        return self in (SessionStatus.IN_PROGRESS, SessionStatus.CATCH_UP)


class SkipType(str, Enum):
    """Why a turn was not played."""

    QUICK_SKIP = "quick_skip"
    TIMEOUT_SKIP = "timeout_skip"
    FORFEITED = "forfeited"


class SkippedTurn(BaseModel):
    """Append-only skip log entry."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    round: int
    turn_index: int
    skip_type: SkipType
    recorded_at: datetime


class SkipLedger(BaseModel):
    """
    Skip bookkeeping owned by a session.

    `skipped_users` is append-only. An entry is "resolved" once its turn was
    replayed in catch-up or forfeited; resolution is tracked by index so the
    log itself never changes.
    """

    skipped_users: List[SkippedTurn] = Field(default_factory=list)
    user_skip_counts: Dict[str, int] = Field(default_factory=dict)
    resolved: List[int] = Field(default_factory=list)

    def quick_skips_used(self, user_id: str) -> int:
        return self.user_skip_counts.get(user_id, 0)

    def has_deferred(self, user_id: str, round_number: int, turn_index: int) -> bool:
        """Any skip already recorded for this exact turn."""
        return any(
            e.user_id == user_id and e.round == round_number and e.turn_index == turn_index
            for e in self.skipped_users
        )

    def append(self, entry: SkippedTurn) -> int:
        """Record an entry and return its index."""
        self.skipped_users.append(entry)
        if entry.skip_type == SkipType.QUICK_SKIP:
            self.user_skip_counts[entry.user_id] = self.quick_skips_used(entry.user_id) + 1
        return len(self.skipped_users) - 1

    def resolve(self, index: int) -> None:
        if index not in self.resolved:
            self.resolved.append(index)

    def unresolved(self) -> List[Tuple[int, SkippedTurn]]:
        """Deferred turns still owed, oldest first."""
        resolved = set(self.resolved)
        return [
            (i, e)
            for i, e in enumerate(self.skipped_users)
            if i not in resolved and e.skip_type != SkipType.FORFEITED
        ]

    def count(self, user_id: str, skip_type: SkipType) -> int:
        return sum(
            1 for e in self.skipped_users if e.user_id == user_id and e.skip_type == skip_type
        )


class Elimination(BaseModel):
    """One candidate removed by one participant."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    candidate_id: str
    round: int
    turn_index: int
    eliminated_at: datetime
    catch_up: bool = False


class EliminationSession(BaseModel):
    """
    Mutable state of one group decision.
    Changed only through the TurnCoordinator; frozen once terminal.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    group_id: str
    params: AlgorithmParams
    elimination_order: List[str]
    current_turn_index: int = 0
    current_round: int = 1
    scheduled_rounds: int = Field(..., description="K plus any extension rounds")
    turn_started_at: datetime
    turn_timeout_minutes: int = Field(..., ge=1)
    skip_ledger: SkipLedger = Field(default_factory=SkipLedger)
    catch_up_entry: Optional[int] = Field(
        default=None,
        description="Index into skip_ledger of the turn being replayed",
    )
    forfeited_users: List[str] = Field(default_factory=list)
    eliminations: List[Elimination] = Field(default_factory=list)
    initial_candidates: List[str]
    current_candidates: List[str]
    status: SessionStatus = SessionStatus.SETUP
    final_selection: Optional[str] = None
    runners_up: List[str] = Field(default_factory=list)
    created_at: datetime
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    version: int = 0

    @property
    def active_participants(self) -> List[str]:
        return [u for u in self.elimination_order if u not in self.forfeited_users]


class EliminationStatus(BaseModel):
    """Read-only projection of a session for one participant."""

    session_id: str
    status: SessionStatus
    current_candidates: List[str]
    current_turn_user: Optional[str]
    is_your_turn: bool
    current_round: int
    turn_deadline: Optional[datetime]
    time_remaining_seconds: float
    elimination_order: List[str]
    skipped_turns: List[SkippedTurn]
    can_quick_skip: bool
    skips_used: int
    skip_limit: int
    is_catch_up: bool
    final_selection: Optional[str] = None
    runners_up: List[str] = Field(default_factory=list)


# =============================================================================
# Events & Results (outbound)
# =============================================================================


class EventType(str, Enum):
    """Session state transitions published to the notification hook."""

    CREATED = "created"
    STARTED = "started"
    ELIMINATED = "eliminated"
    QUICK_SKIPPED = "quick_skipped"
    TIMEOUT_SKIPPED = "timeout_skipped"
    FORFEITED = "forfeited"
    TURN_ADVANCED = "turn_advanced"
    CATCH_UP_STARTED = "catch_up_started"
    EXTENSION_ROUND_STARTED = "extension_round_started"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SessionEvent(BaseModel):
    """A single state transition."""

    type: EventType
    session_id: str
    group_id: str
    occurred_at: datetime
    user_id: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class DecisionResult(BaseModel):
    """Summary of a completed decision, for the activity log."""

    session_id: str
    group_id: str
    winner: str
    runners_up: List[str]
    participants: List[str]
    elimination_counts: Dict[str, int]
    quick_skip_counts: Dict[str, int]
    timeout_skip_counts: Dict[str, int]
    forfeited_counts: Dict[str, int]
    params: AlgorithmParams
    completed_at: datetime


# =============================================================================
# API Models (External)
# =============================================================================


class ApplyFiltersRequest(BaseModel):
    """Filter either an explicit candidate list or a group's candidate source."""

    group_id: Optional[str] = None
    candidates: Optional[List[Candidate]] = None
    configuration: FilterConfiguration = Field(default_factory=FilterConfiguration)


class ParameterSuggestionResponse(BaseModel):
    """Suggested (K, N, M) triples."""

    suggestions: List[AlgorithmParams]
    requires_relaxation: bool = Field(
        ...,
        description="True when no K was viable and only the fallback is offered",
    )


class CreateSessionRequest(BaseModel):
    """Start an elimination for a group."""

    group_id: str = Field(..., min_length=1)
    candidate_ids: List[str] = Field(..., min_length=1)
    params: AlgorithmParams
    turn_timeout_minutes: Optional[int] = Field(default=None, ge=1)


class EliminateRequest(BaseModel):
    """Candidate to remove on the caller's turn."""

    candidate_id: str = Field(..., min_length=1)


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: Dict[str, Any] = Field(..., description="Error details")
