"""
Filter evaluators.
One strategy per filter type; each parses its criteria payload once and then
answers pass/fail per candidate.
"""
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from decision_engine.core.exceptions import ValidationError
from decision_engine.models.schemas import (
    Candidate,
    FilterItem,
    FilterType,
    GeoPoint,
    OpeningPeriod,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3958.8
MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class EvaluationContext:
    """Inputs shared by every filter in one evaluation pass."""

    check_time: datetime
    default_timezone: str = "UTC"


# =============================================================================
# Criteria Payloads
# =============================================================================


class CategoryCriteria(BaseModel):
    include: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)


class DietaryCriteria(BaseModel):
    requirements: List[str] = Field(default_factory=list)


class LocationCriteria(BaseModel):
    center: GeoPoint
    max_distance_miles: float = Field(..., gt=0)


class RecentActivityCriteria(BaseModel):
    days: int = Field(..., ge=1)


class OpeningHoursCriteria(BaseModel):
    at: Optional[datetime] = None


class TagCriteria(BaseModel):
    include_any: List[str] = Field(default_factory=list)
    include_all: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)


# =============================================================================
# Evaluator Strategy
# =============================================================================


class FilterEvaluator(ABC):
    """Abstract base class for filter evaluators."""

    criteria_model: type = BaseModel

    def parse(self, item: FilterItem) -> BaseModel:
        """Validate the filter's criteria payload."""
        try:
            return self.criteria_model.model_validate(item.criteria)
        except PydanticValidationError as e:
            errors = [
                {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
                for err in e.errors()
            ]
            raise ValidationError(
                f"Invalid criteria for filter {item.id}",
                details={"filter_id": item.id, "type": item.type.value, "errors": errors},
            ) from e

    @abstractmethod
    def matches(
        self,
        candidate: Candidate,
        criteria: BaseModel,
        context: EvaluationContext,
    ) -> bool:
        """Return True if the candidate satisfies the criteria."""
        pass


def _normalize(values: List[str]) -> set:
    return {v.strip().lower() for v in values}


class CategoryEvaluator(FilterEvaluator):
    """Include/exclude by category."""

    criteria_model = CategoryCriteria

    def matches(self, candidate, criteria, context) -> bool:
        category = (candidate.category or "").strip().lower()
        if criteria.include and category not in _normalize(criteria.include):
            return False
        return category not in _normalize(criteria.exclude)


class DietaryEvaluator(FilterEvaluator):
    """Every requirement must appear in the candidate's dietary tags."""

    criteria_model = DietaryCriteria

    def matches(self, candidate, criteria, context) -> bool:
        return _normalize(criteria.requirements) <= _normalize(candidate.dietary_tags)


class LocationEvaluator(FilterEvaluator):
    """
    Great-circle distance from a centre point.
    Candidates without a location pass.
    """

    criteria_model = LocationCriteria

    def matches(self, candidate, criteria, context) -> bool:
        if candidate.location is None:
            return True
        return haversine_miles(criteria.center, candidate.location) <= criteria.max_distance_miles


class RecentActivityEvaluator(FilterEvaluator):
    """Reject candidates the group visited within the last N days."""

    criteria_model = RecentActivityCriteria

    def matches(self, candidate, criteria, context) -> bool:
        if candidate.last_visited_at is None:
            return True
        cutoff = context.check_time - timedelta(days=criteria.days)
        return _as_utc(candidate.last_visited_at) < cutoff


class OpeningHoursEvaluator(FilterEvaluator):
    """Open at the check time, in the venue's own timezone."""

    criteria_model = OpeningHoursCriteria

    def matches(self, candidate, criteria, context) -> bool:
        moment = _as_utc(criteria.at) if criteria.at else context.check_time
        zone = resolve_timezone(candidate.timezone, context.default_timezone)
        return is_open_at(candidate.business_hours, moment, zone)


class TagEvaluator(FilterEvaluator):
    """Any-of / all-of / none-of over free-form tags."""

    criteria_model = TagCriteria

    def matches(self, candidate, criteria, context) -> bool:
        tags = _normalize(candidate.tags)
        if criteria.include_any and not (_normalize(criteria.include_any) & tags):
            return False
        if not _normalize(criteria.include_all) <= tags:
            return False
        return not (_normalize(criteria.exclude) & tags)


def default_evaluators() -> Dict[FilterType, FilterEvaluator]:
    """Evaluator for every filter type."""
    return {
        FilterType.CATEGORY: CategoryEvaluator(),
        FilterType.DIETARY: DietaryEvaluator(),
        FilterType.LOCATION: LocationEvaluator(),
        FilterType.RECENT_ACTIVITY: RecentActivityEvaluator(),
        FilterType.OPENING_HOURS: OpeningHoursEvaluator(),
        FilterType.TAG: TagEvaluator(),
    }


# =============================================================================
# Geo & Business Hours
# =============================================================================


def haversine_miles(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in miles."""
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(math.sqrt(h))


def resolve_timezone(name: Optional[str], default: str = "UTC") -> ZoneInfo:
    """Venue zone, falling back to the default for missing or unknown names."""
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown venue timezone {name!r}, using {default}")
    return ZoneInfo(default)


def _as_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def is_open_at(
    hours: Optional[List[OpeningPeriod]],
    moment: datetime,
    zone: ZoneInfo,
) -> bool:
    """
    Check posted hours against a moment.

    Missing hours mean always open. Windows are anchored on the local date
    and the day before, so a window that started yesterday evening and runs
    past midnight is still found.
    """
    if not hours:
        return True

    local = _as_utc(moment).astimezone(zone).replace(tzinfo=None)
    for anchor in (local.date(), local.date() - timedelta(days=1)):
        midnight = datetime.combine(anchor, time.min)
        for period in hours:
            if period.day != anchor.weekday():
                continue
            opens = _minutes(period.open)
            closes = _minutes(period.close)
            if closes <= opens:
                # Past midnight; equal times mean open around the clock
                closes += MINUTES_PER_DAY
            start = midnight + timedelta(minutes=opens)
            end = midnight + timedelta(minutes=closes)
            if start <= local < end:
                return True
    return False
