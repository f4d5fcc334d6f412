"""
Filter engine service.
Hard filters decide admissibility; soft filters rank what is left.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel

from decision_engine.core.exceptions import ValidationError
from decision_engine.models.schemas import (
    Candidate,
    FilterConfiguration,
    FilterItem,
    FilterOutcome,
    FilterReport,
    FilterResult,
    FilterType,
    RelaxationSuggestion,
)
from decision_engine.services.evaluators import (
    EvaluationContext,
    FilterEvaluator,
    default_evaluators,
)

logger = logging.getLogger(__name__)


def filter_weight(priority: int) -> float:
    """Priority 0 weighs 1, priority 1 weighs 1/2, and so on."""
    return 1.0 / (priority + 1)


def priority_score(outcomes: List[FilterOutcome]) -> float:
    """Weighted share of soft filters passed. No soft filters scores 1.0."""
    if not outcomes:
        return 1.0
    total = sum(filter_weight(o.priority) for o in outcomes)
    passed = sum(filter_weight(o.priority) for o in outcomes if o.passed)
    return passed / total


class FilterEngine:
    """
    Evaluates a filter configuration against a candidate pool.
    Stateless: same inputs, same report.
    """

    def __init__(
        self,
        evaluators: Optional[Dict[FilterType, FilterEvaluator]] = None,
        default_timezone: str = "UTC",
    ) -> None:
        """
        Initialize filter engine.

        Args:
            evaluators: Evaluator per filter type (default: all built-ins)
            default_timezone: Zone assumed for venues without one
        """
        self._evaluators = evaluators or default_evaluators()
        self._default_timezone = default_timezone

    def evaluate(
        self,
        candidates: List[Candidate],
        configuration: FilterConfiguration,
        now: Optional[datetime] = None,
    ) -> FilterReport:
        """
        Filter and rank candidates.

        Args:
            candidates: Raw candidate pool
            configuration: Hard and soft filters
            now: Fallback check time when the configuration has none

        Returns:
            FilterReport with ranked admissible results, rejected results and,
            when nothing is admissible, relaxation suggestions
        """
        check_time = configuration.check_time or now or datetime.now(timezone.utc)
        if check_time.tzinfo is None:
            check_time = check_time.replace(tzinfo=timezone.utc)
        context = EvaluationContext(
            check_time=check_time,
            default_timezone=self._default_timezone,
        )

        hard = self._parse_all(configuration.hard_filters)
        soft = self._parse_all(configuration.soft_filters)

        admissible: List[FilterResult] = []
        rejected: List[FilterResult] = []
        for candidate in candidates:
            result = self._evaluate_candidate(candidate, hard, soft, context)
            (admissible if result.passed_hard_filters else rejected).append(result)

        admissible.sort(
            key=lambda r: (-r.priority_score, r.violation_count, r.candidate_id)
        )

        suggestions: List[RelaxationSuggestion] = []
        if candidates and not admissible:
            suggestions = self._suggest_relaxations(rejected, configuration.hard_filters)
            logger.info(
                f"Hard filters rejected all {len(candidates)} candidates, "
                f"{len(suggestions)} relaxation suggestions"
            )

        logger.debug(
            f"Filtered {len(candidates)} candidates -> {len(admissible)} admissible"
        )

        return FilterReport(
            admissible=admissible,
            rejected=rejected,
            relaxation_suggestions=suggestions,
        )

    def _parse_all(self, items: List[FilterItem]) -> List[Tuple[FilterItem, BaseModel]]:
        parsed = []
        for item in items:
            evaluator = self._evaluator_for(item)
            parsed.append((item, evaluator.parse(item)))
        return parsed

    def _evaluator_for(self, item: FilterItem) -> FilterEvaluator:
        evaluator = self._evaluators.get(item.type)
        if evaluator is None:
            raise ValidationError(
                f"No evaluator for filter type {item.type.value}",
                details={"filter_id": item.id},
            )
        return evaluator

    def _evaluate_candidate(
        self,
        candidate: Candidate,
        hard: List[Tuple[FilterItem, BaseModel]],
        soft: List[Tuple[FilterItem, BaseModel]],
        context: EvaluationContext,
    ) -> FilterResult:
        # All hard filters are recorded so relaxation counts are exact
        hard_outcomes = [
            FilterOutcome(
                filter_id=item.id,
                passed=self._evaluator_for(item).matches(candidate, criteria, context),
                priority=item.priority,
            )
            for item, criteria in hard
        ]
        if not all(o.passed for o in hard_outcomes):
            return FilterResult(
                candidate_id=candidate.id,
                hard_filter_outcomes=hard_outcomes,
                passed_hard_filters=False,
            )

        soft_outcomes = [
            FilterOutcome(
                filter_id=item.id,
                passed=self._evaluator_for(item).matches(candidate, criteria, context),
                priority=item.priority,
            )
            for item, criteria in soft
        ]
        return FilterResult(
            candidate_id=candidate.id,
            hard_filter_outcomes=hard_outcomes,
            passed_hard_filters=True,
            soft_filter_outcomes=soft_outcomes,
            violation_count=sum(1 for o in soft_outcomes if not o.passed),
            priority_score=priority_score(soft_outcomes),
        )

    @staticmethod
    def _suggest_relaxations(
        rejected: List[FilterResult],
        hard_filters: List[FilterItem],
    ) -> List[RelaxationSuggestion]:
        """Count, per hard filter, candidates failing that filter alone."""
        restored: Dict[str, int] = {}
        failed_any = set()
        for result in rejected:
            failures = [o.filter_id for o in result.hard_filter_outcomes if not o.passed]
            failed_any.update(failures)
            if len(failures) == 1:
                restored[failures[0]] = restored.get(failures[0], 0) + 1

        suggestions = [
            RelaxationSuggestion(
                filter_id=item.id,
                description=item.description,
                restored_count=restored.get(item.id, 0),
            )
            for item in hard_filters
            if item.id in failed_any
        ]
        suggestions.sort(key=lambda s: (-s.restored_count, s.filter_id))
        return suggestions
