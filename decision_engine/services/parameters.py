"""
Parameter suggestion and validation for the KN+M elimination.
"""
import logging
from typing import List

from decision_engine.core.exceptions import InvalidParametersError
from decision_engine.models.schemas import AlgorithmParams

logger = logging.getLogger(__name__)


class ParameterSuggester:
    """
    Proposes (K, N, M) triples for a candidate pool and group size.

    Each participant eliminates K candidates, so K*N go and M = count - K*N
    remain for the draw.
    """

    def __init__(
        self,
        max_k: int = 5,
        min_final_size: int = 3,
        max_final_size: int = 8,
        max_participants: int = 8,
    ) -> None:
        self._max_k = max_k
        self._min_final_size = min_final_size
        self._max_final_size = max_final_size
        self._max_participants = max_participants

    def target_final_size(self, participant_count: int) -> int:
        return max(self._min_final_size, min(participant_count, self._max_final_size))

    def suggest(self, candidate_count: int, participant_count: int) -> List[AlgorithmParams]:
        """
        Every viable K, or a single fallback flagged `is_fallback`.

        A K is viable when the remaining set lies in [target, 2 * target].
        """
        self._check_participants(participant_count)
        if candidate_count < 0:
            raise InvalidParametersError("candidate count cannot be negative")

        target = self.target_final_size(participant_count)
        suggestions = []
        for k in range(1, self._max_k + 1):
            remaining = candidate_count - k * participant_count
            if target <= remaining <= 2 * target:
                suggestions.append(
                    AlgorithmParams(
                        k=k,
                        n=participant_count,
                        m=remaining,
                        initial_count=candidate_count,
                    )
                )

        if suggestions:
            return suggestions

        k = max(0, min(2, candidate_count // (2 * participant_count)))
        m = max(0, min(3, candidate_count - k * participant_count))
        logger.info(
            f"No viable K for {candidate_count} candidates and "
            f"{participant_count} participants, falling back to K={k}, M={m}"
        )
        return [
            AlgorithmParams(
                k=k,
                n=participant_count,
                m=m,
                initial_count=candidate_count,
                is_fallback=True,
            )
        ]

    def validate(
        self,
        params: AlgorithmParams,
        candidate_count: int,
        participant_count: int,
    ) -> None:
        """
        Check params against the actual pool and group.

        Raises:
            InvalidParametersError: if elimination could not be played
        """
        self._check_participants(participant_count)
        if params.n != participant_count:
            raise InvalidParametersError(
                "N must equal the group size",
                details={"n": params.n, "participants": participant_count},
            )
        if candidate_count < 1:
            raise InvalidParametersError("no candidates to decide between")
        if params.m < 1:
            raise InvalidParametersError("M must be at least 1", details={"m": params.m})
        if candidate_count <= params.m:
            # Straight to the draw
            return
        if params.k < 1:
            raise InvalidParametersError("K must be at least 1", details={"k": params.k})
        if params.k * params.n >= candidate_count:
            raise InvalidParametersError(
                "K*N must be smaller than the candidate count",
                details={"k": params.k, "n": params.n, "candidates": candidate_count},
            )

    def _check_participants(self, participant_count: int) -> None:
        if not 1 <= participant_count <= self._max_participants:
            raise InvalidParametersError(
                f"participant count must be between 1 and {self._max_participants}",
                details={"participants": participant_count},
            )
