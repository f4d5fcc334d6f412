"""
Unit tests for ParameterSuggester.
"""
import pytest

from decision_engine.core.exceptions import InvalidParametersError
from decision_engine.models.schemas import AlgorithmParams
from decision_engine.services.parameters import ParameterSuggester


class TestSuggest:
    def test_single_viable_k(self):
        suggester = ParameterSuggester()

        suggestions = suggester.suggest(13, 3)

        assert [(s.k, s.n, s.m) for s in suggestions] == [(3, 3, 4)]
        assert suggestions[0].initial_count == 13
        assert suggestions[0].is_fallback is False

    def test_several_viable_k(self):
        suggestions = ParameterSuggester().suggest(10, 2)

        assert [(s.k, s.m) for s in suggestions] == [(2, 6), (3, 4)]

    @pytest.mark.parametrize("count,participants", [(13, 3), (10, 2), (30, 4), (20, 8)])
    def test_final_size_identity(self, count, participants):
        suggestions = ParameterSuggester().suggest(count, participants)
        for s in [s for s in suggestions if not s.is_fallback]:
            assert s.m == count - s.k * s.n

    def test_fallback_when_nothing_viable(self):
        suggestions = ParameterSuggester().suggest(40, 2)

        assert len(suggestions) == 1
        fallback = suggestions[0]
        assert fallback.is_fallback is True
        assert (fallback.k, fallback.m) == (2, 3)

    def test_fallback_keeps_three_finalists(self):
        fallback = ParameterSuggester().suggest(30, 4)[0]

        assert fallback.is_fallback is True
        assert (fallback.k, fallback.n, fallback.m) == (2, 4, 3)

    def test_fallback_for_tiny_pool(self):
        fallback = ParameterSuggester().suggest(5, 4)[0]

        assert fallback.is_fallback is True
        assert (fallback.k, fallback.m) == (0, 3)

    def test_target_final_size(self):
        suggester = ParameterSuggester()

        assert suggester.target_final_size(1) == 3
        assert suggester.target_final_size(5) == 5
        assert suggester.target_final_size(8) == 8

    @pytest.mark.parametrize("participants", [0, 9])
    def test_participant_bounds(self, participants):
        with pytest.raises(InvalidParametersError):
            ParameterSuggester().suggest(10, participants)

    def test_negative_count(self):
        with pytest.raises(InvalidParametersError):
            ParameterSuggester().suggest(-1, 2)


class TestValidate:
    def test_valid(self):
        params = AlgorithmParams(k=3, n=3, m=4, initial_count=13)

        ParameterSuggester().validate(params, 13, 3)

    def test_n_mismatch(self):
        params = AlgorithmParams(k=3, n=3, m=4, initial_count=13)

        with pytest.raises(InvalidParametersError) as exc_info:
            ParameterSuggester().validate(params, 13, 2)
        assert exc_info.value.status_code == 422

    def test_eliminations_exceed_pool(self):
        params = AlgorithmParams(k=5, n=2, m=1, initial_count=10)

        with pytest.raises(InvalidParametersError):
            ParameterSuggester().validate(params, 10, 2)

    def test_m_must_be_positive(self):
        params = AlgorithmParams(k=2, n=2, m=0, initial_count=10)

        with pytest.raises(InvalidParametersError):
            ParameterSuggester().validate(params, 10, 2)

    def test_small_pool_needs_no_eliminations(self):
        params = AlgorithmParams(k=0, n=2, m=3, initial_count=3)

        ParameterSuggester().validate(params, 3, 2)

    def test_zero_k_with_large_pool(self):
        params = AlgorithmParams(k=0, n=2, m=3, initial_count=10)

        with pytest.raises(InvalidParametersError):
            ParameterSuggester().validate(params, 10, 2)
