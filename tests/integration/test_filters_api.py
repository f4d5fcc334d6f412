"""
Integration tests for filtering and parameter suggestions.
"""
from fastapi.testclient import TestClient


class TestFiltersAPI:
    def test_group_pool(self, test_client: TestClient):
        response = test_client.post(
            "/v1/filters/apply",
            json={
                "group_id": "group_dinner",
                "configuration": {
                    "filters": [
                        {
                            "id": "vegan",
                            "type": "dietary",
                            "is_hard": True,
                            "criteria": {"requirements": ["vegan"]},
                        }
                    ]
                },
            },
        )

        assert response.status_code == 200
        admissible = [r["candidate_id"] for r in response.json()["admissible"]]
        assert admissible == ["r03", "r06", "r11"]

    def test_inline_candidates_with_relaxation(self, test_client: TestClient):
        response = test_client.post(
            "/v1/filters/apply",
            json={
                "candidates": [
                    {"id": "a", "category": "thai"},
                    {"id": "b", "category": "thai", "dietary_tags": ["vegan"]},
                ],
                "configuration": {
                    "filters": [
                        {
                            "id": "italian",
                            "type": "category",
                            "is_hard": True,
                            "criteria": {"include": ["italian"]},
                            "description": "Italian only",
                        },
                        {
                            "id": "vegan",
                            "type": "dietary",
                            "is_hard": True,
                            "criteria": {"requirements": ["vegan"]},
                        },
                    ]
                },
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["admissible"] == []
        assert data["relaxation_suggestions"][0] == {
            "filter_id": "italian",
            "description": "Italian only",
            "restored_count": 1,
        }

    def test_missing_pool(self, test_client: TestClient):
        response = test_client.post("/v1/filters/apply", json={"configuration": {}})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_malformed_criteria(self, test_client: TestClient):
        response = test_client.post(
            "/v1/filters/apply",
            json={
                "candidates": [{"id": "a"}],
                "configuration": {
                    "filters": [
                        {"id": "near", "type": "location", "is_hard": True, "criteria": {}}
                    ]
                },
            },
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"]["filter_id"] == "near"


class TestSuggestionsAPI:
    def test_suggestions(self, test_client: TestClient):
        response = test_client.get(
            "/v1/parameters/suggestions",
            params={"candidate_count": 13, "participant_count": 3},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["requires_relaxation"] is False
        assert [(s["k"], s["n"], s["m"]) for s in data["suggestions"]] == [(3, 3, 4)]

    def test_fallback_requires_relaxation(self, test_client: TestClient):
        response = test_client.get(
            "/v1/parameters/suggestions",
            params={"candidate_count": 5, "participant_count": 4},
        )

        data = response.json()
        assert data["requires_relaxation"] is True
        assert data["suggestions"][0]["is_fallback"] is True

    def test_too_many_participants(self, test_client: TestClient):
        response = test_client.get(
            "/v1/parameters/suggestions",
            params={"candidate_count": 20, "participant_count": 9},
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_PARAMETERS"
