"""
Integration tests for the session API.
"""
from fastapi.testclient import TestClient

CANDIDATES = [f"c{i}" for i in range(10)]
PARAMS = {"k": 2, "n": 2, "m": 6, "initial_count": 10}


def create(client: TestClient, **overrides) -> dict:
    body = {"group_id": "group_pair", "candidate_ids": CANDIDATES, "params": PARAMS}
    body.update(overrides)
    response = client.post("/v1/sessions", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def status_for(client: TestClient, session_id: str, user_id: str):
    return client.get(f"/v1/sessions/{session_id}/status", headers={"X-User-ID": user_id})


class TestSessionAPI:
    def test_create_session(self, test_client: TestClient):
        session = create(test_client, turn_timeout_minutes=5)

        assert session["status"] == "in_progress"
        assert sorted(session["elimination_order"]) == ["alice", "bob"]
        assert session["turn_timeout_minutes"] == 5
        assert session["current_candidates"] == CANDIDATES

    def test_create_invalid_params(self, test_client: TestClient):
        response = test_client.post(
            "/v1/sessions",
            json={
                "group_id": "group_pair",
                "candidate_ids": CANDIDATES,
                "params": {"k": 2, "n": 3, "m": 4, "initial_count": 10},
            },
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_PARAMETERS"

    def test_create_unknown_group(self, test_client: TestClient):
        response = test_client.post(
            "/v1/sessions",
            json={"group_id": "group_nobody", "candidate_ids": CANDIDATES, "params": PARAMS},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_eliminate_and_status(self, test_client: TestClient):
        session = create(test_client)
        first, second = session["elimination_order"]

        wrong = test_client.post(
            f"/v1/sessions/{session['id']}/eliminations",
            json={"candidate_id": "c0"},
            headers={"X-User-ID": second},
        )
        assert wrong.status_code == 409
        assert wrong.json()["error"]["code"] == "NOT_YOUR_TURN"

        response = test_client.post(
            f"/v1/sessions/{session['id']}/eliminations",
            json={"candidate_id": "c0"},
            headers={"X-User-ID": first},
        )
        assert response.status_code == 200
        assert "c0" not in response.json()["current_candidates"]

        status = status_for(test_client, session["id"], second).json()
        assert status["is_your_turn"] is True
        assert status["current_turn_user"] == second
        assert status["can_quick_skip"] is True
        assert status["time_remaining_seconds"] == 600.0

    def test_time_remaining_counts_down(self, test_client: TestClient, clock):
        session = create(test_client)
        first = session["elimination_order"][0]

        clock.advance(minutes=4)
        status = status_for(test_client, session["id"], first).json()

        assert status["current_turn_user"] == first
        assert status["time_remaining_seconds"] == 360.0

    def test_unknown_candidate(self, test_client: TestClient):
        session = create(test_client)

        response = test_client.post(
            f"/v1/sessions/{session['id']}/eliminations",
            json={"candidate_id": "nope"},
            headers={"X-User-ID": session["elimination_order"][0]},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "CANDIDATE_NOT_FOUND"

    def test_play_to_completion(self, test_client: TestClient, result_sink):
        session = create(test_client)
        session_id = session["id"]

        for _ in range(4):
            status = status_for(test_client, session_id, "alice").json()
            response = test_client.post(
                f"/v1/sessions/{session_id}/eliminations",
                json={"candidate_id": status["current_candidates"][0]},
                headers={"X-User-ID": status["current_turn_user"]},
            )
            assert response.status_code == 200

        status = status_for(test_client, session_id, "bob").json()
        assert status["status"] == "completed"
        assert status["final_selection"] in status["current_candidates"]
        assert len(status["runners_up"]) == 5
        assert status["current_turn_user"] is None
        assert len(result_sink.results) == 1

    def test_quick_skip_flow(self, test_client: TestClient):
        session = create(test_client)
        first = session["elimination_order"][0]

        response = test_client.post(
            f"/v1/sessions/{session['id']}/quick-skip", headers={"X-User-ID": first}
        )

        assert response.status_code == 200
        ledger = response.json()["skip_ledger"]
        assert ledger["user_skip_counts"] == {first: 1}
        assert ledger["skipped_users"][0]["skip_type"] == "quick_skip"

    def test_lazy_timeout(self, test_client: TestClient, clock):
        session = create(test_client)
        first, second = session["elimination_order"]

        clock.advance(minutes=11)
        status = status_for(test_client, session["id"], first).json()

        assert status["current_turn_user"] == second
        assert status["skipped_turns"][0]["skip_type"] == "timeout_skip"
        assert status["skips_used"] == 0

    def test_status_errors(self, test_client: TestClient):
        session = create(test_client)

        assert status_for(test_client, session["id"], "mallory").status_code == 403
        missing = status_for(test_client, "missing", "alice")
        assert missing.status_code == 404
        assert missing.json()["error"]["code"] == "SESSION_NOT_FOUND"

        no_header = test_client.get(f"/v1/sessions/{session['id']}/status")
        assert no_header.status_code == 422

    def test_cancel(self, test_client: TestClient):
        session = create(test_client)

        response = test_client.post(f"/v1/sessions/{session['id']}/cancel")
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        again = test_client.post(f"/v1/sessions/{session['id']}/cancel")
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "SESSION_ALREADY_TERMINAL"
