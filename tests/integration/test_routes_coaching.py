"""Coaching API: clients, session completion, set edits and client metrics."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

SESSION = {
    "clientId": "u-client",
    "workoutId": "w-legs",
    "sessionNotes": "Felt strong",
    "setLogs": [
        {"exercise_id": "ex-squat", "set_number": 1, "weight_kg": 100, "reps_completed": 5},
        {"exercise_id": "ex-squat", "set_number": 2, "weight_kg": 110, "reps_completed": 2},
        {"exercise_id": "ex-bench", "set_number": 1, "weight_kg": 80, "reps_completed": 3},
    ],
    "exercises": [
        {"id": "ex-squat", "exercise_name": "Back Squat"},
        {"id": "ex-bench", "exercise_name": "Bench Press"},
        {"id": "ex-plank", "exercise_name": "Plank"},
    ],
}


async def _complete(client: AsyncClient, payload: dict | None = None) -> str:
    resp = await client.post("/api/coaching/complete", json=payload or SESSION)
    assert resp.status_code == 200, resp.text
    return resp.json()["workoutLogId"]


@pytest.mark.integration
class TestCompleteSession:
    async def test_complete_records_log_and_one_rep_maxes(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@peak.test")
        log_id = await _complete(client)
        assert log_id

        resp = await client.get("/api/users/u-client/1rms")
        assert resp.status_code == 200
        maxes = {m["exercise_name"]: m["weight_kg"] for m in resp.json()["data"]}
        # 110 x 2 -> 117.33, 80 x 3 -> 88
        assert maxes == {"Back Squat": 117.5, "Bench Press": 88.0}

    async def test_complete_records_completion(
        self, app, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@peak.test")
        log_id = await _complete(client, {**SESSION, "clientProgramId": "cp-1"})

        completions = app.state.services.workouts.completions_for("u-client")
        assert len(completions) == 1
        assert completions[0]["workout_log_id"] == log_id
        assert completions[0]["workout_id"] == "w-legs"
        assert completions[0]["client_program_id"] == "cp-1"

    async def test_lower_estimate_keeps_stored_max(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@peak.test")
        await _complete(client)
        lighter = {
            **SESSION,
            "setLogs": [
                {"exercise_id": "ex-squat", "set_number": 1, "weight_kg": 60, "reps_completed": 5}
            ],
        }
        await _complete(client, lighter)

        resp = await client.get("/api/users/u-client/1rms")
        maxes = {m["exercise_name"]: m["weight_kg"] for m in resp.json()["data"]}
        assert maxes["Back Squat"] == 117.5

    async def test_client_role_cannot_complete(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("client@peak.test")
        resp = await client.post("/api/coaching/complete", json=SESSION)
        assert resp.status_code == 403

    async def test_client_in_other_org_not_found(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@peak.test")
        resp = await client.post(
            "/api/coaching/complete", json={**SESSION, "clientId": "u-other-client"}
        )
        assert resp.status_code == 404

    async def test_requires_sign_in(self, client: AsyncClient, tenants) -> None:
        resp = await client.post("/api/coaching/complete", json=SESSION)
        assert resp.status_code == 401


@pytest.mark.integration
class TestUpdateSets:
    async def test_update_is_idempotent(self, client: AsyncClient, tenants, login_as) -> None:
        await login_as("coach@peak.test")
        log_id = await _complete(client)
        edit = {
            "workoutLogId": log_id,
            "sets": [
                {"exercise_id": "ex-squat", "set_number": 1, "weight_kg": 120, "reps_completed": 5}
            ],
        }
        for _ in range(2):
            resp = await client.post("/api/coaching/update", json=edit)
            assert resp.status_code == 200
            assert resp.json() == {"success": True, "updated": 1}

        # 600 + 220 + 240
        resp = await client.get("/api/users/u-client/tonnage", params={"period": "week"})
        assert resp.json() == {"tonnage": 1060}

    async def test_unknown_log(self, client: AsyncClient, tenants, login_as) -> None:
        await login_as("coach@peak.test")
        resp = await client.post("/api/coaching/update", json={"workoutLogId": "nope", "sets": []})
        assert resp.status_code == 404

    async def test_other_org_log_not_found(self, client: AsyncClient, tenants, login_as) -> None:
        await login_as("coach@peak.test")
        log_id = await _complete(client)
        await client.post("/api/auth/logout")

        await login_as("coach@irontemple.test")
        resp = await client.post("/api/coaching/update", json={"workoutLogId": log_id, "sets": []})
        assert resp.status_code == 404


@pytest.mark.integration
class TestClientMetrics:
    async def test_tonnage_periods(self, client: AsyncClient, tenants, login_as) -> None:
        await login_as("coach@peak.test")
        await _complete(client)
        # 500 + 220 + 240
        for period in ("day", "week", "month", "year", "bogus"):
            resp = await client.get("/api/users/u-client/tonnage", params={"period": period})
            assert resp.status_code == 200
            assert resp.json() == {"tonnage": 960}

    async def test_tonnage_defaults_to_week(self, client: AsyncClient, tenants, login_as) -> None:
        await login_as("coach@peak.test")
        resp = await client.get("/api/users/u-client/tonnage")
        assert resp.json() == {"tonnage": 0}

    async def test_client_sees_own_metrics(self, client: AsyncClient, tenants, login_as) -> None:
        await login_as("client@peak.test")
        resp = await client.get("/api/users/u-client/1rms")
        assert resp.status_code == 200
        assert resp.json() == {"data": []}

    async def test_client_cannot_see_others(self, client: AsyncClient, tenants, login_as) -> None:
        await login_as("client@fresh.test")
        resp = await client.get("/api/users/u-client/tonnage")
        assert resp.status_code == 404

    async def test_trainer_cannot_see_other_org(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@irontemple.test")
        resp = await client.get("/api/users/u-client/1rms")
        assert resp.status_code == 404

    async def test_impersonating_admin_sees_org_clients(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("root@fitcoach.test")
        resp = await client.get("/api/users/u-client/1rms")
        assert resp.status_code == 404

        await client.post("/api/impersonate", json={"orgId": "org-active"})
        resp = await client.get("/api/users/u-client/1rms")
        assert resp.status_code == 200


@pytest.mark.integration
class TestClients:
    async def test_trainer_lists_own_org_clients(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@peak.test")
        resp = await client.get("/api/users")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert [c["id"] for c in data] == ["u-client"]
        assert data[0]["full_name"] == "Casey Client"

    async def test_client_role_cannot_list(self, client: AsyncClient, tenants, login_as) -> None:
        await login_as("client@peak.test")
        resp = await client.get("/api/users")
        assert resp.status_code == 403

    async def test_admin_lists_impersonated_org(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("root@fitcoach.test")
        resp = await client.get("/api/users")
        assert resp.status_code == 403

        await client.post("/api/impersonate", json={"orgId": "org-trialing"})
        resp = await client.get("/api/users")
        assert [c["id"] for c in resp.json()["data"]] == ["u-other-client"]

    async def test_client_detail_is_org_scoped(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@peak.test")
        resp = await client.get("/api/users/u-client")
        assert resp.status_code == 200
        assert resp.json()["email"] == "client@peak.test"

        resp = await client.get("/api/users/u-other-client")
        assert resp.status_code == 404

    async def test_client_sees_only_self(self, client: AsyncClient, tenants, login_as) -> None:
        await login_as("client@peak.test")
        assert (await client.get("/api/users/u-client")).status_code == 200
        assert (await client.get("/api/users/u-active-trainer")).status_code == 404

    async def test_clients_page_lists_names(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@peak.test")
        resp = await client.get("/users", follow_redirects=False)
        assert resp.status_code == 200
        assert "Casey Client" in resp.text
        assert "client@fresh.test" not in resp.text
