"""End-to-end behaviour of the access gate over HTTP."""

from __future__ import annotations

import asyncio
import time
from unittest.mock import patch

import pytest
from httpx import AsyncClient

from fitcoach.types import Role


@pytest.mark.integration
class TestAnonymous:
    @pytest.mark.parametrize("path", ["/dashboard", "/users", "/programs/42", "/settings"])
    async def test_protected_pages_redirect_to_login(self, client: AsyncClient, path: str) -> None:
        resp = await client.get(path, follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"

    @pytest.mark.parametrize("path", ["/", "/login"])
    async def test_public_pages_render(self, client: AsyncClient, path: str) -> None:
        resp = await client.get(path, follow_redirects=False)
        assert resp.status_code == 200

    async def test_login_page_has_form(self, client: AsyncClient) -> None:
        resp = await client.get("/login")
        assert resp.headers["content-type"].startswith("text/html")
        assert 'id="login-form"' in resp.text
        assert "Sign in · FitCoach" in resp.text

    async def test_billing_page_needs_sign_in(self, client: AsyncClient) -> None:
        resp = await client.get("/billing", follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"

    async def test_forged_session_cookie_is_anonymous(self, client: AsyncClient) -> None:
        client.cookies.set("session", "forged.token")
        resp = await client.get("/dashboard", follow_redirects=False)
        assert resp.headers["location"] == "/login"


@pytest.mark.integration
class TestSignedIn:
    async def test_login_page_redirects_to_dashboard(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@peak.test")
        resp = await client.get("/login", follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/dashboard"

    async def test_active_org_reaches_billable_pages(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@peak.test")
        resp = await client.get("/programs", follow_redirects=False)
        assert resp.status_code == 200
        assert "Programs" in resp.text

    async def test_unexpired_trial_reaches_billable_pages(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("client@fresh.test")
        resp = await client.get("/nutrition", follow_redirects=False)
        assert resp.status_code == 200

    async def test_expired_trial_redirects_to_billing(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@irontemple.test")
        resp = await client.get("/programs", follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/billing?expired=true"

    async def test_expired_trial_keeps_dashboard(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@irontemple.test")
        resp = await client.get("/dashboard", follow_redirects=False)
        assert resp.status_code == 200

    async def test_billing_page_never_loops(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@irontemple.test")
        resp = await client.get("/billing?expired=true", follow_redirects=False)
        assert resp.status_code == 200
        assert "trial has ended" in resp.text

    async def test_logout_returns_to_anonymous(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@peak.test")
        resp = await client.post("/api/auth/logout")
        assert resp.status_code == 200
        resp = await client.get("/dashboard", follow_redirects=False)
        assert resp.headers["location"] == "/login"


@pytest.mark.integration
class TestSessionRotation:
    async def test_old_session_cookie_is_rotated(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@peak.test")
        original = client.cookies.get("session")

        with patch.object(time, "time", return_value=time.time() + 7200):
            resp = await client.get("/dashboard", follow_redirects=False)

        assert resp.status_code == 200
        rotated = resp.cookies.get("session")
        assert rotated is not None
        assert rotated != original

        resp = await client.get("/dashboard", follow_redirects=False)
        assert resp.status_code == 200

    async def test_requests_in_flight_with_old_cookie_stay_signed_in(
        self, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@peak.test")
        original = client.cookies.get("session")
        client.cookies.clear()
        headers = {"cookie": f"session={original}"}
        later = time.time() + 7200

        with patch.object(time, "time", return_value=later):
            first, second = await asyncio.gather(
                client.get("/dashboard", headers=headers, follow_redirects=False),
                client.get("/dashboard", headers=headers, follow_redirects=False),
            )
        assert first.status_code == 200
        assert second.status_code == 200
        assert first.cookies.get("session") == second.cookies.get("session")
        assert first.cookies.get("session") != original

        with patch.object(time, "time", return_value=later + 60):
            resp = await client.get("/dashboard", headers=headers, follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"

    async def test_rotation_failure_treated_as_anonymous(
        self, app, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@peak.test")
        auth = app.state.services.session_auth
        with (
            patch.object(time, "time", return_value=time.time() + 7200),
            patch.object(auth, "rotate", side_effect=RuntimeError("store unavailable")),
        ):
            resp = await client.get("/dashboard", follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"


@pytest.mark.integration
class TestLogin:
    async def test_unknown_email_rejected(self, client: AsyncClient, tenants, password) -> None:
        resp = await client.post(
            "/api/auth/login", json={"email": "who@nowhere.test", "password": password}
        )
        assert resp.status_code == 401

    async def test_login_returns_role(self, client: AsyncClient, tenants, password) -> None:
        resp = await client.post(
            "/api/auth/login", json={"email": "root@fitcoach.test", "password": password}
        )
        assert resp.status_code == 200
        assert resp.json()["role"] == "super_admin"
        assert "session" in resp.cookies

    async def test_wrong_password_rejected(self, client: AsyncClient, tenants) -> None:
        resp = await client.post(
            "/api/auth/login", json={"email": "root@fitcoach.test", "password": "guess"}
        )
        assert resp.status_code == 401
        assert "session" not in resp.cookies

    async def test_email_alone_is_not_enough(self, client: AsyncClient, tenants) -> None:
        resp = await client.post("/api/auth/login", json={"email": "root@fitcoach.test"})
        assert resp.status_code == 422

    async def test_profile_without_password_cannot_sign_in(
        self, app, client: AsyncClient, tenants
    ) -> None:
        await app.state.services.profiles.create(
            "invited@peak.test", Role.CLIENT, "org-active", user_id="u-invited"
        )
        for attempt in ("", "anything"):
            resp = await client.post(
                "/api/auth/login", json={"email": "invited@peak.test", "password": attempt}
            )
            assert resp.status_code in (401, 422)
            assert "session" not in resp.cookies

        resp = await client.get("/dashboard", follow_redirects=False)
        assert resp.headers["location"] == "/login"


@pytest.mark.integration
class TestLogout:
    async def test_logout_signs_out(self, client: AsyncClient, tenants, login_as) -> None:
        await login_as("coach@peak.test")
        resp = await client.post("/api/auth/logout")
        assert resp.status_code == 200

        resp = await client.get("/dashboard", follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"

    async def test_logout_after_refresh_window_signs_out(
        self, app, client: AsyncClient, tenants, login_as
    ) -> None:
        await login_as("coach@peak.test")
        original = client.cookies.get("session")
        later = time.time() + 7200

        with patch.object(time, "time", return_value=later):
            resp = await client.post("/api/auth/logout")
            assert resp.status_code == 200
            set_cookies = resp.headers.get_list("set-cookie")
            # Only the clearing cookie; no freshly rotated token written back
            session_cookies = [c for c in set_cookies if c.startswith("session=")]
            assert len(session_cookies) == 1
            assert "Max-Age=0" in session_cookies[0]

            resp = await client.get("/dashboard", follow_redirects=False)
            assert resp.status_code == 302
            assert resp.headers["location"] == "/login"

            client.cookies.clear()
            resp = await client.get(
                "/dashboard",
                headers={"cookie": f"session={original}"},
                follow_redirects=False,
            )
            assert resp.headers["location"] == "/login"

        auth = app.state.services.session_auth
        assert auth.validate_session(original) is None
