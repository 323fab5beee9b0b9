"""Shared test fixtures."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from fitcoach.config.settings import Settings
from fitcoach.models.domain import OrgState, Principal
from fitcoach.storage.database import init_db
from fitcoach.types import Role, SubscriptionStatus
from fitcoach.web.app import create_app

PASSWORD = "correct-horse-battery"


@dataclass
class Tenants:
    """Seeded organizations and profiles for app-level tests."""

    expired_org: OrgState
    active_org: OrgState
    trialing_org: OrgState
    trainer: Principal
    active_trainer: Principal
    client: Principal
    other_client: Principal
    admin: Principal


@pytest.fixture()
def settings() -> Settings:
    # debug=True keeps cookies non-secure so the test transport sends them back
    return Settings(
        secret_key="test-secret", debug=True, use_database=False, password_hash_rounds=4
    )


@pytest.fixture()
def app(settings: Settings):
    """Create a fresh app instance (with fresh in-memory repos) for each test."""
    return create_app(settings)


@pytest.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def tenants(app) -> Tenants:
    services = app.state.services
    orgs = services.organizations
    profiles = services.profiles
    now = datetime.now(UTC)

    expired_org = await orgs.create(
        "Iron Temple",
        SubscriptionStatus.TRIALING,
        trial_ends_at=datetime(2024, 1, 1, tzinfo=UTC),
        org_id="org-expired",
    )
    active_org = await orgs.create(
        "Peak Performance",
        SubscriptionStatus.ACTIVE,
        trial_ends_at=datetime(2024, 1, 1, tzinfo=UTC),
        subscription_tier="pro",
        org_id="org-active",
    )
    trialing_org = await orgs.create(
        "Fresh Start",
        SubscriptionStatus.TRIALING,
        trial_ends_at=now + timedelta(days=5),
        org_id="org-trialing",
    )
    return Tenants(
        expired_org=expired_org,
        active_org=active_org,
        trialing_org=trialing_org,
        trainer=await profiles.create(
            "coach@irontemple.test",
            Role.TRAINER,
            "org-expired",
            password=PASSWORD,
            user_id="u-trainer",
        ),
        active_trainer=await profiles.create(
            "coach@peak.test",
            Role.TRAINER,
            "org-active",
            full_name="Dana Peak",
            password=PASSWORD,
            user_id="u-active-trainer",
        ),
        client=await profiles.create(
            "client@peak.test",
            Role.CLIENT,
            "org-active",
            full_name="Casey Client",
            password=PASSWORD,
            user_id="u-client",
        ),
        other_client=await profiles.create(
            "client@fresh.test",
            Role.CLIENT,
            "org-trialing",
            password=PASSWORD,
            user_id="u-other-client",
        ),
        admin=await profiles.create(
            "root@fitcoach.test", Role.SUPER_ADMIN, password=PASSWORD, user_id="u-admin"
        ),
    )


@pytest.fixture()
def password() -> str:
    """Password every seeded profile signs in with."""
    return PASSWORD


@pytest.fixture()
def login_as(client: AsyncClient):
    """Return a coroutine that signs the test client in as the given email."""

    async def _login(email: str) -> None:
        resp = await client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 200, resp.text

    return _login


@pytest.fixture()
async def async_engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield engine
    await engine.dispose()
