"""Organization repository: subscription state for the billing gate."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from fitcoach.exceptions import NotFound, UpstreamUnavailable
from fitcoach.models.database import Organization, _new_uuid
from fitcoach.models.domain import OrgState, as_utc
from fitcoach.types import SubscriptionStatus

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


def _to_state(org: Organization) -> OrgState:
    return OrgState(
        organization_id=org.id,
        subscription_status=SubscriptionStatus(org.subscription_status),
        trial_ends_at=as_utc(org.trial_ends_at),
        name=org.name,
        subscription_tier=org.subscription_tier,
    )


class OrganizationRepository:
    """PostgreSQL-backed organization store. Read-only from the gate."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def load_state(self, org_id: str) -> OrgState:
        """Return the org's subscription state or raise NotFound."""
        try:
            async with AsyncSession(self._engine) as session:
                stmt = select(Organization).where(col(Organization.id) == org_id)
                result = await session.execute(stmt)
                org = result.scalars().first()
        except SQLAlchemyError as exc:
            logger.warning("organization_query_failed", org_id=org_id, error=str(exc))
            raise UpstreamUnavailable(str(exc)) from exc
        if org is None:
            raise NotFound(f"organization {org_id}")
        return _to_state(org)

    async def create(
        self,
        name: str,
        subscription_status: SubscriptionStatus = SubscriptionStatus.TRIALING,
        trial_ends_at: datetime | None = None,
        subscription_tier: str | None = None,
    ) -> OrgState:
        trial_end = as_utc(trial_ends_at)
        try:
            async with AsyncSession(self._engine) as session:
                org = Organization(
                    name=name,
                    subscription_status=str(subscription_status),
                    subscription_tier=subscription_tier,
                    trial_ends_at=trial_end.replace(tzinfo=None) if trial_end else None,
                )
                session.add(org)
                await session.commit()
                await session.refresh(org)
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(str(exc)) from exc
        logger.info("organization_created", org_id=org.id)
        return _to_state(org)


class InMemoryOrganizationRepository:
    """In-memory fallback for dev/testing without a database."""

    def __init__(self) -> None:
        self._orgs: dict[str, OrgState] = {}

    async def load_state(self, org_id: str) -> OrgState:
        state = self._orgs.get(org_id)
        if state is None:
            raise NotFound(f"organization {org_id}")
        return state

    async def create(
        self,
        name: str,
        subscription_status: SubscriptionStatus = SubscriptionStatus.TRIALING,
        trial_ends_at: datetime | None = None,
        subscription_tier: str | None = None,
        org_id: str | None = None,
    ) -> OrgState:
        state = OrgState(
            organization_id=org_id or _new_uuid(),
            subscription_status=subscription_status,
            trial_ends_at=as_utc(trial_ends_at),
            name=name,
            subscription_tier=subscription_tier,
        )
        self._orgs[state.organization_id] = state
        return state
