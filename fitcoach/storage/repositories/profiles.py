"""Profile repository: resolves a principal's role and organization."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from fitcoach.exceptions import NotFound, UpstreamUnavailable
from fitcoach.models.database import Profile, _new_uuid
from fitcoach.models.domain import Principal
from fitcoach.types import Role
from fitcoach.web.auth.passwords import hash_password, verify_password

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


def _to_principal(profile: Profile) -> Principal:
    return Principal(
        id=profile.id,
        role=Role(profile.role),
        organization_id=profile.organization_id,
        email=profile.email,
        full_name=profile.full_name,
    )


class ProfileRepository:
    """PostgreSQL-backed profile store."""

    def __init__(self, engine: AsyncEngine, password_rounds: int = 12) -> None:
        self._engine = engine
        self._password_rounds = password_rounds

    async def load_principal(self, user_id: str) -> Principal:
        """Return the principal for a user id.

        Raises NotFound when no active profile exists and UpstreamUnavailable
        when the database cannot be queried.
        """
        profile = await self._fetch(col(Profile.id) == user_id)
        if profile is None:
            raise NotFound(f"profile {user_id}")
        return _to_principal(profile)

    async def get_by_email(self, email: str) -> Principal | None:
        return await self._fetch_principal(col(Profile.email) == email)

    async def verify_credentials(self, email: str, password: str) -> Principal | None:
        """Return the principal when ``password`` matches the stored hash."""
        profile = await self._fetch(col(Profile.email) == email)
        if profile is None or not verify_password(password, profile.password_hash):
            return None
        return _to_principal(profile)

    async def get_client(self, client_id: str, org_id: str | None) -> Principal | None:
        """Return a profile only if it belongs to ``org_id``."""
        if org_id is None:
            return None
        return await self._fetch_principal(
            col(Profile.id) == client_id,
            col(Profile.organization_id) == org_id,
        )

    async def list_clients(self, org_id: str) -> list[Principal]:
        """Active clients of one organization, ordered by name."""
        try:
            async with AsyncSession(self._engine) as session:
                stmt = (
                    select(Profile)
                    .where(
                        col(Profile.organization_id) == org_id,
                        col(Profile.role) == str(Role.CLIENT),
                        col(Profile.is_active).is_(True),
                    )
                    .order_by(col(Profile.full_name), col(Profile.email))
                )
                result = await session.execute(stmt)
                profiles = result.scalars().all()
        except SQLAlchemyError as exc:
            logger.warning("profile_query_failed", error=str(exc))
            raise UpstreamUnavailable(str(exc)) from exc
        return [_to_principal(profile) for profile in profiles]

    async def create(
        self,
        email: str,
        role: Role = Role.CLIENT,
        organization_id: str | None = None,
        full_name: str = "",
        password: str | None = None,
    ) -> Principal:
        password_hash = hash_password(password, self._password_rounds) if password else None
        try:
            async with AsyncSession(self._engine) as session:
                profile = Profile(
                    email=email,
                    full_name=full_name or email,
                    role=str(role),
                    organization_id=organization_id,
                    password_hash=password_hash,
                )
                session.add(profile)
                await session.commit()
                await session.refresh(profile)
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(str(exc)) from exc
        logger.info("profile_created", user_id=profile.id, role=str(role))
        return _to_principal(profile)

    async def _fetch_principal(self, *clauses: Any) -> Principal | None:
        profile = await self._fetch(*clauses)
        return _to_principal(profile) if profile else None

    async def _fetch(self, *clauses: Any) -> Profile | None:
        try:
            async with AsyncSession(self._engine) as session:
                stmt = select(Profile).where(*clauses, col(Profile.is_active).is_(True))
                result = await session.execute(stmt)
                return result.scalars().first()
        except SQLAlchemyError as exc:
            logger.warning("profile_query_failed", error=str(exc))
            raise UpstreamUnavailable(str(exc)) from exc


class InMemoryProfileRepository:
    """In-memory fallback for dev/testing without a database."""

    def __init__(self, password_rounds: int = 12) -> None:
        self._password_rounds = password_rounds
        self._profiles: dict[str, Principal] = {}
        self._password_hashes: dict[str, str] = {}

    async def load_principal(self, user_id: str) -> Principal:
        principal = self._profiles.get(user_id)
        if principal is None:
            raise NotFound(f"profile {user_id}")
        return principal

    async def get_by_email(self, email: str) -> Principal | None:
        return next((p for p in self._profiles.values() if p.email == email), None)

    async def verify_credentials(self, email: str, password: str) -> Principal | None:
        principal = await self.get_by_email(email)
        if principal is None:
            return None
        if not verify_password(password, self._password_hashes.get(principal.id)):
            return None
        return principal

    async def get_client(self, client_id: str, org_id: str | None) -> Principal | None:
        principal = self._profiles.get(client_id)
        if principal is None or org_id is None or principal.organization_id != org_id:
            return None
        return principal

    async def list_clients(self, org_id: str) -> list[Principal]:
        clients = [
            p
            for p in self._profiles.values()
            if p.organization_id == org_id and p.role == Role.CLIENT
        ]
        return sorted(clients, key=lambda p: (p.full_name, p.email))

    async def create(
        self,
        email: str,
        role: Role = Role.CLIENT,
        organization_id: str | None = None,
        full_name: str = "",
        password: str | None = None,
        user_id: str | None = None,
    ) -> Principal:
        principal = Principal(
            id=user_id or _new_uuid(),
            role=role,
            organization_id=organization_id,
            email=email,
            full_name=full_name or email,
        )
        self._profiles[principal.id] = principal
        if password:
            self._password_hashes[principal.id] = hash_password(password, self._password_rounds)
        return principal
