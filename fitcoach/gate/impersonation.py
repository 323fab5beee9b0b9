"""Super-admin impersonation: scoping requests to another organization.

The marker is a plain, client-readable cookie holding the target org id.
It is honoured only for super_admin principals and never changes a role.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import structlog

from fitcoach.exceptions import Forbidden, Unauthenticated

if TYPE_CHECKING:
    from starlette.responses import Response

    from fitcoach.config.settings import Settings
    from fitcoach.models.domain import OrgState, Principal

logger = structlog.get_logger(__name__)


class OrganizationLoader(Protocol):
    async def load_state(self, org_id: str) -> OrgState: ...


class ImpersonationOverlay:
    def __init__(
        self,
        organizations: OrganizationLoader,
        cookie_name: str = "impersonate_org_id",
        max_age: int = 86400,
        secure: bool = True,
    ) -> None:
        self._organizations = organizations
        self.cookie_name = cookie_name
        self._max_age = max_age
        self._secure = secure

    @classmethod
    def from_settings(
        cls, organizations: OrganizationLoader, settings: Settings
    ) -> ImpersonationOverlay:
        return cls(
            organizations,
            cookie_name=settings.impersonation_cookie,
            max_age=settings.impersonation_max_age,
            secure=settings.cookie_secure,
        )

    async def start(self, principal: Principal | None, org_id: str, response: Response) -> OrgState:
        """Begin scoping the principal's requests to ``org_id``.

        Raises Unauthenticated, Forbidden for anyone but a super_admin, or
        NotFound (from the loader) when the organization does not exist.
        """
        if principal is None:
            raise Unauthenticated("sign in required")
        if not principal.is_super_admin:
            logger.warning(
                "impersonation_forbidden", user_id=principal.id, role=str(principal.role)
            )
            raise Forbidden("super_admin role required")

        org = await self._organizations.load_state(org_id)
        response.set_cookie(
            key=self.cookie_name,
            value=org.organization_id,
            max_age=self._max_age,
            path="/",
            httponly=False,
            secure=self._secure,
            samesite="lax",
        )
        logger.info("impersonation_started", user_id=principal.id, org_id=org.organization_id)
        return org

    def stop(self, response: Response) -> None:
        """Clear the marker. Safe to call when none is set."""
        response.delete_cookie(key=self.cookie_name, path="/")
        logger.info("impersonation_stopped")

    def effective_org_id(self, principal: Principal, marker: str | None) -> tuple[str | None, bool]:
        """Return (org id used for data scoping, whether it is impersonated)."""
        if marker and principal.is_super_admin and marker != principal.organization_id:
            return marker, True
        return principal.organization_id, False
