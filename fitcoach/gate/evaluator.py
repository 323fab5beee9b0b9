"""Runs the gate's loaders in order and hands their results to ``decide``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import structlog

from fitcoach.exceptions import NotFound
from fitcoach.gate.decision import decide, needs_org_state
from fitcoach.models.domain import AccessDecision, GateContext

if TYPE_CHECKING:
    from datetime import datetime

    from fitcoach.gate.impersonation import ImpersonationOverlay, OrganizationLoader
    from fitcoach.gate.policy import RoutePolicy
    from fitcoach.gate.session import SessionResolver
    from fitcoach.models.domain import OrgState, Principal, SessionIdentity

logger = structlog.get_logger(__name__)


class ProfileLoader(Protocol):
    async def load_principal(self, user_id: str) -> Principal: ...


@dataclass(frozen=True, slots=True)
class GateOutcome:
    decision: AccessDecision
    context: GateContext
    rotated_token: str | None = None


class AccessGate:
    """One evaluation per request. Never raises.

    Identity lookups fail closed (the caller becomes anonymous); organization
    lookups fail open (no billing restriction).
    """

    def __init__(
        self,
        *,
        resolver: SessionResolver,
        profiles: ProfileLoader,
        organizations: OrganizationLoader,
        overlay: ImpersonationOverlay,
        policy: RoutePolicy,
    ) -> None:
        self._resolver = resolver
        self._profiles = profiles
        self._organizations = organizations
        self.overlay = overlay
        self.policy = policy

    async def evaluate(
        self,
        path: str,
        session_token: str | None,
        impersonation_marker: str | None,
        now: datetime,
    ) -> GateOutcome:
        rotated_token: str | None = None
        principal: Principal | None = None

        try:
            resolved = self._resolver.resolve(session_token)
        except Exception as exc:
            logger.warning("session_resolve_failed", error=str(exc))
            resolved = None

        if resolved is not None:
            rotated_token = resolved.rotated_token
            principal = await self._load_principal(resolved.identity)

        if principal is None:
            context = GateContext(principal=None, effective_org_id=None)
            return GateOutcome(
                decision=decide(path, None, None, now, self.policy),
                context=context,
            )

        effective_org_id, impersonating = self.overlay.effective_org_id(
            principal, impersonation_marker
        )
        context = GateContext(
            principal=principal,
            effective_org_id=effective_org_id,
            impersonating=impersonating,
        )

        org_state: OrgState | None = None
        if effective_org_id and needs_org_state(path, principal, self.policy):
            org_state = await self._load_org_state(effective_org_id)

        decision = decide(path, principal, org_state, now, self.policy)
        return GateOutcome(decision=decision, context=context, rotated_token=rotated_token)

    async def _load_principal(self, identity: SessionIdentity) -> Principal | None:
        try:
            return await self._profiles.load_principal(identity.user_id)
        except NotFound:
            logger.warning("gate_profile_missing", user_id=identity.user_id)
        except Exception as exc:
            logger.warning("gate_profile_load_failed", user_id=identity.user_id, error=str(exc))
        return None

    async def _load_org_state(self, org_id: str) -> OrgState | None:
        try:
            return await self._organizations.load_state(org_id)
        except NotFound:
            logger.info("gate_org_missing", org_id=org_id)
        except Exception as exc:
            logger.warning("gate_org_load_failed", org_id=org_id, error=str(exc))
        return None
