"""Per-request domain values used by the access gate."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from fitcoach.types import DecisionKind, Role, SubscriptionStatus


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class SessionIdentity:
    """Who the session cookie says the caller is, before any profile lookup."""

    user_id: str
    email: str = ""


@dataclass(frozen=True, slots=True)
class Principal:
    """The authenticated caller, immutable for the lifetime of a request."""

    id: str
    role: Role
    organization_id: str | None
    email: str = ""
    full_name: str = ""

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN


@dataclass(frozen=True, slots=True)
class OrgState:
    """Subscription state of an organization as seen by the gate."""

    organization_id: str
    subscription_status: SubscriptionStatus
    trial_ends_at: datetime | None = None
    name: str = ""
    subscription_tier: str | None = None


@dataclass(frozen=True, slots=True)
class AccessDecision:
    """Outcome of the gate for one request. Never persisted."""

    kind: DecisionKind
    location: str | None = None
    reason: str | None = None

    @property
    def allowed(self) -> bool:
        return self.kind == DecisionKind.ALLOW


@dataclass(frozen=True, slots=True)
class GateContext:
    """What route handlers get instead of re-deriving user, role and org."""

    principal: Principal | None
    effective_org_id: str | None
    impersonating: bool = False

    @property
    def authenticated(self) -> bool:
        return self.principal is not None
