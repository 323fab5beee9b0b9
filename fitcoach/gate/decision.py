"""Access decision engine.

``decide`` is a pure function of the request path, the resolved principal,
the effective organization's subscription state and the clock. All I/O
happens before it is called; see ``AccessGateMiddleware``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fitcoach.gate.billing import trial_expired
from fitcoach.models.domain import AccessDecision
from fitcoach.types import DecisionKind

if TYPE_CHECKING:
    from datetime import datetime

    from fitcoach.gate.policy import RoutePolicy
    from fitcoach.models.domain import OrgState, Principal

ALLOW = AccessDecision(kind=DecisionKind.ALLOW)


def needs_org_state(path: str, principal: Principal | None, policy: RoutePolicy) -> bool:
    """Whether the billing gate could apply, i.e. whether to load org state at all."""
    return principal is not None and policy.is_billable(path)


def decide(
    path: str,
    principal: Principal | None,
    org_state: OrgState | None,
    now: datetime,
    policy: RoutePolicy,
) -> AccessDecision:
    """Return Allow or the redirect the request must receive.

    ``org_state`` is None when no organization applies or it could not be
    found; billing is then unrestricted.
    """
    if principal is None:
        if policy.is_protected(path):
            return AccessDecision(
                kind=DecisionKind.REDIRECT_TO_LOGIN,
                location=policy.login_path,
                reason="unauthenticated",
            )
        return ALLOW

    if policy.is_login(path):
        return AccessDecision(
            kind=DecisionKind.REDIRECT_TO_DASHBOARD,
            location=policy.dashboard_path,
        )

    if org_state is not None and policy.is_billable(path) and trial_expired(org_state, now):
        return AccessDecision(
            kind=DecisionKind.REDIRECT_TO_BILLING,
            location=policy.expired_billing_location,
            reason="expired",
        )

    return ALLOW
