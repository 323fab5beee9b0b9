"""Billing status API for the effective organization."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException

from fitcoach.exceptions import NotFound
from fitcoach.gate.billing import trial_days_remaining, trial_expired
from fitcoach.models.api import BillingStatusResponse
from fitcoach.models.domain import GateContext
from fitcoach.web.auth.rbac import require_principal
from fitcoach.web.dependencies import Services, get_services

router = APIRouter(prefix="/api/billing", tags=["billing"])


@router.get("/status", response_model=BillingStatusResponse)
async def billing_status(
    context: GateContext = Depends(require_principal),
    services: Services = Depends(get_services),
) -> BillingStatusResponse:
    if context.effective_org_id is None:
        raise HTTPException(status_code=404, detail="No organization")
    try:
        state = await services.organizations.load_state(context.effective_org_id)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Organization not found") from exc

    now = datetime.now(UTC)
    return BillingStatusResponse(
        organizationId=state.organization_id,
        status=str(state.subscription_status),
        tier=state.subscription_tier,
        trialEndsAt=state.trial_ends_at,
        trialDaysRemaining=trial_days_remaining(state, now),
        expired=trial_expired(state, now),
    )
