"""Role checks over the gate context resolved by AccessGateMiddleware."""

from __future__ import annotations

import structlog
from fastapi import Depends, HTTPException, Request

from fitcoach.models.domain import GateContext, Principal
from fitcoach.types import Role

logger = structlog.get_logger(__name__)

_ANONYMOUS = GateContext(principal=None, effective_org_id=None)


def get_gate_context(request: Request) -> GateContext:
    """Return the context the gate computed for this request."""
    return getattr(request.state, "gate", _ANONYMOUS)


def acting_principal(context: GateContext) -> Principal:
    """Return the caller or fail with 401."""
    if context.principal is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return context.principal


async def require_principal(
    context: GateContext = Depends(get_gate_context),
) -> GateContext:
    """Require an authenticated caller."""
    acting_principal(context)
    return context


async def require_trainer(
    context: GateContext = Depends(require_principal),
) -> GateContext:
    """Require trainer or super_admin acting within an organization."""
    principal = acting_principal(context)
    if principal.role not in (Role.TRAINER, Role.SUPER_ADMIN):
        logger.warning("trainer_required", user_id=principal.id, role=str(principal.role))
        raise HTTPException(status_code=403, detail="Trainer access required")
    if context.effective_org_id is None:
        raise HTTPException(status_code=403, detail="No organization context")
    return context


def trainer_org_id(context: GateContext) -> str:
    """The organization a trainer-scoped route acts on."""
    if context.effective_org_id is None:
        raise HTTPException(status_code=403, detail="No organization context")
    return context.effective_org_id
