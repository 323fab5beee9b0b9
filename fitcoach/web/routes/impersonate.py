"""Impersonation API routes (super_admin only)."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response

from fitcoach.audit.logger import audit
from fitcoach.config.settings import Settings
from fitcoach.exceptions import Forbidden, NotFound, Unauthenticated
from fitcoach.models.api import ImpersonateRequest
from fitcoach.models.domain import GateContext
from fitcoach.web.auth.rbac import get_gate_context
from fitcoach.web.dependencies import Services, get_app_settings, get_services

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/impersonate", tags=["impersonation"])


@router.post("")
async def start_impersonation(
    body: ImpersonateRequest,
    request: Request,
    response: Response,
    context: GateContext = Depends(get_gate_context),
    settings: Settings = Depends(get_app_settings),
    services: Services = Depends(get_services),
) -> dict[str, object]:
    principal = context.principal
    try:
        if principal is None:
            raise Unauthenticated("sign in required")
        if principal.is_super_admin and not body.orgId:
            raise HTTPException(status_code=400, detail="Organization ID required")
        org = await services.gate.overlay.start(principal, body.orgId or "", response)
    except Unauthenticated as exc:
        raise HTTPException(status_code=401, detail="Not authenticated") from exc
    except Forbidden as exc:
        raise HTTPException(status_code=403, detail="Not authorized") from exc
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Organization not found") from exc

    await audit(
        request,
        settings,
        org_id=org.organization_id,
        user_id=principal.id,
        action="impersonation.start",
        resource_id=org.organization_id,
    )
    logger.info("impersonation_requested", user_id=principal.id, org_id=org.organization_id)
    return {"success": True, "orgName": org.name}


@router.delete("")
async def stop_impersonation(
    request: Request,
    response: Response,
    context: GateContext = Depends(get_gate_context),
    settings: Settings = Depends(get_app_settings),
    services: Services = Depends(get_services),
) -> dict[str, bool]:
    services.gate.overlay.stop(response)
    if context.principal is not None and context.impersonating:
        await audit(
            request,
            settings,
            org_id=context.effective_org_id,
            user_id=context.principal.id,
            action="impersonation.stop",
            resource_id=context.effective_org_id or "",
        )
    return {"success": True}
