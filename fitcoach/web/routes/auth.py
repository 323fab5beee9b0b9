"""Authentication routes: login page, login and logout."""

from __future__ import annotations

from pathlib import Path

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from fitcoach.audit.logger import audit
from fitcoach.config.settings import Settings
from fitcoach.models.api import LoginRequest
from fitcoach.web.auth.rbac import get_gate_context
from fitcoach.web.dependencies import Services, get_app_settings, get_services

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["auth"])

templates = Jinja2Templates(directory=str(Path(__file__).parent.parent / "templates"))


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request) -> HTMLResponse:
    """Render the login page. Signed-in users never get here; the gate sends them on."""
    return templates.TemplateResponse(
        request, "login.html", {"title": "Sign in", "gate": get_gate_context(request)}
    )


@router.post("/api/auth/login")
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    services: Services = Depends(get_services),
) -> dict[str, str]:
    """Create a session for a profile whose password matches."""
    principal = await services.profiles.verify_credentials(body.email, body.password)
    if principal is None:
        logger.warning("login_failed", email=body.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = services.session_auth.create_session(principal.id, principal.email)
    response.set_cookie(
        key=settings.session_cookie,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=settings.session_max_age,
    )
    await audit(
        request,
        settings,
        org_id=principal.organization_id,
        user_id=principal.id,
        action="auth.login",
    )
    logger.info("user_logged_in", user_id=principal.id)
    return {"status": "ok", "userId": principal.id, "role": str(principal.role)}


@router.post("/api/auth/logout")
async def logout(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    services: Services = Depends(get_services),
) -> dict[str, str]:
    """Destroy the session, including a token it was just rotated into."""
    for token in (
        request.cookies.get(settings.session_cookie),
        getattr(request.state, "rotated_session_token", None),
    ):
        if token:
            services.session_auth.destroy_session(token)
    response.delete_cookie(key=settings.session_cookie)
    services.gate.overlay.stop(response)
    return {"status": "ok"}
