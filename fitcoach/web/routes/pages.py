"""Server-rendered pages. Access is decided by the gate before these run."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from fitcoach.models.domain import GateContext
from fitcoach.types import Role
from fitcoach.web.auth.rbac import get_gate_context, require_principal
from fitcoach.web.dependencies import Services, get_services

router = APIRouter(tags=["pages"])

templates = Jinja2Templates(directory=str(Path(__file__).parent.parent / "templates"))

_SECTIONS = {
    "dashboard": "Dashboard",
    "schedules": "Schedules",
    "settings": "Settings",
    "nutrition": "Nutrition",
    "organization": "Organization",
}


def _coaching_org(context: GateContext) -> str | None:
    """Org whose programs and clients the caller may browse, if any."""
    principal = context.principal
    if principal is None or principal.role == Role.CLIENT:
        return None
    return context.effective_org_id


@router.get("/", response_class=HTMLResponse)
async def home(
    request: Request,
    context: GateContext = Depends(get_gate_context),
) -> HTMLResponse:
    title = "Home" if context.authenticated else "FitCoach"
    return templates.TemplateResponse(request, "home.html", {"title": title, "gate": context})


@router.get("/billing", response_class=HTMLResponse)
async def billing_page(
    request: Request,
    context: GateContext = Depends(require_principal),
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "billing.html",
        {
            "title": "Billing",
            "gate": context,
            "expired": request.query_params.get("expired") == "true",
        },
    )


@router.get("/programs", response_class=HTMLResponse)
async def programs_page(
    request: Request,
    context: GateContext = Depends(require_principal),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    org_id = _coaching_org(context)
    programs = await services.programs.list_all(org_id) if org_id else []
    return templates.TemplateResponse(
        request, "programs.html", {"title": "Programs", "gate": context, "programs": programs}
    )


@router.get("/users", response_class=HTMLResponse)
async def clients_page(
    request: Request,
    context: GateContext = Depends(require_principal),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    org_id = _coaching_org(context)
    clients = await services.profiles.list_clients(org_id) if org_id else []
    return templates.TemplateResponse(
        request, "clients.html", {"title": "Clients", "gate": context, "clients": clients}
    )


def _section_page(slug: str, title: str):  # type: ignore[no-untyped-def]
    async def page(
        request: Request,
        context: GateContext = Depends(require_principal),
    ) -> HTMLResponse:
        return templates.TemplateResponse(
            request, "section.html", {"title": title, "slug": slug, "gate": context}
        )

    return page


for _slug, _title in _SECTIONS.items():
    router.add_api_route(
        f"/{_slug}",
        _section_page(_slug, _title),
        methods=["GET"],
        response_class=HTMLResponse,
        name=f"{_slug}_page",
    )
