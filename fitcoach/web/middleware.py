"""FastAPI middleware: request ID injection and the access gate."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import RedirectResponse

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from fitcoach.config.settings import Settings
    from fitcoach.web.dependencies import Services

logger = structlog.get_logger(__name__)


def _sets_cookie(response: Response, name: str) -> bool:
    """Whether the handler already set or cleared cookie ``name``."""
    prefix = f"{name}="
    return any(value.startswith(prefix) for value in response.headers.getlist("set-cookie"))


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Adds a unique X-Request-ID header to every response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response


class AccessGateMiddleware(BaseHTTPMiddleware):
    """Evaluates the access gate once per request.

    Redirects are answered here with a 302. Allowed requests continue with
    ``request.state.gate`` holding the resolved GateContext.
    """

    def __init__(self, app: object, exempt_prefixes: tuple[str, ...] = ("/static",)) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._exempt = exempt_prefixes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if path.startswith(self._exempt):
            return await call_next(request)

        settings: Settings = request.app.state.settings
        services: Services = request.app.state.services
        gate = services.gate

        outcome = await gate.evaluate(
            path=path,
            session_token=request.cookies.get(settings.session_cookie),
            impersonation_marker=request.cookies.get(gate.overlay.cookie_name),
            now=datetime.now(UTC),
        )
        request.state.gate = outcome.context
        request.state.rotated_session_token = outcome.rotated_token
        principal = outcome.context.principal
        if principal is not None:
            structlog.contextvars.bind_contextvars(
                user_id=principal.id, org_id=outcome.context.effective_org_id
            )

        if outcome.decision.allowed:
            response = await call_next(request)
        else:
            logger.info(
                "gate_redirect",
                path=path,
                decision=str(outcome.decision.kind),
                reason=outcome.decision.reason,
            )
            response = RedirectResponse(url=outcome.decision.location or "/", status_code=302)

        if outcome.rotated_token and not _sets_cookie(response, settings.session_cookie):
            response.set_cookie(
                key=settings.session_cookie,
                value=outcome.rotated_token,
                httponly=True,
                secure=settings.cookie_secure,
                samesite="lax",
                max_age=settings.session_max_age,
            )
        return response
