"""FastAPI application factory."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse

if TYPE_CHECKING:
    from fastapi.exceptions import HTTPException

from fitcoach.config.logging import setup_logging
from fitcoach.config.settings import Settings, get_settings
from fitcoach.exceptions import Forbidden, NotFound, Unauthenticated, UpstreamUnavailable
from fitcoach.web.dependencies import build_services
from fitcoach.web.middleware import AccessGateMiddleware, RequestIDMiddleware
from fitcoach.web.routes.auth import router as auth_router
from fitcoach.web.routes.billing import router as billing_router
from fitcoach.web.routes.coaching import router as coaching_router
from fitcoach.web.routes.impersonate import router as impersonate_router
from fitcoach.web.routes.pages import router as pages_router
from fitcoach.web.routes.programs import router as programs_router

logger = structlog.get_logger(__name__)

_ERROR_STATUS = {
    Unauthenticated: 401,
    Forbidden: 403,
    NotFound: 404,
    UpstreamUnavailable: 503,
}


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    setup_logging(log_level=settings.log_level, json_output=not settings.debug)

    app = FastAPI(
        title="FitCoach",
        description="Multi-tenant fitness coaching platform",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.services = build_services(settings)

    # Redirect 401s to /login for browser page requests; return JSON for API
    @app.exception_handler(401)
    async def auth_redirect_handler(
        request: Request, exc: HTTPException
    ) -> RedirectResponse | JSONResponse:
        if not request.url.path.startswith("/api/"):
            return RedirectResponse(url=settings.login_path, status_code=302)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    for error_type, status_code in _ERROR_STATUS.items():

        async def domain_error_handler(
            request: Request, exc: Exception, status_code: int = status_code
        ) -> JSONResponse:
            logger.warning(
                "request_failed",
                path=request.url.path,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})

        app.add_exception_handler(error_type, domain_error_handler)

    # Last added runs first
    app.add_middleware(AccessGateMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(auth_router)
    app.include_router(impersonate_router)
    app.include_router(billing_router)
    app.include_router(coaching_router)
    app.include_router(programs_router)
    app.include_router(pages_router)

    @app.get("/api/health")
    async def health_check() -> dict[str, object]:
        from fitcoach.web.health import check_health

        return await check_health(settings)

    logger.info("app_created", use_database=settings.use_database)
    return app
