"""Audit trail of sign-ins and impersonation.

Rows are written through their own session, so a failing request never
takes its audit entry down with it. Details lose credential-like keys and
are capped at 10KB.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import structlog
from sqlmodel.ext.asyncio.session import AsyncSession

from fitcoach.models.database import AuditLog

if TYPE_CHECKING:
    from fastapi import Request
    from sqlalchemy.ext.asyncio import AsyncEngine

    from fitcoach.config.settings import Settings

logger = structlog.get_logger(__name__)

_REDACTED_KEYS = frozenset({"password", "token", "session", "cookie", "authorization", "secret"})
_MAX_DETAILS_BYTES = 10_240


def _sanitize_details(details: dict[str, Any]) -> str:
    kept = {key: value for key, value in details.items() if key.lower() not in _REDACTED_KEYS}
    return json.dumps(kept, default=str)[:_MAX_DETAILS_BYTES]


class AuditLogger:
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def log(self, entry: AuditLog) -> None:
        """Persist one entry. Failures are logged, never raised."""
        try:
            async with AsyncSession(self._engine) as session:
                session.add(entry)
                await session.commit()
        except Exception:
            logger.exception("audit_log_failed", action=entry.action, org_id=entry.org_id)


def build_entry(
    *,
    org_id: str | None,
    user_id: str,
    action: str,
    resource_id: str = "",
    details: dict[str, Any] | None = None,
    ip_address: str = "",
    request_id: str = "",
) -> AuditLog:
    return AuditLog(
        org_id=org_id,
        user_id=user_id,
        action=action,
        resource_type="organization" if action.startswith("impersonation.") else "",
        resource_id=resource_id,
        details_json=_sanitize_details(details or {}),
        ip_address=ip_address,
        request_id=request_id,
    )


async def audit(
    request: Request,
    settings: Settings,
    *,
    org_id: str | None,
    user_id: str,
    action: str,
    resource_id: str = "",
    details: dict[str, Any] | None = None,
) -> None:
    """Record ``action`` for the current request.

    Without a database the entry only goes to the structured log.
    """
    entry = build_entry(
        org_id=org_id,
        user_id=user_id,
        action=action,
        resource_id=resource_id,
        details=details,
        ip_address=request.client.host if request.client else "",
        request_id=request.headers.get("x-request-id", ""),
    )
    if not settings.use_database:
        logger.info("audit", action=action, org_id=org_id, user_id=user_id)
        return

    from fitcoach.storage.database import get_engine

    await AuditLogger(get_engine()).log(entry)
