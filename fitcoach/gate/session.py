"""Cookie-based session authentication and the session resolver."""

from __future__ import annotations

import hashlib
import hmac
import secrets
import time
from dataclasses import dataclass
from typing import Any

import structlog

from fitcoach.exceptions import UpstreamUnavailable
from fitcoach.models.domain import SessionIdentity

logger = structlog.get_logger(__name__)


class SessionAuth:
    """Signed opaque session tokens held in process memory.

    A rotated token keeps working for ``rotation_grace`` seconds so requests
    already in flight with the old cookie are not signed out. During that
    window it resolves to its successor.
    """

    def __init__(self, secret_key: str, max_age: int = 86400, rotation_grace: int = 30) -> None:
        self._secret = secret_key.encode()
        self._max_age = max_age
        self._rotation_grace = rotation_grace
        self._sessions: dict[str, dict[str, Any]] = {}

    def create_session(self, user_id: str, email: str = "") -> str:
        """Create a new session and return the token."""
        token = secrets.token_urlsafe(32)
        signed_token = f"{token}.{self._sign(token)}"
        self._sessions[signed_token] = {
            "user_id": user_id,
            "email": email,
            "created_at": time.time(),
        }
        logger.info("session_created", user_id=user_id)
        return signed_token

    def validate_session(self, token: str | None) -> dict[str, Any] | None:
        """Return session data for a valid, unexpired token."""
        if not token or "." not in token:
            return None

        raw_token, signature = token.rsplit(".", 1)
        if not hmac.compare_digest(signature, self._sign(raw_token)):
            return None

        session = self._sessions.get(token)
        if not session:
            return None

        now = time.time()
        if now - session["created_at"] > self._max_age:
            self._sessions.pop(token, None)
            return None
        rotated_at = session.get("rotated_at")
        if rotated_at is not None and now - rotated_at > self._rotation_grace:
            self._sessions.pop(token, None)
            return None

        return session

    def rotate(self, token: str) -> str:
        """Issue a successor for a valid token; the old one enters its grace window."""
        session = self.validate_session(token)
        if session is None:
            raise UpstreamUnavailable("cannot rotate an invalid session")
        if session.get("successor"):
            return str(session["successor"])
        new_token = self.create_session(session["user_id"], session["email"])
        session["successor"] = new_token
        session["rotated_at"] = time.time()
        return new_token

    def destroy_session(self, token: str) -> None:
        """Remove a session and any token it was rotated into."""
        destroyed = 0
        current: str | None = token
        while current:
            session = self._sessions.pop(current, None)
            if session is None:
                break
            destroyed += 1
            current = session.get("successor")
        if destroyed:
            logger.info("session_destroyed", tokens=destroyed)

    def _sign(self, data: str) -> str:
        return hmac.new(self._secret, data.encode(), hashlib.sha256).hexdigest()[:32]


@dataclass(frozen=True, slots=True)
class ResolvedSession:
    identity: SessionIdentity
    rotated_token: str | None = None


class SessionResolver:
    """Turns a session cookie into an identity, rotating old tokens.

    Rotation failures never fail the request: the caller is treated as
    unauthenticated instead.
    """

    def __init__(self, auth: SessionAuth, refresh_after: int = 3600) -> None:
        self._auth = auth
        self._refresh_after = refresh_after

    def resolve(self, token: str | None) -> ResolvedSession | None:
        session = self._auth.validate_session(token)
        if session is None or token is None:
            return None

        identity = SessionIdentity(user_id=session["user_id"], email=session.get("email", ""))
        successor = session.get("successor")
        if successor:
            # Old cookie still in flight; hand out the token it was rotated into
            if self._auth.validate_session(successor) is None:
                return None
            return ResolvedSession(identity=identity, rotated_token=successor)

        if time.time() - session["created_at"] < self._refresh_after:
            return ResolvedSession(identity=identity)

        try:
            new_token = self._auth.rotate(token)
        except Exception as exc:
            logger.warning("session_refresh_failed", user_id=identity.user_id, error=str(exc))
            return None
        logger.debug("session_rotated", user_id=identity.user_id)
        return ResolvedSession(identity=identity, rotated_token=new_token)
