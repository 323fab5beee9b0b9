"""bcrypt password hashing for profile credentials."""

from __future__ import annotations

import bcrypt
import structlog

logger = structlog.get_logger(__name__)

# bcrypt only looks at the first 72 bytes; longer input is refused outright.
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash ``password`` with a fresh salt. The salt is embedded in the result."""
    password_bytes = password.encode("utf-8")
    if not password_bytes:
        raise ValueError("password must not be empty")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password exceeds {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check ``password`` against a stored hash. A missing hash never matches."""
    if not password_hash or not password:
        return False
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(password_bytes, password_hash.encode("utf-8"))
    except ValueError as exc:
        logger.error("password_hash_invalid", error=str(exc))
        return False
