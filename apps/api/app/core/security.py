"""Security utilities for staff session tokens and public capability keys."""

import hmac
import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from app.core.config import settings


# =============================================================================
# Session Token (JWT bearer)
# =============================================================================

def create_session_token(
    user_id: UUID,
    org_id: UUID,
    role: str,
    token_version: int,
) -> str:
    """
    Create signed session JWT.

    Always signs with current secret (JWT_SECRET).
    Token contains user identity, org context, and revocation version.
    """
    payload = {
        "sub": str(user_id),
        "org_id": str(org_id),
        "role": role,
        "token_version": token_version,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries current secret first, then previous (for rotation support).
    This allows zero-downtime secret rotation.

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an `Authorization: Bearer <token>` header, if any."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


# =============================================================================
# Public capability keys (embedded in widgets)
# =============================================================================

def generate_public_key() -> str:
    """Generate a non-guessable per-org public key (32 bytes, URL-safe base64)."""
    return secrets.token_urlsafe(32)


def verify_public_key(supplied: str | None, expected: str | None) -> bool:
    """Constant-time comparison of a supplied capability key."""
    if not supplied or not expected:
        return False
    return hmac.compare_digest(supplied.encode(), expected.encode())
