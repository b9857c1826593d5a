"""Session service - resolves bearer tokens into staff session context."""

import logging

import jwt
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.security import decode_session_token
from app.db.enums import Role
from app.db.models import Membership, User
from app.schemas.auth import TokenPayload, UserSession

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Token could not be turned into a staff session."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def resolve_session(db: Session, token: str) -> UserSession:
    """
    Validate a session token against current user and membership state.

    Checks:
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (revocation support)
    - Membership in the token's organization still exists

    Raises:
        SessionError: 401 for token/user problems, 403 for membership problems
    """
    try:
        payload = TokenPayload.model_validate(decode_session_token(token))
    except (jwt.InvalidTokenError, ValidationError):
        raise SessionError("Invalid session")

    user = db.query(User).filter(User.id == payload.sub).first()
    if not user:
        raise SessionError("User not found")
    if not user.is_active:
        raise SessionError("Account disabled")
    if user.token_version != payload.token_version:
        raise SessionError("Session revoked")

    membership = (
        db.query(Membership)
        .filter(Membership.user_id == user.id, Membership.organization_id == payload.org_id)
        .first()
    )
    if not membership:
        raise SessionError("No organization membership", status_code=403)
    if not Role.has_value(membership.role):
        raise SessionError(
            f"Unknown role '{membership.role}'. Contact administrator.", status_code=403
        )

    return UserSession(
        user_id=user.id,
        org_id=membership.organization_id,
        role=Role(membership.role),
        email=user.email,
        display_name=user.display_name,
    )


def try_resolve_session(db: Session, token: str | None) -> UserSession | None:
    """Like resolve_session, but returns None instead of raising."""
    if not token:
        return None
    try:
        return resolve_session(db, token)
    except SessionError as exc:
        logger.debug("Bearer token rejected: %s", exc.message)
        return None
