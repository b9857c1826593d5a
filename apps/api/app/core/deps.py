"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator
from uuid import UUID

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.security import extract_bearer_token
from app.db.session import SessionLocal
from app.schemas.auth import UserSession


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_session(
    request: Request,
    db: Session = Depends(get_db),
) -> UserSession:
    """
    Get full session context from the `Authorization: Bearer` header.

    This is the PRIMARY auth dependency for staff endpoints.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: No membership or unknown role
    """
    # Import here to avoid circular imports
    from app.services.session_service import SessionError, resolve_session

    token = extract_bearer_token(request.headers.get("authorization"))
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        return resolve_session(db, token)
    except SessionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)


def require_roles(allowed_roles: set | list):
    """
    Dependency factory for role-based authorization.

    Uses enum values (not strings) to prevent drift.

    Usage:
        @router.patch("/x", dependencies=[Depends(require_roles(ROLES_CAN_MANAGE_FORMS))])
    """
    def dependency(session: UserSession = Depends(get_current_session)) -> UserSession:
        if session.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{session.role.value}' not authorized for this action",
            )
        return session
    return dependency


def get_org_scope(session: UserSession = Depends(get_current_session)) -> UUID:
    """
    Get org_id for query scoping.

    Every list/detail query MUST filter by this value
    to ensure proper tenant isolation.
    """
    return session.org_id
