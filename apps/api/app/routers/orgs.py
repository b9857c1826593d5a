"""Staff endpoints for widget integration: public key and allowed origins."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_current_session, get_db, require_roles
from app.db.enums import ROLES_CAN_MANAGE_INTEGRATION
from app.db.models import Organization
from app.schemas.auth import UserSession
from app.schemas.org import AllowedOriginCreate, AllowedOriginRead, OrgIntegrationRead
from app.services import org_service
from app.services.trust_gate import TrustGate, get_trust_gate

router = APIRouter(prefix="/orgs/current", tags=["orgs"])


def _get_org_or_404(db: Session, session: UserSession) -> Organization:
    org = org_service.get_org_by_id(db, session.org_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


def _integration_read(db: Session, org: Organization) -> OrgIntegrationRead:
    return OrgIntegrationRead(
        slug=org.slug,
        public_key=org.public_key,
        key_header=settings.PUBLIC_KEY_HEADER,
        allowed_origins=[
            AllowedOriginRead.model_validate(row)
            for row in org_service.list_allowed_origins(db, org.id)
        ],
    )


@router.get("/integration", response_model=OrgIntegrationRead, response_model_by_alias=True)
def get_integration(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Everything needed to embed the public widgets."""
    return _integration_read(db, _get_org_or_404(db, session))


@router.post(
    "/public-key/rotate",
    response_model=OrgIntegrationRead,
    response_model_by_alias=True,
)
def rotate_public_key(
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_INTEGRATION)),
    db: Session = Depends(get_db),
):
    org = org_service.rotate_public_key(db, _get_org_or_404(db, session))
    return _integration_read(db, org)


@router.get(
    "/allowed-origins",
    response_model=list[AllowedOriginRead],
    response_model_by_alias=True,
)
def list_allowed_origins(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return org_service.list_allowed_origins(db, session.org_id)


@router.post(
    "/allowed-origins",
    response_model=AllowedOriginRead,
    response_model_by_alias=True,
    status_code=201,
)
def add_allowed_origin(
    data: AllowedOriginCreate,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_INTEGRATION)),
    db: Session = Depends(get_db),
    gate: TrustGate = Depends(get_trust_gate),
):
    """Allow a website origin to call the public form endpoints."""
    try:
        row, created = org_service.add_allowed_origin(db, session.org_id, data.origin)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not created:
        raise HTTPException(status_code=409, detail="Origin is already allowed")
    gate.invalidate(session.org_id)
    return row


@router.delete("/allowed-origins/{origin_id}", status_code=204)
def remove_allowed_origin(
    origin_id: UUID,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_INTEGRATION)),
    db: Session = Depends(get_db),
    gate: TrustGate = Depends(get_trust_gate),
):
    if not org_service.remove_allowed_origin(db, session.org_id, origin_id):
        raise HTTPException(status_code=404, detail="Origin not found")
    gate.invalidate(session.org_id)
    return Response(status_code=204)
