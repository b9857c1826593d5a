"""Staff endpoints for managing an organization's public forms."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_org_scope, require_roles
from app.db.enums import ROLES_CAN_MANAGE_FORMS
from app.schemas.auth import UserSession
from app.schemas.forms import PublicFormRead, PublicFormUpdate
from app.services import public_form_service

router = APIRouter(prefix="/public-forms", tags=["public-forms-admin"])


@router.get("", response_model=list[PublicFormRead], response_model_by_alias=True)
def list_public_forms(
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """List public forms for the current organization."""
    return public_form_service.list_forms(db, org_id)


@router.post("/seed", response_model=list[PublicFormRead], response_model_by_alias=True)
def seed_public_forms(
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_FORMS)),
    db: Session = Depends(get_db),
):
    """Create the built-in lead/donation/booking/feedback forms if missing."""
    return public_form_service.seed_default_forms(db, session.org_id)


@router.patch("/{form_id}", response_model=PublicFormRead, response_model_by_alias=True)
def update_public_form(
    form_id: UUID,
    data: PublicFormUpdate,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_FORMS)),
    db: Session = Depends(get_db),
):
    form = public_form_service.get_form(db, session.org_id, form_id)
    if not form:
        raise HTTPException(status_code=404, detail="Form not found for this organization")
    return public_form_service.update_form(db, form, data)
