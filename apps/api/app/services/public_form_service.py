"""Public form administration for staff (list, seed built-in forms, edit)."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.concurrency import create_or_reread
from app.db.enums import FormKind
from app.db.models import PublicForm
from app.schemas.forms import PublicFormUpdate
from app.services.form_schema_service import (
    DEFAULT_FORM_TITLES,
    build_default_schema_document,
    get_public_form,
)

logger = logging.getLogger(__name__)


def list_forms(db: Session, org_id: UUID) -> list[PublicForm]:
    return (
        db.query(PublicForm)
        .filter(PublicForm.organization_id == org_id)
        .order_by(PublicForm.form_key.asc())
        .all()
    )


def get_form(db: Session, org_id: UUID, form_id: UUID) -> PublicForm | None:
    return (
        db.query(PublicForm)
        .filter(PublicForm.id == form_id, PublicForm.organization_id == org_id)
        .first()
    )


def seed_default_forms(db: Session, org_id: UUID) -> list[PublicForm]:
    """
    Ensure every built-in form kind has a row.

    Existing rows keep their title and active flag; only an empty schema is
    filled with the default. Safe to call repeatedly and concurrently.
    """
    for kind in FormKind:
        document = build_default_schema_document(kind.value)
        form = get_public_form(db, org_id, kind.value)
        if form is None:

            def _create(kind: FormKind = kind, document: dict | None = document) -> PublicForm:
                row = PublicForm(
                    organization_id=org_id,
                    form_key=kind.value,
                    form_type=kind.value,
                    title=DEFAULT_FORM_TITLES[kind.value],
                    is_active=True,
                    schema_json=document,
                )
                db.add(row)
                return row

            create_or_reread(
                db,
                _create,
                lambda kind=kind: get_public_form(db, org_id, kind.value),
                label="public form",
            )
        elif not (isinstance(form.schema_json, dict) and form.schema_json.get("fields")):
            form.schema_json = document

    db.commit()
    logger.info("Seeded default public forms", extra={"org_id": str(org_id)})
    return list_forms(db, org_id)


def update_form(db: Session, form: PublicForm, data: PublicFormUpdate) -> PublicForm:
    """
    Apply a partial update. Only fields present in the request are touched;
    an explicit null schema reverts the form to its built-in default.
    """
    fields_set = data.model_fields_set
    if "title" in fields_set and data.title is not None:
        form.title = data.title.strip()
    if "description" in fields_set:
        form.description = data.description
    if "is_active" in fields_set and data.is_active is not None:
        form.is_active = data.is_active
    if "form_schema" in fields_set:
        form.schema_json = data.form_schema.to_document() if data.form_schema else None

    db.commit()
    db.refresh(form)
    return form
