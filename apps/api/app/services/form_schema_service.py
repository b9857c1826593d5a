"""Resolve the active field schema for a public form (stored or built-in default)."""

import logging
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.db.enums import FormKind
from app.db.models import PublicForm
from app.schemas.forms import FormSchema

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_VERSION = "1"
CONTACT_FIELDS = ["name", "email", "phone"]

_CONTACT_FIELD_SPECS = [
    {"name": "name", "type": "text", "label": "Name", "max": 100},
    {"name": "email", "type": "email", "label": "Email", "max": 255},
    {"name": "phone", "type": "tel", "label": "Phone", "max": 30},
]
_SOURCE_FIELD_SPEC = {"name": "source", "type": "text", "label": "Source", "max": 100}

DEFAULT_FORM_FIELDS: dict[str, list[dict]] = {
    FormKind.LEAD.value: [
        *_CONTACT_FIELD_SPECS,
        {"name": "message", "type": "textarea", "label": "Message", "max": 2000},
        _SOURCE_FIELD_SPEC,
    ],
    FormKind.DONATION.value: [
        *_CONTACT_FIELD_SPECS,
        {
            "name": "amount",
            "type": "amount",
            "label": "Amount",
            "required": True,
            "min": 0.01,
            "max": 1_000_000,
        },
        {"name": "message", "type": "textarea", "label": "Comment", "max": 2000},
        _SOURCE_FIELD_SPEC,
    ],
    FormKind.BOOKING.value: [
        *_CONTACT_FIELD_SPECS,
        {"name": "service", "type": "text", "label": "Service", "max": 120},
        {"name": "date", "type": "text", "label": "Date", "max": 50},
        {"name": "time", "type": "text", "label": "Time", "max": 50},
        {"name": "message", "type": "textarea", "label": "Comment", "max": 2000},
        _SOURCE_FIELD_SPEC,
    ],
    FormKind.FEEDBACK.value: [
        *_CONTACT_FIELD_SPECS,
        {"name": "message", "type": "textarea", "label": "Feedback", "required": True, "max": 2000},
        {"name": "rating", "type": "number", "label": "Rating", "min": 1, "max": 5},
        {"name": "clientRequestId", "type": "text", "label": "Client Request ID", "max": 80},
        _SOURCE_FIELD_SPEC,
    ],
}

DEFAULT_FORM_TITLES = {
    FormKind.LEAD.value: "Leave a request",
    FormKind.DONATION.value: "Donation",
    FormKind.BOOKING.value: "Booking",
    FormKind.FEEDBACK.value: "Feedback",
}


def build_default_schema_document(form_kind: str) -> dict | None:
    """Raw schema document for a built-in kind (what gets stored on seed)."""
    fields = DEFAULT_FORM_FIELDS.get(form_kind)
    if fields is None:
        return None
    return {
        "configVersion": DEFAULT_CONFIG_VERSION,
        "fields": [dict(f) for f in fields],
        "rules": {"requireOneOf": list(CONTACT_FIELDS)},
    }


def build_default_schema(form_kind: str) -> FormSchema | None:
    document = build_default_schema_document(form_kind)
    if document is None:
        return None
    return FormSchema.model_validate(document)


# =============================================================================
# Resolution
# =============================================================================

class FormResolutionStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    DISABLED = "disabled"


@dataclass
class ResolvedForm:
    form_key: str
    form_kind: str | None  # Built-in kind driving business records, None for custom forms
    title: str
    is_active: bool
    schema: FormSchema
    form: PublicForm | None = None

    @property
    def public_form_id(self) -> UUID | None:
        return self.form.id if self.form is not None else None


@dataclass
class FormResolution:
    status: FormResolutionStatus
    resolved: ResolvedForm | None = None

    @property
    def ok(self) -> bool:
        return self.status == FormResolutionStatus.OK


def get_public_form(db: Session, org_id: UUID, form_key: str) -> PublicForm | None:
    return (
        db.query(PublicForm)
        .filter(PublicForm.organization_id == org_id, PublicForm.form_key == form_key)
        .first()
    )


def _form_kind_for(form: PublicForm | None, form_key: str) -> str | None:
    candidate = form.form_type if form is not None else form_key
    return candidate if FormKind.has_value(candidate) else None


def _parse_stored_schema(form: PublicForm) -> FormSchema | None:
    document = form.schema_json
    if not isinstance(document, dict) or not document.get("fields"):
        return None
    try:
        return FormSchema.model_validate(document)
    except ValidationError:
        logger.error(
            "Stored form schema is invalid; falling back to defaults",
            extra={"org_id": str(form.organization_id), "form_key": form.form_key},
        )
        return None


def resolve_form(db: Session, org_id: UUID, form_key: str) -> FormResolution:
    """
    Resolve the active schema for (org, form_key).

    Stored schema with fields wins; otherwise the built-in default for the
    form's kind. Inactive forms resolve with status DISABLED (the resolved
    form is still returned so callers can describe it).
    """
    form = get_public_form(db, org_id, form_key)
    form_kind = _form_kind_for(form, form_key)

    schema = _parse_stored_schema(form) if form is not None else None
    if schema is None and form_kind is not None:
        schema = build_default_schema(form_kind)
    if schema is None:
        return FormResolution(status=FormResolutionStatus.NOT_FOUND)

    if form is not None:
        title = form.title
        is_active = form.is_active
    else:
        title = DEFAULT_FORM_TITLES.get(form_kind or "", form_key)
        is_active = True

    resolved = ResolvedForm(
        form_key=form_key,
        form_kind=form_kind,
        title=title,
        is_active=is_active,
        schema=schema,
        form=form,
    )
    if not is_active:
        return FormResolution(status=FormResolutionStatus.DISABLED, resolved=resolved)
    return FormResolution(status=FormResolutionStatus.OK, resolved=resolved)
