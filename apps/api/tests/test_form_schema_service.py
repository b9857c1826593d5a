"""Tests for resolving a public form's active schema."""

import uuid

from app.db.models import PublicForm
from app.schemas.forms import NumberFieldSpec
from app.services import form_schema_service
from app.services.form_schema_service import FormResolutionStatus


def _add_form(db, org, form_key, **kwargs):
    form = PublicForm(
        id=uuid.uuid4(),
        organization_id=org.id,
        form_key=form_key,
        form_type=kwargs.pop("form_type", form_key),
        title=kwargs.pop("title", "Stored title"),
        **kwargs,
    )
    db.add(form)
    db.commit()
    return form


def test_builtin_kind_without_row_uses_default(db, test_org):
    resolution = form_schema_service.resolve_form(db, test_org.id, "donation")

    assert resolution.ok
    resolved = resolution.resolved
    assert resolved.form is None
    assert resolved.form_kind == "donation"
    assert resolved.title == "Donation"
    assert resolved.schema.config_version == "1"
    assert resolved.schema.rules.require_one_of == ["name", "email", "phone"]

    amount = next(f for f in resolved.schema.fields if f.name == "amount")
    assert isinstance(amount, NumberFieldSpec)
    assert amount.required is True
    assert amount.min == 0.01
    assert amount.max == 1_000_000


def test_unknown_key_without_row_is_not_found(db, test_org):
    resolution = form_schema_service.resolve_form(db, test_org.id, "newsletter")

    assert resolution.status == FormResolutionStatus.NOT_FOUND
    assert resolution.resolved is None


def test_stored_schema_with_fields_wins(db, test_org):
    form = _add_form(
        db,
        test_org,
        "lead",
        schema_json={
            "configVersion": "7",
            "fields": [{"name": "company", "type": "text", "required": True}],
            "rules": {},
        },
    )

    resolution = form_schema_service.resolve_form(db, test_org.id, "lead")

    assert resolution.ok
    assert resolution.resolved.public_form_id == form.id
    assert resolution.resolved.title == "Stored title"
    assert resolution.resolved.schema.config_version == "7"
    assert [f.name for f in resolution.resolved.schema.fields] == ["company"]


def test_stored_schema_without_fields_falls_back_to_default(db, test_org):
    _add_form(db, test_org, "feedback", schema_json={"fields": []})

    resolution = form_schema_service.resolve_form(db, test_org.id, "feedback")

    names = [f.name for f in resolution.resolved.schema.fields]
    assert "rating" in names
    assert "message" in names


def test_invalid_stored_schema_falls_back_to_default(db, test_org):
    _add_form(
        db,
        test_org,
        "lead",
        schema_json={"fields": [{"name": "x", "type": "hologram"}]},
    )

    resolution = form_schema_service.resolve_form(db, test_org.id, "lead")

    assert resolution.ok
    assert [f.name for f in resolution.resolved.schema.fields][:3] == ["name", "email", "phone"]


def test_custom_form_key_uses_stored_schema(db, test_org):
    _add_form(
        db,
        test_org,
        "volunteer",
        form_type="custom",
        title="Volunteer",
        schema_json={"fields": [{"name": "skills", "type": "textarea"}]},
    )

    resolution = form_schema_service.resolve_form(db, test_org.id, "volunteer")

    assert resolution.ok
    assert resolution.resolved.form_kind is None
    assert resolution.resolved.title == "Volunteer"


def test_inactive_form_is_disabled(db, test_org):
    _add_form(db, test_org, "booking", is_active=False)

    resolution = form_schema_service.resolve_form(db, test_org.id, "booking")

    assert resolution.status == FormResolutionStatus.DISABLED
    assert resolution.resolved is not None
    assert resolution.resolved.is_active is False


def test_forms_are_scoped_to_organization(db, test_org):
    other_org_id = uuid.uuid4()
    _add_form(db, test_org, "booking", is_active=False)

    resolution = form_schema_service.resolve_form(db, other_org_id, "booking")

    assert resolution.ok
    assert resolution.resolved.form is None


def test_default_schema_document_round_trips_through_model():
    document = form_schema_service.build_default_schema_document("lead")
    schema = form_schema_service.build_default_schema("lead")

    assert schema.to_document()["fields"][0]["name"] == document["fields"][0]["name"]
    assert form_schema_service.build_default_schema_document("unknown") is None
