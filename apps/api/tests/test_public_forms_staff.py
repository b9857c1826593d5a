"""Tests for staff management of public forms."""

import uuid

import pytest

from app.db.models import PublicForm
from app.schemas.forms import PublicFormRead


@pytest.mark.asyncio
async def test_seed_creates_builtin_forms(authed_client):
    response = await authed_client.post("/public-forms/seed")

    assert response.status_code == 200
    forms = response.json()
    assert [f["formKey"] for f in forms] == ["booking", "donation", "feedback", "lead"]
    assert all(f["isActive"] for f in forms)
    donation = next(f for f in forms if f["formKey"] == "donation")
    assert donation["title"] == "Donation"
    assert any(field["name"] == "amount" for field in donation["schemaJson"]["fields"])


@pytest.mark.asyncio
async def test_seed_is_idempotent_and_keeps_staff_edits(authed_client):
    forms = (await authed_client.post("/public-forms/seed")).json()
    lead = next(f for f in forms if f["formKey"] == "lead")

    patched = await authed_client.patch(
        f"/public-forms/{lead['id']}", json={"title": "Talk to us", "isActive": False}
    )
    assert patched.status_code == 200

    reseeded = (await authed_client.post("/public-forms/seed")).json()

    assert len(reseeded) == 4
    lead_again = next(f for f in reseeded if f["formKey"] == "lead")
    assert lead_again["id"] == lead["id"]
    assert lead_again["title"] == "Talk to us"
    assert lead_again["isActive"] is False


@pytest.mark.asyncio
async def test_list_forms_is_scoped_to_org(authed_client):
    assert (await authed_client.get("/public-forms")).json() == []

    await authed_client.post("/public-forms/seed")

    listed = await authed_client.get("/public-forms")
    assert listed.status_code == 200
    assert len(listed.json()) == 4


@pytest.mark.asyncio
async def test_patch_schema_changes_public_config(authed_client, client, test_org):
    forms = (await authed_client.post("/public-forms/seed")).json()
    lead = next(f for f in forms if f["formKey"] == "lead")

    response = await authed_client.patch(
        f"/public-forms/{lead['id']}",
        json={
            "schema": {
                "configVersion": "2",
                "fields": [{"name": "company", "type": "text", "required": True}],
            }
        },
    )
    assert response.status_code == 200
    assert response.json()["schemaJson"]["fields"][0]["name"] == "company"

    config = await client.get(
        f"/public/forms/{test_org.slug}/lead/config",
        headers={"X-Project-Key": test_org.public_key},
    )
    assert config.json()["configVersion"] == "2"
    assert [f["name"] for f in config.json()["fields"]] == ["company"]


@pytest.mark.asyncio
async def test_patch_null_schema_reverts_to_default(authed_client, client, test_org):
    forms = (await authed_client.post("/public-forms/seed")).json()
    lead = next(f for f in forms if f["formKey"] == "lead")

    response = await authed_client.patch(f"/public-forms/{lead['id']}", json={"schema": None})

    assert response.status_code == 200
    assert response.json()["schemaJson"] is None
    config = await client.get(
        f"/public/forms/{test_org.slug}/lead/config",
        headers={"X-Project-Key": test_org.public_key},
    )
    assert [f["name"] for f in config.json()["fields"]][:3] == ["name", "email", "phone"]


@pytest.mark.asyncio
async def test_patch_rejects_invalid_schema(authed_client):
    forms = (await authed_client.post("/public-forms/seed")).json()

    response = await authed_client.patch(
        f"/public-forms/{forms[0]['id']}",
        json={"schema": {"fields": [{"name": "x", "type": "hologram"}]}},
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_patch_unknown_form_is_404(authed_client):
    response = await authed_client.patch(f"/public-forms/{uuid.uuid4()}", json={"title": "x"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Form not found for this organization"


@pytest.mark.asyncio
async def test_viewer_can_list_but_not_manage(client, viewer_auth):
    listed = await client.get("/public-forms", headers=viewer_auth.headers)
    seeded = await client.post("/public-forms/seed", headers=viewer_auth.headers)

    assert listed.status_code == 200
    assert seeded.status_code == 403


@pytest.mark.asyncio
async def test_staff_endpoints_require_token(client):
    assert (await client.get("/public-forms")).status_code == 401
    assert (await client.post("/public-forms/seed")).status_code == 401


def test_form_read_exposes_schema_under_wire_name(db, test_org):
    document = {"fields": [{"name": "company", "type": "text"}]}
    form = PublicForm(
        id=uuid.uuid4(),
        organization_id=test_org.id,
        form_key="partner",
        form_type="partner",
        title="Partner",
        schema_json=document,
    )
    db.add(form)
    db.commit()
    db.refresh(form)

    read = PublicFormRead.model_validate(form)

    assert read.form_schema == document
    assert read.model_dump(by_alias=True)["schemaJson"] == document
