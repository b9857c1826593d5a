"""Tests for per-org contact identity resolution."""

import uuid

from app.core.security import generate_public_key
from app.db.models import Contact, Organization
from app.services import contact_service


def _count(db, org_id):
    return db.query(Contact).filter(Contact.organization_id == org_id).count()


def test_email_case_differences_resolve_to_same_contact(db, test_org):
    first = contact_service.find_or_create_contact(db, test_org.id, email="CaseTest@Example.com")
    db.commit()
    second = contact_service.find_or_create_contact(db, test_org.id, email="casetest@example.com")
    db.commit()

    assert first.id == second.id
    assert first.email_normalized == "casetest@example.com"
    assert _count(db, test_org.id) == 1


def test_phone_lookup_when_email_missing(db, test_org):
    first = contact_service.find_or_create_contact(db, test_org.id, phone="+38 (050) 123-45-67")
    db.commit()
    second = contact_service.find_or_create_contact(db, test_org.id, phone="+380501234567")

    assert first.id == second.id
    assert second.phone_normalized == "+380501234567"


def test_email_takes_priority_over_phone(db, test_org):
    by_email = contact_service.find_or_create_contact(db, test_org.id, email="a@example.com")
    by_phone = contact_service.find_or_create_contact(db, test_org.id, phone="555-0100")
    db.commit()

    resolved = contact_service.find_or_create_contact(
        db, test_org.id, email="A@example.com", phone="5550100"
    )

    assert resolved.id == by_email.id
    assert resolved.id != by_phone.id


def test_backfills_empty_fields_without_overwriting(db, test_org):
    contact = contact_service.find_or_create_contact(
        db, test_org.id, name="Olena", email="olena@example.com"
    )
    db.commit()

    again = contact_service.find_or_create_contact(
        db,
        test_org.id,
        name="Someone Else",
        email="OLENA@example.com",
        phone="+380 50 000 00 00",
        notes="Prefers mornings",
    )
    db.commit()

    assert again.id == contact.id
    assert again.name == "Olena"
    assert again.email == "olena@example.com"
    assert again.phone == "+380 50 000 00 00"
    assert again.phone_normalized == "+380500000000"
    assert again.notes == "Prefers mornings"


def test_placeholder_name_is_replaced_by_real_name(db, test_org):
    contact = contact_service.find_or_create_contact(db, test_org.id, phone="12345")
    assert contact.name == "12345"

    anonymous = contact_service.find_or_create_contact(db, test_org.id, email="   ", phone="   ")
    assert anonymous.name == contact_service.PLACEHOLDER_NAME

    # Give the placeholder contact an email so the next lookup finds it
    anonymous.email = "anon@example.com"
    anonymous.email_normalized = "anon@example.com"
    db.commit()
    named = contact_service.find_or_create_contact(db, test_org.id, name="Taras", email="anon@example.com")

    assert named.id == anonymous.id
    assert named.name == "Taras"


def test_display_name_fallbacks():
    assert contact_service.compute_display_name("Iryna", "x@y.z", "1") == "Iryna"
    assert contact_service.compute_display_name(None, "jane.doe@example.com", "1") == "jane.doe"
    assert contact_service.compute_display_name(None, None, "+1 555") == "+1 555"
    assert contact_service.compute_display_name("  ", None, None) == "Unknown"


def test_backfill_skips_identity_key_owned_by_another_contact(db, test_org):
    by_email = contact_service.find_or_create_contact(db, test_org.id, email="one@example.com")
    by_phone = contact_service.find_or_create_contact(db, test_org.id, phone="777")
    db.commit()

    resolved = contact_service.find_or_create_contact(
        db, test_org.id, email="one@example.com", phone="777"
    )
    db.commit()

    assert resolved.id == by_email.id
    assert resolved.phone is None
    assert by_phone.phone_normalized == "777"


def test_contacts_are_isolated_per_org(db, test_org):
    other = Organization(
        id=uuid.uuid4(), name="Other", slug=f"other-{uuid.uuid4().hex[:6]}", public_key=generate_public_key()
    )
    db.add(other)
    db.commit()

    mine = contact_service.find_or_create_contact(db, test_org.id, email="shared@example.com")
    theirs = contact_service.find_or_create_contact(db, other.id, email="shared@example.com")

    assert mine.id != theirs.id


def test_unique_conflict_on_create_rereads_winner(db, test_org, monkeypatch):
    winner = contact_service.find_or_create_contact(db, test_org.id, email="race@example.com")
    db.commit()

    # Simulate a concurrent request that missed the row on its first lookup
    real_find = contact_service.find_contact
    calls = {"n": 0}

    def find_once_missing(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_find(*args, **kwargs)

    monkeypatch.setattr(contact_service, "find_contact", find_once_missing)

    loser = contact_service.find_or_create_contact(db, test_org.id, email="RACE@example.com", name="Late")
    db.commit()

    assert loser.id == winner.id
    assert loser.name == "race"
    assert _count(db, test_org.id) == 1


def test_long_values_are_truncated(db, test_org):
    contact = contact_service.find_or_create_contact(
        db, test_org.id, name="N" * 400, notes="x" * 5000, phone="1" * 80
    )

    assert len(contact.name) == contact_service.NAME_MAX_LENGTH
    assert len(contact.notes) == contact_service.NOTES_MAX_LENGTH
    assert len(contact.phone) == contact_service.PHONE_MAX_LENGTH
