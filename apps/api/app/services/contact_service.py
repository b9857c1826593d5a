"""Contact service - per-org identity resolution keyed by normalized email/phone."""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.concurrency import create_or_reread, is_unique_violation
from app.db.models import Contact
from app.utils.normalization import (
    extract_email_local_part,
    normalize_email,
    normalize_phone,
    sanitize_text,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_NAME = "Unknown"
NAME_MAX_LENGTH = 255
EMAIL_MAX_LENGTH = 255
PHONE_MAX_LENGTH = 50
NOTES_MAX_LENGTH = 2000


def compute_display_name(
    name: str | None,
    email: str | None,
    phone: str | None,
) -> str:
    """Name, else email local-part, else phone, else the placeholder. Never blank."""
    return (
        sanitize_text(name, NAME_MAX_LENGTH)
        or sanitize_text(extract_email_local_part(email), NAME_MAX_LENGTH)
        or sanitize_text(phone, NAME_MAX_LENGTH)
        or PLACEHOLDER_NAME
    )


def get_contact_by_email(db: Session, org_id: UUID, email_normalized: str) -> Contact | None:
    return (
        db.query(Contact)
        .filter(Contact.organization_id == org_id, Contact.email_normalized == email_normalized)
        .first()
    )


def get_contact_by_phone(db: Session, org_id: UUID, phone_normalized: str) -> Contact | None:
    return (
        db.query(Contact)
        .filter(Contact.organization_id == org_id, Contact.phone_normalized == phone_normalized)
        .first()
    )


def find_contact(
    db: Session,
    org_id: UUID,
    email_normalized: str | None,
    phone_normalized: str | None,
) -> Contact | None:
    """Lookup priority: normalized email, then normalized phone."""
    contact = None
    if email_normalized:
        contact = get_contact_by_email(db, org_id, email_normalized)
    if contact is None and phone_normalized:
        contact = get_contact_by_phone(db, org_id, phone_normalized)
    return contact


def _backfill(
    db: Session,
    contact: Contact,
    *,
    name: str | None,
    email: str | None,
    email_normalized: str | None,
    phone: str | None,
    phone_normalized: str | None,
    notes: str | None,
) -> Contact:
    """
    Fill only empty fields on an existing contact.

    A populated name/email/phone/notes is never replaced. Identity keys are
    only taken when no other contact in the org already owns them.
    """
    changes: dict[str, str] = {}

    if name and (not contact.name or contact.name == PLACEHOLDER_NAME):
        changes["name"] = name
    if email and email_normalized and not contact.email and not contact.email_normalized:
        owner = get_contact_by_email(db, contact.organization_id, email_normalized)
        if owner is None or owner.id == contact.id:
            changes["email"] = email
            changes["email_normalized"] = email_normalized
    if phone and phone_normalized and not contact.phone and not contact.phone_normalized:
        owner = get_contact_by_phone(db, contact.organization_id, phone_normalized)
        if owner is None or owner.id == contact.id:
            changes["phone"] = phone
            changes["phone_normalized"] = phone_normalized
    if notes and not contact.notes:
        changes["notes"] = notes

    if not changes:
        return contact

    try:
        with db.begin_nested():
            for attr, value in changes.items():
                setattr(contact, attr, value)
            db.flush()
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        # Another request claimed the email/phone between our check and flush.
        db.refresh(contact)
        logger.info(
            "Skipped contact backfill after identity conflict",
            extra={"org_id": str(contact.organization_id), "contact_id": str(contact.id)},
        )
    return contact


def find_or_create_contact(
    db: Session,
    org_id: UUID,
    *,
    name: object = None,
    email: object = None,
    phone: object = None,
    notes: object = None,
) -> Contact:
    """
    Find or create a contact within an org using normalized email/phone.

    Existing contacts are backfilled (never overwritten). Safe under
    concurrent submissions: a unique violation on insert re-reads the row
    that won. Does not commit; the caller owns the unit of work.
    """
    raw_name = sanitize_text(name, NAME_MAX_LENGTH)
    raw_email = sanitize_text(email, EMAIL_MAX_LENGTH)
    raw_phone = sanitize_text(phone, PHONE_MAX_LENGTH)
    raw_notes = sanitize_text(notes, NOTES_MAX_LENGTH)
    email_norm = normalize_email(raw_email)
    phone_norm = normalize_phone(raw_phone)
    if phone_norm is None:
        # Keep raw and normalized phone in sync: no digits, no phone.
        raw_phone = None

    backfill_kwargs = dict(
        name=raw_name,
        email=raw_email,
        email_normalized=email_norm,
        phone=raw_phone,
        phone_normalized=phone_norm,
        notes=raw_notes,
    )

    existing = find_contact(db, org_id, email_norm, phone_norm)
    if existing is not None:
        return _backfill(db, existing, **backfill_kwargs)

    def _create() -> Contact:
        contact = Contact(
            organization_id=org_id,
            name=compute_display_name(raw_name, raw_email, raw_phone),
            email=raw_email,
            phone=raw_phone,
            email_normalized=email_norm,
            phone_normalized=phone_norm,
            notes=raw_notes,
        )
        db.add(contact)
        return contact

    contact, created = create_or_reread(
        db,
        _create,
        lambda: find_contact(db, org_id, email_norm, phone_norm),
        label="contact",
    )
    if not created:
        contact = _backfill(db, contact, **backfill_kwargs)
    return contact
