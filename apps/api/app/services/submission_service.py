"""Submission service - idempotent recording of public form submissions.

One logical submission produces exactly one Case per (org, idempotency token).
The contact, case, and optional transaction are written as one unit of work;
a concurrent retry that loses the race on the case token is answered with the
winner's records instead of an error.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.concurrency import create_or_reread
from app.db.enums import DEFAULT_CASE_STATUS, FormKind, TransactionType
from app.db.models import Case, Contact, Organization, Transaction
from app.schemas.crm import CaseRead, ContactRead, SubmissionResponse, TransactionRead
from app.schemas.forms import NumberFieldSpec
from app.services import contact_service, org_service
from app.services.form_schema_service import CONTACT_FIELDS, ResolvedForm

logger = logging.getLogger(__name__)

HONEYPOT_FIELD = "__hp"
AMOUNT_FIELD = "amount"
BODY_TOKEN_FIELD = "clientRequestId"
EXTRA_VALUE_MAX_LENGTH = 1000
EXTRA_MAX_KEYS = 50

CASE_TITLES = {
    FormKind.LEAD.value: "New website lead",
    FormKind.DONATION.value: "New website donation",
    FormKind.BOOKING.value: "New website booking",
    FormKind.FEEDBACK.value: "New website feedback",
}
CUSTOM_CASE_TITLE = "New website submission"

DEFAULT_SOURCES = {
    FormKind.LEAD.value: "widget",
    FormKind.DONATION.value: "donation-widget",
    FormKind.BOOKING.value: "booking-widget",
    FormKind.FEEDBACK.value: "feedback-widget",
}

_CENTS = Decimal("0.01")


# =============================================================================
# Request helpers
# =============================================================================

def extract_idempotency_token(header_value: str | None, body: object) -> str | None:
    """
    Header wins; the body field is a fallback for clients that can't set headers.

    The token is trimmed and capped; blank means no idempotency for the request.
    """
    candidate = header_value
    if not (isinstance(candidate, str) and candidate.strip()) and isinstance(body, Mapping):
        candidate = body.get(BODY_TOKEN_FIELD)
    if isinstance(candidate, (int, float)) and not isinstance(candidate, bool):
        candidate = str(candidate)
    if not isinstance(candidate, str):
        return None
    token = candidate.strip()[: settings.IDEMPOTENCY_KEY_MAX_LENGTH]
    return token or None


def is_honeypot(body: object) -> bool:
    """Bots fill the hidden field; humans never see it."""
    if not isinstance(body, Mapping):
        return False
    value = body.get(HONEYPOT_FIELD)
    return isinstance(value, str) and bool(value.strip())


def extract_extra_fields(resolved: ResolvedForm, body: object) -> dict | None:
    """Scalar body keys outside the schema, kept on the case for later use."""
    if not isinstance(body, Mapping):
        return None
    known = {spec.name for spec in resolved.schema.fields}
    known.update({HONEYPOT_FIELD, BODY_TOKEN_FIELD})

    extra: dict[str, object] = {}
    for key, value in body.items():
        if len(extra) >= EXTRA_MAX_KEYS:
            break
        if not isinstance(key, str) or key in known or value is None:
            continue
        if isinstance(value, str):
            value = value.strip()[:EXTRA_VALUE_MAX_LENGTH]
            if not value:
                continue
        elif not isinstance(value, (bool, int, float)):
            continue
        extra[key] = value
    return extra or None


# =============================================================================
# Business record shaping
# =============================================================================

def format_amount(value: object) -> str:
    """100.0 -> '100', 12.5 -> '12.5'."""
    text = f"{to_money(value):f}"
    return text.rstrip("0").rstrip(".") if "." in text else text


def to_money(value: object) -> Decimal:
    return Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP)


def monetary_amount(resolved: ResolvedForm, values: Mapping[str, object]) -> float | None:
    """Validated `amount` value, only when the schema declares it numeric."""
    spec = next((s for s in resolved.schema.fields if s.name == AMOUNT_FIELD), None)
    if not isinstance(spec, NumberFieldSpec):
        return None
    value = values.get(AMOUNT_FIELD)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _text(values: Mapping[str, object], key: str) -> str | None:
    value = values.get(key)
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class CaseDraft:
    title: str
    description: str | None
    source: str
    contact_notes: str | None


def _describe_donation(amount: float | None, values: Mapping[str, object]) -> str | None:
    parts = []
    if amount is not None:
        parts.append(f"Amount: {format_amount(amount)} {settings.DEFAULT_CURRENCY}")
    if message := _text(values, "message"):
        parts.append(f"Comment: {message}")
    return " | ".join(parts) or None


def _describe_booking(values: Mapping[str, object]) -> str | None:
    parts = []
    if service := _text(values, "service"):
        parts.append(f"Service: {service}")
    when = " ".join(v for v in (_text(values, "date"), _text(values, "time")) if v)
    if when:
        parts.append(f"When: {when}")
    if message := _text(values, "message"):
        parts.append(f"Comment: {message}")
    return " | ".join(parts) or None


def _describe_feedback(values: Mapping[str, object]) -> str | None:
    parts = []
    rating = values.get("rating")
    if isinstance(rating, (int, float)):
        parts.append(f"Rating: {rating:g}/5")
    if message := _text(values, "message"):
        parts.append(f"Feedback: {message}")
    return " | ".join(parts) or None


def _describe_custom(resolved: ResolvedForm, values: Mapping[str, object]) -> str | None:
    lines = []
    for spec in resolved.schema.fields:
        if spec.name in CONTACT_FIELDS or spec.name == "source":
            continue
        value = values.get(spec.name)
        if value is None or value == "":
            continue
        lines.append(f"{spec.label or spec.name}: {value}")
    return "\n".join(lines) or None


def build_case_draft(resolved: ResolvedForm, values: Mapping[str, object]) -> CaseDraft:
    """Case title/description/source for the form kind."""
    kind = resolved.form_kind
    source = _text(values, "source")
    message = _text(values, "message")

    if kind == FormKind.DONATION.value:
        description = _describe_donation(monetary_amount(resolved, values), values)
    elif kind == FormKind.BOOKING.value:
        description = _describe_booking(values)
    elif kind == FormKind.FEEDBACK.value:
        description = _describe_feedback(values)
    elif kind == FormKind.LEAD.value:
        description = message
    else:
        description = _describe_custom(resolved, values)

    return CaseDraft(
        title=CASE_TITLES.get(kind or "", CUSTOM_CASE_TITLE),
        description=description,
        source=source or DEFAULT_SOURCES.get(kind or "", resolved.form_key),
        # Feedback text describes the org, not the person
        contact_notes=None if kind == FormKind.FEEDBACK.value else message,
    )


# =============================================================================
# Replay lookup
# =============================================================================

def get_case_by_token(db: Session, org_id: UUID, token: str) -> Case | None:
    return (
        db.query(Case)
        .filter(Case.organization_id == org_id, Case.client_request_id == token)
        .first()
    )


def _first_transaction(db: Session, case: Case) -> Transaction | None:
    return (
        db.query(Transaction)
        .filter(Transaction.organization_id == case.organization_id, Transaction.case_id == case.id)
        .order_by(Transaction.created_at.asc())
        .first()
    )


def build_response(
    case: Case,
    contact: Contact | None,
    transaction: Transaction | None,
    *,
    idempotent: bool,
) -> SubmissionResponse:
    return SubmissionResponse(
        contact=ContactRead.model_validate(contact) if contact is not None else None,
        case=CaseRead.model_validate(case),
        transaction=TransactionRead.model_validate(transaction) if transaction is not None else None,
        idempotent=idempotent,
    )


def find_replay(db: Session, org_id: UUID, token: str | None) -> SubmissionResponse | None:
    """
    Previously recorded result for this token, or None.

    Keyed only by (org, token): a token reused on another form replays the
    original submission.
    """
    if not token:
        return None
    case = get_case_by_token(db, org_id, token)
    if case is None:
        return None
    contact = db.get(Contact, case.contact_id) if case.contact_id else None
    return build_response(case, contact, _first_transaction(db, case), idempotent=True)


# =============================================================================
# Recording
# =============================================================================

def _build_transaction(
    org: Organization,
    resolved: ResolvedForm,
    amount: float,
    values: Mapping[str, object],
    contact: Contact,
    case: Case,
) -> Transaction:
    category = org_service.pick_transaction_category(
        org, ["donation"], TransactionType.INCOME.value
    )
    return Transaction(
        organization_id=org.id,
        contact_id=contact.id,
        case_id=case.id,
        public_form_id=resolved.public_form_id,
        type=TransactionType.INCOME.value,
        amount=to_money(amount),
        currency=settings.DEFAULT_CURRENCY,
        category=category["code"] if category else "donation",
        description=_text(values, "message"),
    )


def record_submission(
    db: Session,
    org: Organization,
    resolved: ResolvedForm,
    values: Mapping[str, object],
    *,
    token: str | None = None,
    extra: dict | None = None,
) -> SubmissionResponse:
    """
    Write contact + case (+ transaction) for validated values in one commit.

    When the case insert collides on (org, token) the attempt is rolled back
    and the winning submission is returned with idempotent=True.

    Raises:
        SQLAlchemyError: On storage failure (nothing from this attempt is kept)
    """
    org_id = org.id
    draft = build_case_draft(resolved, values)

    try:
        contact = contact_service.find_or_create_contact(
            db,
            org_id,
            name=values.get("name"),
            email=values.get("email"),
            phone=values.get("phone"),
            notes=draft.contact_notes,
        )

        def _create_case() -> Case:
            case = Case(
                organization_id=org_id,
                contact_id=contact.id,
                public_form_id=resolved.public_form_id,
                title=draft.title,
                description=draft.description,
                status=DEFAULT_CASE_STATUS,
                source=draft.source[:100],
                form_key=resolved.form_key,
                client_request_id=token,
                extra_json=extra,
            )
            db.add(case)
            return case

        if token:
            case, created = create_or_reread(
                db,
                _create_case,
                lambda: get_case_by_token(db, org_id, token),
                label="case",
            )
        else:
            case = _create_case()
            db.flush()
            created = True

        if not created:
            # Lost the race: drop this attempt's contact writes and answer as a replay
            db.rollback()
            logger.info(
                "Concurrent submission resolved as replay",
                extra={"org_id": str(org_id), "form_key": resolved.form_key},
            )
            replay = find_replay(db, org_id, token)
            if replay is None:
                raise RuntimeError("Conflicting submission disappeared before replay")
            return replay

        transaction = None
        amount = monetary_amount(resolved, values)
        if amount is not None:
            transaction = _build_transaction(org, resolved, amount, values, contact, case)
            db.add(transaction)

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(case)
    db.refresh(contact)
    if transaction is not None:
        db.refresh(transaction)
    return build_response(case, contact, transaction, idempotent=False)
