"""Organization service - tenant lookup, public keys, allowed origins, and config."""

import logging
from dataclasses import dataclass, field
from urllib.parse import urlsplit
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.security import generate_public_key
from app.db.concurrency import create_or_reread
from app.db.enums import Role, TransactionType
from app.db.models import Membership, Organization, OrgAllowedOrigin, User

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443}


def get_org_by_id(db: Session, org_id: UUID) -> Organization | None:
    """Get organization by ID."""
    return db.query(Organization).filter(Organization.id == org_id).first()


def get_org_by_slug(db: Session, slug: str) -> Organization | None:
    """Get organization by slug."""
    return db.query(Organization).filter(Organization.slug == slug.strip().lower()).first()


def create_org(
    db: Session,
    name: str,
    slug: str,
    *,
    owner: User | None = None,
    config: dict | None = None,
) -> Organization:
    """
    Create a new organization with a fresh public key.

    Raises:
        IntegrityError: If slug already exists
    """
    org = Organization(
        name=name,
        slug=slug.strip().lower(),
        public_key=generate_public_key(),
        config=config,
    )
    db.add(org)
    db.flush()
    if owner is not None:
        db.add(Membership(user_id=owner.id, organization_id=org.id, role=Role.OWNER.value))
    db.commit()
    db.refresh(org)
    return org


def rotate_public_key(db: Session, org: Organization) -> Organization:
    """Replace the org's public key. Widgets embedding the old key stop working."""
    org.public_key = generate_public_key()
    db.commit()
    db.refresh(org)
    logger.info("Rotated public key", extra={"org_id": str(org.id)})
    return org


# =============================================================================
# Allowed origins
# =============================================================================

def normalize_origin(value: str) -> str:
    """
    Reduce a URL or origin to `scheme://host[:port]` (lowercased).

    Raises:
        ValueError: If the value is not an http(s) origin
    """
    raw = (value or "").strip()
    parts = urlsplit(raw)
    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        raise ValueError("Origin must look like https://example.com")
    host = parts.hostname.lower()
    try:
        port = parts.port
    except ValueError as exc:
        raise ValueError("Origin has an invalid port") from exc
    scheme = parts.scheme.lower()
    # Browsers omit the default port from Origin
    if port is not None and port != DEFAULT_PORTS[scheme]:
        return f"{scheme}://{host}:{port}"
    return f"{scheme}://{host}"


def origin_from_referer(referer: str | None) -> str | None:
    """Origin part of a Referer header, or None when it can't be parsed."""
    if not referer:
        return None
    parts = urlsplit(referer.strip())
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


def list_allowed_origins(db: Session, org_id: UUID) -> list[OrgAllowedOrigin]:
    return (
        db.query(OrgAllowedOrigin)
        .filter(OrgAllowedOrigin.organization_id == org_id)
        .order_by(OrgAllowedOrigin.origin.asc())
        .all()
    )


def get_allowed_origin_set(db: Session, org_id: UUID) -> frozenset[str]:
    return frozenset(row.origin for row in list_allowed_origins(db, org_id))


def add_allowed_origin(db: Session, org_id: UUID, origin: str) -> tuple[OrgAllowedOrigin, bool]:
    """
    Add an origin to the org allowlist.

    Returns:
        (row, created) - created is False if the origin was already present

    Raises:
        ValueError: If the origin is malformed
    """
    normalized = normalize_origin(origin)

    def _create() -> OrgAllowedOrigin:
        row = OrgAllowedOrigin(organization_id=org_id, origin=normalized)
        db.add(row)
        return row

    def _reread() -> OrgAllowedOrigin | None:
        return (
            db.query(OrgAllowedOrigin)
            .filter(
                OrgAllowedOrigin.organization_id == org_id,
                OrgAllowedOrigin.origin == normalized,
            )
            .first()
        )

    row, created = create_or_reread(db, _create, _reread, label="allowed origin")
    db.commit()
    return row, created


def remove_allowed_origin(db: Session, org_id: UUID, origin_id: UUID) -> bool:
    row = (
        db.query(OrgAllowedOrigin)
        .filter(OrgAllowedOrigin.id == origin_id, OrgAllowedOrigin.organization_id == org_id)
        .first()
    )
    if not row:
        return False
    db.delete(row)
    db.commit()
    return True


# =============================================================================
# Org config blob (notifications, transaction categories)
# =============================================================================

@dataclass
class NotificationConfig:
    emails: list[str] = field(default_factory=list)
    notify_on: dict[str, bool] = field(default_factory=dict)

    def enabled_for(self, kind: str) -> bool:
        return bool(self.emails) and self.notify_on.get(kind, True)


_NOTIFY_FLAGS = {
    "lead": "notifyOnLead",
    "donation": "notifyOnDonation",
    "booking": "notifyOnBooking",
    "feedback": "notifyOnFeedback",
}


def get_notification_config(org: Organization) -> NotificationConfig:
    config = org.config if isinstance(org.config, dict) else {}
    raw = config.get("notifications")
    raw = raw if isinstance(raw, dict) else {}

    emails_raw = raw.get("emails")
    emails = [
        e.strip() for e in (emails_raw if isinstance(emails_raw, list) else [])
        if isinstance(e, str) and e.strip()
    ]
    notify_on = {
        kind: raw[flag] if isinstance(raw.get(flag), bool) else True
        for kind, flag in _NOTIFY_FLAGS.items()
    }
    return NotificationConfig(emails=emails, notify_on=notify_on)


DEFAULT_TRANSACTION_CATEGORIES = [
    {"code": "donation", "label": "Donation", "color": "#3b82f6", "type": "income", "order": 1},
    {"code": "service", "label": "Service", "color": "#22c55e", "type": "income", "order": 2},
    {"code": "refund", "label": "Refund", "color": "#ef4444", "type": "expense", "order": 3},
]


def get_transaction_categories(org: Organization) -> list[dict]:
    """Org taxonomy with defaults filled in, sorted by `order`."""
    config = org.config if isinstance(org.config, dict) else {}
    raw = config.get("transactionCategories")
    if not isinstance(raw, list) or not raw:
        return [dict(cat) for cat in DEFAULT_TRANSACTION_CATEGORIES]

    categories = []
    for index, cat in enumerate(raw):
        cat = cat if isinstance(cat, dict) else {}
        code = cat.get("code")
        code = code.strip() if isinstance(code, str) and code.strip() else f"category_{index + 1}"
        label = cat.get("label")
        label = label.strip() if isinstance(label, str) and label.strip() else code
        color = cat.get("color")
        color = (
            color.strip()
            if isinstance(color, str) and color.strip()
            else DEFAULT_TRANSACTION_CATEGORIES[0]["color"]
        )
        cat_type = (
            TransactionType.EXPENSE.value
            if cat.get("type") == TransactionType.EXPENSE.value
            else TransactionType.INCOME.value
        )
        order = cat.get("order")
        order = order if isinstance(order, (int, float)) and not isinstance(order, bool) else index + 1
        categories.append(
            {"code": code, "label": label, "color": color, "type": cat_type, "order": order}
        )
    return sorted(categories, key=lambda c: c["order"])


def pick_transaction_category(
    org: Organization,
    preferred_codes: list[str] | None = None,
    preferred_type: str | None = None,
) -> dict | None:
    """Preferred code first, then first category of preferred_type, then first overall."""
    categories = get_transaction_categories(org)
    if not categories:
        return None
    for code in preferred_codes or []:
        for cat in categories:
            if cat["code"] == code:
                return cat
    if preferred_type:
        for cat in categories:
            if cat["type"] == preferred_type:
                return cat
    return categories[0]
