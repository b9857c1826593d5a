"""SQLAlchemy ORM models for tenants, staff, public forms, and CRM records."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON, Boolean, ForeignKey, Index, Integer, Numeric, String, Text,
    UniqueConstraint, Uuid, func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.enums import DEFAULT_CASE_STATUS, TransactionType

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite for local/test runs).
JsonDocument = JSON().with_variant(JSONB(), "postgresql")


# =============================================================================
# Tenant & Staff Models
# =============================================================================

class Organization(Base):
    """
    A tenant in the multi-tenant system.

    All domain entities belong to an organization
    and must be scoped by organization_id in all queries.

    `public_key` is the capability token embedded in public widgets;
    `config` holds notification rules and the transaction category taxonomy.
    """
    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    public_key: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    config: Mapped[dict | None] = mapped_column(JsonDocument, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    memberships: Mapped[list["Membership"]] = relationship(
        back_populates="organization",
        cascade="all, delete-orphan",
    )
    allowed_origins: Mapped[list["OrgAllowedOrigin"]] = relationship(
        back_populates="organization",
        cascade="all, delete-orphan",
    )
    public_forms: Mapped[list["PublicForm"]] = relationship(
        back_populates="organization",
        cascade="all, delete-orphan",
    )


class User(Base):
    """Staff user. Authenticates with a bearer session token."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Bumped to revoke all outstanding session tokens
    token_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    memberships: Mapped[list["Membership"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )


class Membership(Base):
    """
    Links a user to an organization with a role.

    Constraint: UNIQUE(user_id, organization_id).
    """
    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("user_id", "organization_id", name="uq_memberships_user_org"),
        Index("idx_memberships_org_id", "organization_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    user: Mapped["User"] = relationship(back_populates="memberships")
    organization: Mapped["Organization"] = relationship(back_populates="memberships")


class OrgAllowedOrigin(Base):
    """
    Browser origin allowed to call an organization's public form endpoints.

    An organization with no rows has opted out of origin enforcement.
    """
    __tablename__ = "org_allowed_origins"
    __table_args__ = (
        UniqueConstraint("organization_id", "origin", name="uq_org_allowed_origins_org_origin"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    origin: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    organization: Mapped["Organization"] = relationship(back_populates="allowed_origins")


# =============================================================================
# Public Forms
# =============================================================================

class PublicForm(Base):
    """
    Public form exposed to website widgets.

    `schema_json` is optional; when empty the built-in default for
    `form_key` is served.
    """
    __tablename__ = "public_forms"
    __table_args__ = (
        UniqueConstraint("organization_id", "form_key", name="uq_public_forms_org_form_key"),
        Index("idx_public_forms_org_type", "organization_id", "form_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    form_key: Mapped[str] = mapped_column(String(64), nullable=False)
    form_type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    schema_json: Mapped[dict | None] = mapped_column(JsonDocument, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    organization: Mapped["Organization"] = relationship(back_populates="public_forms")


# =============================================================================
# CRM Records
# =============================================================================

class Contact(Base):
    """
    A person known to an organization.

    email_normalized / phone_normalized are lookup keys derived from the raw
    values; each is unique per organization when present.
    """
    __tablename__ = "contacts"
    __table_args__ = (
        UniqueConstraint(
            "organization_id", "email_normalized", name="uq_contacts_org_email_normalized"
        ),
        UniqueConstraint(
            "organization_id", "phone_normalized", name="uq_contacts_org_phone_normalized"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    email_normalized: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone_normalized: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )


class Case(Base):
    """
    A unit of work created from a public submission (or by staff).

    client_request_id is the idempotency anchor: one Case per
    (organization_id, client_request_id).
    """
    __tablename__ = "cases"
    __table_args__ = (
        UniqueConstraint(
            "organization_id", "client_request_id", name="uq_cases_org_client_request_id"
        ),
        Index("idx_cases_org_status", "organization_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    contact_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True
    )
    public_form_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("public_forms.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(50), default=DEFAULT_CASE_STATUS, nullable=False)
    source: Mapped[str | None] = mapped_column(String(100), nullable=True)
    form_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    client_request_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    # Scalar body keys outside the form schema, kept for forward compatibility
    extra_json: Mapped[dict | None] = mapped_column(JsonDocument, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    contact: Mapped["Contact | None"] = relationship()
    transactions: Mapped[list["Transaction"]] = relationship(back_populates="case")


class Transaction(Base):
    """Money movement (e.g. a donation) optionally tied to a contact and case."""
    __tablename__ = "transactions"
    __table_args__ = (
        Index("idx_transactions_org_happened", "organization_id", "happened_at"),
        Index("idx_transactions_org_type", "organization_id", "type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    contact_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True
    )
    case_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("cases.id", ondelete="SET NULL"), nullable=True
    )
    public_form_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("public_forms.id", ondelete="SET NULL"), nullable=True
    )
    type: Mapped[str] = mapped_column(
        String(20), default=TransactionType.INCOME.value, nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="UAH", nullable=False)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    happened_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    case: Mapped["Case | None"] = relationship(back_populates="transactions")
