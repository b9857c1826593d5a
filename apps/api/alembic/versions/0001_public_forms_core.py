"""Baseline migration - tenants, staff, public forms, and CRM records

Revision ID: 0001_public_forms_core
Revises:
Create Date: 2026-10-19

Creates the organization/staff tables, the public form tables (forms and
allowed origins), and the CRM records written by public submissions.
Unique constraints here back the dedup logic for contacts and idempotent
submissions, so their names must match app/db/models.py.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_public_forms_core'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_DOCUMENT = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps(*, updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]
    if updated:
        columns.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        )
    return columns


def _org_fk() -> sa.Column:
    return sa.Column(
        "organization_id",
        sa.Uuid(),
        sa.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    """Create tenant, public form, and CRM tables."""

    # ==========================================================================
    # Tenants & staff
    # ==========================================================================
    op.create_table(
        "organizations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("public_key", sa.String(128), nullable=False),
        sa.Column("config", JSON_DOCUMENT, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("slug", name="uq_organizations_slug"),
        sa.UniqueConstraint("public_key", name="uq_organizations_public_key"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("token_version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(updated=False),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "memberships",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _org_fk(),
        sa.Column("role", sa.String(50), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("user_id", "organization_id", name="uq_memberships_user_org"),
    )
    op.create_index("idx_memberships_org_id", "memberships", ["organization_id"])

    # ==========================================================================
    # Public forms
    # ==========================================================================
    op.create_table(
        "org_allowed_origins",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _org_fk(),
        sa.Column("origin", sa.String(255), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("organization_id", "origin", name="uq_org_allowed_origins_org_origin"),
    )

    op.create_table(
        "public_forms",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _org_fk(),
        sa.Column("form_key", sa.String(64), nullable=False),
        sa.Column("form_type", sa.String(32), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("schema_json", JSON_DOCUMENT, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("organization_id", "form_key", name="uq_public_forms_org_form_key"),
    )
    op.create_index("idx_public_forms_org_type", "public_forms", ["organization_id", "form_type"])

    # ==========================================================================
    # CRM records
    # ==========================================================================
    op.create_table(
        "contacts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _org_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("email_normalized", sa.String(255), nullable=True),
        sa.Column("phone_normalized", sa.String(50), nullable=True),
        *_timestamps(),
        # NULLs never collide, so contacts without email/phone are unrestricted
        sa.UniqueConstraint(
            "organization_id", "email_normalized", name="uq_contacts_org_email_normalized"
        ),
        sa.UniqueConstraint(
            "organization_id", "phone_normalized", name="uq_contacts_org_phone_normalized"
        ),
    )

    op.create_table(
        "cases",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _org_fk(),
        sa.Column("contact_id", sa.Uuid(), sa.ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "public_form_id", sa.Uuid(), sa.ForeignKey("public_forms.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="new"),
        sa.Column("source", sa.String(100), nullable=True),
        sa.Column("form_key", sa.String(64), nullable=True),
        sa.Column("client_request_id", sa.String(100), nullable=True),
        sa.Column("extra_json", JSON_DOCUMENT, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "organization_id", "client_request_id", name="uq_cases_org_client_request_id"
        ),
    )
    op.create_index("idx_cases_org_status", "cases", ["organization_id", "status"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _org_fk(),
        sa.Column("contact_id", sa.Uuid(), sa.ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True),
        sa.Column("case_id", sa.Uuid(), sa.ForeignKey("cases.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "public_form_id", sa.Uuid(), sa.ForeignKey("public_forms.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("type", sa.String(20), nullable=False, server_default="income"),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(8), nullable=False, server_default="UAH"),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("happened_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("idx_transactions_org_happened", "transactions", ["organization_id", "happened_at"])
    op.create_index("idx_transactions_org_type", "transactions", ["organization_id", "type"])


def downgrade() -> None:
    """Drop all tables created by this revision."""
    op.drop_table("transactions")
    op.drop_table("cases")
    op.drop_table("contacts")
    op.drop_table("public_forms")
    op.drop_table("org_allowed_origins")
    op.drop_table("memberships")
    op.drop_table("users")
    op.drop_table("organizations")
