"""Read schemas for contacts, cases, and transactions returned by public submissions."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _ReadModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class ContactRead(_ReadModel):
    id: UUID
    name: str
    email: str | None = None
    phone: str | None = None
    notes: str | None = None
    created_at: datetime


class CaseRead(_ReadModel):
    id: UUID
    contact_id: UUID | None = None
    public_form_id: UUID | None = None
    title: str
    description: str | None = None
    status: str
    source: str | None = None
    form_key: str | None = None
    created_at: datetime


class TransactionRead(_ReadModel):
    id: UUID
    contact_id: UUID | None = None
    case_id: UUID | None = None
    type: str
    amount: Decimal
    currency: str
    category: str | None = None
    description: str | None = None
    happened_at: datetime


class SubmissionResponse(BaseModel):
    """Result of a public submission (first write or idempotent replay)."""

    contact: ContactRead | None = None
    case: CaseRead
    transaction: TransactionRead | None = None
    idempotent: bool = False

    def to_payload(self) -> dict:
        payload = self.model_dump(mode="json", by_alias=True)
        if payload.get("transaction") is None:
            payload.pop("transaction", None)
        if not self.idempotent:
            payload.pop("idempotent", None)
        return payload
