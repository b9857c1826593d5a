"""Pydantic schemas for API request/response models."""

from app.schemas.auth import TokenPayload, UserSession
from app.schemas.crm import CaseRead, ContactRead, SubmissionResponse, TransactionRead
from app.schemas.forms import (
    FieldSpec,
    FormRules,
    FormSchema,
    PublicFormConfigRead,
    PublicFormRead,
    PublicFormUpdate,
)
from app.schemas.org import (
    AllowedOriginCreate,
    AllowedOriginRead,
    OrgCreate,
    OrgIntegrationRead,
    OrgRead,
)

__all__ = [
    "AllowedOriginCreate",
    "AllowedOriginRead",
    "CaseRead",
    "ContactRead",
    "FieldSpec",
    "FormRules",
    "FormSchema",
    "OrgCreate",
    "OrgIntegrationRead",
    "OrgRead",
    "PublicFormConfigRead",
    "PublicFormRead",
    "PublicFormUpdate",
    "SubmissionResponse",
    "TokenPayload",
    "TransactionRead",
    "UserSession",
]
