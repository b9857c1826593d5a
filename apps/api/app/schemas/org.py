"""Organization-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class OrgCreate(BaseModel):
    """Request schema for creating an organization."""

    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=100)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str) -> str:
        """Validate slug format: lowercase, alphanumeric with hyphens."""
        v = v.lower().strip()
        if not v or not v.replace("-", "").isalnum():
            raise ValueError("Slug can contain letters, numbers and dashes only")
        return v


class OrgRead(BaseModel):
    """Response schema for reading an organization."""

    id: UUID
    name: str
    slug: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AllowedOriginCreate(BaseModel):
    origin: str = Field(..., min_length=1, max_length=255)


class AllowedOriginRead(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: UUID
    origin: str
    created_at: datetime


class OrgIntegrationRead(BaseModel):
    """What a staff member needs to embed public widgets."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    slug: str
    public_key: str
    key_header: str
    allowed_origins: list[AllowedOriginRead]
