"""Schemas for public forms: field specs, resolved configs, and staff edits."""

from datetime import datetime
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire format is camelCase; Python attributes stay snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Field specs (tagged union on `type`)
# =============================================================================

class _FieldSpecBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    label: str | None = Field(None, max_length=200)
    required: bool = False


class TextFieldSpec(_FieldSpecBase):
    """Free text; min/max bound the trimmed string length."""

    type: Literal["text", "textarea", "tel"]
    min: int | None = Field(None, ge=0)
    max: int | None = Field(None, ge=0)
    pattern: str | None = None


class EmailFieldSpec(_FieldSpecBase):
    type: Literal["email"]
    min: int | None = Field(None, ge=0)
    max: int | None = Field(None, ge=0)
    pattern: str | None = None


class NumberFieldSpec(_FieldSpecBase):
    """Numeric input; min/max bound the parsed value."""

    type: Literal["number", "amount"]
    min: float | None = None
    max: float | None = None


class SelectFieldSpec(_FieldSpecBase):
    type: Literal["select"]
    options: list[str] = Field(default_factory=list)
    min: int | None = Field(None, ge=0)
    max: int | None = Field(None, ge=0)
    pattern: str | None = None


class CheckboxFieldSpec(_FieldSpecBase):
    type: Literal["checkbox"]


FieldSpec = Annotated[
    Union[TextFieldSpec, EmailFieldSpec, NumberFieldSpec, SelectFieldSpec, CheckboxFieldSpec],
    Field(discriminator="type"),
]

StringFieldSpec = (TextFieldSpec, EmailFieldSpec, SelectFieldSpec)


class FormRules(CamelModel):
    require_one_of: list[str] | None = None


class FormSchema(CamelModel):
    """Parsed form schema document (stored in PublicForm.schema_json)."""

    config_version: str = "1"
    fields: list[FieldSpec] = Field(default_factory=list)
    rules: FormRules = Field(default_factory=FormRules)

    @model_validator(mode="after")
    def _unique_field_names(self) -> "FormSchema":
        seen: set[str] = set()
        for field in self.fields:
            if field.name in seen:
                raise ValueError(f"Duplicate field name '{field.name}'")
            seen.add(field.name)
        return self

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# Public endpoints
# =============================================================================

class PublicFormConfigRead(CamelModel):
    form_key: str
    title: str
    is_active: bool
    config_version: str
    fields: list[FieldSpec]
    rules: FormRules


class FieldErrorDetail(BaseModel):
    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    error: str
    details: list[FieldErrorDetail]


# =============================================================================
# Staff endpoints
# =============================================================================

class PublicFormRead(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: UUID
    form_key: str
    form_type: str
    title: str
    description: str | None = None
    is_active: bool
    # `schema_json` would shadow a BaseModel method
    form_schema: dict | None = Field(
        None,
        validation_alias=AliasChoices("schema_json", "schemaJson"),
        serialization_alias="schemaJson",
    )
    created_at: datetime
    updated_at: datetime


class PublicFormUpdate(CamelModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)
    is_active: bool | None = None
    form_schema: FormSchema | None = Field(None, alias="schema")
