"""Validate and coerce raw public submissions against a resolved form schema.

Malformed input never raises: every problem is reported as a field error so
the router can answer 400 with a detail list.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from app.schemas.forms import (
    CheckboxFieldSpec,
    EmailFieldSpec,
    FormSchema,
    NumberFieldSpec,
    SelectFieldSpec,
)

REQUIRED_MESSAGE = "Required"
EMAIL_SHAPE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CHECKBOX_TRUE_STRINGS = {"true", "1", "on", "yes"}
# Stored amounts are Numeric(14, 2)
NUMBER_LIMIT = 10**12


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass
class ValidationResult:
    values: dict[str, object] = field(default_factory=dict)
    errors: list[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _is_absent(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return False


def _has_value(value: object) -> bool:
    return value is not None and value != "" and value is not False


def _coerce_checkbox(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in CHECKBOX_TRUE_STRINGS
    return False


def parse_number(value: object) -> float | None:
    """Parse ints/floats/numeric strings ('.' or ',' decimal separator)."""
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            number = float(value.strip().replace(",", "."))
        else:
            return None
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _format_bound(bound: float) -> str:
    return f"{bound:g}"


def _check_string(spec, text: str) -> str | None:
    if spec.min is not None and len(text) < spec.min:
        return f"Must be at least {spec.min} characters"
    if spec.max is not None and len(text) > spec.max:
        return f"Must be at most {spec.max} characters"
    if spec.pattern:
        try:
            if re.search(spec.pattern, text) is None:
                return "Invalid format"
        except re.error:
            return "Invalid format"
    if isinstance(spec, EmailFieldSpec) and not EMAIL_SHAPE.match(text):
        return "Invalid email"
    if isinstance(spec, SelectFieldSpec) and spec.options and text not in spec.options:
        return "Invalid option"
    return None


def validate_payload(schema: FormSchema, body: object) -> ValidationResult:
    """
    Check a raw body against the schema, in schema field order.

    Returns typed values for present fields, or the ordered field errors.
    Keys outside the schema are ignored.
    """
    data = body if isinstance(body, Mapping) else {}
    result = ValidationResult()

    for spec in schema.fields:
        raw = data.get(spec.name)
        if _is_absent(raw):
            if spec.required:
                result.errors.append(FieldError(spec.name, REQUIRED_MESSAGE))
            continue

        if isinstance(spec, CheckboxFieldSpec):
            result.values[spec.name] = _coerce_checkbox(raw)
            continue

        if isinstance(spec, NumberFieldSpec):
            number = parse_number(raw)
            if number is None:
                result.errors.append(FieldError(spec.name, "Must be a number"))
            elif abs(number) >= NUMBER_LIMIT:
                result.errors.append(FieldError(spec.name, "Number is too large"))
            elif spec.min is not None and number < spec.min:
                result.errors.append(
                    FieldError(spec.name, f"Must be at least {_format_bound(spec.min)}")
                )
            elif spec.max is not None and number > spec.max:
                result.errors.append(
                    FieldError(spec.name, f"Must be at most {_format_bound(spec.max)}")
                )
            else:
                result.values[spec.name] = number
            continue

        if isinstance(raw, (dict, list, tuple, set)):
            result.errors.append(FieldError(spec.name, "Must be a string"))
            continue

        text = str(raw).strip()
        message = _check_string(spec, text)
        if message:
            result.errors.append(FieldError(spec.name, message))
        else:
            result.values[spec.name] = text

    require_one_of = schema.rules.require_one_of
    if require_one_of and not any(_has_value(result.values.get(name)) for name in require_one_of):
        result.errors.append(
            FieldError(
                require_one_of[0],
                f"At least one of {', '.join(require_one_of)} is required",
            )
        )

    if result.errors:
        result.values = {}
    return result
