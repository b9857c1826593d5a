"""Data normalization utilities for consistent lookup keys."""

import math
import re
from typing import Any, Optional


_NON_DIGITS = re.compile(r"\D+")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value)


def normalize_email(email: Any) -> Optional[str]:
    """
    Normalize email to a lookup key (trim + lowercase).

    Args:
        email: Raw email input (any type; non-strings are stringified)

    Returns:
        Lowercased email or None if empty
    """
    normalized = _as_text(email).strip().lower()
    return normalized or None


def normalize_phone(phone: Any) -> Optional[str]:
    """
    Normalize phone to a lookup key: digits only, keeping a leading '+'.

    Examples:
    - "+38 (050) 123-45-67" → "+380501234567"
    - "050-123-45-67" → "0501234567"

    Args:
        phone: Raw phone input

    Returns:
        Normalized phone or None if it contains no digits
    """
    cleaned = _as_text(phone).strip()
    digits = _NON_DIGITS.sub("", cleaned)
    if not digits:
        return None
    return f"+{digits}" if cleaned.startswith("+") else digits


def sanitize_text(value: Any, max_len: int | None = None) -> Optional[str]:
    """
    Trim free text for storage, truncating to max_len.

    Returns None for empty results.
    """
    text = _as_text(value).strip()
    if not text:
        return None
    if max_len and len(text) > max_len:
        text = text[:max_len]
    return text


def extract_email_local_part(email: Optional[str]) -> Optional[str]:
    """Return the part of an email before '@' (used for display fallbacks)."""
    if not email:
        return None
    local = email.strip().split("@", 1)[0].strip()
    return local or None
