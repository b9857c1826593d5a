"""Utility modules."""

from app.utils.normalization import (
    extract_email_local_part,
    normalize_email,
    normalize_phone,
    sanitize_text,
)

__all__ = [
    # Normalization
    "extract_email_local_part",
    "normalize_email",
    "normalize_phone",
    "sanitize_text",
]
