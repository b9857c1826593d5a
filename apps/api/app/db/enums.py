"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    Staff roles within an organization.

    - OWNER: Created the organization; full control
    - ADMIN: Manages forms, origins, and public keys
    - VIEWER: Read-only access to staff endpoints
    """
    OWNER = "owner"
    ADMIN = "admin"
    VIEWER = "viewer"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class FormKind(str, Enum):
    """Built-in public form kinds with default schemas."""
    LEAD = "lead"
    DONATION = "donation"
    BOOKING = "booking"
    FEEDBACK = "feedback"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class CaseStatus(str, Enum):
    """Case lifecycle status."""
    NEW = "new"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


class TransactionType(str, Enum):
    """Direction of money movement."""
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# Role Sets (for permission checks)
# =============================================================================

ROLES_CAN_MANAGE_FORMS = {Role.OWNER, Role.ADMIN}
ROLES_CAN_MANAGE_INTEGRATION = {Role.OWNER, Role.ADMIN}

DEFAULT_CASE_STATUS = CaseStatus.NEW.value
