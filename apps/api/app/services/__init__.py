"""Service layer modules."""

from app.services.org_service import (
    create_org,
    get_org_by_id,
    get_org_by_slug,
)

# Import service modules (not individual functions) for cleaner access
from app.services import contact_service
from app.services import form_schema_service
from app.services import submission_service

__all__ = [
    # Org service
    "create_org",
    "get_org_by_id",
    "get_org_by_slug",
    # Modules
    "contact_service",
    "form_schema_service",
    "submission_service",
]
