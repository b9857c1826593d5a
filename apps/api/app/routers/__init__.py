"""API routers."""

from app.routers.forms import router as public_forms_admin_router
from app.routers.forms_public import router as public_forms_router
from app.routers.orgs import router as orgs_router

__all__ = [
    "orgs_router",
    "public_forms_admin_router",
    "public_forms_router",
]
